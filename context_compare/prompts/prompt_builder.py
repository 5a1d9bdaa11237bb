# context_compare/prompts/prompt_builder.py

from typing import Dict, List

from context_compare.config import MAX_CACHE_BREAKPOINTS
from context_compare.memory.store import Document
from context_compare.prompts.system_prompts import (
    LOAD_ALL_SYSTEM_PROMPT,
    SELECTION_SYSTEM_PROMPT,
    SELECTION_USER_PROMPT,
    SMART_ANSWER_SYSTEM_PROMPT,
)

DOCUMENT_DELIMITER = "\n\n---\n\n"

CACHE_CONTROL = {"type": "ephemeral"}


def format_document(doc: Document) -> str:
    return f"DOCUMENT: {doc.filename}\n\n{doc.content}"


def build_load_all_prompt(documents: List[Document]) -> str:
    """
    Single plain-string system prompt with every document, in store order.
    """

    prompt = LOAD_ALL_SYSTEM_PROMPT

    for doc in documents:
        prompt += format_document(doc) + DOCUMENT_DELIMITER

    return prompt


def build_document_index(index: List[Dict]) -> str:

    return "\n\n".join(
        f"ID: {entry['id']}\nFilename: {entry['filename']}\nSize: {entry['size']} characters"
        for entry in index
    )


def build_selection_prompt(index: List[Dict]) -> str:

    return SELECTION_SYSTEM_PROMPT.format(
        document_index=build_document_index(index)
    )


def build_selection_question(question: str) -> str:

    return SELECTION_USER_PROMPT.format(question=question)


def build_cached_blocks(documents: List[Document]) -> List[Dict]:
    """
    Segmented system prompt: the answer instruction, then one text block per
    document, each carrying a cache_control marker.

    The provider caps cache breakpoints per request. Past the cap only the
    trailing blocks are marked; a breakpoint caches everything before it, so
    the full prefix is still cacheable.
    """

    texts = [SMART_ANSWER_SYSTEM_PROMPT] + [format_document(d) for d in documents]

    first_marked = max(0, len(texts) - MAX_CACHE_BREAKPOINTS)

    blocks = []

    for i, text in enumerate(texts):

        block = {"type": "text", "text": text}

        if i >= first_marked:
            block["cache_control"] = dict(CACHE_CONTROL)

        blocks.append(block)

    return blocks
