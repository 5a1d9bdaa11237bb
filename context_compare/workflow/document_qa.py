# context_compare/workflow/document_qa.py
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Dict, List, Tuple

from context_compare.config import ANSWER_MAX_TOKENS, SELECTION_MAX_TOKENS
from context_compare.memory.store import Document, DocumentStore
from context_compare.prompts.prompt_builder import (
    build_cached_blocks,
    build_load_all_prompt,
    build_selection_prompt,
    build_selection_question,
)
from context_compare.workflow.budget import BudgetTracker, calculate_cost

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```json|```")
_INTEGER = re.compile(r"\d+")


@dataclass
class Selection:
    doc_ids: List
    used_fallback: bool


def _elapsed_ms(start: float) -> int:
    return int(round((time.time() - start) * 1000))


# ============================================================
# LOAD ALL
# ============================================================

def query_all(
    question: str,
    store: DocumentStore,
    budget: BudgetTracker,
    llm_client,
) -> Dict:
    """
    Answer with every stored document in one plain system prompt.

    No selection and no caching: this is the worst-case baseline.
    """
    budget.check()

    documents = store.list()

    system_prompt = build_load_all_prompt(documents)

    start = time.time()

    response = llm_client.generate(
        system=system_prompt,
        question=question,
        max_tokens=ANSWER_MAX_TOKENS,
    )

    response_time = _elapsed_ms(start)

    cost = calculate_cost(response.usage)
    total_spent = budget.add(cost)

    return {
        "answer": response.text,
        "mode": "load_all",
        "docsLoaded": len(documents),
        "usage": response.usage,
        "cost": cost,
        "totalSpent": total_spent,
        "responseTime": response_time,
    }


# ============================================================
# SMART: SELECT THEN CACHE
# ============================================================

def parse_selection(text: str) -> Selection:
    """
    Read the IDs out of a selection response.

    Accepts {"relevant_docs": [...]} or a bare JSON array, optionally inside
    a code fence. Anything unparseable falls back to every integer found in
    the raw text, in order.
    """
    try:

        parsed = json.loads(_CODE_FENCE.sub("", text).strip())

    except ValueError:

        ids = [int(m) for m in _INTEGER.findall(text)]

        logger.warning(
            "selection_parse_fallback",
            extra={"raw_selection": text[:200], "doc_ids": ids},
        )

        return Selection(doc_ids=ids, used_fallback=True)

    if isinstance(parsed, dict):
        ids = parsed.get("relevant_docs") or []
    elif isinstance(parsed, list):
        ids = parsed
    else:
        ids = []

    if not isinstance(ids, list):
        ids = []

    return Selection(doc_ids=ids, used_fallback=False)


def normalize_doc_id(doc_id):
    """
    Models sometimes quote IDs or emit them as floats. Digit-only strings
    and integral floats become ints; anything else comes back unchanged.
    """
    if isinstance(doc_id, bool):
        return doc_id

    if isinstance(doc_id, float) and doc_id.is_integer():
        return int(doc_id)

    if isinstance(doc_id, str) and doc_id.strip().isascii() and doc_id.strip().isdigit():
        return int(doc_id.strip())

    return doc_id


def resolve_documents(doc_ids: List, store: DocumentStore) -> List[Document]:
    """
    Look selected IDs up in the store, in selection order.

    Unknown IDs are dropped silently and repeats are kept once.
    """
    documents = []
    seen = set()

    for doc_id in doc_ids:

        doc = store.get(normalize_doc_id(doc_id))

        if doc is None or doc.id in seen:
            continue

        seen.add(doc.id)
        documents.append(doc)

    return documents


def select_documents(
    question: str,
    store: DocumentStore,
    llm_client,
) -> Tuple[Selection, object]:

    response = llm_client.generate(
        system=build_selection_prompt(store.index()),
        question=build_selection_question(question),
        max_tokens=SELECTION_MAX_TOKENS,
    )

    selection = parse_selection(response.text)

    logger.info(
        "Smart mode selected docs",
        extra={
            "doc_ids": selection.doc_ids,
            "used_fallback": selection.used_fallback,
        },
    )

    return selection, response


def query_smart(
    question: str,
    store: DocumentStore,
    budget: BudgetTracker,
    llm_client,
) -> Dict:
    """
    Two sequential calls: a cheap selection over the document index, then
    an answer scoped to the selected documents as cacheable segments.
    """
    budget.check()

    start = time.time()

    selection, selection_response = select_documents(question, store, llm_client)

    selection_time = _elapsed_ms(start)

    documents = resolve_documents(selection.doc_ids, store)

    answer_response = llm_client.generate(
        system=build_cached_blocks(documents),
        question=question,
        max_tokens=ANSWER_MAX_TOKENS,
    )

    response_time = _elapsed_ms(start)

    cost = calculate_cost(selection_response.usage) + calculate_cost(answer_response.usage)
    total_spent = budget.add(cost)

    answer_usage = answer_response.usage

    return {
        "answer": answer_response.text,
        "mode": "smart",
        "docsLoaded": len(documents),
        "selectedDocs": [{"id": d.id, "filename": d.filename} for d in documents],
        "relevantDocIds": selection.doc_ids,
        "selectionFallback": selection.used_fallback,
        "selectionTime": selection_time,
        "usage": selection_response.usage + answer_usage,
        "cost": cost,
        "totalSpent": total_spent,
        "responseTime": response_time,
        "cacheStats": {
            "cacheCreationTokens": answer_usage.cache_creation_input_tokens,
            "cacheReadTokens": answer_usage.cache_read_input_tokens,
        },
    }
