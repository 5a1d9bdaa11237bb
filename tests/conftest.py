# tests/conftest.py
import os
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from context_compare.llm.client import LLMResponse
from context_compare.main import app
from context_compare.memory.store import DocumentStore
from context_compare.models import TokenUsage
from context_compare.workflow.budget import BudgetTracker


class FakeLLMClient:
    """
    Stands in for the Anthropic client.

    Replies are consumed in order; every call is recorded so tests can
    inspect the system prompt each mode sent.
    """

    def __init__(self):
        self.replies = []
        self.calls = []

    def queue(self, text: str, **usage):
        self.replies.append(LLMResponse(text=text, usage=TokenUsage(**usage)))
        return self

    def fail_with(self, error: Exception):
        self.replies.append(error)
        return self

    def generate(self, system, question, max_tokens):
        self.calls.append(
            {"system": system, "question": question, "max_tokens": max_tokens}
        )

        if not self.replies:
            raise AssertionError("Unexpected model call")

        reply = self.replies.pop(0)

        if isinstance(reply, Exception):
            raise reply

        return reply


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def store(tmp_path):
    return DocumentStore(tmp_path / "uploads")


@pytest.fixture
def budget():
    return BudgetTracker(limit=1.0)


@pytest.fixture(autouse=True)
def reset_app_state(monkeypatch, store, budget, fake_llm):
    """
    Swap the route singletons for fresh instances so tests never share
    documents, spend or model replies.
    """
    from context_compare.api import routes
    from context_compare.observability.metrics import metrics_tracker

    monkeypatch.setattr(routes, "document_store", store)
    monkeypatch.setattr(routes, "budget_tracker", budget)
    monkeypatch.setattr(routes, "llm_client", fake_llm)

    metrics_tracker.reset()

    yield

    metrics_tracker.reset()


@pytest.fixture
def upload_document(client):
    """Upload a text document and return the response body."""

    def _upload(filename: str = "notes.txt", content: str = "Paris is the capital of France"):
        response = client.post(
            "/upload",
            files={"file": (filename, content.encode("utf-8"), "text/plain")}
        )
        assert response.status_code == 200, f"Upload failed: {response.json()}"
        return response.json()["document"]

    return _upload
