# tests/test_api.py
import pytest


class TestRootAndHealth:

    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert "message" in data
        assert "version" in data
        assert "docs" in data

    def test_health_reflects_documents(self, client, upload_document):
        upload_document()

        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["total_documents"] == 1
        assert data["total_characters"] == len("Paris is the capital of France")
        assert data["budget_remaining"] == 1.0


class TestUploadEndpoint:

    def test_upload_text_file(self, client):
        response = client.post(
            "/upload",
            files={"file": ("notes.txt", b"Paris is the capital of France", "text/plain")}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["document"] == {"id": 0, "filename": "notes.txt", "size": 30}

    def test_upload_markdown_file(self, client):
        response = client.post(
            "/upload",
            files={"file": ("README.md", b"# Title", "text/markdown")}
        )

        assert response.status_code == 200

    def test_upload_wrong_extension_rejected(self, client, store):
        response = client.post(
            "/upload",
            files={"file": ("report.pdf", b"%PDF-1.4", "application/pdf")}
        )

        assert response.status_code == 400
        assert ".txt" in response.json()["error"]
        assert len(store) == 0

    def test_upload_too_large(self, client, monkeypatch):
        from context_compare.api import routes

        monkeypatch.setattr(routes, "MAX_FILE_SIZE_MB", 0)

        response = client.post(
            "/upload",
            files={"file": ("big.txt", b"x" * 10, "text/plain")}
        )

        assert response.status_code == 413
        assert "too large" in response.json()["error"].lower()

    def test_upload_undecodable_file(self, client):
        response = client.post(
            "/upload",
            files={"file": ("bin.txt", b"\xff\xfe\xfa", "text/plain")}
        )

        assert response.status_code == 500
        assert "error" in response.json()

    def test_upload_missing_file_field(self, client):
        response = client.post("/upload", data={"other": "x"})

        assert response.status_code == 422

    def test_sequential_ids(self, client, upload_document):
        first = upload_document("a.txt", "alpha")
        second = upload_document("b.txt", "beta")

        assert first["id"] == 0
        assert second["id"] == 1

    def test_same_filename_twice_keeps_both_files(self, client, upload_document, store):
        upload_document("notes.txt", "first")
        upload_document("notes.txt", "second")

        paths = [doc.path for doc in store.list()]

        assert paths[0] != paths[1]
        assert [p.read_text() for p in paths] == ["first", "second"]

    def test_upload_handler_runs_in_threadpool(self):
        import inspect

        from context_compare.api import routes

        # Sync handlers are dispatched to a worker thread by FastAPI, so the
        # disk write never blocks the event loop.
        assert not inspect.iscoroutinefunction(routes.upload_document)


class TestDocumentsEndpoint:

    def test_list_documents_empty(self, client):
        response = client.get("/documents")

        assert response.status_code == 200
        assert response.json() == {"documents": []}

    def test_list_documents_with_uploads(self, client, upload_document):
        upload_document("a.txt", "alpha")
        upload_document("b.md", "beta")

        documents = client.get("/documents").json()["documents"]

        assert [d["id"] for d in documents] == [0, 1]
        assert [d["filename"] for d in documents] == ["a.txt", "b.md"]
        for doc in documents:
            assert set(doc) == {"id", "filename", "size", "uploadedAt"}

    def test_uploaded_at_carries_utc_offset(self, client, upload_document):
        upload_document()

        uploaded_at = client.get("/documents").json()["documents"][0]["uploadedAt"]

        assert uploaded_at.endswith("Z")


class TestBudgetEndpoint:

    def test_budget_initial(self, client):
        assert client.get("/budget").json() == {"spent": 0.0, "limit": 1.0, "remaining": 1.0}

    def test_budget_after_spend(self, client, budget):
        budget.add(0.25)

        data = client.get("/budget").json()

        assert data["spent"] == 0.25
        assert data["remaining"] == 0.75


class TestQueryAllEndpoint:

    def test_end_to_end(self, client, upload_document, fake_llm):
        upload_document()
        fake_llm.queue(
            "The capital of France is Paris (notes.txt).",
            input_tokens=60,
            output_tokens=12,
        )

        response = client.post("/query-all", json={"question": "What is the capital of France?"})

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "load_all"
        assert data["docsLoaded"] == 1
        assert "Paris" in data["answer"]
        assert data["usage"] == {
            "input_tokens": 60,
            "output_tokens": 12,
            "cache_creation_input_tokens": 0,
            "cache_read_input_tokens": 0,
        }
        assert data["cost"] > 0
        assert data["totalSpent"] == data["cost"]
        assert isinstance(data["responseTime"], int)
        assert "Paris is the capital of France" in fake_llm.calls[0]["system"]

    def test_budget_exhausted(self, client, budget, fake_llm):
        budget.add(1.0)

        response = client.post("/query-all", json={"question": "Anything?"})

        assert response.status_code == 429
        assert response.json() == {"error": "Budget limit reached: $1.00"}
        assert fake_llm.calls == []

    def test_model_failure_surfaces_message(self, client, upload_document, fake_llm):
        upload_document()
        fake_llm.fail_with(RuntimeError("upstream overloaded"))

        response = client.post("/query-all", json={"question": "Anything?"})

        assert response.status_code == 500
        assert response.json() == {"error": "upstream overloaded"}

    def test_blank_question_rejected(self, client, fake_llm):
        response = client.post("/query-all", json={"question": "   "})

        assert response.status_code == 422
        assert fake_llm.calls == []

    def test_missing_question_rejected(self, client):
        response = client.post("/query-all", json={})

        assert response.status_code == 422


class TestQuerySmartEndpoint:

    def test_end_to_end(self, client, upload_document, fake_llm):
        upload_document()
        fake_llm.queue('{"relevant_docs": [0]}', input_tokens=80, output_tokens=8)
        fake_llm.queue(
            "Paris, according to notes.txt.",
            input_tokens=10,
            output_tokens=9,
            cache_creation_input_tokens=50,
        )

        response = client.post("/query-smart", json={"question": "What is the capital of France?"})

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "smart"
        assert data["docsLoaded"] == 1
        assert data["selectedDocs"] == [{"id": 0, "filename": "notes.txt"}]
        assert data["cacheStats"] == {"cacheCreationTokens": 50, "cacheReadTokens": 0}
        assert data["usage"]["input_tokens"] == 90
        assert data["usage"]["output_tokens"] == 17
        assert "Paris" in data["answer"]

        answer_blocks = fake_llm.calls[1]["system"]
        assert len(answer_blocks) == 2
        assert "Paris is the capital of France" in answer_blocks[1]["text"]
        assert answer_blocks[1]["cache_control"] == {"type": "ephemeral"}

    def test_unknown_ids_dropped(self, client, upload_document, fake_llm):
        upload_document()
        fake_llm.queue('{"relevant_docs": [3, 0, 42]}')
        fake_llm.queue("answer")

        data = client.post("/query-smart", json={"question": "Anything?"}).json()

        assert data["docsLoaded"] == 1
        assert data["selectedDocs"] == [{"id": 0, "filename": "notes.txt"}]

    def test_quoted_ids_resolve(self, client, upload_document, fake_llm):
        upload_document()
        fake_llm.queue('{"relevant_docs": ["0"]}')
        fake_llm.queue("answer")

        data = client.post("/query-smart", json={"question": "Anything?"}).json()

        assert data["docsLoaded"] == 1
        assert data["selectedDocs"] == [{"id": 0, "filename": "notes.txt"}]
        assert len(fake_llm.calls[1]["system"]) == 2

    def test_budget_exhausted(self, client, budget, fake_llm):
        budget.add(1.5)

        response = client.post("/query-smart", json={"question": "Anything?"})

        assert response.status_code == 429
        assert "Budget limit reached" in response.json()["error"]
        assert fake_llm.calls == []

    def test_selection_failure(self, client, upload_document, fake_llm):
        upload_document()
        fake_llm.fail_with(ConnectionError("network unreachable"))

        response = client.post("/query-smart", json={"question": "Anything?"})

        assert response.status_code == 500
        assert response.json()["error"] == "network unreachable"


class TestResetEndpoint:

    def test_reset_clears_everything(self, client, upload_document, store, fake_llm):
        upload_document()
        fake_llm.queue("answer", input_tokens=1000)
        client.post("/query-all", json={"question": "Anything?"})
        paths = [d.path for d in store.list()]

        response = client.post("/reset")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "System reset"}
        assert client.get("/documents").json()["documents"] == []
        assert client.get("/budget").json()["spent"] == 0.0
        assert all(not p.exists() for p in paths)

    def test_reset_with_missing_file(self, client, upload_document, store):
        upload_document()
        store.list()[0].path.unlink()

        response = client.post("/reset")

        assert response.status_code == 200
        assert len(store) == 0

    def test_ids_restart_after_reset(self, client, upload_document):
        upload_document("a.txt", "alpha")
        client.post("/reset")

        assert upload_document("b.txt", "beta")["id"] == 0


class TestMetricsEndpoint:

    def test_per_mode_statistics(self, client, upload_document, fake_llm):
        upload_document()
        fake_llm.queue("answer", input_tokens=100_000)
        fake_llm.queue("not json, try 0")
        fake_llm.queue("answer", cache_read_input_tokens=100)

        client.post("/query-all", json={"question": "Anything?"})
        client.post("/query-smart", json={"question": "Anything?"})

        modes = client.get("/metrics").json()["modes"]

        assert modes["load_all"]["queries"] == 1
        assert modes["load_all"]["avg_cost"] == pytest.approx(0.3)
        assert modes["smart"]["queries"] == 1
        assert modes["smart"]["avg_docs_loaded"] == 1.0
        assert modes["smart"]["total_cache_read_tokens"] == 100
        assert modes["smart"]["selection_fallbacks"] == 1
