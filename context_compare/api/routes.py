import logging
import time

from pathlib import Path

from fastapi import APIRouter, File, Request, UploadFile

from context_compare.config import (
    ALLOWED_FILE_EXTENSIONS,
    MAX_FILE_SIZE_MB,
    UPLOAD_DIR,
)
from context_compare.exceptions import (
    BudgetExceeded,
    ExternalCallFailure,
    FileTooLarge,
    UploadFailed,
    UploadRejected,
)
from context_compare.llm.client import LLMClient
from context_compare.memory.store import DocumentStore
from context_compare.models import (
    BudgetResponse,
    DocumentInfo,
    HealthResponse,
    ListDocumentsResponse,
    QueryAllResponse,
    QueryRequest,
    QuerySmartResponse,
    ResetResponse,
    UploadResponse,
)
from context_compare.observability.logger import (
    log_request_complete,
    log_request_error,
    log_request_start,
)
from context_compare.observability.metrics import metrics_tracker
from context_compare.observability.posthog_client import posthog_client
from context_compare.workflow.budget import BudgetTracker
from context_compare.workflow.document_qa import query_all, query_smart


logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================
# GLOBAL SINGLETONS
# ============================================================

document_store = DocumentStore(UPLOAD_DIR)

budget_tracker = BudgetTracker()

llm_client = LLMClient()


# ============================================================
# HELPERS
# ============================================================

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def validate_extension(filename: str):

    suffix = Path(filename or "").suffix.lower()

    if suffix not in ALLOWED_FILE_EXTENSIONS:
        raise UploadRejected(
            f"Only {' and '.join(ALLOWED_FILE_EXTENSIONS)} files allowed"
        )


def validate_file_size(content: bytes):

    size_mb = len(content) / (1024 * 1024)

    if size_mb > MAX_FILE_SIZE_MB:
        raise FileTooLarge(f"File too large: {size_mb:.2f}MB")


def _run_query(endpoint: str, mode: str, handler, payload: QueryRequest, request: Request):

    request_id = _request_id(request)

    log_request_start(logger, request_id, endpoint, mode=mode)

    start_time = time.time()

    try:

        result = handler(
            question=payload.question,
            store=document_store,
            budget=budget_tracker,
            llm_client=llm_client,
        )

    except BudgetExceeded as e:

        posthog_client.track_budget_exceeded(
            distinct_id=request_id,
            endpoint=f"/{endpoint}",
            spent=e.spent,
            limit=e.limit,
        )

        raise

    except Exception as e:

        log_request_error(logger, request_id, endpoint, e, mode=mode)

        posthog_client.track_error(
            distinct_id=request_id,
            error_type=type(e).__name__,
            error_message=str(e),
            endpoint=f"/{endpoint}",
        )

        raise ExternalCallFailure(str(e)) from e

    log_request_complete(
        logger,
        request_id,
        endpoint,
        time.time() - start_time,
        mode=mode,
        docs_loaded=result["docsLoaded"],
        cost=result["cost"],
        total_spent=result["totalSpent"],
    )

    metrics_tracker.record_query(
        mode=mode,
        latency_ms=result["responseTime"],
        cost=result["cost"],
        docs_loaded=result["docsLoaded"],
        usage=result["usage"],
        selection_fallback=result.get("selectionFallback", False),
    )

    posthog_client.track_query(
        distinct_id=request_id,
        mode=mode,
        question=payload.question,
        docs_loaded=result["docsLoaded"],
        cost=result["cost"],
        response_time_ms=result["responseTime"],
        selected_doc_ids=[d["id"] for d in result.get("selectedDocs", [])] or None,
    )

    return result


# ============================================================
# HEALTH
# ============================================================

@router.get("/health", response_model=HealthResponse)
def health_check():

    return HealthResponse(
        status="healthy",
        total_documents=len(document_store),
        total_characters=document_store.total_characters(),
        budget_remaining=budget_tracker.remaining,
    )


# ============================================================
# UPLOAD DOCUMENT
# ============================================================

@router.post("/upload", response_model=UploadResponse)
def upload_document(request: Request, file: UploadFile = File(...)):

    validate_extension(file.filename)

    start_time = time.time()

    file_bytes = file.file.read()

    validate_file_size(file_bytes)

    try:

        doc = document_store.save_upload(file.filename, file_bytes)

    except (OSError, UnicodeDecodeError) as e:

        logger.error(
            "Document upload failed",
            extra={"doc_filename": file.filename, "error": str(e)},
        )

        posthog_client.track_error(
            distinct_id=_request_id(request),
            error_type=type(e).__name__,
            error_message=str(e),
            endpoint="/upload",
        )

        raise UploadFailed(str(e)) from e

    posthog_client.track_document_upload(
        distinct_id=_request_id(request),
        document_id=doc.id,
        filename=doc.filename,
        size=doc.size,
        latency=time.time() - start_time,
    )

    return UploadResponse(
        success=True,
        document={"id": doc.id, "filename": doc.filename, "size": doc.size},
    )


# ============================================================
# LIST DOCUMENTS
# ============================================================

@router.get("/documents", response_model=ListDocumentsResponse)
def list_documents():

    return ListDocumentsResponse(
        documents=[
            DocumentInfo(
                id=doc.id,
                filename=doc.filename,
                size=doc.size,
                uploadedAt=doc.uploaded_at,
            )
            for doc in document_store.list()
        ]
    )


# ============================================================
# QUERY: LOAD ALL
# ============================================================

@router.post("/query-all", response_model=QueryAllResponse)
def query_all_documents(payload: QueryRequest, request: Request):

    result = _run_query("query-all", "load_all", query_all, payload, request)

    return QueryAllResponse(**result)


# ============================================================
# QUERY: SMART
# ============================================================

@router.post("/query-smart", response_model=QuerySmartResponse)
def query_smart_documents(payload: QueryRequest, request: Request):

    result = _run_query("query-smart", "smart", query_smart, payload, request)

    return QuerySmartResponse(**result)


# ============================================================
# BUDGET
# ============================================================

@router.get("/budget", response_model=BudgetResponse)
def get_budget():

    return BudgetResponse(**budget_tracker.snapshot())


# ============================================================
# RESET
# ============================================================

@router.post("/reset", response_model=ResetResponse)
def reset_system():

    deleted = document_store.clear()

    budget_tracker.reset()

    metrics_tracker.reset()

    logger.info("System reset", extra={"files_deleted": deleted})

    return ResetResponse(success=True, message="System reset")


# ============================================================
# METRICS ENDPOINT
# ============================================================

@router.get("/metrics")
def get_metrics():

    return metrics_tracker.get_metrics()
