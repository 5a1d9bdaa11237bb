# context_compare/main.py
import os
import time
import uuid

from dotenv import load_dotenv

# Load .env before config values are read
load_dotenv()

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from context_compare.api.routes import router
from context_compare.config import (
    BUDGET_LIMIT,
    CORS_ALLOW_ORIGINS,
    HOST,
    LLM_MODEL,
    PORT,
)
from context_compare.exceptions import ContextCompareError
from context_compare.observability.logger import get_logger, setup_logging
from context_compare.observability.metrics import metrics_tracker
from context_compare.observability.posthog_client import posthog_client

VERSION = "1.0.0"

# Initialize logging FIRST
setup_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Context Compare API",
    description="Load-everything vs select-then-cache question answering over uploaded documents",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials="*" not in CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Assign a request id, log start/finish with latency, and feed the
    metrics tracker.
    """

    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    posthog_client.identify_request(
        distinct_id=request_id,
        properties={
            "entry_point": request.url.path,
            "method": request.method,
        },
    )

    logger.info(
        "request_started",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None
        }
    )

    start_time = time.time()

    try:

        response = await call_next(request)

    except Exception as e:

        latency = time.time() - start_time

        metrics_tracker.record_failure()

        logger.error(
            "request_failed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "latency_seconds": round(latency, 3),
                "error": str(e),
                "error_type": type(e).__name__
            },
            exc_info=True
        )

        raise

    latency = time.time() - start_time

    if response.status_code >= 500:
        metrics_tracker.record_failure()
    else:
        metrics_tracker.record_success(latency)

    logger.info(
        "request_completed",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "latency_seconds": round(latency, 3)
        }
    )

    return response


app.include_router(router)


@app.on_event("startup")
async def startup_event():

    logger.info(
        "application_startup",
        extra={"version": VERSION, "model": LLM_MODEL, "budget_limit": BUDGET_LIMIT},
    )

    if not os.getenv("ANTHROPIC_API_KEY"):

        logger.warning(
            "missing_api_key",
            extra={
                "warning_detail":
                "ANTHROPIC_API_KEY not set. Query calls will fail."
            }
        )


@app.on_event("shutdown")
async def shutdown_event():

    logger.info("application_shutdown")


@app.exception_handler(ContextCompareError)
async def context_compare_error_handler(request: Request, exc: ContextCompareError):

    logger.warning(
        "request_rejected",
        extra={
            "request_id": getattr(request.state, "request_id", "unknown"),
            "path": request.url.path,
            "status_code": exc.status_code,
            "error": exc.message,
            "error_type": type(exc).__name__,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):

    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "unhandled_exception",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "error": str(exc),
            "error_type": type(exc).__name__
        },
        exc_info=True
    )

    posthog_client.track_error(
        distinct_id=request_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        endpoint=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "An internal error occurred. Please try again.",
            "request_id": request_id,
            "error_type": type(exc).__name__
        }
    )


@app.get("/")
async def root():

    return {
        "message": "Context Compare API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
        "budget": "/budget",
        "metrics": "/metrics",
    }


def run():

    uvicorn.run("context_compare.main:app", host=HOST, port=PORT)


if __name__ == "__main__":

    run()
