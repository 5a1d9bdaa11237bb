# context_compare/observability/posthog_client.py

"""
PostHog product analytics.

- Disabled unless POSTHOG_API_KEY is set
- Uses the request id as distinct_id
- Tracking failures are logged, never raised
"""

import logging
import os
from typing import Any, Dict, List, Optional

from posthog import Posthog


logger = logging.getLogger(__name__)


class PostHogClient:

    def __init__(self):

        self._enabled = False
        self._client: Optional[Posthog] = None

        api_key = os.getenv("POSTHOG_API_KEY")
        host = os.getenv("POSTHOG_HOST", "https://app.posthog.com")

        if not api_key:
            logger.info("PostHog disabled: POSTHOG_API_KEY not set")
            return

        try:

            self._client = Posthog(
                project_api_key=api_key,
                host=host,
                timeout=5,
                flush_interval=1,
            )

            self._enabled = True

            logger.info("PostHog client initialized", extra={"host": host})

        except Exception as e:

            logger.error(
                "PostHog initialization failed",
                extra={"error": str(e)}
            )

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ==========================================================
    # INTERNAL SAFE TRACK
    # ==========================================================

    def _track(
        self,
        distinct_id: str,
        event: str,
        properties: Optional[Dict[str, Any]] = None,
    ):

        if not self._enabled or not self._client:
            return

        try:

            self._client.capture(
                distinct_id=distinct_id,
                event=event,
                properties=properties or {},
            )

        except Exception as e:

            logger.warning(
                "PostHog tracking failed",
                extra={"event": event, "error": str(e)}
            )

    def identify_request(
        self,
        distinct_id: str,
        properties: Optional[Dict[str, Any]] = None,
    ):

        if not self._enabled or not self._client:
            return

        try:

            self._client.identify(
                distinct_id=distinct_id,
                properties=properties or {},
            )

        except Exception as e:

            logger.warning(
                "PostHog identify failed",
                extra={"error": str(e)}
            )

    # ==========================================================
    # EVENTS
    # ==========================================================

    def track_document_upload(
        self,
        distinct_id: str,
        document_id: int,
        filename: str,
        size: int,
        latency: float,
    ):

        self._track(
            distinct_id,
            "document_uploaded",
            {
                "document_id": document_id,
                "filename": filename,
                "size": size,
                "latency_seconds": latency,
            },
        )

    def track_query(
        self,
        distinct_id: str,
        mode: str,
        question: str,
        docs_loaded: int,
        cost: float,
        response_time_ms: int,
        selected_doc_ids: Optional[List[int]] = None,
    ):

        self._track(
            distinct_id,
            "query_completed",
            {
                "mode": mode,
                "question_length": len(question),
                "docs_loaded": docs_loaded,
                "cost": cost,
                "response_time_ms": response_time_ms,
                "selected_doc_ids": selected_doc_ids,
            },
        )

    def track_budget_exceeded(
        self,
        distinct_id: str,
        endpoint: str,
        spent: float,
        limit: float,
    ):

        self._track(
            distinct_id,
            "budget_exceeded",
            {"endpoint": endpoint, "spent": spent, "limit": limit},
        )

    def track_error(
        self,
        distinct_id: str,
        error_type: str,
        error_message: str,
        endpoint: str,
    ):

        self._track(
            distinct_id,
            "system_error",
            {
                "error_type": error_type,
                "error_message": error_message,
                "endpoint": endpoint,
            },
        )


posthog_client = PostHogClient()
