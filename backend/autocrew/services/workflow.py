"""Async client for the external document workflow (chunking and indexing)."""

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import httpx

from autocrew.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


@dataclass
class UploadResult:
    """Outcome of handing one document to the workflow."""
    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and 200 <= self.status_code < 300
            and self.payload.get("status") != "error"
        )

    @property
    def chunk_count(self) -> int:
        document = self.payload.get("document") or {}
        return int(document.get("chunk_count") or 0)

    @property
    def message(self) -> str:
        return self.error or self.payload.get("message") or "Failed to process document"

    @property
    def failure_status(self) -> int:
        """Status to answer with when the workflow rejected the document."""
        if self.payload.get("statusCode"):
            return int(self.payload["statusCode"])
        return self.status_code if self.status_code >= 400 else 502


class WorkflowClient:
    """Posts documents to the workflow's upload webhook."""

    def __init__(
        self,
        webhook_url: str | None,
        api_key: str | None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_url and self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self.transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def upload_document(
        self,
        crew_code: str,
        doc_id: UUID,
        filename: str,
        content: bytes,
        mime_type: str,
    ) -> UploadResult:
        """
        Send a file to the workflow and report what happened.

        Transport failures and timeouts are returned as results, never
        raised, so the caller can settle the document record either way.
        """
        client = await self._get_client()

        try:
            response = await client.post(
                self.webhook_url,
                headers={"x-api-key": self.api_key},
                data={"crewCode": crew_code, "docId": str(doc_id)},
                files={"binary": (filename, content, mime_type)},
            )
        except httpx.TimeoutException as e:
            logger.warning("Workflow upload of %s timed out: %s", doc_id, e)
            return UploadResult(status_code=0, error="timeout", timed_out=True)
        except httpx.HTTPError as e:
            logger.error("Workflow upload of %s failed: %s", doc_id, e)
            return UploadResult(status_code=0, error=f"Connection error: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        logger.info("Workflow answered %s for document %s", response.status_code, doc_id)
        return UploadResult(status_code=response.status_code, payload=payload)


async def get_workflow_client():
    """Dependency yielding a workflow client closed after the request."""
    client = WorkflowClient(
        settings.workflow_document_webhook,
        settings.workflow_api_key,
        timeout=settings.workflow_timeout_seconds,
    )
    try:
        yield client
    finally:
        await client.close()
