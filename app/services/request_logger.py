"""Best-effort persistence of gateway request logs."""

import asyncio
import logging
from typing import Optional, Set

from app.clients.base import Backend
from app.models.endpoint import EndpointDescriptor
from app.models.request import GatewayRequest, RequestLogEntry

logger = logging.getLogger(__name__)

REQUEST_LOGS_TABLE = "api_request_logs"

REDACTED_HEADERS = {"authorization", "x-api-key", "apikey", "cookie"}


class RequestLogger:
    """Writes one ``api_request_logs`` row per processed request.

    A failed write is reported to the process log and never reaches the
    caller. With ``background=True`` writes run as tracked tasks so the
    response does not wait on them; :meth:`drain` awaits outstanding writes.
    """

    def __init__(self, backend: Backend, background: bool = False):
        self.backend = backend
        self.background = background
        self._tasks: Set[asyncio.Task] = set()

    @staticmethod
    def build_entry(
        request: GatewayRequest,
        endpoint: EndpointDescriptor,
        status_code: int,
        duration_ms: int,
        user_id: Optional[str] = None,
    ) -> RequestLogEntry:
        headers = {
            name: ("[redacted]" if name in REDACTED_HEADERS else value)
            for name, value in request.headers.items()
        }
        body = request.json_body() if request.method != "GET" else None

        return RequestLogEntry(
            tenant_id=endpoint.tenant_id,
            endpoint_id=endpoint.id,
            method=request.method,
            path=request.path,
            query_params=request.query_params,
            headers=headers,
            body=body,
            status_code=status_code,
            duration_ms=duration_ms,
            client_ip=request.client_ip(),
            user_agent=request.header("user-agent"),
            user_id=user_id,
        )

    async def write(self, entry: RequestLogEntry) -> bool:
        """Persist a log entry, swallowing backend failures.

        Returns:
            True if the row was written
        """
        try:
            await self.backend.insert(REQUEST_LOGS_TABLE, entry.model_dump(mode="json"))
            return True
        except Exception as e:
            logger.error(f"Failed to log request: {e}")
            return False

    async def log(
        self,
        request: GatewayRequest,
        endpoint: EndpointDescriptor,
        status_code: int,
        duration_ms: int,
        user_id: Optional[str] = None,
    ):
        """Record a processed request, in the background if configured."""
        try:
            entry = self.build_entry(request, endpoint, status_code, duration_ms, user_id)
        except Exception as e:
            logger.error(f"Failed to build request log entry: {e}")
            return

        if not self.background:
            await self.write(entry)
            return

        task = asyncio.create_task(self.write(entry))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self):
        """Wait for outstanding background writes."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)
