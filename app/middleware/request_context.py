"""
RequestContext Middleware - tags every request with an ID for tracing.

A caller-supplied X-Request-ID is reused so a recommendation request can be
followed from the article classifier through this service. Otherwise a new
UUID is generated. The ID is stored on ``request.state.request_id`` and
echoed back in the X-Request-ID response header.
"""

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = self._incoming_request_id(request) or str(uuid.uuid4())
        request.state.request_id = request_id

        logger.debug(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _incoming_request_id(request: Request) -> str | None:
        value = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
        # Oversized IDs are replaced rather than echoed.
        if not value or len(value) > MAX_REQUEST_ID_LENGTH:
            return None
        return value
