"""
middleware/request_context.py
-----------------------------
Gives every request an id and binds it, with the method, path and
signed-in user id, into the structlog context for the lifetime of the
request. The id is echoed back in the REQUEST_ID_HEADER response header;
a well-formed id sent by the caller is reused.
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.core.config import settings
from app.core.logging import bind_request_context, clear_request_context, get_logger
from app.dependencies import SESSION_USER_KEY

logger = get_logger(__name__)

_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _request_id(request: Request) -> str:
    incoming = request.headers.get(settings.REQUEST_ID_HEADER, "")
    if _REQUEST_ID.match(incoming):
        return incoming
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = _request_id(request)
        bind_request_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            user_id=request.session.get(SESSION_USER_KEY),
        )
        started = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            response.headers[settings.REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_context()
