"""
HTTP middleware: request correlation and body size limit.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from feedguard.logging_config import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Set the request id for log correlation and echo it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_var.set(request_id)
        start_time = time.time()
        try:
            response = await call_next(request)
            duration_ms = int((time.time() - start_time) * 1000)
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)",
                extra={
                    "event": "http_request",
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)


class RequestBodyTooLarge(HTTPException):
    def __init__(self):
        super().__init__(status_code=413, detail="request body too large")


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than `max_bytes`.

    A declared Content-Length is checked up front. Bodies sent without one
    (chunked uploads) are counted as they arrive; reading past the limit
    raises RequestBodyTooLarge, which FastAPI answers with a 413.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    def _log_rejected(self, path: str, size_bytes: int) -> None:
        logger.warning(
            f"Rejected {path}: body of {size_bytes}+ bytes exceeds {self.max_bytes}",
            extra={"event": "request_too_large", "path": path, "size_bytes": size_bytes},
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                response = JSONResponse(status_code=400, content={"detail": "invalid content-length"})
                await response(scope, receive, send)
                return
            if declared > self.max_bytes:
                self._log_rejected(path, declared)
                response = JSONResponse(status_code=413, content={"detail": "request body too large"})
                await response(scope, receive, send)
                return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    self._log_rejected(path, received)
                    raise RequestBodyTooLarge()
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except RequestBodyTooLarge:
            # Raised outside a route's exception handling
            if response_started:
                raise
            response = JSONResponse(status_code=413, content={"detail": "request body too large"})
            await response(scope, receive, send)
