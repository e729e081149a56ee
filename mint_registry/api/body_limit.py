"""Request body size guard."""

from __future__ import annotations

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"component": "BodyLimit"})

BODY_TOO_LARGE_MESSAGE = "Request body too large"


class BodySizeLimitMiddleware:
    """
    Answer 413 to HTTP requests whose body exceeds ``max_body_bytes``.

    A declared ``Content-Length`` over the limit is refused before reading.
    Otherwise the body is read up to the limit and replayed to the app, so
    chunked uploads are bounded too.
    """

    def __init__(self, app: ASGIApp, *, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def _reject(
        self, scope: Scope, receive: Receive, send: Send, status_code: int, message: str
    ) -> None:
        logger.warning(
            "%s (limit %d bytes)",
            message,
            self.max_body_bytes,
            extra={"path": scope.get("path", "-"), "status": "rejected"},
        )
        response = JSONResponse(
            status_code=status_code, content={"success": False, "message": message}
        )
        await response(scope, receive, send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared_length = Headers(scope=scope).get("content-length")
        if declared_length:
            try:
                declared_value = int(declared_length)
            except ValueError:
                await self._reject(scope, receive, send, 400, "Invalid Content-Length header")
                return
            if declared_value > self.max_body_bytes:
                await self._reject(scope, receive, send, 413, BODY_TOO_LARGE_MESSAGE)
                return

        buffered: list[Message] = []
        received = 0
        while True:
            message = await receive()
            buffered.append(message)
            if message["type"] != "http.request":
                break
            received += len(message.get("body", b""))
            if received > self.max_body_bytes:
                await self._reject(scope, receive, send, 413, BODY_TOO_LARGE_MESSAGE)
                return
            if not message.get("more_body", False):
                break

        async def replay() -> Message:
            if buffered:
                return buffered.pop(0)
            return await receive()

        await self.app(scope, replay, send)
