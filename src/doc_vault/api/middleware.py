from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware

from .errors import problem_response

# Multipart framing on top of the file itself.
MULTIPART_OVERHEAD = 64 * 1024


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_bytes: int = 1_000_000):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request, call_next):
        length = request.headers.get("content-length")
        try:
            size = int(length) if length is not None else None
        except ValueError:
            size = None
        if size is not None and size > self.max_bytes:
            return problem_response(
                status=413,
                title="Payload Too Large",
                detail="Request body exceeds allowed size.",
                code="PAYLOAD_TOO_LARGE",
            )
        return await call_next(request)
