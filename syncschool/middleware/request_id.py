import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from syncschool.core.logging import access_logger


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and writes one access-log line per response"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()

        response = await call_next(request)

        response.headers["X-Request-ID"] = request.state.request_id
        access_logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "request_id": request.state.request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "client_ip": request.client.host if request.client else None,
                "duration": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return response
