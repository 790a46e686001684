"""
Logging Middleware
Logs every HTTP request with a request id echoed back to the client
"""

import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from src.utils.logger import setup_logger

logger = setup_logger()

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests and responses"""

    async def dispatch(self, request: Request, call_next):
        """Process request and log details"""
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        start_time = time.perf_counter()

        with logger.contextualize(request_id=request_id):
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} | "
                f"Client: {request.client.host if request.client else 'unknown'}"
            )

            try:
                response = await call_next(request)
            except Exception:
                duration = time.perf_counter() - start_time
                logger.exception(
                    f"[{request_id}] Error: {request.method} {request.url.path} | "
                    f"Duration: {duration:.3f}s"
                )
                raise

            duration = time.perf_counter() - start_time
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} | "
                f"Status: {response.status_code} | Duration: {duration:.3f}s"
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
