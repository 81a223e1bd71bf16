import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

# Use the package logger so it goes to the JSON handler
logger = logging.getLogger("ledgerapi")

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """요청/응답 로그 + 요청 ID 전파"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.time()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        prefix = f"[{request_id}] {request.method} {request.url.path}"
        client = request.client.host if request.client else "-"

        logger.info(f"{prefix} from {client}")
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{prefix} from {client} -> unhandled error")
            raise

        duration_ms = (time.time() - start) * 1000
        message = f"{prefix} -> {response.status_code} in {duration_ms:.1f}ms"
        if response.status_code >= 500:
            logger.error(message)
        elif response.status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
