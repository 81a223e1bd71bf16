"""
레이트 리밋 미들웨어
FastAPI 미들웨어로 API 레이트 제한 적용 (고정 윈도우, 캐시 카운터 기반)

캐시를 사용할 수 없으면 요청을 그대로 통과시킵니다 (fail-open).
"""

import time
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from jose import jwt, JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from ledgerapi.config import settings
from ledgerapi.core.exceptions import RateLimitError


class RateLimitMiddleware(BaseHTTPMiddleware):
    """레이트 리밋 미들웨어"""

    def __init__(
        self,
        app,
        cache,
        requests_per_window: int = settings.RATE_LIMIT_REQUESTS_PER_MINUTE,
        window_seconds: int = settings.RATE_LIMIT_WINDOW_SECONDS,
        exclude_paths: Optional[list] = None,
    ):
        super().__init__(app)
        self.cache = cache
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

        # 레이트 리밋을 적용하지 않을 경로들
        self.exclude_paths = exclude_paths or [
            "/health",
            "/docs",
            "/openapi.json",
            "/redoc",
        ]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """요청 처리"""

        # 제외 경로 확인
        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return await call_next(request)

        # 로그인 사용자는 사용자 단위, 아니면 IP 단위
        subject = self._get_user_id_from_request(request) or self._get_client_ip(request)
        window = int(time.time() // self.window_seconds)
        key = f"ratelimit:{subject}:{window}"

        count = self.cache.incr_with_expiry(key, self.window_seconds)
        if count is not None and count > self.requests_per_window:
            return self._create_rate_limit_response(window)

        response = await call_next(request)

        if count is not None:
            response.headers["X-RateLimit-Limit"] = str(self.requests_per_window)
            response.headers["X-RateLimit-Remaining"] = str(
                max(self.requests_per_window - count, 0)
            )
        return response

    def _get_client_ip(self, request: Request) -> str:
        """클라이언트 IP 주소 추출"""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"

    def _get_user_id_from_request(self, request: Request) -> Optional[str]:
        """JWT 토큰에서 사용자 ID 추출"""
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return None
        try:
            payload = jwt.decode(
                auth_header[7:], settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
            )
        except JWTError:
            return None
        sub = payload.get("sub")
        return f"user:{sub}" if sub else None

    def _create_rate_limit_response(self, window: int) -> JSONResponse:
        """레이트 리밋 초과 응답 생성"""
        retry_after = (window + 1) * self.window_seconds - int(time.time())
        error = RateLimitError(
            "Too many requests", details={"retry_after": max(retry_after, 1)}
        )
        return JSONResponse(
            status_code=error.status_code,
            content=error.detail,
            headers={
                "Retry-After": str(max(retry_after, 1)),
                "X-RateLimit-Limit": str(self.requests_per_window),
                "X-RateLimit-Remaining": "0",
            },
        )
