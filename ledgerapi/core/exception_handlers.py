import logging
import traceback
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import BaseAPIException, InternalServerError

logger = logging.getLogger("ledgerapi")


def _request_context(request: Request) -> Dict[str, Any]:
    client = request.client.host if request.client else "-"
    return {
        "method": request.method,
        "path": request.url.path,
        "client": client,
        "request_id": getattr(request.state, "request_id", "-"),
    }


def _prefix(ctx: Dict[str, Any]) -> str:
    return f"[{ctx['request_id']}] {ctx['method']} {ctx['path']} from {ctx['client']}"


async def handle_base_api_exception(request: Request, exc: BaseAPIException):
    ctx = _request_context(request)
    message = f"{_prefix(ctx)} -> {exc.status_code} {exc.error_code}: {exc.message}"
    if exc.status_code >= 500:
        # 원인 예외가 있으면 함께 남긴다
        cause = exc.__cause__
        if cause is not None:
            tb_str = "".join(traceback.format_exception(type(cause), cause, cause.__traceback__))
            message = f"{message}\n\nCaused by:\n{tb_str}"
        logger.error(message)
    else:
        logger.warning(message)
    return JSONResponse(
        status_code=exc.status_code, content=exc.detail, headers=exc.headers  # type: ignore[arg-type]
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    ctx = _request_context(request)
    error_msg = f"{_prefix(ctx)} -> {exc.status_code}: {exc.detail}"

    if exc.status_code >= 500:
        tb_str = ''.join(traceback.format_tb(exc.__traceback__))
        logger.error(f"{error_msg}\n\nStack Trace:\n{tb_str}")
    else:
        logger.warning(error_msg)

    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = {
            "success": False,
            "error": {
                "code": "HTTP_ERROR",
                "message": str(exc.detail),
                "details": {},
            },
        }
    return JSONResponse(
        status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None)
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    ctx = _request_context(request)
    logger.warning(f"{_prefix(ctx)} -> 422: {exc.errors()}")
    content = {
        "success": False,
        "error": {
            "code": "VALIDATION_001",
            "message": "Validation failed",
            "details": {"errors": jsonable_errors(exc)},
        },
    }
    return JSONResponse(status_code=422, content=content)


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx 안의 예외 객체 등은 JSON 직렬화가 안 되므로 문자열로 바꾼다
    errors = []
    for error in exc.errors():
        item = {k: v for k, v in error.items() if k != "ctx"}
        if "ctx" in error:
            item["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(item)
    return errors


async def handle_unexpected_error(request: Request, exc: Exception):
    ctx = _request_context(request)
    tb_str = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"{_prefix(ctx)} unhandled {type(exc).__name__}: {str(exc)}\n\n"
        f"Full Stack Trace:\n{tb_str}"
    )

    internal = InternalServerError()
    return JSONResponse(status_code=internal.status_code, content=internal.detail)  # type: ignore[arg-type]


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAPIException, handle_base_api_exception)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
