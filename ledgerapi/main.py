import logging
from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from ledgerapi import containers
from ledgerapi.config import settings
from ledgerapi.core.exception_handlers import register_exception_handlers
from ledgerapi.core.logging_middleware import LoggingMiddleware
from ledgerapi.logging_config import init_logging
from ledgerapi.middleware.rate_limit import RateLimitMiddleware
from ledgerapi.routers import (
    ad_router,
    economy_router,
    health_router,
    order_router,
    reward_router,
    wallet_router,
)

load_dotenv("ledgerapi/.env")
init_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME)
    container = containers.Container()
    app.container = container  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.RATE_LIMIT_ENABLED:
        app.add_middleware(RateLimitMiddleware, cache=container.infra.cache_service())
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router.router)
    for module in (wallet_router, economy_router, reward_router, order_router, ad_router):
        app.include_router(module.router, prefix=settings.API_V1_STR)

    @app.on_event("shutdown")
    def close_clients() -> None:
        container.infra.cache_service().close()

    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
