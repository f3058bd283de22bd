import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes.ab_test import router as ab_test_router
from app.api.routes.admin import router as admin_router
from app.api.routes.admin_ab_tests import router as admin_ab_tests_router
from app.api.routes.dev import router as dev_router
from app.api.routes.health import router as health_router
from app.api.routes.payments import router as payments_router
from app.api.routes.pricing import router as pricing_router
from app.api.routes.promo import router as promo_router
from app.api.routes.users import router as users_router
from app.core.config import get_settings
from app.core.errors import AppError
from app.core.logging import configure_logging

logger = structlog.get_logger(__name__)


async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            path=request.url.path,
            error_code=exc.code,
            error=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"detail": {"code": "E_INTERNAL"}})


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, app_env=settings.app_env)

    docs_enabled = settings.enable_openapi_docs
    app = FastAPI(
        title="Astro Checkout API",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.add_exception_handler(AppError, _handle_app_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)

    app.include_router(health_router)
    app.include_router(pricing_router)
    app.include_router(payments_router)
    app.include_router(promo_router)
    app.include_router(ab_test_router)
    app.include_router(admin_router)
    app.include_router(admin_ab_tests_router)
    app.include_router(users_router)
    app.include_router(dev_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
