import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel

from .error import ClientError, ServerError
from .middleware import RequestLoggingMiddleware

logger = logging.getLogger(__name__)

USAGE_HEADERS = [
    "X-Daily-Usage-Current",
    "X-Daily-Usage-Limit",
    "X-Daily-Usage-Remaining",
    "X-Daily-Usage-Percentage",
    "X-Usage-Warning",
    "X-Usage-Percentage",
    "Retry-After",
]


def error_payload(code: str, message: str, details: dict = None) -> dict:
    return {"success": False, "error": code, "message": message, **(details or {})}


async def handle_client_error(request: Request, exc: ClientError):
    error = exc.base_error
    logger.warning(f"Client error on {request.url.path}: {error.code} {error.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(error.code, error.message, error.details),
        headers=exc.headers,
    )


async def handle_server_error(request: Request, exc: ServerError):
    logger.error(f"Server error on {request.url.path}: {exc.base_error.code} {exc.base_error.message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(exc.base_error.code, "Internal server error"),
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(ApplicationConfig) -> FastAPI:
    configure_logging(ApplicationConfig.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        import src.domain.entities  # noqa: F401  registers tables on SQLModel.metadata
        from src.api.maintenance import maintenance_scheduler
        from src.depends import engine, get_uow_factory, rate_limit_config_provider

        if ApplicationConfig.AUTO_CREATE_TABLES:
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

        scheduler = None
        if ApplicationConfig.MAINTENANCE_INTERVAL_MINUTES > 0:
            scheduler = asyncio.create_task(
                maintenance_scheduler(
                    ApplicationConfig.MAINTENANCE_INTERVAL_MINUTES,
                    get_uow_factory(),
                    rate_limit_config_provider,
                )
            )

        yield

        if scheduler is not None:
            scheduler.cancel()
            with suppress(asyncio.CancelledError):
                await scheduler
        await engine.dispose()

    app = FastAPI(title="Session & Quota Gate", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=USAGE_HEADERS,
    )
    if ApplicationConfig.ENABLE_LOGGING_MIDDLEWARE:
        app.add_middleware(RequestLoggingMiddleware)

    from src.api.routes import admin, auth, health_check, usage

    app.include_router(health_check.router, tags=["Health"])
    app.include_router(auth.router, tags=["Authentication"])
    app.include_router(usage.router, tags=["Usage"])
    app.include_router(admin.router, tags=["Admin"])

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)

    return app
