"""
Analytics Pipeline Service

FastAPI application entry point.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware

from analytics_pipeline import __version__
from analytics_pipeline.app.api import admin_router, pipelines_router
from analytics_pipeline.app.dependencies import get_settings, initialize_services
from analytics_pipeline.app.errors import register_error_handlers
from analytics_pipeline.config import AppSettings
from analytics_pipeline.observability import JSONLogger, configure_logging
from analytics_pipeline.service import Registry

logger = logging.getLogger(__name__)
_log = JSONLogger(name=__name__)

HEALTH_CHECK_PATH = "/health"


async def _reconcile_in_background(registry: Registry) -> None:
    try:
        await registry.reconcile_permissions()
    except asyncio.CancelledError:
        logger.info("Permission reconciliation cancelled")
        raise
    except Exception as e:
        _log.error("could not reconcile pipeline permissions", error=str(e))


def create_app(settings: AppSettings | None = None, registry: Registry | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Service settings (loaded from file/environment when omitted)
        registry: Pre-built registry; when given, startup skips building the
            store and permission client
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Handles startup and shutdown events.
        """
        services = None
        reconcile_task: asyncio.Task | None = None

        if registry is None:
            logger.info("Starting analytics pipeline services...")
            try:
                services = await initialize_services(settings)
            except Exception as e:
                logger.error(f"Failed to initialize services: {e}", exc_info=True)
                raise
            app.state.registry = services.registry
            logger.info("Analytics pipeline services initialized successfully")

            if settings.reconcile_on_startup:
                reconcile_task = asyncio.create_task(
                    _reconcile_in_background(services.registry)
                )

        yield

        logger.info("Shutting down analytics pipeline services...")
        if reconcile_task is not None and not reconcile_task.done():
            reconcile_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reconcile_task
        if services is not None:
            await services.close()

    app = FastAPI(
        title="Analytics-Pipeline API",
        description="For the administration of analytics pipelines.",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    if registry is not None:
        app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS", "PUT"],
        allow_headers=["Origin", "Content-Type", "Authorization"],
        expose_headers=["Content-Length"],
    )
    register_error_handlers(app)

    app.include_router(pipelines_router, prefix=settings.url_prefix)
    app.include_router(admin_router, prefix=settings.url_prefix)

    @app.get(settings.url_prefix + HEALTH_CHECK_PATH, tags=["health"])
    async def health_check() -> Response:
        return Response(status_code=status.HTTP_200_OK)

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    _log.info("analytics-pipeline", version=__version__, config=settings.model_dump_json())

    uvicorn.run(
        create_app(settings),
        host=settings.bind_host,
        port=settings.server_port,
    )


if __name__ == "__main__":
    main()
