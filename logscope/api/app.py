"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from ..app import Application
from ..logging_config import get_logger
from .routes import logs

logger = get_logger(__name__)


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Build the API around ``application``; its lifecycle follows the server's."""
    application = application or Application()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await application.start()
        try:
            yield
        finally:
            await application.stop()

    fastapi_app = FastAPI(
        title="logscope API",
        description="Query API for the proxy event log",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.application = application

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=application.settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @fastapi_app.get("/api/health")
    async def health() -> dict:
        """Report whether the event store can be read."""
        try:
            events = await application.store.count_events()
        except RuntimeError as e:  # includes StoreUnavailableError
            logger.warning("Health check failed: %s", e)
            raise HTTPException(status_code=503, detail=str(e))
        return {
            "status": "ok",
            "db_path": str(application.store.db_path),
            "events": events,
        }

    fastapi_app.include_router(logs.create_logs_router(application))

    return fastapi_app
