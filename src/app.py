"""Warehouse FastAPI application.

Serves the storage HTTP API and the WebSocket endpoint controllers connect
to. The system list is loaded from the JSON store on startup and written
back on shutdown.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8080
    warehouse warehouse.json --port 8080
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from storage.api import controller_router, register_exception_handlers, systems_router
from storage.config import Settings, load_settings
from storage.domain import logger, storage
from storage.persistence import SystemStore
from storage.registry import SystemRegistry

storage.init(traverse=False)


def create_app(settings: Settings | None = None, registry: SystemRegistry | None = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "registry", None) is None:
            store = SystemStore(settings.database)
            app.state.registry = SystemRegistry.from_store(store, command_timeout=settings.command_timeout)
        logger.info("warehouse_started", systems=len(app.state.registry.names()))
        with storage.domain_context():
            yield
        app.state.registry.save()
        logger.info("warehouse_stopped")

    app = FastAPI(
        title="Warehouse API",
        description="Storage systems mirrored from remote controllers",
        lifespan=lifespan,
    )
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(systems_router)
    app.include_router(controller_router)

    # -----------------------------------------------------------------------
    # Liveness
    # -----------------------------------------------------------------------
    @app.get("/check", status_code=204)
    async def check():
        return Response(status_code=204)

    return app


app = create_app()
