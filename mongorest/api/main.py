"""FastAPI application entrypoint for mongorest."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import ConnectionFailure, PyMongoError

from mongorest.api.middleware.logging import LoggingMiddleware
from mongorest.api.router import build_collection_router
from mongorest.core.config import Settings, settings
from mongorest.core.database import DatabaseManager, database_manager
from mongorest.core.exceptions import ApplicationError
from mongorest.models.options import CollectionOptions

logger = logging.getLogger(__name__)

OPTIONS_KEYWORD = "x-mongorest"


def install_error_handlers(app: FastAPI, database: DatabaseManager) -> None:
    """Render application errors and driver failures as JSON."""

    @app.exception_handler(ApplicationError)
    async def handle_application_error(_: Request, exc: ApplicationError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(PyMongoError)
    async def handle_database_error(_: Request, exc: PyMongoError):
        logger.error("Unexpected MongoDB error: %s", exc)
        if isinstance(exc, ConnectionFailure):
            await database.reset()
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"error": "Document store is unavailable.", "code": "store_unavailable"},
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Unexpected database error.", "code": "database_error"},
        )


def load_collection_schemas(directory: Path) -> Dict[str, tuple]:
    """Read `<collection>.json` schema files.

    A schema may carry router options under the `x-mongorest` keyword.
    """

    collections: Dict[str, tuple] = {}
    for path in sorted(directory.glob("*.json")):
        schema = json.loads(path.read_text(encoding="utf-8"))
        options = CollectionOptions.model_validate(schema.pop(OPTIONS_KEYWORD, {}))
        collections[path.stem] = (schema, options)
    return collections


def mount_collections(app: FastAPI, directory: Path, database: DatabaseManager, prefix: str) -> None:
    for name, (schema, options) in load_collection_schemas(directory).items():
        router = build_collection_router(name, schema, options, database=database)
        app.include_router(router, prefix=f"{prefix}/{name}")
        logger.info("Mounted collection %s at %s/%s", name, prefix, name)


def create_app(
    database: Optional[DatabaseManager] = None,
    config: Optional[Settings] = None,
) -> FastAPI:
    """Build the API application with shared middleware and error handling."""

    config = config or settings
    database = database or database_manager

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await database.initialize()
        try:
            yield
        finally:
            await database.close()

    app = FastAPI(
        title=config.API_TITLE,
        version=config.API_VERSION,
        debug=config.DEBUG,
        lifespan=lifespan,
    )
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    install_error_handlers(app, database)

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        """Liveness probe including MongoDB reachability."""

        reachable = await database.ping()
        return {"status": "ok" if reachable else "degraded", "environment": config.ENVIRONMENT}

    if config.SCHEMA_DIR is not None:
        mount_collections(app, config.SCHEMA_DIR, database, config.API_PREFIX)

    return app
