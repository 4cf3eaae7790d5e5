"""FastAPI application — entry point."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.routes import analytics
from app.routes.health import get_db_info
from app.schemas.common import HealthResponse
from casino.services._types import DbInfoDict
from config import Settings, get_settings
from db.connection import init_database, reset_engine

logger: logging.Logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = get_settings()
    logger.info("DB: %s", settings.database.db_info_for_logging())

    init_database()
    yield
    reset_engine()


def create_app() -> FastAPI:
    app: FastAPI = FastAPI(
        title="Casino Ledger Analytics",
        version="0.1.0",
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def _on_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "type": type(exc).__name__},
        )

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/health/db")
    def health_db() -> DbInfoDict:
        return get_db_info()

    app.include_router(analytics.router)

    return app


app: FastAPI = create_app()


def start() -> None:
    """Entry point for casino-api."""
    project_root: Path = Path(__file__).resolve().parent.parent
    os.chdir(project_root)

    candidate: Path = project_root / ".env"
    if candidate.exists():
        load_dotenv(candidate, override=False)

    reload: bool = os.environ.get("CASINO_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=reload,
    )
