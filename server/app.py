"""FastAPI application factory."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.config import Config
from orchestrator.errors import OrchestratorError
from server.routes import health, search
from server.schemas.responses import ErrorResponseDTO
from server.utils import status_for_error
from utils.logger import get_logger

logger = get_logger(__name__)

API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Report configuration gaps at startup; the server still starts."""
    config = Config()
    logger.info(
        "DocAnswer server starting",
        extra={"extra_fields": {"answers": config.get_provider_info(), "index": config.ALGOLIA_INDEX_NAME}},
    )

    missing = [k for k in ("API_KEYS", "ALGOLIA_APP_ID", "ALGOLIA_API_KEY") if not os.getenv(k)]
    if missing:
        logger.warning(f"Missing environment variables: {missing}")
    for problem in config.validate():
        logger.warning(f"Configuration problem: {problem}")

    yield

    logger.info("DocAnswer server shutting down")


async def orchestrator_error_handler(request: Request, exc: OrchestratorError) -> JSONResponse:
    status_code = status_for_error(exc)
    logger.warning(
        f"Request failed: {exc.message}",
        extra={
            "extra_fields": {
                "path": request.url.path,
                "code": exc.code,
                "status_code": status_code,
                "retryable": exc.retryable,
            }
        },
    )
    return JSONResponse(status_code=status_code, content=ErrorResponseDTO.from_error(exc).model_dump())


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


def create_app() -> FastAPI:
    """Factory function to create FastAPI application."""
    app = FastAPI(
        title="DocAnswer API",
        description="Retrieval-augmented answers over a documentation search index",
        version=API_VERSION,
        lifespan=lifespan,
    )

    origins = _cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_exception_handler(OrchestratorError, orchestrator_error_handler)

    app.include_router(health.router)
    app.include_router(search.router)

    return app
