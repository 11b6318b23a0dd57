import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from backend.routes import router
from backend.storage import (
    EntityValidationError,
    FilenameConflict,
    NotFound,
    Storage,
    StorageError,
    StorageIOError,
)

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Root logging from LOG_LEVEL (default INFO)."""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def _error(status: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def create_app(data_dir: Path | None = None) -> FastAPI:
    configure_logging()
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    storage = Storage(resolved)
    logger.info("Serving data from %s", resolved)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        storage.close()

    app = FastAPI(title="Storied", lifespan=lifespan)
    app.state.storage = storage
    app.include_router(router, prefix="/api")

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound):
        return _error(404, exc)

    @app.exception_handler(FilenameConflict)
    async def conflict(request: Request, exc: FilenameConflict):
        return _error(409, exc)

    @app.exception_handler(EntityValidationError)
    async def invalid_entity(request: Request, exc: EntityValidationError):
        return _error(422, exc)

    @app.exception_handler(ValidationError)
    async def invalid_payload(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=422, content={"detail": exc.errors(include_url=False, include_context=False)}
        )

    @app.exception_handler(StorageIOError)
    async def io_failure(request: Request, exc: StorageIOError):
        logger.error("Storage I/O failure on %s: %s", request.url.path, exc)
        return _error(500, exc)

    @app.exception_handler(StorageError)
    async def storage_failure(request: Request, exc: StorageError):
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        return _error(500, exc)

    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
