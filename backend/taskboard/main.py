"""FastAPI application entrypoint."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskboard.api.routes import ingest, tasks
from taskboard.core.config import settings
from taskboard.core.errors import (
    ExtractionError,
    ExtractionErrorKind,
    NotFoundError,
    StoreError,
    TaskboardError,
    ValidationError,
)
from taskboard.core.logging import configure_logging
from taskboard.observability.client import init_opik
from taskboard.observability.metrics import log_metric

logger = logging.getLogger(__name__)

INTERNAL_ERROR = {"error": "Internal server error"}


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging(log_level=settings.log_level)
    init_opik()
    logger.info("%s started (extraction=%s)", settings.app_name, settings.extraction_strategy)
    yield


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    detail = f"{field}: {first.get('msg')}" if field else "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": detail})


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(exc)})


@app.exception_handler(ExtractionError)
async def _extraction_error(request: Request, exc: ExtractionError) -> JSONResponse:
    log_metric("task.extract.failed", 1, metadata={"kind": exc.kind.value})
    if exc.kind is ExtractionErrorKind.SERVICE_FAILURE:
        logger.warning("Extraction service failure: %s", exc.detail)
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"error": exc.user_message})
    return JSONResponse(status_code=status.HTTP_200_OK, content={"error": exc.user_message})


@app.exception_handler(StoreError)
async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Task store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_ERROR)


@app.exception_handler(TaskboardError)
async def _domain_error(request: Request, exc: TaskboardError) -> JSONResponse:
    logger.error("Unhandled %s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_ERROR)


@app.get("/health", tags=["health"])
def health() -> dict:
    return {"status": "ok"}


app.include_router(tasks.router)
app.include_router(ingest.router)
