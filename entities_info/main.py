import logging
import os
import sys
import uuid
from dataclasses import asdict
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from .clients.logging import get_logger
from .clients.registry import build_content_store, build_tempstore_factory
from .config.config_loader import load_runtime_config
from .middleware.auth import get_current_owner, verify_bearer_token
from .services.entities_info_manager import EntitiesInfoManager
from .services.report_export import report_to_csv
from .services.selection import SelectionService
from .utils.errors import (
    BundleNotFoundError,
    ContentStoreError,
    EntitiesInfoError,
    EntityTypeNotFoundError,
    SelectionKeyError,
)
from .utils.report import BundleReport, SelectionGroup

logger = get_logger(__name__)

app = FastAPI(title="Entities info")

allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
if allowed_origins_env:
    allowed_origins = [origin.strip() for origin in allowed_origins_env.split(",")]
else:
    allowed_origins = ["http://localhost:5173", "http://127.0.0.1:5173"]

# Wildcard origins cannot be combined with credentials
use_credentials = "*" not in allowed_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=use_credentials,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add request ID to responses for tracing."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(RequestIDMiddleware)

try:
    runtime_config = load_runtime_config()
    manager: Optional[EntitiesInfoManager] = EntitiesInfoManager(
        build_content_store(runtime_config),
        build_tempstore_factory(runtime_config),
        runtime_config.report,
    )
    logger.info("EntitiesInfoManager initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize EntitiesInfoManager: {e}", exc_info=True)
    runtime_config = None
    manager = None


class SelectionPayload(BaseModel):
    values: List[str]


class SelectionResponse(BaseModel):
    owner: str
    values: List[str]


def get_manager() -> EntitiesInfoManager:
    if manager is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Entities info service not configured",
        )
    return manager


def get_selection_service(manager: EntitiesInfoManager = Depends(get_manager)) -> SelectionService:
    return SelectionService(manager)


def _to_http_error(exc: EntitiesInfoError) -> HTTPException:
    if isinstance(exc, SelectionKeyError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, (EntityTypeNotFoundError, BundleNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ContentStoreError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    if exc.transient:
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors for debugging."""
    logger.error(
        "Request validation error",
        extra={
            "url": str(request.url),
            "method": request.method,
            "errors": exc.errors(),
        },
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


@app.on_event("startup")
async def startup_event():
    """Log when the application is ready to accept requests."""
    logger.info(
        "Application startup event triggered",
        extra={
            "python_version": sys.version,
            "port": os.getenv("PORT", "8080"),
            "manager_available": manager is not None,
        },
    )


@app.get("/health")
def health():
    return {"status": "ok", "manager_available": manager is not None}


@app.get("/entities-info/definitions", dependencies=[Depends(verify_bearer_token)])
def definitions(manager: EntitiesInfoManager = Depends(get_manager)):
    """Raw entity type definitions known to the content store (requires API token)."""
    try:
        return {
            entity_type_id: asdict(definition)
            for entity_type_id, definition in manager.store.get_definitions().items()
        }
    except EntitiesInfoError as exc:
        raise _to_http_error(exc) from exc


@app.get(
    "/entities-info/options",
    response_model=List[SelectionGroup],
    dependencies=[Depends(get_current_owner)],
)
def selection_options(
    service: SelectionService = Depends(get_selection_service),
):
    """Bundles that can be selected for the report, grouped by entity type."""
    try:
        return service.options()
    except EntitiesInfoError as exc:
        raise _to_http_error(exc) from exc


@app.post("/entities-info/selection", response_model=SelectionResponse)
def save_selection(
    payload: SelectionPayload,
    owner: str = Depends(get_current_owner),
    service: SelectionService = Depends(get_selection_service),
):
    """Store the selected bundles for the current user."""
    try:
        values = service.save(owner, payload.values)
    except EntitiesInfoError as exc:
        raise _to_http_error(exc) from exc
    return SelectionResponse(owner=owner, values=values)


@app.get("/entities-info/selection", response_model=SelectionResponse)
def get_selection(
    owner: str = Depends(get_current_owner),
    service: SelectionService = Depends(get_selection_service),
):
    try:
        return SelectionResponse(owner=owner, values=service.load(owner))
    except EntitiesInfoError as exc:
        raise _to_http_error(exc) from exc


@app.delete("/entities-info/selection")
def clear_selection(
    owner: str = Depends(get_current_owner),
    service: SelectionService = Depends(get_selection_service),
):
    try:
        deleted = service.clear(owner)
    except EntitiesInfoError as exc:
        raise _to_http_error(exc) from exc
    return {"owner": owner, "deleted": deleted}


def _build_owner_report(manager: EntitiesInfoManager, owner: str) -> List[BundleReport]:
    try:
        return manager.build_report_for_owner(owner)
    except EntitiesInfoError as exc:
        logger.warning("Report build failed", extra={"owner": owner, "error": str(exc)})
        raise _to_http_error(exc) from exc


@app.get("/entities-info/report", response_model=List[BundleReport])
def report(
    owner: str = Depends(get_current_owner),
    manager: EntitiesInfoManager = Depends(get_manager),
):
    """Field tables for the bundles the current user selected."""
    return _build_owner_report(manager, owner)


@app.get("/entities-info/report.csv")
def report_csv(
    owner: str = Depends(get_current_owner),
    manager: EntitiesInfoManager = Depends(get_manager),
):
    content = report_to_csv(_build_owner_report(manager, owner))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="entities_info.csv"'},
    )
