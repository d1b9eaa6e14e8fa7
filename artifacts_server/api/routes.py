# artifacts_server/api/routes.py
"""
HTTP surface of the artifacts server.

Every route is mounted twice, under ``/artifacts`` and ``/api/artifacts``.
Protected routes authenticate explicitly as their first step, then hand the
verified principal to ``ArtifactService``.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from artifacts_server.config import Settings
from artifacts_server.errors import (ArtifactServerError, InternalError,
                                     ValidationError)
from artifacts_server.identity import IdentityVerifier
from artifacts_server.logging_utils import get_logger
from artifacts_server.models import (ArtifactCreate, ArtifactListResponse,
                                     ArtifactResponse, CreatedResponse,
                                     MessageResponse, Principal,
                                     ToggleResponse)
from artifacts_server.service import ArtifactService
from artifacts_server.store import (ArtifactStore, DynamoArtifactStore,
                                    MemoryArtifactStore)

logger = get_logger(__name__)

SERVICE_NAME = "Artifacts Server"

HTTP_ERROR_CODES = {
    400: "validation_error",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}

router = APIRouter(prefix="/artifacts", tags=["artifacts"])


def build_store(settings: Settings) -> ArtifactStore:
    if settings.store_backend == "memory":
        logger.info("Using in-memory artifact store")
        return MemoryArtifactStore()
    logger.info("Using DynamoDB table %s in %s", settings.table_name, settings.aws_region)
    return DynamoArtifactStore(
        table_name=settings.table_name,
        region_name=settings.aws_region,
        endpoint_url=settings.dynamodb_endpoint_url,
    )


def _service(request: Request) -> ArtifactService:
    return request.app.state.service


async def _authenticate(request: Request, authorization: Optional[str]) -> Principal:
    verifier: IdentityVerifier = request.app.state.verifier
    return await verifier.verify(authorization)


async def _json_object(request: Request) -> Dict[str, Any]:
    """Read the request body as a JSON object; called only after authentication."""
    raw = await request.body()
    if not raw.strip():
        raise ValidationError("Request body is required")
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _listing(artifacts: List[Dict[str, Any]], message: str) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "count": len(artifacts),
        "artifacts": artifacts,
    }


# ----------------------------------------------------------------------
# COLLECTION ROUTES (must precede /{artifact_id})
# ----------------------------------------------------------------------


@router.get("/top-liked", response_model=ArtifactListResponse)
async def top_liked(request: Request):
    """The six most liked artifacts, most liked first."""
    artifacts = await _service(request).top_liked()
    return _listing(artifacts, "Top liked artifacts retrieved successfully")


@router.get("/search", response_model=ArtifactListResponse)
async def search_artifacts(
    request: Request,
    q: Optional[str] = Query(None, description="Case-insensitive substring"),
):
    artifacts = await _service(request).search(q)
    return _listing(artifacts, "Search completed successfully")


@router.get("/user/{email}", response_model=ArtifactListResponse)
async def user_artifacts(
    email: str,
    request: Request,
    authorization: Optional[str] = Header(None),
):
    """Artifacts added by the caller. ``email`` in the path is informational."""
    principal = await _authenticate(request, authorization)
    if email != principal.email:
        logger.debug("Path email %s ignored in favour of %s", email, principal.email)
    artifacts = await _service(request).list_by_owner(principal.email)
    return _listing(artifacts, "User artifacts retrieved successfully")


@router.get("/liked/{email}", response_model=ArtifactListResponse)
async def liked_artifacts(
    email: str,
    request: Request,
    authorization: Optional[str] = Header(None),
):
    """Artifacts the caller currently likes. ``email`` in the path is informational."""
    principal = await _authenticate(request, authorization)
    artifacts = await _service(request).list_liked_by(principal.email)
    return _listing(artifacts, "Liked artifacts retrieved successfully")


@router.get("", response_model=ArtifactListResponse)
async def list_artifacts(request: Request):
    artifacts = await _service(request).list_all()
    return _listing(artifacts, "Artifacts retrieved successfully")


@router.post("", status_code=201, response_model=CreatedResponse)
async def create_artifact(
    request: Request,
    authorization: Optional[str] = Header(None),
):
    principal = await _authenticate(request, authorization)
    payload = await _json_object(request)
    try:
        body = ArtifactCreate.model_validate(payload)
    except PydanticValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ValidationError(f"Invalid artifact fields: {fields}") from e

    artifact_id = await _service(request).create(principal, body.to_payload())
    return {
        "success": True,
        "message": "Artifact added successfully",
        "insertedId": artifact_id,
    }


# ----------------------------------------------------------------------
# SINGLE ARTIFACT ROUTES
# ----------------------------------------------------------------------


@router.get("/{artifact_id}", response_model=ArtifactResponse)
async def get_artifact(artifact_id: str, request: Request):
    artifact = await _service(request).get(artifact_id)
    return {
        "success": True,
        "message": "Artifact retrieved successfully",
        "artifact": artifact,
    }


@router.patch("/{artifact_id}/like", response_model=ToggleResponse)
async def like_artifact(
    artifact_id: str,
    request: Request,
    authorization: Optional[str] = Header(None),
):
    principal = await _authenticate(request, authorization)
    result = await _service(request).like(principal, artifact_id)
    return {
        "success": True,
        "message": "Like count updated successfully",
        "changed": result.changed,
    }


@router.patch("/{artifact_id}/dislike", response_model=ToggleResponse)
async def dislike_artifact(
    artifact_id: str,
    request: Request,
    authorization: Optional[str] = Header(None),
):
    principal = await _authenticate(request, authorization)
    result = await _service(request).dislike(principal, artifact_id)
    return {
        "success": True,
        "message": "Like count updated successfully",
        "changed": result.changed,
    }


@router.patch("/{artifact_id}", response_model=MessageResponse)
async def update_artifact(
    artifact_id: str,
    request: Request,
    authorization: Optional[str] = Header(None),
):
    """Owner-only partial update; server-owned fields are dropped silently."""
    principal = await _authenticate(request, authorization)
    payload = await _json_object(request)
    await _service(request).update(principal, artifact_id, payload)
    return {"success": True, "message": "Artifact updated successfully"}


@router.delete("/{artifact_id}", response_model=MessageResponse)
async def delete_artifact(
    artifact_id: str,
    request: Request,
    authorization: Optional[str] = Header(None),
):
    principal = await _authenticate(request, authorization)
    await _service(request).delete(principal, artifact_id)
    return {"success": True, "message": "Artifact deleted successfully"}


# ----------------------------------------------------------------------
# APP FACTORY
# ----------------------------------------------------------------------


def create_app(settings: Optional[Settings] = None,
               store: Optional[ArtifactStore] = None,
               verifier: Optional[IdentityVerifier] = None) -> FastAPI:
    """
    Build the FastAPI application with explicitly injected collaborators.

    Parameters
    ----------
    settings : Optional[Settings]
        Defaults to ``Settings.from_env()``.
    store : Optional[ArtifactStore]
        Defaults to the backend named by ``settings.store_backend``.
    verifier : Optional[IdentityVerifier]
        Defaults to a verifier configured from ``settings``.
    """
    settings = settings or Settings.from_env()
    store = store if store is not None else build_store(settings)
    verifier = verifier or IdentityVerifier.from_settings(settings)

    app = FastAPI(
        title=SERVICE_NAME,
        description="Museum artifact catalogue with per-user likes",
    )
    app.state.settings = settings
    app.state.store = store
    app.state.verifier = verifier
    app.state.service = ArtifactService(store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("[REQ] %s %s", request.method, request.url.path)
        response = await call_next(request)
        logger.info("[RESP] %s %s -> %s",
                    request.method, request.url.path, response.status_code)
        return response

    @app.exception_handler(ArtifactServerError)
    async def artifact_error_handler(request: Request, exc: ArtifactServerError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # Unknown routes and unsupported methods raised by the framework itself
        content = {
            "success": False,
            "message": str(exc.detail),
            "status": exc.status_code,
            "code": HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
        }
        return JSONResponse(status_code=exc.status_code, content=content,
                            headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("[VALIDATION ERROR] path=%s errors=%s",
                       request.url.path, exc.errors())
        error = ValidationError("Request body or parameters are invalid")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = InternalError()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "Artifacts Server is running!"

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
        }

    app.include_router(router)
    app.include_router(router, prefix="/api")
    return app
