# artifacts_server/service.py
"""
Artifact operations as the HTTP layer sees them.

Each mutating operation runs its checks in a fixed order: request
validation, then existence, then ownership, then the write. Authentication
happens before any of this, in the route handler.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from fastapi.concurrency import run_in_threadpool

from artifacts_server.errors import InvalidIdError, NotFoundError, ValidationError
from artifacts_server.likes import LikeEngine
from artifacts_server.logging_utils import get_logger
from artifacts_server.models import (TOP_LIKED_LIMIT, Principal, ToggleResult,
                                     is_valid_artifact_id, strip_protected)
from artifacts_server.ownership import authorize_mutation
from artifacts_server.store import ArtifactStore

logger = get_logger(__name__)


def _require_valid_id(artifact_id: str) -> None:
    if not is_valid_artifact_id(artifact_id):
        raise InvalidIdError()


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ArtifactService:
    def __init__(self,
                 store: ArtifactStore,
                 likes: Optional[LikeEngine] = None) -> None:
        self.store = store
        self.likes = likes or LikeEngine(store)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_all(self) -> List[Dict[str, Any]]:
        return await run_in_threadpool(self.store.list_all)

    async def get(self, artifact_id: str) -> Dict[str, Any]:
        _require_valid_id(artifact_id)
        artifact = await run_in_threadpool(self.store.get, artifact_id)
        if artifact is None:
            raise NotFoundError()
        return artifact

    async def list_by_owner(self, email: str) -> List[Dict[str, Any]]:
        artifacts = await run_in_threadpool(self.store.find_by_owner, email)
        logger.info("Found %d artifacts for user %s", len(artifacts), email)
        return artifacts

    async def list_liked_by(self, email: str) -> List[Dict[str, Any]]:
        return await run_in_threadpool(self.store.find_liked_by, email)

    async def top_liked(self) -> List[Dict[str, Any]]:
        return await run_in_threadpool(self.store.top_liked, TOP_LIKED_LIMIT)

    async def search(self, query: Optional[str]) -> List[Dict[str, Any]]:
        """Substring search; a blank query matches nothing."""
        if query is None or not query.strip():
            return []
        return await run_in_threadpool(self.store.search, query.strip())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, principal: Principal, payload: Mapping[str, Any]) -> str:
        """
        Store a new artifact owned by ``principal``.

        Server-owned fields in ``payload`` are ignored and set here instead.
        """
        document = strip_protected(payload)
        name = document.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Artifact name is required")

        adder_name = principal.name or payload.get("adderName")
        document.update({
            "adderEmail": principal.email,
            "likeCount": 0,
            "likedBy": [],
            "addedDate": _utcnow_iso(),
        })
        if isinstance(adder_name, str) and adder_name:
            document["adderName"] = adder_name

        artifact_id = await run_in_threadpool(self.store.insert, document)
        logger.info("Artifact %s added by %s", artifact_id, principal.email)
        return artifact_id

    async def _load_owned(self, principal: Principal, artifact_id: str) -> Dict[str, Any]:
        artifact = await self.get(artifact_id)
        authorize_mutation(principal, artifact)
        return artifact

    async def update(self,
                     principal: Principal,
                     artifact_id: str,
                     payload: Mapping[str, Any]) -> None:
        _require_valid_id(artifact_id)
        updates = strip_protected(payload)
        if not updates:
            raise ValidationError("No updatable fields supplied")
        if any(not isinstance(k, str) or not k for k in updates):
            raise ValidationError("Field names must be non-empty strings")

        await self._load_owned(principal, artifact_id)
        matched = await run_in_threadpool(self.store.update_fields, artifact_id, updates)
        if not matched:
            raise NotFoundError()
        logger.info("Artifact %s updated by %s (%s)",
                    artifact_id, principal.email, ", ".join(sorted(updates)))

    async def delete(self, principal: Principal, artifact_id: str) -> None:
        await self._load_owned(principal, artifact_id)
        deleted = await run_in_threadpool(self.store.delete, artifact_id)
        if not deleted:
            raise NotFoundError()
        logger.info("Artifact %s deleted by %s", artifact_id, principal.email)

    async def like(self, principal: Principal, artifact_id: str) -> ToggleResult:
        _require_valid_id(artifact_id)
        return await self.likes.like(artifact_id, principal.email)

    async def dislike(self, principal: Principal, artifact_id: str) -> ToggleResult:
        _require_valid_id(artifact_id)
        return await self.likes.dislike(artifact_id, principal.email)
