# artifacts_server/likes.py
"""
Like/dislike toggles.

Per (artifact, principal) there are two states, liked and not liked.
``like`` moves to liked, ``dislike`` moves to not liked, and repeating
either is a successful no-op. ``likeCount`` always equals ``len(likedBy)``
because both are changed by the same atomic store operation.
"""
from __future__ import annotations

from fastapi.concurrency import run_in_threadpool

from artifacts_server.logging_utils import get_logger
from artifacts_server.models import ToggleResult
from artifacts_server.store import ArtifactStore

logger = get_logger(__name__)


class LikeEngine:
    def __init__(self, store: ArtifactStore) -> None:
        self.store = store

    async def like(self, artifact_id: str, email: str) -> ToggleResult:
        """
        Add ``email`` to the artifact's likers.

        Raises
        ------
        NotFoundError
            If the artifact does not exist.
        """
        changed = await run_in_threadpool(self.store.add_like, artifact_id, email)
        logger.debug("like %s by %s changed=%s", artifact_id, email, changed)
        return ToggleResult(artifact_id=artifact_id, changed=changed)

    async def dislike(self, artifact_id: str, email: str) -> ToggleResult:
        """
        Remove ``email`` from the artifact's likers if present.

        Raises
        ------
        NotFoundError
            If the artifact does not exist.
        """
        changed = await run_in_threadpool(self.store.remove_like, artifact_id, email)
        logger.debug("dislike %s by %s changed=%s", artifact_id, email, changed)
        return ToggleResult(artifact_id=artifact_id, changed=changed)
