# artifacts_server/ownership.py
from __future__ import annotations

from typing import Any, Mapping

from artifacts_server.errors import ForbiddenError
from artifacts_server.logging_utils import get_logger
from artifacts_server.models import Principal

logger = get_logger(__name__)


def is_owner(principal: Principal, artifact: Mapping[str, Any]) -> bool:
    return artifact.get("adderEmail") == principal.email


def authorize_mutation(principal: Principal, artifact: Mapping[str, Any]) -> None:
    """
    Allow a field update or deletion only for the artifact's creator.

    The caller must already have loaded ``artifact``; a missing artifact is
    a ``NotFoundError`` and never reaches this check.

    Raises
    ------
    ForbiddenError
        If ``principal`` is not the artifact's ``adderEmail``.
    """
    if not is_owner(principal, artifact):
        logger.info("Denied mutation of %s by %s", artifact.get("id"), principal.email)
        raise ForbiddenError()
