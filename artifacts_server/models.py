# artifacts_server/models.py
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

# Fields owned by the server. Clients may send them but they are dropped
# before anything reaches the store.
PROTECTED_FIELDS = frozenset({
    "id",
    "_id",
    "adderEmail",
    "adderName",
    "likeCount",
    "likedBy",
    "addedDate",
})

SEARCH_FIELDS = ("name", "description", "type", "presentLocation")

TOP_LIKED_LIMIT = 6

_ARTIFACT_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def new_artifact_id() -> str:
    return uuid.uuid4().hex


def is_valid_artifact_id(artifact_id: Optional[str]) -> bool:
    return bool(artifact_id) and _ARTIFACT_ID_RE.match(artifact_id) is not None


def strip_protected(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``payload`` without server-owned fields."""
    return {k: v for k, v in payload.items() if k not in PROTECTED_FIELDS}


@dataclass(frozen=True)
class Principal:
    """
    A verified identity extracted from a bearer token.

    Attributes
    ----------
    email : str
        Identity used for ownership and like membership.
    uid : str
        Issuer-side unique user id.
    email_verified : bool
        Whether the issuer vouches for the email address.
    name : Optional[str]
        Display name, when the issuer provides one.
    """
    email: str
    uid: str
    email_verified: bool = False
    name: Optional[str] = None


@dataclass(frozen=True)
class ToggleResult:
    artifact_id: str
    changed: bool


class ArtifactCreate(BaseModel):
    """Body of ``POST /artifacts``; unknown descriptive fields are kept."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    description: Optional[str] = None
    type: Optional[str] = None
    present_location: Optional[str] = Field(default=None, alias="presentLocation")

    def to_payload(self) -> Dict[str, Any]:
        # Explicit nulls are kept, matching what an update would store
        return self.model_dump(by_alias=True, exclude_unset=True)


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class CreatedResponse(MessageResponse):
    insertedId: str


class ToggleResponse(MessageResponse):
    changed: bool


class ArtifactListResponse(MessageResponse):
    count: int
    artifacts: List[Dict[str, Any]]


class ArtifactResponse(MessageResponse):
    artifact: Dict[str, Any]
