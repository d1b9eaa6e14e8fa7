# artifacts_server/store.py
"""
Artifact persistence.

``ArtifactStore`` is the narrow interface the rest of the server talks to.
Two implementations ship with the package:

- ``DynamoArtifactStore``: one DynamoDB table, hash key ``id``. Like toggles
  are single conditional ``UpdateItem`` calls so membership and counter
  always move together.
- ``MemoryArtifactStore``: process-local dict guarded by a lock, used for
  local development and tests.

All methods are blocking; async callers hop through a thread pool.
"""
from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Mapping, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from artifacts_server.errors import InternalError, NotFoundError
from artifacts_server.logging_utils import get_logger
from artifacts_server.models import SEARCH_FIELDS, new_artifact_id

logger = get_logger(__name__)


def matches_query(artifact: Mapping[str, Any], query: str) -> bool:
    """Case-insensitive substring match over the searchable fields."""
    needle = query.lower()
    for field in SEARCH_FIELDS:
        value = artifact.get(field)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


class ArtifactStore(ABC):
    """
    Abstract collection of artifact documents keyed by ``id``.

    Subclasses must implement the primitive CRUD and toggle operations;
    the query helpers have list-based defaults that keep store order.
    """

    @abstractmethod
    def insert(self, document: Mapping[str, Any]) -> str:
        """Persist a new artifact and return its freshly assigned id."""
        ...

    @abstractmethod
    def get(self, artifact_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def list_all(self) -> List[Dict[str, Any]]:
        """Every artifact, in store order (oldest first)."""
        ...

    @abstractmethod
    def update_fields(self, artifact_id: str, fields: Mapping[str, Any]) -> bool:
        """
        Overwrite ``fields`` on an existing artifact.

        Returns
        -------
        bool
            False if no artifact with ``artifact_id`` exists.
        """
        ...

    @abstractmethod
    def delete(self, artifact_id: str) -> bool:
        """Remove an artifact; False if it did not exist."""
        ...

    @abstractmethod
    def add_like(self, artifact_id: str, email: str) -> bool:
        """
        Atomically add ``email`` to ``likedBy`` and bump ``likeCount``.

        Returns
        -------
        bool
            True if membership changed, False if ``email`` already liked it.

        Raises
        ------
        NotFoundError
            If the artifact does not exist.
        """
        ...

    @abstractmethod
    def remove_like(self, artifact_id: str, email: str) -> bool:
        """
        Atomically remove ``email`` from ``likedBy`` and decrement
        ``likeCount``, only when ``email`` is a member and the counter is
        positive.

        Returns
        -------
        bool
            True if membership changed, False for a no-op.

        Raises
        ------
        NotFoundError
            If the artifact does not exist.
        """
        ...

    def find_by_owner(self, email: str) -> List[Dict[str, Any]]:
        return [a for a in self.list_all() if a.get("adderEmail") == email]

    def find_liked_by(self, email: str) -> List[Dict[str, Any]]:
        return [a for a in self.list_all() if email in a.get("likedBy", [])]

    def top_liked(self, limit: int) -> List[Dict[str, Any]]:
        # sorted() is stable, so ties keep store order
        ranked = sorted(self.list_all(),
                        key=lambda a: a.get("likeCount", 0),
                        reverse=True)
        return ranked[:limit]

    def search(self, query: str) -> List[Dict[str, Any]]:
        return [a for a in self.list_all() if matches_query(a, query)]


# ----------------------------------------------------------------------
# IN-MEMORY
# ----------------------------------------------------------------------


class MemoryArtifactStore(ArtifactStore):
    """Thread-safe dict-backed store. Documents are copied in and out."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._docs: Dict[str, Dict[str, Any]] = {}

    def insert(self, document: Mapping[str, Any]) -> str:
        artifact_id = new_artifact_id()
        doc = copy.deepcopy(dict(document))
        doc["id"] = artifact_id
        doc["likedBy"] = list(doc.get("likedBy", []))
        doc.setdefault("likeCount", len(doc["likedBy"]))
        with self._lock:
            self._docs[artifact_id] = doc
        return artifact_id

    def get(self, artifact_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._docs.get(artifact_id)
            return copy.deepcopy(doc) if doc is not None else None

    def list_all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._docs.values()]

    def update_fields(self, artifact_id: str, fields: Mapping[str, Any]) -> bool:
        with self._lock:
            doc = self._docs.get(artifact_id)
            if doc is None:
                return False
            doc.update(copy.deepcopy(dict(fields)))
            return True

    def delete(self, artifact_id: str) -> bool:
        with self._lock:
            return self._docs.pop(artifact_id, None) is not None

    def add_like(self, artifact_id: str, email: str) -> bool:
        with self._lock:
            doc = self._docs.get(artifact_id)
            if doc is None:
                raise NotFoundError()
            if email in doc["likedBy"]:
                return False
            doc["likedBy"].append(email)
            doc["likeCount"] += 1
            return True

    def remove_like(self, artifact_id: str, email: str) -> bool:
        with self._lock:
            doc = self._docs.get(artifact_id)
            if doc is None:
                raise NotFoundError()
            if email not in doc["likedBy"] or doc["likeCount"] <= 0:
                return False
            doc["likedBy"].remove(email)
            doc["likeCount"] -= 1
            return True

    def clear(self) -> None:
        with self._lock:
            self._docs.clear()


# ----------------------------------------------------------------------
# DYNAMODB
# ----------------------------------------------------------------------


def _to_dynamo(value: Any) -> Any:
    # DynamoDB rejects floats; Decimal(str()) keeps the printed value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dynamo(v) for v in value]
    return value


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    if isinstance(value, set):
        return sorted(_from_dynamo(v) for v in value)
    return value


def _item_to_artifact(item: Mapping[str, Any]) -> Dict[str, Any]:
    artifact = _from_dynamo(dict(item))
    artifact["likedBy"] = list(artifact.get("likedBy") or [])
    artifact["likeCount"] = int(artifact.get("likeCount", 0))
    return artifact


def _is_conditional_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class DynamoArtifactStore(ArtifactStore):
    """
    DynamoDB-backed store.

    ``likedBy`` is a string set (absent while empty, since DynamoDB has no
    empty sets) and ``likeCount`` a number, both updated in the same
    ``UpdateItem`` call.
    """

    def __init__(self,
                 table_name: str,
                 region_name: str = "us-east-1",
                 endpoint_url: Optional[str] = None,
                 table: Any = None) -> None:
        if table is None:
            dynamodb = boto3.resource("dynamodb",
                                      region_name=region_name,
                                      endpoint_url=endpoint_url)
            table = dynamodb.Table(table_name)
        self.table = table
        self.table_name = table_name

    @contextmanager
    def _translate_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except (ClientError, BotoCoreError) as e:
            logger.error("DynamoDB %s failed on %s: %s", action, self.table_name, e)
            raise InternalError() from e

    def _scan(self, **kwargs: Any) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        with self._translate_errors("scan"):
            while True:
                response = self.table.scan(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        artifacts = [_item_to_artifact(item) for item in items]
        # Scan order is hash order; creation order is the closest to natural
        artifacts.sort(key=lambda a: str(a.get("addedDate", "")))
        return artifacts

    def insert(self, document: Mapping[str, Any]) -> str:
        artifact_id = new_artifact_id()
        item = _to_dynamo({k: v for k, v in document.items() if k != "likedBy"})
        item["id"] = artifact_id
        liked_by = set(document.get("likedBy") or [])
        if liked_by:
            item["likedBy"] = liked_by
        item["likeCount"] = len(liked_by)

        with self._translate_errors("put_item"):
            self.table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(#id)",
                ExpressionAttributeNames={"#id": "id"},
            )
        logger.debug("Stored artifact %s", artifact_id)
        return artifact_id

    def get(self, artifact_id: str) -> Optional[Dict[str, Any]]:
        with self._translate_errors("get_item"):
            response = self.table.get_item(Key={"id": artifact_id},
                                           ConsistentRead=True)
        item = response.get("Item")
        return _item_to_artifact(item) if item else None

    def list_all(self) -> List[Dict[str, Any]]:
        return self._scan()

    def find_by_owner(self, email: str) -> List[Dict[str, Any]]:
        return self._scan(FilterExpression=Attr("adderEmail").eq(email))

    def find_liked_by(self, email: str) -> List[Dict[str, Any]]:
        return self._scan(FilterExpression=Attr("likedBy").contains(email))

    def update_fields(self, artifact_id: str, fields: Mapping[str, Any]) -> bool:
        if not fields:
            return self.get(artifact_id) is not None

        names = {"#id": "id"}
        values = {}
        assignments = []
        for i, (field, value) in enumerate(fields.items()):
            names[f"#f{i}"] = field
            values[f":v{i}"] = _to_dynamo(value)
            assignments.append(f"#f{i} = :v{i}")

        with self._translate_errors("update_item"):
            try:
                self.table.update_item(
                    Key={"id": artifact_id},
                    UpdateExpression="SET " + ", ".join(assignments),
                    ConditionExpression="attribute_exists(#id)",
                    ExpressionAttributeNames=names,
                    ExpressionAttributeValues=values,
                )
            except ClientError as e:
                if _is_conditional_failure(e):
                    return False
                raise
        return True

    def delete(self, artifact_id: str) -> bool:
        with self._translate_errors("delete_item"):
            response = self.table.delete_item(Key={"id": artifact_id},
                                              ReturnValues="ALL_OLD")
        return bool(response.get("Attributes"))

    def _conditional_toggle(self, artifact_id: str, **update: Any) -> bool:
        with self._translate_errors("update_item"):
            try:
                self.table.update_item(Key={"id": artifact_id}, **update)
                return True
            except ClientError as e:
                if not _is_conditional_failure(e):
                    raise

        # Condition failed: either the artifact is gone or the toggle is a no-op
        if self.get(artifact_id) is None:
            raise NotFoundError()
        return False

    def add_like(self, artifact_id: str, email: str) -> bool:
        return self._conditional_toggle(
            artifact_id,
            UpdateExpression="ADD likedBy :members, likeCount :one",
            ConditionExpression="attribute_exists(#id) AND NOT contains(likedBy, :email)",
            ExpressionAttributeNames={"#id": "id"},
            ExpressionAttributeValues={
                ":members": {email},
                ":one": 1,
                ":email": email,
            },
        )

    def remove_like(self, artifact_id: str, email: str) -> bool:
        return self._conditional_toggle(
            artifact_id,
            UpdateExpression="DELETE likedBy :members ADD likeCount :minus_one",
            ConditionExpression=(
                "attribute_exists(#id) AND contains(likedBy, :email) "
                "AND likeCount > :zero"
            ),
            ExpressionAttributeNames={"#id": "id"},
            ExpressionAttributeValues={
                ":members": {email},
                ":minus_one": -1,
                ":zero": 0,
                ":email": email,
            },
        )
