import pytest

from artifacts_server.errors import ForbiddenError
from artifacts_server.models import Principal
from artifacts_server.ownership import authorize_mutation, is_owner

OWNER = Principal(email="cur@museum.org", uid="uid-1")
STRANGER = Principal(email="a@x.com", uid="uid-2")

ARTIFACT = {"id": "0" * 32, "name": "Rosetta Stone", "adderEmail": "cur@museum.org"}


def test_owner_may_mutate():
    assert is_owner(OWNER, ARTIFACT)
    authorize_mutation(OWNER, ARTIFACT)


def test_non_owner_is_forbidden():
    assert not is_owner(STRANGER, ARTIFACT)
    with pytest.raises(ForbiddenError) as info:
        authorize_mutation(STRANGER, ARTIFACT)
    assert info.value.status_code == 403


def test_artifact_without_owner_is_never_mutable():
    legacy = {"id": "1" * 32, "name": "Orphan"}
    with pytest.raises(ForbiddenError):
        authorize_mutation(OWNER, legacy)


def test_email_comparison_is_exact():
    shouting = Principal(email="CUR@museum.org", uid="uid-1")
    with pytest.raises(ForbiddenError):
        authorize_mutation(shouting, ARTIFACT)
