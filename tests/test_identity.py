import asyncio
from unittest.mock import MagicMock, patch

import jwt
import pytest

from artifacts_server.errors import (InternalError, TokenExpiredError,
                                     UnauthenticatedError)
from artifacts_server.identity import IdentityVerifier, extract_bearer_token
from conftest import CURATOR, SECRET, make_token


@pytest.fixture
def verifier():
    return IdentityVerifier(secret=SECRET)


def verify(verifier, header):
    return asyncio.run(verifier.verify(header))


@pytest.mark.parametrize("header", [None, "", "Token abc", "Basic dXNlcjpwYXNz", "Bearer ", "Bearer    "])
def test_malformed_header_is_rejected(header):
    with pytest.raises(UnauthenticatedError):
        extract_bearer_token(header)


def test_bearer_scheme_is_case_insensitive():
    assert extract_bearer_token("bearer abc.def") == "abc.def"
    assert extract_bearer_token("BEARER abc.def") == "abc.def"


def test_malformed_header_never_reaches_decoder(verifier):
    with patch("artifacts_server.identity.jwt.decode") as decode:
        with pytest.raises(UnauthenticatedError):
            verify(verifier, "Token abc")
    decode.assert_not_called()


def test_valid_token_yields_principal(verifier):
    token = make_token(CURATOR, name="Cura Tor")
    principal = verify(verifier, f"Bearer {token}")

    assert principal.email == CURATOR
    assert principal.uid == f"uid-{CURATOR}"
    assert principal.email_verified is True
    assert principal.name == "Cura Tor"


def test_uid_falls_back_to_subject(verifier):
    token = make_token(CURATOR, user_id=None, sub="subject-1")
    principal = verify(verifier, f"Bearer {token}")
    assert principal.uid == "subject-1"


def test_expired_token_is_distinguished(verifier):
    token = make_token(expires_in=-60)
    with pytest.raises(TokenExpiredError) as info:
        verify(verifier, f"Bearer {token}")

    assert info.value.status_code == 401
    assert info.value.code == "token_expired"


def test_wrong_signature_is_rejected(verifier):
    token = make_token(secret="someone-else-entirely-0123456789abcdef")
    with pytest.raises(UnauthenticatedError) as info:
        verify(verifier, f"Bearer {token}")
    assert not isinstance(info.value, TokenExpiredError)


def test_garbage_token_is_rejected(verifier):
    with pytest.raises(UnauthenticatedError):
        verify(verifier, "Bearer not-a-jwt")


def test_token_without_email_is_rejected(verifier):
    token = make_token(email=None)
    with pytest.raises(UnauthenticatedError):
        verify(verifier, f"Bearer {token}")


def test_token_without_expiry_is_rejected(verifier):
    token = jwt.encode({"email": CURATOR}, SECRET, algorithm="HS256")
    with pytest.raises(UnauthenticatedError):
        verify(verifier, f"Bearer {token}")


def test_audience_is_enforced_when_configured():
    verifier = IdentityVerifier(secret=SECRET, audience="museum-app")

    good = make_token(aud="museum-app")
    assert verify(verifier, f"Bearer {good}").email == CURATOR

    bad = make_token(aud="other-app")
    with pytest.raises(UnauthenticatedError):
        verify(verifier, f"Bearer {bad}")


def test_issuer_is_enforced_when_configured():
    verifier = IdentityVerifier(secret=SECRET, issuer="https://issuer.example.com")
    token = make_token(iss="https://elsewhere.example.com")
    with pytest.raises(UnauthenticatedError):
        verify(verifier, f"Bearer {token}")


def test_unreachable_key_endpoint_is_an_internal_error():
    verifier = IdentityVerifier(jwks_url="https://issuer.example.com/jwks.json",
                                algorithms=["RS256"])
    jwks_client = MagicMock()
    jwks_client.get_signing_key_from_jwt.side_effect = jwt.PyJWKClientConnectionError("down")
    verifier._jwks_client = jwks_client

    with pytest.raises(InternalError):
        verify(verifier, f"Bearer {make_token()}")


def test_jwks_key_is_used_for_decoding():
    verifier = IdentityVerifier(jwks_url="https://issuer.example.com/jwks.json",
                                algorithms=["HS256"])
    signing_key = MagicMock()
    signing_key.key = SECRET
    verifier._jwks_client = MagicMock()
    verifier._jwks_client.get_signing_key_from_jwt.return_value = signing_key

    principal = verify(verifier, f"Bearer {make_token()}")
    assert principal.email == CURATOR


def test_verifier_requires_a_key_source():
    with pytest.raises(ValueError):
        IdentityVerifier()
