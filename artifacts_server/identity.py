# artifacts_server/identity.py
"""
Bearer token verification.

The server never issues tokens. It only checks tokens minted by an external
identity provider, either with a shared secret (HS256 style) or with the
provider's published JWKS keys (RS256 style, e.g. Firebase or Cognito).
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import jwt
from fastapi.concurrency import run_in_threadpool

from artifacts_server.config import Settings
from artifacts_server.errors import (InternalError, TokenExpiredError,
                                     UnauthenticatedError)
from artifacts_server.logging_utils import get_logger
from artifacts_server.models import Principal

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an ``Authorization`` header value.

    Raises
    ------
    UnauthenticatedError
        If the header is missing or is not ``Bearer <token>``.
    """
    if not authorization:
        raise UnauthenticatedError("Authorization header is missing")

    if not authorization.lower().startswith(BEARER_PREFIX):
        raise UnauthenticatedError("Authorization header must use the Bearer scheme")

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise UnauthenticatedError("Bearer token is empty")
    return token


class IdentityVerifier:
    """
    Stateless verifier turning a bearer credential into a ``Principal``.

    Every call re-validates the token; nothing is cached between requests
    apart from the issuer's public signing keys, which PyJWKClient keeps for
    their own lifetime.
    """

    def __init__(self,
                 secret: Optional[str] = None,
                 algorithms: Sequence[str] = ("HS256",),
                 jwks_url: Optional[str] = None,
                 audience: Optional[str] = None,
                 issuer: Optional[str] = None,
                 leeway: float = 0.0) -> None:
        if not secret and not jwks_url:
            raise ValueError("IdentityVerifier needs a secret or a jwks_url")
        self.secret = secret
        self.algorithms = list(algorithms)
        self.audience = audience
        self.issuer = issuer
        self.leeway = leeway
        self._jwks_client = jwt.PyJWKClient(jwks_url) if jwks_url else None

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityVerifier":
        return cls(
            secret=settings.jwt_secret,
            algorithms=settings.jwt_algorithms,
            jwks_url=settings.jwt_jwks_url,
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )

    async def verify(self, authorization: Optional[str]) -> Principal:
        """
        Verify the credential carried by an ``Authorization`` header.

        Raises
        ------
        UnauthenticatedError
            Malformed header, bad signature, wrong audience/issuer or missing
            email claim.
        TokenExpiredError
            The token was valid but is past its ``exp``.
        InternalError
            The issuer's key endpoint could not be reached.
        """
        token = extract_bearer_token(authorization)
        claims = await run_in_threadpool(self._decode, token)
        return self._principal_from_claims(claims)

    def _signing_key(self, token: str) -> Any:
        if self._jwks_client is None:
            return self.secret
        try:
            return self._jwks_client.get_signing_key_from_jwt(token).key
        except jwt.PyJWKClientConnectionError as e:
            logger.error("Could not reach token issuer key endpoint: %s", e)
            raise InternalError("Identity provider unavailable") from e

    def _decode(self, token: str) -> Dict[str, Any]:
        options = {"require": ["exp"], "verify_aud": self.audience is not None}
        try:
            key = self._signing_key(token)
            return jwt.decode(
                token,
                key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway,
                options=options,
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Rejected expired token")
            raise TokenExpiredError() from e
        except jwt.PyJWTError as e:
            logger.info("Rejected invalid token: %s", e)
            raise UnauthenticatedError("Invalid authentication token") from e

    @staticmethod
    def _principal_from_claims(claims: Dict[str, Any]) -> Principal:
        email = claims.get("email")
        if not email or not isinstance(email, str):
            raise UnauthenticatedError("Token does not carry an email claim")

        uid = claims.get("user_id") or claims.get("uid") or claims.get("sub")
        return Principal(
            email=email,
            uid=str(uid) if uid is not None else email,
            email_verified=bool(claims.get("email_verified", False)),
            name=claims.get("name"),
        )
