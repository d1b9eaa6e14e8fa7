# artifacts_server/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()  # Pick up a local .env when present

STORE_BACKENDS = ("dynamodb", "memory")


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration for the artifacts server.

    Attributes
    ----------
    store_backend : str
        ``"dynamodb"`` for the boto3-backed store, ``"memory"`` for the
        process-local one (local development and tests).
    table_name : str
        DynamoDB table holding artifact items (hash key ``id``).
    aws_region : str
        Region passed to boto3.
    dynamodb_endpoint_url : Optional[str]
        Override for DynamoDB Local or similar emulators.
    jwt_secret : str
        Shared secret used when no JWKS endpoint is configured.
    jwt_algorithms : Tuple[str, ...]
        Algorithms accepted when decoding bearer tokens.
    jwt_jwks_url : Optional[str]
        JWKS endpoint of the token issuer; switches verification to the
        issuer's public keys.
    jwt_audience : Optional[str]
        Required ``aud`` claim, if any.
    jwt_issuer : Optional[str]
        Required ``iss`` claim, if any.
    cors_origins : Tuple[str, ...]
        Origins allowed by the CORS middleware.
    port : int
        Port uvicorn binds to.
    """
    store_backend: str = "dynamodb"
    table_name: str = "artifacts"
    aws_region: str = "us-east-1"
    dynamodb_endpoint_url: Optional[str] = None
    jwt_secret: str = "change-me-in-production"
    jwt_algorithms: Tuple[str, ...] = ("HS256",)
    jwt_jwks_url: Optional[str] = None
    jwt_audience: Optional[str] = None
    jwt_issuer: Optional[str] = None
    cors_origins: Tuple[str, ...] = ("*",)
    port: int = 5000

    @classmethod
    def from_env(cls) -> "Settings":
        backend = os.getenv("STORE_BACKEND", "dynamodb").strip().lower()
        if backend not in STORE_BACKENDS:
            raise ValueError(
                f"STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, "
                f"got {backend!r}"
            )

        jwks_url = _optional("JWT_JWKS_URL")
        default_alg = "RS256" if jwks_url else "HS256"
        algorithms = tuple(
            a.strip() for a in os.getenv("JWT_ALGORITHM", default_alg).split(",")
            if a.strip()
        )
        origins = tuple(
            o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")
            if o.strip()
        )

        return cls(
            store_backend=backend,
            table_name=os.getenv("DYNAMODB_TABLE", "artifacts"),
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
            dynamodb_endpoint_url=_optional("DYNAMODB_ENDPOINT_URL"),
            jwt_secret=os.getenv("JWT_SECRET", "change-me-in-production"),
            jwt_algorithms=algorithms or (default_alg,),
            jwt_jwks_url=jwks_url,
            jwt_audience=_optional("JWT_AUDIENCE"),
            jwt_issuer=_optional("JWT_ISSUER"),
            cors_origins=origins or ("*",),
            port=int(os.getenv("PORT", "5000")),
        )
