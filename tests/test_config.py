import os
from unittest.mock import patch

import pytest

from artifacts_server.config import Settings


def test_defaults_when_environment_is_empty():
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings.from_env()

    assert settings.store_backend == "dynamodb"
    assert settings.table_name == "artifacts"
    assert settings.jwt_algorithms == ("HS256",)
    assert settings.jwt_jwks_url is None
    assert settings.cors_origins == ("*",)
    assert settings.port == 5000


def test_jwks_url_switches_default_algorithm():
    env = {"JWT_JWKS_URL": "https://issuer.example.com/jwks.json"}
    with patch.dict(os.environ, env, clear=True):
        settings = Settings.from_env()

    assert settings.jwt_jwks_url == "https://issuer.example.com/jwks.json"
    assert settings.jwt_algorithms == ("RS256",)


def test_values_are_read_from_environment():
    env = {
        "STORE_BACKEND": "Memory",
        "DYNAMODB_TABLE": "museum",
        "CORS_ORIGINS": "https://a.org, https://b.org",
        "JWT_AUDIENCE": "museum-app",
        "PORT": "8080",
    }
    with patch.dict(os.environ, env, clear=True):
        settings = Settings.from_env()

    assert settings.store_backend == "memory"
    assert settings.table_name == "museum"
    assert settings.cors_origins == ("https://a.org", "https://b.org")
    assert settings.jwt_audience == "museum-app"
    assert settings.port == 8080


def test_unknown_backend_is_rejected():
    with patch.dict(os.environ, {"STORE_BACKEND": "mongo"}, clear=True):
        with pytest.raises(ValueError):
            Settings.from_env()
