import os
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

# Keep boto3 away from real credentials
os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
os.environ['AWS_SECURITY_TOKEN'] = 'testing'
os.environ['AWS_SESSION_TOKEN'] = 'testing'
os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'

from artifacts_server.api.routes import create_app
from artifacts_server.config import Settings
from artifacts_server.store import MemoryArtifactStore

SECRET = "artifacts-server-test-secret-0123456789"
CURATOR = "cur@museum.org"
VISITOR = "a@x.com"


def make_token(email=CURATOR, secret=SECRET, expires_in=3600, **claims):
    now = datetime.now(timezone.utc)
    payload = {
        "email": email,
        "user_id": f"uid-{email}",
        "email_verified": True,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(email=CURATOR, **kwargs):
    return {"Authorization": f"Bearer {make_token(email, **kwargs)}"}


@pytest.fixture
def settings():
    return Settings(store_backend="memory", jwt_secret=SECRET)


@pytest.fixture
def store():
    return MemoryArtifactStore()


@pytest.fixture
def app(settings, store):
    return create_app(settings, store=store)


@pytest.fixture
def client(app):
    return TestClient(app)
