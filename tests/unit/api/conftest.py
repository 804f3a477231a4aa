"""App fixtures: the real application over fake pools and a stub session verifier."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest
from fastapi.testclient import TestClient

from tandem.api import create_app
from tandem.config import AppSettings, AuthSettings, RetryConfig
from tandem.models import Principal

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fastapi import FastAPI

    from tandem.auth import Credentials
    from tandem.infrastructure.postgres import PoolRegistry

GOOD_TOKEN = "good-token"


class StubSessionVerifier:
    def __init__(self, principal: Principal) -> None:
        self.principal = principal
        self.seen: list[str | None] = []

    async def averify(self, credentials: Credentials) -> Principal | None:
        self.seen.append(credentials.token)
        return self.principal if credentials.token == GOOD_TOKEN else None


@pytest.fixture
def principal() -> Principal:
    return Principal(id=uuid.uuid4(), name="Ada Lovelace", email="ada@example.com")


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        environment="test",
        auth=AuthSettings(bcrypt_rounds=4),
        startup_retry=RetryConfig(max_attempts=1),
    )


@pytest.fixture
def verifier(principal: Principal) -> StubSessionVerifier:
    return StubSessionVerifier(principal)


@pytest.fixture
def app(settings: AppSettings, registry: PoolRegistry, verifier: StubSessionVerifier) -> FastAPI:
    return create_app(settings, registry=registry, session_verifier=verifier)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {GOOD_TOKEN}"}


def user_row(user_id: uuid.UUID, **overrides: Any) -> dict[str, Any]:
    now = datetime.now(UTC)
    return {
        "id": user_id,
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "email_verified": False,
        "image": None,
        "created_at": now,
        "updated_at": now,
        **overrides,
    }


def post_row(post_id: uuid.UUID, author_id: uuid.UUID, **overrides: Any) -> dict[str, Any]:
    now = datetime.now(UTC)
    return {
        "id": post_id,
        "title": "Replication lag",
        "content": "Reads can trail writes.",
        "published": True,
        "author_id": author_id,
        "created_at": now,
        "updated_at": now,
        **overrides,
    }


@pytest.fixture
def make_user_row() -> Any:
    return user_row


@pytest.fixture
def make_post_row() -> Any:
    return post_row
