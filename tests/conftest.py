"""Shared test fixtures for tuyalink."""

from __future__ import annotations

import random
import re
import time

import pytest

from tuyalink.client import Client
from tuyalink.config import Config
from tuyalink.store import Credential, MemoryCredentialStore

BASE_URL = "https://openapi.tuyaus.com"

TOKEN_URL = re.compile(rf"^{re.escape(BASE_URL)}/v1\.0/token\?grant_type=1$")
REFRESH_URL = re.compile(rf"^{re.escape(BASE_URL)}/v1\.0/token/[^?]+\?grant_type=2$")


def make_credential(
    uid: str = "u1",
    *,
    access_token: str = "A",
    refresh_token: str = "R",
    expires_in: float = 3600,
) -> Credential:
    now = time.time()
    return Credential(
        uid=uid,
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=now + expires_in,
        created_at=now - 100,
        updated_at=now - 100,
    )


def envelope(result: object) -> dict[str, object]:
    return {"success": True, "result": result, "t": 1700000000000, "tid": "tid-1"}


def recorded(m, method: str) -> list[tuple[str, dict[str, object]]]:
    """Flatten aioresponses' request log to ``(url, kwargs)`` pairs for *method*."""
    return [
        (str(url), call.kwargs)
        for (meth, url), calls in m.requests.items()
        if meth == method
        for call in calls
    ]


@pytest.fixture
def config() -> Config:
    return Config(
        client_id="cid",
        client_secret="secret",
        base_url=BASE_URL,
        callback_url="https://backend.example.com/api/tuya/auth/callback",
    )


@pytest.fixture
def store() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture
def client(config: Config, store: MemoryCredentialStore) -> Client:
    return Client(config, store=store, rng=random.Random(1234))
