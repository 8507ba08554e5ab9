"""Shared test fixtures."""

from collections.abc import Iterator

import pytest

from juncture.clients.public import PublicClient
from juncture.clients.secret import SecretClient

API_URL = "https://api.example.com"
SECRET_KEY = "sk_test_123456"
PUBLIC_KEY = "pk_test_abcdef"


@pytest.fixture
def secret_client() -> Iterator[SecretClient]:
    with SecretClient({"juncture_api_url": API_URL, "juncture_secret_key": SECRET_KEY}) as client:
        yield client


@pytest.fixture
def public_client() -> Iterator[PublicClient]:
    with PublicClient({"juncture_api_url": API_URL, "juncture_public_key": PUBLIC_KEY}) as client:
        yield client


@pytest.fixture
def ticket_node() -> dict:
    return {
        "id": 10001,
        "key": "PROJ-1",
        "summary": "Fix login redirect",
        "description": "Users land on a blank page after OAuth.",
        "status": "In Progress",
        "priority": "High",
        "assignee": "Jane Doe",
        "reporter": "John Roe",
        "created_at": "2024-03-01T10:15:00.000+0000",
        "updated_at": "2024-03-02T08:00:00Z",
    }
