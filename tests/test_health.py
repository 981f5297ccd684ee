# tests/test_health.py
from typing import Any

from fastapi import status


def test_root_responds(client: Any) -> None:
    """Verify that the root endpoint describes the API."""
    r = client.get("/")
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["docs"] == "/docs"


def test_health_check(client: Any) -> None:
    r = client.get("/health")
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"status": "ok"}


def test_unknown_route_is_404(client: Any) -> None:
    r = client.get("/api/does-not-exist")
    assert r.status_code == status.HTTP_404_NOT_FOUND
