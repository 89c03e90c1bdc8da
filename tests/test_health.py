# tests/test_health.py
from fastapi.testclient import TestClient

from parley_stage.core.settings import settings


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_describes_api(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "Parley API"


def test_version_comes_from_settings(client: TestClient) -> None:
    assert client.get("/").json()["version"] == settings.app_version
    assert client.get("/openapi.json").json()["info"]["version"] == settings.app_version
