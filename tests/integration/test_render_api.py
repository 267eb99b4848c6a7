"""
Integration Tests for the Render API
====================================

Single-document render endpoint contracts with the render engine mocked.
"""

from unittest.mock import patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from tier_render.api.main import create_app, get_engine_factory

from tests.utils.mocks import DocumentBehavior, MockRenderEngine

pytestmark = pytest.mark.integration


@pytest.fixture
def engines():
    return []


@pytest.fixture
def behaviors():
    return {}


@pytest.fixture
def client(test_settings, engines, behaviors):
    app = create_app()

    def factory():
        engine = MockRenderEngine(behaviors)
        engines.append(engine)
        return engine

    app.dependency_overrides[get_engine_factory] = lambda: factory
    with patch("tier_render.api.main.get_settings", return_value=test_settings):
        yield TestClient(app)


@pytest.fixture
def document(tmp_path):
    path = tmp_path / "page.html"
    path.write_text("<html><body><p>Hello</p></body></html>")
    return path


class TestRenderEndpoint:
    """Test POST /render."""

    def test_render_success(self, client, document, engines):
        response = client.post("/render", json={"filepath": str(document)})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"filename": "page.html", "text": "Hello\nWorld"}

        (engine,) = engines
        assert engine.stats.started == 1
        assert engine.stats.sessions_closed == 1
        assert engine.stats.stopped == 1

    def test_each_request_uses_fresh_engine(self, client, document, engines):
        client.post("/render", json={"filepath": str(document)})
        client.post("/render", json={"filepath": str(document)})

        assert len(engines) == 2

    def test_missing_file(self, client, tmp_path):
        response = client.post("/render", json={"filepath": str(tmp_path / "nope.html")})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"detail": "Invalid file path"}

    def test_empty_filepath(self, client):
        response = client.post("/render", json={"filepath": ""})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_missing_body_field(self, client):
        response = client.post("/render", json={})
        assert response.status_code == 422

    def test_render_failure(self, client, document, behaviors, engines):
        behaviors["page.html"] = DocumentBehavior(load_delay=5)

        response = client.post("/render", json={"filepath": str(document)})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert "Navigation timeout" in response.json()["detail"]
        (engine,) = engines
        assert engine.stats.stopped == 1


class TestHealthEndpoint:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "healthy", "version": "1.0.0"}
