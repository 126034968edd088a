import httpx
import pytest
from fastapi.testclient import TestClient

from meal_planner.app.core.config import get_settings
from meal_planner.app.main import create_app

OLLAMA_HOST = "http://ollama.test:11434"

MINIMAL_MEAL_JSON = '{"title":"Soup","ingredients":[{"name":"water","quantity":1,"unit":"cup"}]}'


@pytest.fixture(autouse=True)
def ollama_settings(monkeypatch):
    monkeypatch.setenv("OLLAMA_HOST", OLLAMA_HOST)
    monkeypatch.setenv("OLLAMA_MODEL", "llama3.2:latest")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def mock_ollama(monkeypatch):
    """Route httpx.AsyncClient through a MockTransport backed by `handler`."""
    real_client = httpx.AsyncClient

    def install(handler):
        transport = httpx.MockTransport(handler)

        def client_factory(*args, **kwargs):
            kwargs.pop("transport", None)
            return real_client(*args, transport=transport, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", client_factory)

    return install
