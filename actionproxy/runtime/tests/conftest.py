import pytest
from fastapi.testclient import TestClient

from actionproxy.runtime.config import RuntimeConfig
from actionproxy.runtime.main import create_app
from actionproxy.runtime.tests.helpers import action_source, init_body


@pytest.fixture
def runtime_config(tmp_path):
    return RuntimeConfig(
        ACTION_WORK_DIR=str(tmp_path),
        ACTION_LOG_MARKERS=False,
        RUN_TIMEOUT_SECONDS=2.0,
    )


@pytest.fixture
def main_app(runtime_config):
    return create_app(runtime_config)


@pytest.fixture
def client(main_app):
    return TestClient(main_app)


@pytest.fixture
def deploy(client):
    """Init the runtime with a fixture action and assert it went through."""

    def _deploy(module: str, entry: str = "main"):
        response = client.post("/init", json=init_body(entry, action_source(module)))
        assert response.status_code == 200, response.text
        return response

    return _deploy
