import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)


@pytest.fixture(autouse=True)
def _no_llm_credentials(monkeypatch):
    """Every test starts without credentials so AI calls take the fallback path."""
    for key in (
        "OPENAI_API_KEY",
        "XAI_API_KEY",
        "OPENAI_BASE_URL",
        "XAI_BASE_URL",
        "FEATUREBOARD_MODEL_PROVIDER",
        "FEATUREBOARD_LLM_MODEL",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def repo():
    from src.featureboard.infrastructure.repository import InMemoryRepository

    return InMemoryRepository()


@pytest.fixture
def client(repo):
    from src.featureboard.api.main import app
    from src.featureboard.infrastructure.repository import get_repo

    app.dependency_overrides[get_repo] = lambda: repo
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
