import os
from typing import Dict, List, Optional, Tuple

import pytest

FIXTURES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'fixtures')

# Translations used with the dashboard fixtures
DASHBOARD_TRANSLATIONS = {
    "查看更多仪表板": "View more dashboards",
    "pls!": "no",
    "https://github.com/starsliao/Prometheus": "abcdeasd",
    "": "mmm",
    "object:1091": "",
}


class MapTranslator:
    """Translates through a fixed mapping and records every call it receives."""

    def __init__(self, mapping: Optional[Dict[str, str]] = None):
        self.mapping = mapping or {}
        self.calls: List[Tuple[int, int, int, str]] = []

    async def translate(self, line: int, offset: int, length: int, value: str) -> str:
        assert line >= 1
        assert offset >= 0
        assert length >= 0
        self.calls.append((line, offset, length, value))
        return self.mapping.get(value, value)

    @property
    def values(self) -> List[str]:
        return [call[3] for call in self.calls]


def _fixture_path(name: str) -> str:
    return os.path.join(FIXTURES_DIR, name)


def _read_fixture(name: str) -> bytes:
    with open(_fixture_path(name), 'rb') as f:
        return f.read()


@pytest.fixture
def fixture_path():
    return _fixture_path


@pytest.fixture
def read_fixture():
    return _read_fixture


@pytest.fixture
def map_translator():
    """Factory for MapTranslator instances."""
    return MapTranslator


@pytest.fixture
def dashboard_translator():
    return MapTranslator(DASHBOARD_TRANSLATIONS)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment variables that change the application configuration."""
    for name in ('APP_TRANSLATOR', 'APP_LANGUAGE', 'APP_MODEL_NAME', 'OPENAI_API_KEY', 'TRANSLATOR_CONFIG_FILE'):
        monkeypatch.delenv(name, raising=False)
