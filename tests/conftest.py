"""
Shared test fixtures and configuration for the snippet_viewer test suite.
"""

import asyncio
from typing import Dict, List, Optional, Union

import pytest
from aioresponses import aioresponses

import snippet_viewer.cache as cache_module
import snippet_viewer.config.ambient as ambient_module
from snippet_viewer.cache import FetchCoordinator
from snippet_viewer.config.ambient import AmbientConfig
from snippet_viewer.render import RecordingRenderer

HOST = "https://snippets.example.com"
OTHER_HOST = "https://other.example.com/"
URL = f"{HOST}/snippets.json"
OTHER_URL = "https://other.example.com/snippets.json"


class FakeFetch:
    """Stand-in for SnippetFetcher.fetch with call recording and an optional gate."""

    def __init__(self, responses: Optional[Dict[str, Union[dict, BaseException]]] = None) -> None:
        self.responses = dict(responses or {})
        self.calls: List[str] = []
        self.gates: Dict[str, asyncio.Event] = {}

    def hold(self, url: str) -> asyncio.Event:
        """Keep requests for ``url`` pending until the returned event is set."""
        gate = asyncio.Event()
        self.gates[url] = gate
        return gate

    async def __call__(self, url: str):
        self.calls.append(url)
        gate = self.gates.get(url)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)

        if url not in self.responses:
            raise LookupError(f"no response registered for {url}")
        result = self.responses[url]
        if isinstance(result, BaseException):
            raise result
        return result


@pytest.fixture(autouse=True)
def isolated_defaults(monkeypatch):
    """Reset process-wide state and keep the environment out of lookups."""
    monkeypatch.setattr(cache_module, "_default_coordinator", None)
    monkeypatch.setattr(ambient_module, "_ambient_config", None)
    monkeypatch.delenv("SNIPPET_VIEWER_HOST", raising=False)
    monkeypatch.delenv("SNIPPET_VIEWER_THEME", raising=False)
    yield


@pytest.fixture
def snippet_data() -> dict:
    """Sample snippets.json content."""
    return {
        "counter-model@counter-model.ts": "export const count = 1;\n",
        "helper@src/helper.py": "def helper():\n    return 42\n",
        "notes@README": "plain text",
    }


@pytest.fixture
def other_data() -> dict:
    return {"counter-model@counter-model.ts": "export const count = 2;\n"}


@pytest.fixture
def fake_fetch(snippet_data, other_data) -> FakeFetch:
    return FakeFetch({URL: snippet_data, OTHER_URL: other_data})


@pytest.fixture
def coordinator(fake_fetch) -> FetchCoordinator:
    return FetchCoordinator(fake_fetch)


@pytest.fixture
def ambient() -> AmbientConfig:
    """Ambient configuration with no discovery sources."""
    return AmbientConfig()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def mock_aiohttp():
    """Mock aiohttp responses for testing."""
    with aioresponses() as m:
        yield m
