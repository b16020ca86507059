"""
Tests for the convenience functions.
"""

import pytest

from snippet_viewer import get_snippet, load_snippet, load_snippets, set_default_host
from snippet_viewer.cache import FetchCoordinator
from snippet_viewer.exceptions import (
    MissingConfigurationError,
    NetworkFailure,
    SnippetNotFoundError,
)
from snippet_viewer.models import Failed, Ready, RenderKind
from snippet_viewer.viewer import MISSING_CONFIGURATION_MESSAGE

from conftest import HOST, URL, FakeFetch


class TestGetSnippet:
    """Test the raising single lookup."""

    @pytest.mark.asyncio
    async def test_returns_ready_state(self, coordinator, snippet_data):
        state = await get_snippet("helper@src/helper.py", HOST, coordinator)

        assert state == Ready(
            code=snippet_data["helper@src/helper.py"],
            language="python",
            display_name="src/helper.py",
        )

    @pytest.mark.asyncio
    async def test_uses_ambient_host(self, coordinator, fake_fetch):
        set_default_host(HOST)

        await get_snippet("notes@README", coordinator=coordinator)

        assert fake_fetch.calls == [URL]

    @pytest.mark.asyncio
    async def test_missing_host(self, coordinator):
        with pytest.raises(MissingConfigurationError, match=MISSING_CONFIGURATION_MESSAGE):
            await get_snippet("notes@README", coordinator=coordinator)

    @pytest.mark.asyncio
    async def test_unknown_key(self, coordinator):
        with pytest.raises(SnippetNotFoundError) as exc_info:
            await get_snippet("b@b.ts", HOST, coordinator)

        assert exc_info.value.url == URL

    @pytest.mark.asyncio
    async def test_network_failure_propagates(self, mock_aiohttp):
        mock_aiohttp.get(URL, status=404, reason="Not Found")

        with pytest.raises(NetworkFailure):
            await get_snippet("notes@README", HOST)


class TestLoadSnippets:
    """Test viewer-backed loading."""

    @pytest.mark.asyncio
    async def test_load_snippet_renders(self, coordinator, renderer):
        state = await load_snippet("notes@README", HOST, renderer, coordinator)

        assert state == Ready(code="plain text", language="javascript", display_name="README")
        assert renderer.kinds() == [RenderKind.LOADING, RenderKind.CODE]

    @pytest.mark.asyncio
    async def test_load_snippets_fetches_once(self, coordinator, fake_fetch, snippet_data):
        states = await load_snippets(snippet_data, HOST, coordinator=coordinator)

        assert fake_fetch.calls == [URL]
        assert {key: state.code for key, state in states.items()} == snippet_data

    @pytest.mark.asyncio
    async def test_load_snippets_reports_missing_keys(self, coordinator):
        states = await load_snippets(["b@b.ts"], HOST, coordinator=coordinator)

        assert states["b@b.ts"] == Failed('Snippet "b@b.ts" not found')

    @pytest.mark.asyncio
    async def test_load_snippets_failure_fetches_once(self):
        fetch = FakeFetch({URL: NetworkFailure("HTTP 404: Not Found", 404)})
        keys = ["a@a.ts", "b@b.py", "c@c.go"]

        states = await load_snippets(keys, HOST, coordinator=FetchCoordinator(fetch))

        assert fetch.calls == [URL]
        assert states == {
            key: Failed("Failed to load snippet: HTTP 404: Not Found") for key in keys
        }

    @pytest.mark.asyncio
    async def test_load_snippets_without_host(self, coordinator, fake_fetch):
        states = await load_snippets(["notes@README"], coordinator=coordinator)

        assert states["notes@README"] == Failed(MISSING_CONFIGURATION_MESSAGE)
        assert fake_fetch.calls == []
