"""
Tests for the provider prefetch and broadcast cycle.
"""

import asyncio
import logging

import pytest

from snippet_viewer.cache import FetchCoordinator
from snippet_viewer.config.ambient import AmbientConfig
from snippet_viewer.config.sources import SNIPPET_HOST
from snippet_viewer.exceptions import NetworkFailure
from snippet_viewer.models import Failed, Ready, RenderKind
from snippet_viewer.provider import MISSING_PROVIDER_HOST_MESSAGE, Provider
from snippet_viewer.viewer import MISSING_CONFIGURATION_MESSAGE, Viewer

from conftest import HOST, OTHER_HOST, OTHER_URL, URL, FakeFetch

KEY = "counter-model@counter-model.ts"


@pytest.fixture
def hostless_viewers(coordinator, ambient, snippet_data):
    return [Viewer(key, coordinator=coordinator, ambient=ambient) for key in snippet_data]


class TestProviderPrefetch:
    """Test prefetching and state updates."""

    def test_initial_state(self, coordinator):
        provider = Provider(HOST, coordinator=coordinator)

        assert provider.snippet_host == HOST
        assert provider.loading
        assert provider.snippets is None
        assert provider.error is None

    @pytest.mark.asyncio
    async def test_successful_prefetch(self, coordinator, fake_fetch, snippet_data):
        provider = Provider(HOST, coordinator=coordinator)
        state = await provider.prefetch()

        assert not state.loading
        assert state.error is None
        assert dict(state.snippets) == snippet_data
        assert fake_fetch.calls == [URL]

    @pytest.mark.asyncio
    async def test_failed_prefetch(self):
        fetch = FakeFetch({URL: NetworkFailure("HTTP 500: Internal Server Error", 500)})
        provider = Provider(HOST, coordinator=FetchCoordinator(fetch))
        state = await provider.prefetch()

        assert not state.loading
        assert state.snippets is None
        assert state.error == "HTTP 500: Internal Server Error"

    @pytest.mark.asyncio
    async def test_missing_host(self, coordinator, fake_fetch):
        provider = Provider(coordinator=coordinator)
        notifications = []
        provider.add_listener(notifications.append)

        state = await provider.prefetch()

        assert state.error == MISSING_PROVIDER_HOST_MESSAGE
        assert not state.loading
        assert notifications == []
        assert fake_fetch.calls == []


class TestProviderBroadcast:
    """Test listener notification and host propagation."""

    @pytest.mark.asyncio
    async def test_hostless_viewers_become_ready_after_one_fetch(
        self, coordinator, fake_fetch, hostless_viewers, snippet_data
    ):
        provider = Provider(HOST, coordinator=coordinator, viewers=hostless_viewers)
        for viewer in hostless_viewers:
            viewer.attach()
        provider.attach()

        await provider.wait()

        assert fake_fetch.calls == [URL]
        for viewer in hostless_viewers:
            assert isinstance(viewer.state, Ready)
            assert viewer.snippet_host == HOST
            assert viewer.current_code == snippet_data[viewer.snippet]

    @pytest.mark.asyncio
    async def test_viewers_fail_before_provider_settles(self, coordinator, fake_fetch, hostless_viewers):
        gate = fake_fetch.hold(URL)
        provider = Provider(HOST, coordinator=coordinator, viewers=hostless_viewers)
        notifications = []
        provider.add_listener(notifications.append)

        for viewer in hostless_viewers:
            viewer.attach()
        provider.attach()
        for viewer in hostless_viewers:
            await viewer.wait()

        assert notifications == []
        assert provider.loading
        assert all(viewer.state == Failed(MISSING_CONFIGURATION_MESSAGE) for viewer in hostless_viewers)

        gate.set()
        await provider.wait()

        assert len(notifications) == 1
        assert all(isinstance(viewer.state, Ready) for viewer in hostless_viewers)

    @pytest.mark.asyncio
    async def test_listener_called_once_on_success(self, coordinator, snippet_data):
        provider = Provider(HOST, coordinator=coordinator)
        notifications = []
        provider.add_listener(notifications.append)

        await provider.prefetch()

        assert len(notifications) == 1
        loaded = notifications[0]
        assert loaded.is_success
        assert loaded.host == HOST
        assert dict(loaded.snippets) == snippet_data

    @pytest.mark.asyncio
    async def test_listener_called_once_on_failure(self, ambient):
        fetch = FakeFetch({URL: NetworkFailure("HTTP 404: Not Found", 404)})
        coordinator = FetchCoordinator(fetch)
        viewer = Viewer(KEY, coordinator=coordinator, ambient=ambient)
        provider = Provider(HOST, coordinator=coordinator, viewers=[viewer])
        notifications = []
        provider.add_listener(notifications.append)
        viewer.attach()

        await provider.prefetch()
        await provider.wait()

        assert len(notifications) == 1
        assert not notifications[0].is_success
        assert notifications[0].error == "HTTP 404: Not Found"
        assert viewer.snippet_host == HOST
        assert viewer.state == Failed("Failed to load snippet: HTTP 404: Not Found")
        assert fetch.calls == [URL]

    @pytest.mark.asyncio
    async def test_failed_prefetch_is_not_repeated_by_viewers(self, ambient, renderer):
        fetch = FakeFetch({URL: NetworkFailure("HTTP 404: Not Found", 404)})
        coordinator = FetchCoordinator(fetch)
        viewers = [
            Viewer(key, coordinator=coordinator, ambient=ambient, renderer=renderer)
            for key in ("a@a.ts", "b@b.py", "c@c.go")
        ]
        provider = Provider(HOST, coordinator=coordinator, viewers=viewers)
        for viewer in viewers:
            viewer.attach()

        await provider.prefetch()
        await provider.wait()

        assert fetch.calls == [URL]
        for viewer in viewers:
            assert viewer.state == Failed("Failed to load snippet: HTTP 404: Not Found")
        assert RenderKind.LOADING not in renderer.kinds()

    @pytest.mark.asyncio
    async def test_late_viewer_after_failed_prefetch_does_not_fetch(self, ambient):
        fetch = FakeFetch({URL: NetworkFailure("HTTP 404: Not Found", 404)})
        coordinator = FetchCoordinator(fetch)
        provider = Provider(HOST, coordinator=coordinator)
        await provider.prefetch()

        viewer = provider.add_viewer(Viewer(KEY, coordinator=coordinator, ambient=ambient))
        state = await viewer.attach()

        assert state == Failed("Failed to load snippet: HTTP 404: Not Found")
        assert fetch.calls == [URL]

    @pytest.mark.asyncio
    async def test_viewer_with_same_ambient_host_recovers(self, snippet_data):
        fetch = FakeFetch({URL: NetworkFailure("HTTP 503: Service Unavailable", 503)})
        coordinator = FetchCoordinator(fetch)
        ambient = AmbientConfig()
        ambient.set_default_host(HOST)
        viewer = Viewer(KEY, coordinator=coordinator, ambient=ambient)

        state = await viewer.attach()
        assert state == Failed("Failed to load snippet: HTTP 503: Service Unavailable")

        fetch.responses[URL] = snippet_data
        provider = Provider(HOST, coordinator=coordinator, viewers=[viewer])
        provider.attach()
        await provider.wait()

        assert provider.error is None
        assert viewer.state == Ready(
            code=snippet_data[KEY], language="typescript", display_name="counter-model.ts"
        )
        assert fetch.calls == [URL, URL]

    @pytest.mark.asyncio
    async def test_explicit_refresh_retries_after_failed_prefetch(self, ambient, snippet_data):
        fetch = FakeFetch({URL: NetworkFailure("HTTP 503: Service Unavailable", 503)})
        coordinator = FetchCoordinator(fetch)
        viewer = Viewer(KEY, coordinator=coordinator, ambient=ambient)
        provider = Provider(HOST, coordinator=coordinator, viewers=[viewer])
        viewer.attach()
        await provider.prefetch()
        await provider.wait()

        fetch.responses[URL] = snippet_data
        state = await viewer.refresh()

        assert isinstance(state, Ready)
        assert fetch.calls == [URL, URL]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_stop_broadcast(self, coordinator, caplog):
        provider = Provider(HOST, coordinator=coordinator)
        notifications = []

        def broken(loaded):
            raise RuntimeError("listener failed")

        provider.add_listener(broken)
        provider.add_listener(notifications.append)

        with caplog.at_level(logging.ERROR, logger="snippet_viewer.provider"):
            await provider.prefetch()

        assert len(notifications) == 1
        assert "listener failed" in caplog.text

    @pytest.mark.asyncio
    async def test_removed_listener_not_called(self, coordinator):
        provider = Provider(HOST, coordinator=coordinator)
        notifications = []
        provider.add_listener(notifications.append)
        provider.remove_listener(notifications.append)

        await provider.prefetch()

        assert notifications == []

    @pytest.mark.asyncio
    async def test_explicit_viewer_host_is_kept(self, coordinator, fake_fetch, ambient, other_data):
        viewer = Viewer(KEY, OTHER_HOST, coordinator=coordinator, ambient=ambient)
        provider = Provider(HOST, coordinator=coordinator, viewers=[viewer])
        viewer.attach()

        await provider.prefetch()
        await provider.wait()

        assert viewer.snippet_host == OTHER_HOST
        assert viewer.state.code == other_data[KEY]
        assert sorted(fake_fetch.calls) == sorted([URL, OTHER_URL])

    @pytest.mark.asyncio
    async def test_concurrent_viewer_and_provider_share_one_fetch(self, coordinator, fake_fetch, ambient):
        viewer = Viewer(KEY, HOST, coordinator=coordinator, ambient=ambient)
        provider = Provider(HOST, coordinator=coordinator)

        await asyncio.gather(provider.attach(), viewer.attach())

        assert fake_fetch.calls == [URL]
        assert isinstance(viewer.state, Ready)

    @pytest.mark.asyncio
    async def test_late_viewer_inherits_immediately(self, coordinator, fake_fetch, ambient):
        provider = Provider(HOST, coordinator=coordinator)
        await provider.prefetch()

        viewer = provider.add_viewer(Viewer(KEY, coordinator=coordinator, ambient=ambient))
        assert viewer.snippet_host == HOST

        state = await viewer.attach()

        assert isinstance(state, Ready)
        assert fake_fetch.calls == [URL]

    @pytest.mark.asyncio
    async def test_removed_viewer_loses_inherited_host(self, coordinator, ambient):
        viewer = Viewer(KEY, coordinator=coordinator, ambient=ambient)
        provider = Provider(HOST, coordinator=coordinator, viewers=[viewer])
        viewer.attach()
        await provider.prefetch()
        await provider.wait()
        assert isinstance(viewer.state, Ready)

        provider.remove_viewer(viewer)
        state = await viewer.wait()

        assert viewer.provider is None
        assert provider.viewers == []
        assert state == Failed(MISSING_CONFIGURATION_MESSAGE)

    @pytest.mark.asyncio
    async def test_moving_viewer_between_providers(self, coordinator):
        viewer = Viewer(KEY, coordinator=coordinator)
        first = Provider(HOST, coordinator=coordinator, viewers=[viewer])
        second = Provider(OTHER_HOST, coordinator=coordinator)

        second.add_viewer(viewer)

        assert viewer.provider is second
        assert first.viewers == []
        assert second.viewers == [viewer]


class TestProviderConfigurationChanges:
    """Test host changes and stale prefetch cycles."""

    @pytest.mark.asyncio
    async def test_host_change_before_attach_does_not_prefetch(self, coordinator, fake_fetch):
        provider = Provider(HOST, coordinator=coordinator)

        assert provider.set_attribute(SNIPPET_HOST, OTHER_HOST) is None
        assert provider.snippet_host == OTHER_HOST
        assert fake_fetch.calls == []

    @pytest.mark.asyncio
    async def test_same_host_does_not_prefetch_again(self, coordinator):
        provider = Provider(HOST, coordinator=coordinator)
        await provider.prefetch()

        assert provider.set_attribute(SNIPPET_HOST, HOST) is None

    @pytest.mark.asyncio
    async def test_stale_cycle_does_not_broadcast(
        self, coordinator, fake_fetch, ambient, other_data
    ):
        slow = fake_fetch.hold(URL)
        viewer = Viewer(KEY, coordinator=coordinator, ambient=ambient)
        provider = Provider(HOST, coordinator=coordinator, viewers=[viewer])
        notifications = []
        provider.add_listener(notifications.append)
        viewer.attach()

        stale = provider.attach()
        await asyncio.sleep(0)
        await provider.set_attribute(SNIPPET_HOST, OTHER_HOST)

        slow.set()
        await stale
        await provider.wait()

        assert [loaded.host for loaded in notifications] == [OTHER_HOST]
        assert provider.state.host == OTHER_HOST
        assert viewer.snippet_host == OTHER_HOST
        assert viewer.state.code == other_data[KEY]

    @pytest.mark.asyncio
    async def test_finished_viewer_tasks_are_released(self, coordinator, ambient):
        viewer = Viewer(KEY, coordinator=coordinator, ambient=ambient)
        provider = Provider(HOST, coordinator=coordinator, viewers=[viewer])
        viewer.attach()
        await provider.attach()

        for host in [OTHER_HOST, HOST] * 10:
            await provider.set_attribute(SNIPPET_HOST, host)
            await viewer.wait()
        await asyncio.sleep(0)

        assert provider._viewer_tasks == set()
        assert isinstance(viewer.state, Ready)

    @pytest.mark.asyncio
    async def test_detach_suppresses_pending_broadcast(self, coordinator, fake_fetch, hostless_viewers):
        gate = fake_fetch.hold(URL)
        provider = Provider(HOST, coordinator=coordinator, viewers=hostless_viewers)
        notifications = []
        provider.add_listener(notifications.append)

        task = provider.attach()
        await asyncio.sleep(0)
        provider.detach()
        gate.set()
        await task

        assert notifications == []
        assert all(viewer.snippet_host == "" for viewer in hostless_viewers)
