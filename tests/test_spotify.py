"""Tests for the Spotify tools (HTTP client mocked)."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from jarvis.auth.credentials import CredentialStore
from jarvis.auth.http import AuthError, OAuthRefresher, ServiceError
from jarvis.tools.registry import ToolRegistry
from jarvis.tools.spotify import _SpotifyTool, build_spotify_client, build_spotify_tools

from conftest import assert_fail, assert_ok

TRACK = {
    "is_playing": True,
    "progress_ms": 1000,
    "item": {
        "name": "Bohemian Rhapsody",
        "artists": [{"name": "Queen"}],
        "album": {"name": "A Night at the Opera"},
        "duration_ms": 354000,
        "uri": "spotify:track:1",
    },
}


@pytest.fixture
def client():
    mock = MagicMock()
    mock.request = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def registry(client):
    reg = ToolRegistry()
    for tool in build_spotify_tools(client):
        reg.register(tool)
    return reg


class TestBuildClient:
    def test_without_app_credentials_no_refresher(self, tmp_path):
        client = build_spotify_client(CredentialStore(tmp_path))
        assert client.refresher is None
        assert client.base_url == "https://api.spotify.com/v1"

    def test_with_app_credentials(self, tmp_path):
        client = build_spotify_client(CredentialStore(tmp_path), "id", "secret")
        assert isinstance(client.refresher, OAuthRefresher)

    def test_all_tools_in_spotify_category(self, registry):
        assert [d.name for d in registry.list_by_category("spotify")] == [
            "get_current_track",
            "play_music",
            "pause_music",
            "next_track",
            "previous_track",
            "set_volume",
            "search_and_play",
        ]

    def test_base_tool_requires_run(self, tmp_path):
        with pytest.raises(TypeError):
            _SpotifyTool(build_spotify_client(CredentialStore(tmp_path)))


class TestCurrentTrack:
    @pytest.mark.asyncio
    async def test_playing(self, registry, client):
        client.request.return_value = TRACK
        result = await registry.dispatch("get_current_track", {})
        assert_ok(result)
        assert result.message == 'Now playing: "Bohemian Rhapsody" by Queen (A Night at the Opera)'
        client.request.assert_awaited_once_with("GET", "/me/player/currently-playing")

    @pytest.mark.asyncio
    async def test_nothing_playing(self, registry, client):
        client.request.return_value = None
        result = await registry.dispatch("get_current_track", {})
        assert result.message == "No track is currently playing."


class TestPlayerCommands:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name, method, endpoint, message",
        [
            ("play_music", "PUT", "/me/player/play", "Playback resumed."),
            ("pause_music", "PUT", "/me/player/pause", "Playback paused."),
            ("next_track", "POST", "/me/player/next", "Skipped to next track."),
            ("previous_track", "POST", "/me/player/previous", "Skipped to previous track."),
        ],
    )
    async def test_command(self, registry, client, name, method, endpoint, message):
        result = await registry.dispatch(name, {})
        assert result.message == message
        client.request.assert_awaited_once_with(method, endpoint)

    @pytest.mark.asyncio
    async def test_auth_error_becomes_failure(self, registry, client):
        client.request.side_effect = AuthError("Spotify not authenticated. Please run: jarvis auth login spotify")
        result = await registry.dispatch("pause_music", {})
        assert_fail(result, "jarvis auth login spotify")

    @pytest.mark.asyncio
    async def test_service_error_becomes_failure(self, registry, client):
        client.request.side_effect = ServiceError("Spotify API error (404): No active device found", 404)
        result = await registry.dispatch("play_music", {})
        assert_fail(result, "No active device found")


class TestSetVolume:
    @pytest.mark.asyncio
    async def test_sets_volume(self, registry, client):
        result = await registry.dispatch("set_volume", {"volume": 40})
        assert result.message == "Volume set to 40%."
        client.request.assert_awaited_once_with("PUT", "/me/player/volume", params={"volume_percent": 40})

    @pytest.mark.asyncio
    async def test_out_of_range(self, registry, client):
        assert_fail(await registry.dispatch("set_volume", {"volume": 150}), "between 0 and 100")
        client.request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_string_rejected_by_validation(self, registry, client):
        assert_fail(await registry.dispatch("set_volume", {"volume": "loud"}), "must be a number")
        client.request.assert_not_awaited()


class TestSearchAndPlay:
    @pytest.mark.asyncio
    async def test_plays_first_track(self, registry, client):
        client.request.side_effect = [{"tracks": {"items": [TRACK["item"]]}}, None]
        result = await registry.dispatch("search_and_play", {"query": "bohemian"})
        assert_ok(result)
        assert result.message == 'Playing track "Bohemian Rhapsody" by Queen.'
        search, play = client.request.await_args_list
        assert search.kwargs["params"] == {"q": "bohemian", "type": "track", "limit": 1}
        assert play.kwargs["json"] == {"uris": ["spotify:track:1"]}

    @pytest.mark.asyncio
    async def test_album_uses_context_uri(self, registry, client):
        album = {"name": "Discovery", "uri": "spotify:album:9", "artists": [{"name": "Daft Punk"}]}
        client.request.side_effect = [{"albums": {"items": [album]}}, None]
        await registry.dispatch("search_and_play", {"query": "discovery", "type": "album"})
        assert client.request.await_args_list[1].kwargs["json"] == {"context_uri": "spotify:album:9"}

    @pytest.mark.asyncio
    async def test_no_results(self, registry, client):
        client.request.return_value = {"tracks": {"items": []}}
        result = await registry.dispatch("search_and_play", {"query": "zzzz"})
        assert_fail(result, 'No track found for "zzzz"')

    @pytest.mark.asyncio
    async def test_type_enum(self, registry):
        result = await registry.dispatch("search_and_play", {"query": "x", "type": "podcast"})
        assert_fail(result, "must be one of: track, artist, album, playlist")
