"""Spotify playback control through the Web API."""

from __future__ import annotations

import abc
from typing import Any, Dict, List, Optional

from jarvis.auth.credentials import CredentialStore
from jarvis.auth.http import AuthenticatedClient, AuthError, OAuthRefresher, ServiceError
from jarvis.core.tool_result import ToolResult
from jarvis.tools.base import ParameterSpec, Tool, ToolDefinition

SPOTIFY_API_BASE = "https://api.spotify.com/v1"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SEARCH_TYPES = ("track", "artist", "album", "playlist")


def build_spotify_client(
    store: CredentialStore,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
) -> AuthenticatedClient:
    refresher = None
    if client_id and client_secret:
        refresher = OAuthRefresher(SPOTIFY_TOKEN_URL, client_id, client_secret)
    return AuthenticatedClient("spotify", store, SPOTIFY_API_BASE, refresher=refresher)


def _artists(item: Dict[str, Any]) -> str:
    return ", ".join(a.get("name", "?") for a in item.get("artists", []))


class _SpotifyTool(Tool):
    """Shares the client and turns auth/API errors into failed results."""

    def __init__(self, client: AuthenticatedClient) -> None:
        self.client = client

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        try:
            return await self.run(arguments)
        except (AuthError, ServiceError) as exc:
            return ToolResult.failure(str(exc))

    @abc.abstractmethod
    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        ...


class GetCurrentTrackTool(_SpotifyTool):
    definition = ToolDefinition(
        name="get_current_track",
        description="Get information about the currently playing track on Spotify",
        category="spotify",
    )

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        data = await self.client.request("GET", "/me/player/currently-playing")
        if not data or not data.get("item"):
            return ToolResult.ok(data=None, message="No track is currently playing.")

        track = data["item"]
        state = "Now playing" if data.get("is_playing") else "Paused"
        info = {
            "name": track.get("name"),
            "artists": _artists(track),
            "album": (track.get("album") or {}).get("name"),
            "is_playing": bool(data.get("is_playing")),
            "progress_ms": data.get("progress_ms"),
            "duration_ms": track.get("duration_ms"),
        }
        return ToolResult.ok(
            data=info,
            message=f'{state}: "{info["name"]}" by {info["artists"]} ({info["album"]})',
        )

    def summarize(self, result: ToolResult) -> str:
        return f"🎵 {result.message}"


class _PlayerCommandTool(_SpotifyTool):
    method = "PUT"
    endpoint = ""
    done_message = ""

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        await self.client.request(self.method, self.endpoint)
        return ToolResult.ok(message=self.done_message)


class PlayMusicTool(_PlayerCommandTool):
    definition = ToolDefinition(
        name="play_music",
        description="Play or resume music playback on Spotify",
        category="spotify",
    )
    endpoint = "/me/player/play"
    done_message = "Playback resumed."


class PauseMusicTool(_PlayerCommandTool):
    definition = ToolDefinition(
        name="pause_music",
        description="Pause music playback on Spotify",
        category="spotify",
    )
    endpoint = "/me/player/pause"
    done_message = "Playback paused."


class NextTrackTool(_PlayerCommandTool):
    definition = ToolDefinition(
        name="next_track",
        description="Skip to the next track on Spotify",
        category="spotify",
    )
    method = "POST"
    endpoint = "/me/player/next"
    done_message = "Skipped to next track."


class PreviousTrackTool(_PlayerCommandTool):
    definition = ToolDefinition(
        name="previous_track",
        description="Skip to the previous track on Spotify",
        category="spotify",
    )
    method = "POST"
    endpoint = "/me/player/previous"
    done_message = "Skipped to previous track."


class SetVolumeTool(_SpotifyTool):
    definition = ToolDefinition(
        name="set_volume",
        description="Set Spotify playback volume (0-100)",
        category="spotify",
        parameters=(
            ParameterSpec(name="volume", type="number", description="Volume level from 0 to 100", required=True),
        ),
    )

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        volume = int(round(arguments["volume"]))
        if not 0 <= volume <= 100:
            return ToolResult.failure("Volume must be between 0 and 100")
        await self.client.request("PUT", "/me/player/volume", params={"volume_percent": volume})
        return ToolResult.ok(data={"volume": volume}, message=f"Volume set to {volume}%.")


class SearchAndPlayTool(_SpotifyTool):
    definition = ToolDefinition(
        name="search_and_play",
        description="Search Spotify and start playing the best match",
        category="spotify",
        parameters=(
            ParameterSpec(
                name="query",
                type="string",
                description="Search query (song name, artist, album, etc.)",
                required=True,
            ),
            ParameterSpec(
                name="type",
                type="string",
                description="What to search for (default: track)",
                enum=SEARCH_TYPES,
            ),
        ),
    )

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        query = arguments["query"].strip()
        if not query:
            return ToolResult.failure("Search query must not be empty")
        kind = arguments.get("type", "track")

        found = await self.client.request(
            "GET", "/search", params={"q": query, "type": kind, "limit": 1},
        )
        items = ((found or {}).get(f"{kind}s") or {}).get("items") or []
        items = [i for i in items if i]
        if not items:
            return ToolResult.failure(f'No {kind} found for "{query}"')

        match = items[0]
        if kind == "track":
            body = {"uris": [match["uri"]]}
        else:
            body = {"context_uri": match["uri"]}
        await self.client.request("PUT", "/me/player/play", json=body)

        label = f'"{match.get("name")}"'
        if match.get("artists"):
            label += f" by {_artists(match)}"
        return ToolResult.ok(
            data={"type": kind, "name": match.get("name"), "uri": match["uri"]},
            message=f"Playing {kind} {label}.",
        )


def build_spotify_tools(client: AuthenticatedClient) -> List[Tool]:
    return [
        GetCurrentTrackTool(client),
        PlayMusicTool(client),
        PauseMusicTool(client),
        NextTrackTool(client),
        PreviousTrackTool(client),
        SetVolumeTool(client),
        SearchAndPlayTool(client),
    ]
