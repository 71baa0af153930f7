from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httplib2
import pytest
from googleapiclient.errors import HttpError

from youtube_mcp.clients import youtube as youtube_module
from youtube_mcp.clients.google_auth import GoogleOAuthClient
from youtube_mcp.clients.youtube import YouTubeAPIError, YouTubeDataClient
from youtube_mcp.services.channel import ChannelService
from youtube_mcp.services.credential_manager import CredentialManager
from youtube_mcp.services.playlist import PlaylistService
from youtube_mcp.services.token_store import TokenFileStore
from youtube_mcp.services.video import VideoService, structure_video


class FakeRequest:
    def __init__(self, response: Any) -> None:
        self._response = response

    def execute(self) -> Any:
        if isinstance(self._response, Exception):
            raise self._response
        return self._response


class FakeCollection:
    def __init__(self, service: "FakeYouTube", name: str) -> None:
        self._service = service
        self._name = name

    def _call(self, method: str, kwargs: dict) -> FakeRequest:
        self._service.calls.append((self._name, method, kwargs))
        return FakeRequest(self._service.responses.get((self._name, method), {}))

    def list(self, **kwargs: Any) -> FakeRequest:
        return self._call("list", kwargs)

    def insert(self, **kwargs: Any) -> FakeRequest:
        return self._call("insert", kwargs)


class FakeYouTube:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict]] = []
        self.responses: dict[tuple[str, str], Any] = {}
        self.build_kwargs: list[dict] = []

    def __getattr__(self, name: str):
        return lambda: FakeCollection(self, name)


@pytest.fixture
def fake_youtube(monkeypatch: pytest.MonkeyPatch) -> FakeYouTube:
    fake = FakeYouTube()

    def _build(service_name: str, version: str, **kwargs: Any) -> FakeYouTube:
        assert (service_name, version) == ("youtube", "v3")
        fake.build_kwargs.append(kwargs)
        return fake

    monkeypatch.setattr(youtube_module, "build", _build)
    return fake


def _http_error(status: int, reason: str) -> HttpError:
    body = json.dumps({"error": {"errors": [{"reason": reason}], "message": reason}})
    return HttpError(httplib2.Response({"status": status}), body.encode("utf-8"))


def test_structure_video_handles_video_and_search_ids() -> None:
    video = structure_video({"id": "abc", "snippet": {"title": "t"}})
    search_hit = structure_video({"id": {"kind": "youtube#video", "videoId": "xyz"}})

    assert video["videoId"] == "abc"
    assert video["url"] == "https://www.youtube.com/watch?v=abc"
    assert video["snippet"] == {"title": "t"}
    assert search_hit["videoId"] == "xyz"
    assert search_hit["url"] == "https://www.youtube.com/watch?v=xyz"
    assert structure_video(None) is None


@pytest.mark.asyncio
async def test_get_video_uses_api_key_and_default_parts(fake_youtube: FakeYouTube) -> None:
    fake_youtube.responses[("videos", "list")] = {"items": [{"id": "abc"}]}
    service = VideoService(YouTubeDataClient(api_key="key"))

    video = await service.get_video("abc")

    assert video["url"] == "https://www.youtube.com/watch?v=abc"
    assert fake_youtube.calls == [
        ("videos", "list", {"part": "snippet,contentDetails,statistics", "id": "abc"})
    ]
    assert fake_youtube.build_kwargs[0]["developerKey"] == "key"


@pytest.mark.asyncio
async def test_get_video_returns_none_for_unknown_id(fake_youtube: FakeYouTube) -> None:
    fake_youtube.responses[("videos", "list")] = {"items": []}

    assert await VideoService(YouTubeDataClient(api_key="key")).get_video("missing") is None


@pytest.mark.asyncio
async def test_reads_without_api_key_fail_with_message() -> None:
    service = VideoService(YouTubeDataClient(api_key=None))

    with pytest.raises(YouTubeAPIError, match="YOUTUBE_API_KEY"):
        await service.search_videos("cats")


@pytest.mark.asyncio
async def test_trending_only_sends_category_when_given(fake_youtube: FakeYouTube) -> None:
    service = VideoService(YouTubeDataClient(api_key="key"))

    await service.get_trending_videos(region_code="FR", max_results=5)
    await service.get_trending_videos(video_category_id="10")

    first, second = (call[2] for call in fake_youtube.calls)
    assert first["chart"] == "mostPopular"
    assert first["regionCode"] == "FR"
    assert "videoCategoryId" not in first
    assert second["videoCategoryId"] == "10"


@pytest.mark.asyncio
async def test_comments_are_flattened_and_capped(fake_youtube: FakeYouTube) -> None:
    fake_youtube.responses[("commentThreads", "list")] = {
        "items": [
            {
                "id": "c1",
                "snippet": {
                    "totalReplyCount": 2,
                    "topLevelComment": {
                        "snippet": {
                            "authorDisplayName": "Ana",
                            "authorChannelId": {"value": "UC1"},
                            "textDisplay": "Nice",
                            "likeCount": 4,
                        }
                    },
                },
            }
        ],
        "nextPageToken": "next",
        "pageInfo": {"totalResults": 1},
    }
    service = VideoService(YouTubeDataClient(api_key="key"))

    result = await service.get_video_comments("abc", max_results=500)

    assert fake_youtube.calls[0][2]["maxResults"] == 100
    assert result["nextPageToken"] == "next"
    assert result["comments"][0] == {
        "commentId": "c1",
        "author": "Ana",
        "authorChannelId": "UC1",
        "authorProfileImage": "",
        "text": "Nice",
        "publishedAt": "",
        "updatedAt": "",
        "likeCount": 4,
        "replyCount": 2,
    }


@pytest.mark.asyncio
async def test_disabled_comments_are_reported(fake_youtube: FakeYouTube) -> None:
    fake_youtube.responses[("commentThreads", "list")] = _http_error(403, "commentsDisabled")
    service = VideoService(YouTubeDataClient(api_key="key"))

    with pytest.raises(YouTubeAPIError, match="Comments are disabled for video abc"):
        await service.get_video_comments("abc")


@pytest.mark.asyncio
async def test_channel_videos_are_structured(fake_youtube: FakeYouTube) -> None:
    fake_youtube.responses[("search", "list")] = {"items": [{"id": {"videoId": "v1"}}]}
    service = ChannelService(YouTubeDataClient(api_key="key"))

    videos = await service.list_videos("UC1", max_results=3)

    assert videos[0]["url"] == "https://www.youtube.com/watch?v=v1"
    assert fake_youtube.calls[0][2]["channelId"] == "UC1"
    assert fake_youtube.calls[0][2]["maxResults"] == 3


@pytest.fixture
def authorized_manager(oauth_settings_factory, token_path: Path) -> CredentialManager:
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(json.dumps({"access_token": "A", "refresh_token": "R"}))
    return CredentialManager(
        GoogleOAuthClient(oauth_settings_factory()), TokenFileStore(token_path)
    )


@pytest.mark.asyncio
async def test_create_playlist_uses_user_credentials(
    fake_youtube: FakeYouTube, authorized_manager: CredentialManager
) -> None:
    fake_youtube.responses[("playlists", "insert")] = {"id": "PL1"}
    service = PlaylistService(YouTubeDataClient(api_key=None), authorized_manager)

    created = await service.create_playlist("Mix", description="songs")

    assert created == {"id": "PL1"}
    assert fake_youtube.build_kwargs[0]["credentials"].token == "A"
    _, _, kwargs = fake_youtube.calls[0]
    assert kwargs["body"] == {
        "snippet": {"title": "Mix", "description": "songs"},
        "status": {"privacyStatus": "private"},
    }


@pytest.mark.asyncio
async def test_writes_without_token_ask_for_authorization(
    fake_youtube: FakeYouTube, oauth_settings_factory, token_path: Path
) -> None:
    manager = CredentialManager(
        GoogleOAuthClient(oauth_settings_factory()), TokenFileStore(token_path)
    )
    service = PlaylistService(YouTubeDataClient(api_key="key"), manager)

    with pytest.raises(YouTubeAPIError, match="Please run youtube_startAuth first"):
        await service.add_to_playlist("PL1", "v1")
    assert fake_youtube.calls == []


@pytest.mark.asyncio
async def test_writes_without_oauth_configuration_fail(fake_youtube: FakeYouTube) -> None:
    service = PlaylistService(YouTubeDataClient(api_key="key"), None)

    with pytest.raises(YouTubeAPIError, match="YOUTUBE_OAUTH_CLIENT_ID"):
        await service.create_playlist("Mix")


@pytest.mark.asyncio
async def test_add_videos_collects_failures(
    fake_youtube: FakeYouTube, authorized_manager: CredentialManager, monkeypatch
) -> None:
    service = PlaylistService(YouTubeDataClient(api_key=None), authorized_manager)
    original = service.add_to_playlist

    async def _flaky(playlist_id: str, video_id: str, position=None):
        if video_id == "bad":
            raise YouTubeAPIError("Failed to add video to playlist: videoNotFound")
        return await original(playlist_id, video_id, position)

    monkeypatch.setattr(service, "add_to_playlist", _flaky)

    result = await service.add_videos_to_playlist("PL1", ["v1", "bad", "v2"])

    assert result["success"] == ["v1", "v2"]
    assert result["failed"] == [
        {"videoId": "bad", "error": "Failed to add video to playlist: videoNotFound"}
    ]
    inserted = [call[2]["body"]["snippet"]["resourceId"]["videoId"] for call in fake_youtube.calls]
    assert inserted == ["v1", "v2"]


@pytest.mark.asyncio
async def test_add_video_sends_position_only_when_given(
    fake_youtube: FakeYouTube, authorized_manager: CredentialManager
) -> None:
    service = PlaylistService(YouTubeDataClient(api_key=None), authorized_manager)

    await service.add_to_playlist("PL1", "v1")
    await service.add_to_playlist("PL1", "v2", position=0)

    first, second = (call[2]["body"]["snippet"] for call in fake_youtube.calls)
    assert "position" not in first
    assert second["position"] == 0
