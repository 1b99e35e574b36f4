from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest

from transcriptkit.services.transcript_service import build_transcript, parse_caption_cues
from transcriptkit.services.video_info_service import (
    VideoInfoError,
    VideoInfoParseError,
    load_video_info,
    parse_watch_page,
)


def test_parse_watch_page_reads_player_response(
    player_response: dict[str, Any],
    watch_page_builder: Callable[..., str],
) -> None:
    info = parse_watch_page(watch_page_builder(player_response, title="ignored - YouTube"))

    assert info.video_id == "abc123XYZ_-"
    assert info.title == "Tom & Jerry - Best Of"
    assert info.description == "The best chases."
    assert info.channel_id == "UC123"
    assert info.channel_name == "Cartoon Classics"
    assert info.duration_seconds == 754
    assert info.view_count == 123456
    assert info.keywords == ["cartoon", "classic"]
    assert info.category == "Entertainment"
    assert info.publish_date is not None
    assert info.publish_date.date().isoformat() == "2024-01-05"
    assert info.upload_date is not None
    assert info.upload_date.utcoffset() == timedelta(hours=-8)
    assert info.transcript is None


def test_caption_tracks_flag_generated_and_skip_unlabelled(
    player_response: dict[str, Any],
    watch_page_builder: Callable[..., str],
) -> None:
    info = parse_watch_page(watch_page_builder(player_response, title="x"))

    assert [(track.language_code, track.name, track.is_generated) for track in info.caption_tracks] == [
        ("en", "English", False),
        ("en", "English (auto-generated)", True),
    ]


def test_title_falls_back_to_decoded_markup(
    player_response: dict[str, Any],
    watch_page_builder: Callable[..., str],
) -> None:
    del player_response["videoDetails"]["title"]
    page = watch_page_builder(player_response, title="Tom &amp; Jerry &#8211; Best Of - YouTube")

    info = parse_watch_page(page)

    assert info.title == "Tom & Jerry – Best Of"


def test_missing_or_malformed_optional_fields_become_none(
    player_response: dict[str, Any],
    watch_page_builder: Callable[..., str],
) -> None:
    details = player_response["videoDetails"]
    details["lengthSeconds"] = "12m"
    details["viewCount"] = -3
    details["keywords"] = "not a list"
    del player_response["microformat"]
    del player_response["captions"]

    info = parse_watch_page(watch_page_builder(player_response, title="x"))

    assert info.duration_seconds is None
    assert info.view_count is None
    assert info.keywords == []
    assert info.publish_date is None
    assert info.caption_tracks == []


def test_parse_watch_page_attaches_transcript(
    player_response: dict[str, Any],
    watch_page_builder: Callable[..., str],
    timedtext_xml: str,
) -> None:
    document = build_transcript(parse_caption_cues(timedtext_xml), video_id="abc123XYZ_-")

    info = parse_watch_page(watch_page_builder(player_response, title="x"), transcript=document)

    assert info.transcript == document


def test_parse_watch_page_requires_player_response() -> None:
    with pytest.raises(VideoInfoParseError):
        parse_watch_page("<html><title>Nothing - YouTube</title></html>")
    with pytest.raises(VideoInfoParseError):
        parse_watch_page("<script>var ytInitialPlayerResponse = {broken</script>")
    with pytest.raises(VideoInfoParseError):
        parse_watch_page("<script>var ytInitialPlayerResponse = [1, 2];</script>")


def test_parse_watch_page_requires_video_id(
    player_response: dict[str, Any],
    watch_page_builder: Callable[..., str],
) -> None:
    del player_response["videoDetails"]["videoId"]

    with pytest.raises(VideoInfoParseError):
        parse_watch_page(watch_page_builder(player_response, title="x"))


def test_load_video_info(watch_page_path: Path, tmp_path: Path) -> None:
    assert load_video_info(watch_page_path).video_id == "abc123XYZ_-"
    with pytest.raises(VideoInfoError):
        load_video_info(tmp_path / "missing.html")


def test_load_video_info_rejects_non_utf8_file(tmp_path: Path) -> None:
    path = tmp_path / "watch.html"
    path.write_bytes(b"<title>\xff</title>")

    with pytest.raises(VideoInfoError):
        load_video_info(path)
