from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, cast

from dateutil.parser import isoparse

from transcriptkit.models.transcript_contracts import TranscriptDocument
from transcriptkit.models.video_contracts import CaptionTrack, VideoInfo
from transcriptkit.text.entity_decoder import decode

LOGGER = logging.getLogger("transcriptkit.video_info")

_PLAYER_RESPONSE_MARKER = re.compile(r"ytInitialPlayerResponse\s*=\s*")
_TITLE_TAG = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_TITLE_SUFFIX = " - YouTube"


class VideoInfoError(Exception):
    pass


class VideoInfoParseError(VideoInfoError):
    pass


def parse_watch_page(
    html_text: str,
    *,
    transcript: TranscriptDocument | None = None,
) -> VideoInfo:
    player_response = _extract_player_response(html_text)
    details = _as_dict(player_response.get("videoDetails"))
    microformat = _as_dict(
        _as_dict(player_response.get("microformat")).get("playerMicroformatRenderer")
    )

    video_id = _coerce_nonempty_string(details.get("videoId"))
    if video_id is None:
        raise VideoInfoParseError("Player response has no videoDetails.videoId.")

    title = _coerce_nonempty_string(details.get("title")) or _title_from_markup(html_text)
    if title is None:
        raise VideoInfoParseError(f"Could not determine a title for video {video_id}.")

    keywords = details.get("keywords")
    info = VideoInfo(
        video_id=video_id,
        title=title,
        description=_coerce_nonempty_string(details.get("shortDescription")),
        channel_id=_coerce_nonempty_string(details.get("channelId")),
        channel_name=_coerce_nonempty_string(details.get("author")),
        duration_seconds=_coerce_int(details.get("lengthSeconds")),
        view_count=_coerce_int(details.get("viewCount")),
        keywords=[keyword for keyword in cast(list[Any], keywords) if isinstance(keyword, str)]
        if isinstance(keywords, list)
        else [],
        category=_coerce_nonempty_string(microformat.get("category")),
        publish_date=_coerce_datetime(microformat.get("publishDate")),
        upload_date=_coerce_datetime(microformat.get("uploadDate")),
        caption_tracks=_extract_caption_tracks(player_response),
        transcript=transcript,
    )
    LOGGER.info(
        "video info parsed video_id=%s caption_tracks=%s transcript=%s",
        info.video_id,
        len(info.caption_tracks),
        transcript is not None,
    )
    return info


def load_video_info(path: Path, *, transcript: TranscriptDocument | None = None) -> VideoInfo:
    try:
        html_text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise VideoInfoError(f"Could not read watch page {path}: {exc}") from exc
    return parse_watch_page(html_text, transcript=transcript)


def _extract_player_response(html_text: str) -> dict[str, Any]:
    match = _PLAYER_RESPONSE_MARKER.search(html_text)
    if match is None:
        raise VideoInfoParseError("Watch page does not embed ytInitialPlayerResponse.")
    try:
        parsed, _end = json.JSONDecoder().raw_decode(html_text, match.end())
    except json.JSONDecodeError as exc:
        raise VideoInfoParseError(f"ytInitialPlayerResponse is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise VideoInfoParseError("ytInitialPlayerResponse is not a JSON object.")
    return cast(dict[str, Any], parsed)


def _title_from_markup(html_text: str) -> str | None:
    match = _TITLE_TAG.search(html_text)
    if match is None:
        return None
    title = " ".join(decode(match.group(1)).split())
    title = title.removesuffix(_TITLE_SUFFIX).strip()
    return title or None


def _extract_caption_tracks(player_response: dict[str, Any]) -> list[CaptionTrack]:
    renderer = _as_dict(
        _as_dict(player_response.get("captions")).get("playerCaptionsTracklistRenderer")
    )
    raw_tracks = renderer.get("captionTracks")
    if not isinstance(raw_tracks, list):
        return []

    tracks: list[CaptionTrack] = []
    for raw_track in cast(list[Any], raw_tracks):
        track = _as_dict(raw_track)
        language_code = _coerce_nonempty_string(track.get("languageCode"))
        if language_code is None:
            continue
        tracks.append(
            CaptionTrack(
                language_code=language_code,
                name=_caption_track_name(track.get("name")),
                is_generated=track.get("kind") == "asr",
            )
        )
    return tracks


def _caption_track_name(raw_name: object) -> str | None:
    name = _as_dict(raw_name)
    simple_text = _coerce_nonempty_string(name.get("simpleText"))
    if simple_text is not None:
        return simple_text
    runs = name.get("runs")
    if isinstance(runs, list):
        joined = "".join(
            str(_as_dict(run).get("text", "")) for run in cast(list[Any], runs)
        ).strip()
        return joined or None
    return None


def _as_dict(value: object) -> dict[str, Any]:
    if isinstance(value, dict):
        return cast(dict[str, Any], value)
    return {}


def _coerce_nonempty_string(raw_value: object) -> str | None:
    if isinstance(raw_value, str) and raw_value.strip():
        return raw_value.strip()
    return None


def _coerce_int(raw_value: object) -> int | None:
    if isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, int):
        return raw_value if raw_value >= 0 else None
    if isinstance(raw_value, str):
        stripped = raw_value.strip()
        if stripped.isascii() and stripped.isdigit():
            return int(stripped)
    return None


def _coerce_datetime(raw_value: object) -> datetime | None:
    text = _coerce_nonempty_string(raw_value)
    if text is None:
        return None
    try:
        return isoparse(text)
    except (OverflowError, ValueError):
        LOGGER.debug("unparseable microformat date value=%s", text)
        return None
