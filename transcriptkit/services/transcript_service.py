from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from transcriptkit.models.transcript_contracts import TranscriptDocument, TranscriptMoment
from transcriptkit.text.entity_decoder import breaks_references, decode_with_offsets

LOGGER = logging.getLogger("transcriptkit.transcript")

DEFAULT_SEPARATOR = "\n"


@dataclass(frozen=True)
class CaptionCue:
    start_seconds: float
    duration_seconds: float | None
    raw_text: str


class TranscriptServiceError(Exception):
    pass


class TranscriptParseError(TranscriptServiceError):
    pass


def parse_caption_cues(document: str | bytes) -> list[CaptionCue]:
    """Read cues from a timedtext (`<transcript>`) or srv3 (`<timedtext>`) file.

    XML escaping is removed by the parser; the cue text keeps the second,
    HTML-level escaping YouTube applies (`&#39;`, `&quot;`).
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise TranscriptParseError(f"Caption document is not valid XML: {exc}") from exc

    if root.tag == "transcript":
        return _parse_timedtext_cues(root)
    if root.tag == "timedtext":
        return _parse_srv3_cues(root)
    raise TranscriptParseError(f"Unsupported caption document root: <{root.tag}>")


def _parse_timedtext_cues(root: ET.Element) -> list[CaptionCue]:
    cues: list[CaptionCue] = []
    skipped = 0
    for element in root.iter("text"):
        start = _coerce_seconds(element.get("start"), milliseconds=False)
        if start is None:
            skipped += 1
            continue
        cues.append(
            CaptionCue(
                start_seconds=start,
                duration_seconds=_coerce_seconds(element.get("dur"), milliseconds=False),
                raw_text="".join(element.itertext()),
            )
        )
    _log_skipped(skipped, fmt="timedtext")
    return cues


def _parse_srv3_cues(root: ET.Element) -> list[CaptionCue]:
    cues: list[CaptionCue] = []
    skipped = 0
    for element in root.iter("p"):
        start = _coerce_seconds(element.get("t"), milliseconds=True)
        if start is None:
            skipped += 1
            continue
        # Word-timed captions split text across <s> children.
        raw_text = "".join(element.itertext())
        if not raw_text.strip():
            continue
        cues.append(
            CaptionCue(
                start_seconds=start,
                duration_seconds=_coerce_seconds(element.get("d"), milliseconds=True),
                raw_text=raw_text,
            )
        )
    _log_skipped(skipped, fmt="srv3")
    return cues


def _log_skipped(skipped: int, *, fmt: str) -> None:
    if skipped:
        LOGGER.warning("caption cues skipped format=%s count=%s reason=bad_timing", fmt, skipped)


def _coerce_seconds(raw_value: str | None, *, milliseconds: bool) -> float | None:
    if raw_value is None:
        return None
    try:
        numeric = float(raw_value.strip())
    except ValueError:
        return None
    if not math.isfinite(numeric) or numeric < 0:
        return None
    if milliseconds:
        numeric /= 1000.0
    return numeric


def build_transcript(
    cues: Sequence[CaptionCue],
    *,
    video_id: str | None = None,
    separator: str = DEFAULT_SEPARATOR,
) -> TranscriptDocument:
    if not breaks_references(separator):
        raise ValueError(
            "separator must be non-empty and free of ASCII letters, digits, '&', '#' and ';'"
        )

    raw_offsets: list[int] = []
    raw_parts: list[str] = []
    cursor = 0
    for index, cue in enumerate(cues):
        if index:
            raw_parts.append(separator)
            cursor += len(separator)
        raw_offsets.append(cursor)
        raw_parts.append(cue.raw_text)
        cursor += len(cue.raw_text)

    # No resolvable reference can include the separator, so cue starts stay
    # on span boundaries.
    scan = decode_with_offsets("".join(raw_parts))
    decoded_starts = [scan.map_offset(offset) for offset in raw_offsets]

    moments: list[TranscriptMoment] = []
    for index, cue in enumerate(cues):
        start = decoded_starts[index]
        if index + 1 < len(cues):
            end = decoded_starts[index + 1] - len(separator)
        else:
            end = len(scan.text)
        moments.append(
            TranscriptMoment(
                start_seconds=cue.start_seconds,
                duration_seconds=cue.duration_seconds,
                text=scan.text[start:end],
                offset=start,
            )
        )

    LOGGER.info(
        "transcript assembled video_id=%s moments=%s entity_replacements=%s",
        video_id,
        len(moments),
        len(scan.spans),
    )
    return TranscriptDocument(
        video_id=video_id,
        text=scan.text,
        moments=moments,
        entity_replacements=len(scan.spans),
    )


def load_transcript(
    path: Path,
    *,
    video_id: str | None = None,
    separator: str = DEFAULT_SEPARATOR,
) -> TranscriptDocument:
    try:
        document = path.read_bytes()
    except OSError as exc:
        raise TranscriptServiceError(f"Could not read caption file {path}: {exc}") from exc
    cues = parse_caption_cues(document)
    return build_transcript(cues, video_id=video_id, separator=separator)


def extract_video_id(value: str | None) -> str | None:
    if value is None:
        return None

    candidate = value.strip()
    if not candidate:
        return None

    if "://" not in candidate and "/" not in candidate and "?" not in candidate:
        return candidate

    if "://" not in candidate:
        candidate = f"https://{candidate}"
    parsed = urlparse(candidate)
    host = parsed.netloc.lower()
    path = parsed.path.strip("/")

    if host in {"youtu.be", "www.youtu.be", "m.youtu.be"}:
        first = path.split("/", maxsplit=1)[0]
        return first or None

    if host.endswith("youtube.com") or host.endswith("youtube-nocookie.com"):
        query_video = parse_qs(parsed.query).get("v")
        if query_video:
            video_id = query_video[0].strip()
            if video_id:
                return video_id

        for prefix in ("shorts/", "embed/", "live/"):
            if path.startswith(prefix):
                remainder = path[len(prefix) :]
                first = remainder.split("/", maxsplit=1)[0].strip()
                if first:
                    return first

    return None


def format_timestamp(seconds: float) -> str:
    total_millis = max(0, round(seconds * 1000))
    hours, remainder = divmod(total_millis, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"
