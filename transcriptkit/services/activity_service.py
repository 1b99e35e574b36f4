from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from html.parser import HTMLParser
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from dateutil import tz
from dateutil.parser import parse as dtparse

from transcriptkit.models.activity_contracts import (
    ActivityAction,
    ActivityLink,
    ActivityRecord,
)
from transcriptkit.services.transcript_service import extract_video_id
from transcriptkit.text.entity_decoder import decode

LOGGER = logging.getLogger("transcriptkit.activity")

_CONTENT_CELL_CLASSES: frozenset[str] = frozenset({"content-cell", "mdl-typography--body-1"})
_RIGHT_ALIGNED_CELL_CLASS = "mdl-typography--text-right"
# Longest first so "Searched for" wins over any shorter prefix.
_ACTIONS_BY_PREFIX: tuple[ActivityAction, ...] = tuple(
    sorted(ActivityAction, key=lambda action: len(action.value), reverse=True)
)
_TIMESTAMP_SPACE_VARIANTS: tuple[str, ...] = ("\u202f", "\u00a0", "\u2009")
_TZINFOS = {
    "UTC": tz.UTC,
    "GMT": tz.UTC,
    "EST": tz.gettz("America/New_York"),
    "EDT": tz.gettz("America/New_York"),
    "CST": tz.gettz("America/Chicago"),
    "CDT": tz.gettz("America/Chicago"),
    "MST": tz.gettz("America/Denver"),
    "MDT": tz.gettz("America/Denver"),
    "PST": tz.gettz("America/Los_Angeles"),
    "PDT": tz.gettz("America/Los_Angeles"),
    "BST": tz.gettz("Europe/London"),
    "CET": tz.gettz("Europe/Berlin"),
    "CEST": tz.gettz("Europe/Berlin"),
}


class ActivityServiceError(Exception):
    pass


class ActivityParseError(ActivityServiceError):
    pass


@dataclass
class _RawLink:
    line_index: int
    href: str
    raw_parts: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return decode("".join(self.raw_parts)).strip()


@dataclass
class _RawCell:
    lines: list[list[str]] = field(default_factory=lambda: [[]])
    links: list[_RawLink] = field(default_factory=list)

    def decoded_lines(self) -> list[str]:
        return [decode("".join(parts)).strip() for parts in self.lines]


class _ActivityCellParser(HTMLParser):
    """Collects the body cells of a Takeout activity page.

    Entity references are kept in their raw form so each cell line can be
    decoded in one pass.
    """

    def __init__(self, source: str) -> None:
        super().__init__(convert_charrefs=False)
        self._source = source
        self._line_starts = [0, *(match.end() for match in re.finditer("\n", source))]
        self.cells: list[_RawCell] = []
        self._cell: _RawCell | None = None
        self._div_depth = 0
        self._link: _RawLink | None = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        tag_name = tag.lower()
        if self._cell is None:
            if tag_name == "div" and _is_content_cell(attrs):
                self._cell = _RawCell()
                self._div_depth = 1
            return

        if tag_name == "div":
            self._div_depth += 1
        elif tag_name == "br":
            self._cell.lines.append([])
        elif tag_name == "a":
            href = next((value for name, value in attrs if name.lower() == "href"), None)
            self._link = _RawLink(line_index=len(self._cell.lines) - 1, href=(href or "").strip())

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self._cell is not None and tag.lower() == "br":
            self._cell.lines.append([])

    def handle_endtag(self, tag: str) -> None:
        if self._cell is None:
            return
        tag_name = tag.lower()
        if tag_name == "a" and self._link is not None:
            self._cell.links.append(self._link)
            self._link = None
        elif tag_name == "div":
            self._div_depth -= 1
            if self._div_depth == 0:
                self.cells.append(self._cell)
                self._cell = None
                self._link = None

    def handle_data(self, data: str) -> None:
        self._append_raw(data)

    def handle_entityref(self, name: str) -> None:
        self._append_raw(self._source_reference(f"&{name}"))

    def handle_charref(self, name: str) -> None:
        self._append_raw(self._source_reference(f"&#{name}"))

    def _source_reference(self, reference: str) -> str:
        # HTMLParser reports `&name` with or without its `;`; keep what the page had.
        line, column = self.getpos()
        end = self._line_starts[line - 1] + column + len(reference)
        if self._source.startswith(";", end):
            return f"{reference};"
        return reference

    def _append_raw(self, raw: str) -> None:
        if self._cell is None:
            return
        self._cell.lines[-1].append(raw)
        if self._link is not None:
            self._link.raw_parts.append(raw)


def _is_content_cell(attrs: list[tuple[str, str | None]]) -> bool:
    classes: set[str] = set()
    for name, value in attrs:
        if name.lower() == "class" and value:
            classes.update(value.split())
    return _CONTENT_CELL_CLASSES <= classes and _RIGHT_ALIGNED_CELL_CLASS not in classes


def parse_activity_html(html_text: str) -> list[ActivityRecord]:
    parser = _ActivityCellParser(html_text)
    parser.feed(html_text)
    parser.close()

    records: list[ActivityRecord] = []
    skipped: dict[str, int] = {}
    for cell in parser.cells:
        record, reason = _build_record(cell)
        if record is None:
            skipped[reason] = skipped.get(reason, 0) + 1
            continue
        records.append(record)

    if skipped:
        LOGGER.debug(
            "activity cells skipped counts=%s",
            ",".join(f"{reason}:{count}" for reason, count in sorted(skipped.items())),
        )
    LOGGER.info("activity parsed records=%s cells=%s", len(records), len(parser.cells))
    return records


def _build_record(cell: _RawCell) -> tuple[ActivityRecord | None, str]:
    lines = cell.decoded_lines()
    if not cell.links:
        return None, "no_link"

    primary = cell.links[0]
    first_line = lines[primary.line_index]
    action = _match_action(first_line)
    if action is None:
        return None, "unknown_action"

    link = classify_activity_url(primary.href)
    if link is None:
        return None, "unknown_link"

    timestamp_text = next((line for line in reversed(lines) if line), "")
    timestamp = parse_activity_timestamp(timestamp_text)
    if timestamp is None:
        return None, "bad_timestamp"

    channel_name: str | None = None
    channel_url: str | None = None
    for extra in cell.links[1:]:
        extra_link = classify_activity_url(extra.href)
        if extra_link is not None and extra_link.kind == "channel":
            channel_name = extra.text or None
            channel_url = extra.href
            break

    title = primary.text or link.value
    return (
        ActivityRecord(
            action=action,
            link=link,
            title=title,
            channel_name=channel_name,
            channel_url=channel_url,
            timestamp=timestamp,
        ),
        "",
    )


def _match_action(line: str) -> ActivityAction | None:
    normalized = " ".join(line.split())
    for action in _ACTIONS_BY_PREFIX:
        if normalized.startswith(action.value):
            return action
    return None


def classify_activity_url(url: str) -> ActivityLink | None:
    parsed = urlparse(url.strip())
    host = parsed.netloc.lower()
    if not (host.endswith("youtube.com") or host.endswith("youtu.be")):
        return None

    path = parsed.path.strip("/")
    query = parse_qs(parsed.query)

    if path == "results":
        search_query = _first_query_value(query, "search_query")
        if search_query is None:
            return None
        return ActivityLink(kind="search", value=search_query)
    if path == "playlist":
        playlist_id = _first_query_value(query, "list")
        if playlist_id is None:
            return None
        return ActivityLink(kind="playlist", value=playlist_id)
    if path.startswith("channel/"):
        channel_id = path.removeprefix("channel/").split("/", maxsplit=1)[0]
        return ActivityLink(kind="channel", value=channel_id) if channel_id else None
    if path.startswith("post/"):
        post_id = path.removeprefix("post/").split("/", maxsplit=1)[0]
        return ActivityLink(kind="post", value=post_id) if post_id else None

    video_id = extract_video_id(url)
    if video_id is None:
        return None
    return ActivityLink(kind="video", value=video_id)


def _first_query_value(query: dict[str, list[str]], key: str) -> str | None:
    values = query.get(key)
    if not values:
        return None
    value = values[0].strip()
    return value or None


def parse_activity_timestamp(raw_value: str) -> datetime | None:
    normalized = raw_value
    for variant in _TIMESTAMP_SPACE_VARIANTS:
        normalized = normalized.replace(variant, " ")
    normalized = " ".join(normalized.split())
    if not normalized:
        return None
    try:
        return dtparse(normalized, tzinfos=_TZINFOS)
    except (OverflowError, ValueError):
        return None


def load_activity(path: Path) -> list[ActivityRecord]:
    try:
        html_text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ActivityParseError(f"Could not read activity file {path}: {exc}") from exc
    return parse_activity_html(html_text)
