from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

TIMEDTEXT_XML = (
    '<?xml version="1.0" encoding="utf-8" ?>'
    "<transcript>"
    '<text start="0.5" dur="2.1">Tom &amp;amp; Jerry</text>'
    '<text start="2.6" dur="1.4">it&amp;#39;s &amp;lt;b&amp;gt;</text>'
    '<text start="4" dur="3">[Music]</text>'
    "</transcript>"
)

SRV3_XML = (
    '<timedtext format="3"><body>'
    '<p t="1000" d="2500">caf&amp;eacute;</p>'
    '<p t="3500" d="1000"><s>one</s><s t="200"> two</s></p>'
    '<p t="5000" d="10">  </p>'
    '<p t="later">bad timing</p>'
    "</body></timedtext>"
)

_TAKEOUT_CELL = (
    '<div class="outer-cell mdl-cell mdl-cell--12-col mdl-shadow--2dp"><div class="mdl-grid">'
    '<div class="header-cell mdl-cell mdl-cell--12-col">'
    '<p class="mdl-typography--title">YouTube<br></p></div>'
    '<div class="content-cell mdl-cell mdl-cell--6-col mdl-typography--body-1">{body}</div>'
    '<div class="content-cell mdl-cell mdl-cell--6-col mdl-typography--body-1 '
    'mdl-typography--text-right"></div>'
    '<div class="content-cell mdl-cell mdl-cell--12-col mdl-typography--caption">'
    "<b>Products:</b><br>&emsp;YouTube<br></div>"
    "</div></div>"
)

TAKEOUT_BODIES: tuple[str, ...] = (
    'Watched&nbsp;<a href="https://www.youtube.com/watch?v=abc123XYZ_-">'
    "Tom &amp; Jerry &#8211; Best Of</a><br>"
    '<a href="https://www.youtube.com/channel/UC123">Cartoon &quot;Classics&quot;</a><br>'
    "Jan 5, 2024, 10:00:00\u202fPM EST<br>",
    'Searched for&nbsp;<a href="https://www.youtube.com/results?search_query=caf%C3%A9+recipes">'
    "caf&eacute; recipes</a><br>Feb 1, 2024, 8:15:30 AM UTC<br>",
    'Visited&nbsp;<a href="https://www.youtube.com/playlist?list=PL123">My list</a><br>'
    "Mar 3, 2024, 1:00:00 PM PST<br>",
    "Watched a video that has been removed<br>Mar 4, 2024, 1:00:00 PM PST<br>",
    'Liked&nbsp;<a href="https://www.youtube.com/post/UgkxABC">a post</a><br>'
    "Mar 5, 2024, 9:00:00 AM CET<br>",
    'Subscribed to&nbsp;<a href="https://www.youtube.com/channel/UCzzz">Some Channel</a><br>'
    "Mar 6, 2024, 9:00:00 AM GMT<br>",
    'Watched&nbsp;<a href="https://youtu.be/short01">clip</a><br>sometime last week<br>',
    'Played&nbsp;<a href="https://www.youtube.com/watch?v=zzz">game</a><br>'
    "Mar 7, 2024, 9:00:00 AM GMT<br>",
    'Watched&nbsp;<a href="https://youtu.be/short02">Q&amp;A &#x1F600;</a><br>'
    "Mar 8, 2024, 9:00:00 AM GMT<br>",
)

TAKEOUT_HTML = (
    "<html><head><title>My Activity</title></head><body>"
    '<div class="mdl-grid">'
    + "".join(_TAKEOUT_CELL.format(body=body) for body in TAKEOUT_BODIES)
    + "</div></body></html>"
)


def _build_watch_page(player_response: dict[str, object], *, title: str) -> str:
    return (
        f"<html><head><title>{title}</title></head><body>"
        "<script>var ytInitialPlayerResponse = "
        f"{json.dumps(player_response)};var meta = document.querySelector('meta');</script>"
        "</body></html>"
    )


PLAYER_RESPONSE: dict[str, object] = {
    "videoDetails": {
        "videoId": "abc123XYZ_-",
        "title": "Tom & Jerry - Best Of",
        "lengthSeconds": "754",
        "keywords": ["cartoon", "classic", 7],
        "channelId": "UC123",
        "shortDescription": "The best chases.",
        "viewCount": "123456",
        "author": "Cartoon Classics",
    },
    "microformat": {
        "playerMicroformatRenderer": {
            "category": "Entertainment",
            "publishDate": "2024-01-05",
            "uploadDate": "2024-01-05T08:00:00-08:00",
        }
    },
    "captions": {
        "playerCaptionsTracklistRenderer": {
            "captionTracks": [
                {"languageCode": "en", "name": {"simpleText": "English"}},
                {
                    "languageCode": "en",
                    "kind": "asr",
                    "name": {"runs": [{"text": "English "}, {"text": "(auto-generated)"}]},
                },
                {"name": {"simpleText": "No language"}},
            ]
        }
    },
}


@pytest.fixture(autouse=True)
def _isolated_runtime(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("TRANSCRIPTKIT_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("TRANSCRIPTKIT_CONFIG_FILE", str(tmp_path / "missing-config.yaml"))
    yield

    logger = logging.getLogger("transcriptkit")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def timedtext_xml() -> str:
    return TIMEDTEXT_XML


@pytest.fixture
def srv3_xml() -> str:
    return SRV3_XML


@pytest.fixture
def takeout_html() -> str:
    return TAKEOUT_HTML


@pytest.fixture
def player_response() -> dict[str, object]:
    return json.loads(json.dumps(PLAYER_RESPONSE))


@pytest.fixture
def watch_page_builder() -> Callable[..., str]:
    return _build_watch_page


@pytest.fixture
def timedtext_path(tmp_path: Path) -> Path:
    path = tmp_path / "captions.xml"
    path.write_text(TIMEDTEXT_XML, encoding="utf-8")
    return path


@pytest.fixture
def takeout_path(tmp_path: Path) -> Path:
    path = tmp_path / "MyActivity.html"
    path.write_text(TAKEOUT_HTML, encoding="utf-8")
    return path


@pytest.fixture
def watch_page_path(tmp_path: Path) -> Path:
    path = tmp_path / "watch.html"
    path.write_text(
        _build_watch_page(PLAYER_RESPONSE, title="Tom &amp; Jerry - Best Of - YouTube"),
        encoding="utf-8",
    )
    return path
