from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal
from urllib.parse import quote, quote_plus

from pydantic import BaseModel, ConfigDict, computed_field

ActivityLinkKind = Literal["video", "post", "channel", "playlist", "search"]


class ActivityAction(str, Enum):
    WATCHED = "Watched"
    SEARCHED = "Searched for"
    VISITED = "Visited"
    VIEWED = "Viewed"
    LIKED = "Liked"
    DISLIKED = "Disliked"
    SUBSCRIBED = "Subscribed to"
    COMMENTED = "Commented on"
    SHARED = "Shared"


class ActivityLink(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: ActivityLinkKind
    value: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def url(self) -> str:
        if self.kind == "video":
            return f"https://www.youtube.com/watch?v={quote(self.value)}"
        if self.kind == "post":
            return f"https://www.youtube.com/post/{quote(self.value)}"
        if self.kind == "channel":
            return f"https://www.youtube.com/channel/{quote(self.value)}"
        if self.kind == "playlist":
            return f"https://www.youtube.com/playlist?list={quote(self.value)}"
        return f"https://www.youtube.com/results?search_query={quote_plus(self.value)}"


class ActivityRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: ActivityAction
    link: ActivityLink
    title: str
    channel_name: str | None = None
    channel_url: str | None = None
    timestamp: datetime
