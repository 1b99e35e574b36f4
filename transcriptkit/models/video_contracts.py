from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from transcriptkit.models.transcript_contracts import TranscriptDocument


class CaptionTrack(BaseModel):
    model_config = ConfigDict(extra="forbid")

    language_code: str
    name: str | None = None
    is_generated: bool = False


class VideoInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    video_id: str
    title: str
    description: str | None = None
    channel_id: str | None = None
    channel_name: str | None = None
    duration_seconds: int | None = Field(default=None, ge=0)
    view_count: int | None = Field(default=None, ge=0)
    keywords: list[str] = Field(default_factory=list)
    category: str | None = None
    publish_date: datetime | None = None
    upload_date: datetime | None = None
    caption_tracks: list[CaptionTrack] = Field(default_factory=list)
    transcript: TranscriptDocument | None = None
