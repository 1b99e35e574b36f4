from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TranscriptMoment(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start_seconds: float = Field(ge=0)
    duration_seconds: float | None = Field(default=None, ge=0)
    text: str
    offset: int = Field(
        ge=0,
        description="Character offset where this moment begins in the transcript text.",
    )


class TranscriptDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    video_id: str | None = None
    text: str
    moments: list[TranscriptMoment] = Field(default_factory=list)
    entity_replacements: int = Field(
        default=0,
        ge=0,
        description="Number of character references decoded while assembling the text.",
    )
