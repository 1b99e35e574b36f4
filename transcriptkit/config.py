from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from transcriptkit.text.entity_decoder import breaks_references

DEFAULT_DATA_DIR = Path(".transcriptkit")
CONFIG_FILE_ENV_VAR = "TRANSCRIPTKIT_CONFIG_FILE"
LOG_SUBDIR = "logs"

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


def default_config_file() -> Path:
    override = os.environ.get(CONFIG_FILE_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "transcriptkit" / "config.yaml"


def _absolute(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _coerce_flag(value: Any, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return default


class AppSettings(BaseSettings):
    """
    Runtime configuration for the CLI and services.

    Values come from (highest priority first) explicit arguments,
    `TRANSCRIPTKIT_*` environment variables, `.env`, and the YAML config file
    at `~/.config/transcriptkit/config.yaml` (or `$TRANSCRIPTKIT_CONFIG_FILE`).
    """

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIPTKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    data_dir: Path = Field(
        default=DEFAULT_DATA_DIR,
        description="Base directory for runtime files such as logs.",
    )

    # Logging.
    log_dir: Path = Field(
        default=DEFAULT_DATA_DIR / LOG_SUBDIR,
        description="Directory for log files. Follows `data_dir` unless set explicitly.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Console log level (stderr).",
    )
    file_logging_enabled: bool = Field(
        default=False,
        description="Also write JSON log lines to `transcriptkit.log` under `log_dir`.",
    )

    # Rendering.
    activity_sample_size: int = Field(
        default=3,
        ge=0,
        le=1000,
        description="Number of activity records printed by `transcriptkit activity`.",
    )
    transcript_separator: str = Field(
        default="\n",
        description="Text placed between caption cues when a transcript is assembled.",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=default_config_file()),
            file_secret_settings,
        )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("TRANSCRIPTKIT_LOG_LEVEL must be a non-empty string.")
        return value.strip().upper()

    @field_validator("transcript_separator", mode="before")
    @classmethod
    def _validate_transcript_separator(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("TRANSCRIPTKIT_TRANSCRIPT_SEPARATOR must be a string.")
        # Raw env values cannot carry a literal newline.
        separator = value.replace("\\n", "\n").replace("\\t", "\t")
        if not breaks_references(separator):
            raise ValueError(
                "TRANSCRIPTKIT_TRANSCRIPT_SEPARATOR must be non-empty and must not contain "
                "ASCII letters, digits, `&`, `#` or `;`."
            )
        return separator

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def _make_absolute(cls, value: Any) -> Any:
        if isinstance(value, (str, Path)):
            return _absolute(value)
        return value

    @field_validator("file_logging_enabled", mode="before")
    @classmethod
    def _coerce_file_logging(cls, value: Any) -> bool:
        return _coerce_flag(value, default=False)


def load_settings(**overrides: Any) -> AppSettings:
    settings = AppSettings(**overrides)
    data_dir = _absolute(settings.data_dir)
    if "log_dir" in settings.model_fields_set:
        log_dir = _absolute(settings.log_dir)
    else:
        log_dir = data_dir / LOG_SUBDIR
    return settings.model_copy(update={"data_dir": data_dir, "log_dir": log_dir})
