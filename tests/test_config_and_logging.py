from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from transcriptkit.config import load_settings
from transcriptkit.logging_config import LOG_FILE_NAME, configure_application_logging


def test_defaults_live_under_data_dir(tmp_path: Path) -> None:
    settings = load_settings()

    assert settings.log_level == "WARNING"
    assert settings.file_logging_enabled is False
    assert settings.activity_sample_size == 3
    assert settings.transcript_separator == "\n"
    assert settings.data_dir == (tmp_path / ".transcriptkit").resolve()
    assert settings.log_dir == settings.data_dir / "logs"


def test_environment_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRANSCRIPTKIT_DATA_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("TRANSCRIPTKIT_LOG_LEVEL", " debug ")
    monkeypatch.setenv("TRANSCRIPTKIT_FILE_LOGGING_ENABLED", "yes")
    monkeypatch.setenv("TRANSCRIPTKIT_TRANSCRIPT_SEPARATOR", "\\n\\n")

    settings = load_settings()

    assert settings.log_level == "DEBUG"
    assert settings.file_logging_enabled is True
    assert settings.transcript_separator == "\n\n"
    assert settings.log_dir == (tmp_path / "state" / "logs").resolve()


def test_unrecognized_boolean_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRANSCRIPTKIT_FILE_LOGGING_ENABLED", "maybe")

    assert load_settings().file_logging_enabled is False


def test_yaml_config_file_is_read_below_environment(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "activity_sample_size: 5\ntranscript_separator: ' / '\nlog_level: info\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("TRANSCRIPTKIT_CONFIG_FILE", str(config_file))
    monkeypatch.setenv("TRANSCRIPTKIT_LOG_LEVEL", "error")

    settings = load_settings()

    assert settings.activity_sample_size == 5
    assert settings.transcript_separator == " / "
    assert settings.log_level == "ERROR"


@pytest.mark.parametrize("separator", ["&", "a;b", "", "#", "x", " - 1 "])
def test_separator_that_can_complete_a_reference_is_rejected(
    separator: str,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("TRANSCRIPTKIT_TRANSCRIPT_SEPARATOR", separator)

    with pytest.raises(ValidationError):
        load_settings()


def test_explicit_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRANSCRIPTKIT_ACTIVITY_SAMPLE_SIZE", "9")

    assert load_settings(activity_sample_size=1).activity_sample_size == 1
    with pytest.raises(ValidationError):
        load_settings(activity_sample_size=-1)


def test_console_only_logging_by_default() -> None:
    log_file = configure_application_logging(load_settings())

    logger = logging.getLogger("transcriptkit")
    assert log_file is None
    assert logger.propagate is False
    assert len(logger.handlers) == 1
    assert logger.handlers[0].level == logging.WARNING


def test_file_logging_writes_json_lines(tmp_path: Path) -> None:
    settings = load_settings(data_dir=tmp_path / "data", file_logging_enabled=True)

    log_file = configure_application_logging(settings)
    logging.getLogger("transcriptkit.transcript").info(
        "transcript assembled video_id=%s moments=%s", "abc", 3
    )
    for handler in logging.getLogger("transcriptkit").handlers:
        handler.flush()

    assert log_file is not None
    assert log_file == settings.log_dir / LOG_FILE_NAME
    entries = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert entries[0]["event"].startswith("logging configured")
    assembled = entries[-1]
    assert assembled["event"] == "transcript assembled video_id=abc moments=3"
    assert assembled["level"] == "info"
    assert assembled["logger"] == "transcriptkit.transcript"
    assert "timestamp" in assembled
    assert assembled["func_name"] == "test_file_logging_writes_json_lines"


def test_reconfiguring_replaces_handlers() -> None:
    settings = load_settings()
    configure_application_logging(settings)
    configure_application_logging(settings)

    assert len(logging.getLogger("transcriptkit").handlers) == 1
