"""Video info command."""

import json
from pathlib import Path

import click

from transcriptkit.config import AppSettings
from transcriptkit.services.transcript_service import TranscriptServiceError, load_transcript
from transcriptkit.services.video_info_service import VideoInfoError, load_video_info


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--transcript",
    "transcript_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Saved caption file to include as the transcript.",
)
@click.pass_obj
def info(settings: AppSettings, path: Path, transcript_path: Path | None):
    """Print information about a video from a saved watch page."""
    try:
        video_info = load_video_info(path)
        if transcript_path is not None:
            document = load_transcript(
                transcript_path,
                video_id=video_info.video_id,
                separator=settings.transcript_separator,
            )
            video_info = video_info.model_copy(update={"transcript": document})
    except (VideoInfoError, TranscriptServiceError) as exc:
        raise click.ClickException(str(exc)) from exc

    payload = video_info.model_dump(mode="json")
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True))
