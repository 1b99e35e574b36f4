"""Transcript rendering command."""

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from transcriptkit.config import AppSettings
from transcriptkit.services.transcript_service import (
    TranscriptServiceError,
    extract_video_id,
    format_timestamp,
    load_transcript,
)

console = Console()


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--video-id", "video", help="YouTube video URL or ID the captions belong to.")
@click.option("--json", "as_json", is_flag=True, help="Print the transcript as JSON.")
@click.pass_obj
def transcript(settings: AppSettings, path: Path, video: str | None, as_json: bool):
    """Render a saved YouTube caption file (timedtext or srv3 XML)."""
    video_id = extract_video_id(video)
    if video is not None and video_id is None:
        raise click.BadParameter(f"Not a YouTube video URL or ID: {video}", param_hint="--video-id")

    try:
        document = load_transcript(
            path,
            video_id=video_id,
            separator=settings.transcript_separator,
        )
    except TranscriptServiceError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(document.model_dump_json(indent=2))
        return

    for moment in document.moments:
        console.print(
            f"[cyan]\\[{format_timestamp(moment.start_seconds)}][/cyan] {escape(moment.text)}",
            soft_wrap=True,
        )
