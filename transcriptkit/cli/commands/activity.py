"""Takeout activity command."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from transcriptkit.config import AppSettings
from transcriptkit.services.activity_service import ActivityServiceError, load_activity

console = Console()

_LINK_LABELS = {
    "video": ("Video", "ID"),
    "post": ("Post", "ID"),
    "channel": ("Channel", "ID"),
    "playlist": ("Playlist", "ID"),
    "search": ("Search", "Query"),
}


@click.command()
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--limit",
    type=click.IntRange(min=0),
    default=None,
    help="Number of sample activities to print (defaults to the configured sample size).",
)
@click.option("--json", "as_json", is_flag=True, help="Print every activity as JSON.")
@click.pass_obj
def activity(settings: AppSettings, path: Path, limit: int | None, as_json: bool):
    """Parse YouTube history from a Takeout MyActivity.html file.

    The file lives at Takeout/My Activity/YouTube/MyActivity.html in the export.
    """
    resolved_path = path if path.is_absolute() else Path.cwd() / path
    try:
        activities = load_activity(resolved_path)
    except ActivityServiceError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        payload = [record.model_dump(mode="json") for record in activities]
        click.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    console.print(f"Found {len(activities)} activities")

    sample_size = settings.activity_sample_size if limit is None else limit
    for index, record in enumerate(activities[:sample_size], start=1):
        link_type, value_label = _LINK_LABELS[record.link.kind]
        console.print(f"\n[bold]Activity {index}:[/bold]")
        console.print(f"Action: {escape(record.action.value)}", soft_wrap=True)
        console.print(f"Title: {escape(record.title)}", soft_wrap=True)
        console.print(f"Type: {link_type}")
        console.print(f"{value_label}: {escape(record.link.value)}", soft_wrap=True)
        console.print(f"URL: {escape(record.link.url)}", soft_wrap=True, highlight=False)
        console.print(f"Time: {record.timestamp.isoformat()}", highlight=False)
