"""Entity decoding command."""

import json
from pathlib import Path

import click

from transcriptkit.text.entity_decoder import decode_with_offsets


@click.command()
@click.argument("text", required=False)
@click.option(
    "--file",
    "file_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read the text to decode from a file.",
)
@click.option("--offsets", is_flag=True, help="Print the replaced spans as JSON.")
def decode(text: str | None, file_path: Path | None, offsets: bool):
    """Decode HTML/XML character references in TEXT, a file, or stdin."""
    if text is not None and file_path is not None:
        raise click.UsageError("Pass either TEXT or --file, not both.")

    if file_path is not None:
        try:
            source = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise click.ClickException(f"Could not read {file_path}: {exc}") from exc
    elif text is not None:
        source = text
    else:
        source = click.get_text_stream("stdin").read()

    result = decode_with_offsets(source)
    if not offsets:
        click.echo(result.text, nl=False)
        return

    payload = {
        "text": result.text,
        "spans": [
            {"start": span.start, "end": span.end, "decoded_length": span.decoded_length}
            for span in result.spans
        ],
    }
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2))
