"""Main CLI entry point for transcriptkit."""

import click
from pydantic import ValidationError
from structlog.contextvars import bind_contextvars

from transcriptkit.config import load_settings
from transcriptkit.logging_config import configure_application_logging

from .commands import activity, decode, info, transcript


@click.group()
@click.version_option(version="1.0.0", prog_name="transcriptkit")
@click.pass_context
def main(ctx: click.Context):
    """Render YouTube transcripts, video info and Takeout activity from saved files."""
    try:
        settings = load_settings()
    except ValidationError as exc:
        raise click.UsageError(f"Invalid configuration:\n{exc}") from exc

    configure_application_logging(settings)
    bind_contextvars(command=ctx.invoked_subcommand)
    ctx.obj = settings


main.add_command(decode.decode)
main.add_command(transcript.transcript)
main.add_command(info.info)
main.add_command(activity.activity)


if __name__ == "__main__":
    main()
