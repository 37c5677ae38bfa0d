"""CLI entry point for session-share.

Converts a conversation transcript into normalized messages and prints them,
writes them to a file, or uploads them for a share link:
    session-share [FILE]
    session-share list
    session-share statusline
"""

import json
import sys
from pathlib import Path
from typing import NoReturn

import click
from click_default_group import DefaultGroup

from session_share.config import Config, load_config
from session_share.converter.records import TranscriptDecodeError
from session_share.logging import get_logger, resolve_level, setup_logging
from session_share.models import NormalizedMessage, messages_to_json
from session_share.providers import Provider, ProviderRegistry, UnknownProviderError
from session_share.statusline import render_status_line
from session_share.uploader import UploadError, upload_messages

logger = get_logger("cli")


def fail(message: str) -> NoReturn:
    """Report a fatal error on stderr and exit with status 1."""
    logger.error(message)
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def get_provider(config: Config, name: str | None) -> Provider:
    try:
        provider = ProviderRegistry.get(name or config.provider)
    except UnknownProviderError as e:
        fail(str(e))
    return provider.with_settings(config.providers.get(provider.name))


def read_content(file: Path | None) -> str:
    """Read a transcript from ``file``, or from stdin when no file is given."""
    if file is None:
        return click.get_text_stream("stdin").read()
    try:
        return file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        fail(f"Error reading file: {file}: {e}")


def convert(provider: Provider, content: str) -> list[NormalizedMessage]:
    try:
        return provider.convert_to_messages(content)
    except TranscriptDecodeError as e:
        fail(f"Error processing content: {e}")


@click.group(cls=DefaultGroup, default="share", default_if_no_args=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Turn coding assistant conversations into shareable links."""
    config = load_config()
    setup_logging(
        "share",
        log_dir=config.logging.log_dir,
        level=resolve_level(config.logging.level),
        console=False,
    )
    ctx.obj = config


@cli.command()
@click.argument("file", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--provider", "-p", "provider_name", help="Provider of the transcript (default: claude)")
@click.option("--upload", is_flag=True, help="Upload and print a share link instead of JSON")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the JSON to a file")
@click.option("--latest", is_flag=True, help="Use the most recent conversation of the provider")
@click.pass_obj
def share(
    config: Config,
    file: Path | None,
    provider_name: str | None,
    upload: bool,
    output: Path | None,
    latest: bool,
) -> None:
    """Convert FILE (or stdin) into normalized messages."""
    provider = get_provider(config, provider_name)

    if latest and file is None:
        conversations = provider.list_conversations()
        if not conversations:
            fail(f"No {provider.display_name} conversations found.")
        file = Path(conversations[0].path)
        click.echo(f"Using {file}", err=True)

    messages = convert(provider, read_content(file))

    if upload:
        try:
            link = upload_messages(messages, provider.name, config.upload)
        except UploadError as e:
            fail(f"Failed to upload: {e}")
        click.echo(f"Share link: {link}")
        return

    text = messages_to_json(messages)
    if output is not None:
        try:
            output.write_text(text + "\n", encoding="utf-8")
        except OSError as e:
            fail(f"Error writing file: {output}: {e}")
        click.echo(f"Wrote {len(messages)} messages to {output}", err=True)
    else:
        click.echo(text)


@cli.command(name="list")
@click.option("--provider", "-p", "provider_name", help="Provider to scan (default: claude)")
@click.option("--limit", "-n", default=10, help="Number of conversations")
@click.pass_obj
def list_conversations(config: Config, provider_name: str | None, limit: int) -> None:
    """List recent conversations."""
    provider = get_provider(config, provider_name)
    conversations = provider.list_conversations()
    if not conversations:
        fail(f"No {provider.display_name} conversations found.")

    for conversation in conversations[:limit]:
        click.echo(f"\033[36m[{conversation.mtime:%Y-%m-%d %H:%M:%S}]\033[0m {conversation.title}")
        click.echo(f"  {conversation.path}")


@cli.command()
@click.option("--provider", "-p", "provider_name", help="Provider of the transcript (default: claude)")
@click.pass_obj
def statusline(config: Config, provider_name: str | None) -> None:
    """Print a status line for the JSON status object on stdin."""
    try:
        data = json.loads(click.get_text_stream("stdin").read())
    except json.JSONDecodeError as e:
        fail(f"Invalid status JSON: {e}")
    if not isinstance(data, dict):
        fail("Invalid status JSON: expected an object")

    provider = get_provider(config, provider_name)
    line = render_status_line(
        data,
        provider,
        upload=lambda messages, name: upload_messages(messages, name, config.upload),
    )
    if line:
        click.echo(line)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
