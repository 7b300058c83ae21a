"""CLI commands for msg2eml."""

import logging
from pathlib import Path

import click

from msg2eml import __version__
from msg2eml.batch.processor import BatchProcessor
from msg2eml.core.constants import DEFAULT_WORKERS
from msg2eml.core.converter import MSGToEMLConverter
from msg2eml.core.exceptions import BatchProcessingError, MSG2EMLError


@click.group()
@click.version_option(version=__version__, prog_name="msg2eml")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """Convert Outlook MSG files to EML."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("msg_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Output directory (default: same as input file)",
)
def convert(msg_file: Path, output: Path | None):
    """Convert a single MSG file to EML.

    Embedded messages are converted too and attached as message/rfc822 parts.

    Example:
        msg2eml convert email.msg -o ./output/
    """
    # Default output to same directory as input
    if output is None:
        output = msg_file.parent

    converter = MSGToEMLConverter()

    try:
        eml_path = converter.convert_file(msg_file, output)
        click.echo(f"✓ Created: {eml_path}")

    except MSG2EMLError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise SystemExit(1)


@cli.command()
@click.argument("input_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output directory for EML files",
)
@click.option(
    "-r",
    "--recursive",
    is_flag=True,
    help="Search subdirectories for MSG files",
)
@click.option(
    "-w",
    "--workers",
    type=int,
    default=DEFAULT_WORKERS,
    help=f"Number of concurrent workers (default: {DEFAULT_WORKERS})",
)
def batch(input_dir: Path, output: Path, recursive: bool, workers: int):
    """Batch convert MSG files in a directory to EML.

    Example:
        msg2eml batch ./emails/ -o ./eml/ --recursive --workers 4
    """
    processor = BatchProcessor(max_workers=workers)

    msg_files = processor.find_msg_files(input_dir, recursive=recursive)

    if not msg_files:
        click.echo(f"No MSG files found in {input_dir}")
        return

    click.echo(f"Found {len(msg_files)} MSG file(s)")

    with click.progressbar(
        length=len(msg_files),
        label="Converting",
        show_pos=True,
    ) as progress:

        def on_progress(file: Path, success: bool, error: str | None):
            progress.update(1)

        result = processor.process(msg_files, output, progress_callback=on_progress)

    click.echo()
    click.echo(f"Completed: {result.success_count}/{result.total} successful")

    try:
        result.raise_for_failures()
    except BatchProcessingError as e:
        click.echo()
        click.echo("Failed files:")
        for file_path, error in e.failed_files:
            click.echo(f"  ✗ {Path(file_path).name}: {error}")
        raise SystemExit(1)


@cli.command()
@click.argument("msg_file", type=click.Path(exists=True, path_type=Path))
def info(msg_file: Path):
    """Display information about an MSG file without converting.

    Example:
        msg2eml info email.msg
    """
    converter = MSGToEMLConverter()

    try:
        parsed = converter.parse(msg_file.read_bytes())
    except MSG2EMLError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Subject:  {parsed.subject}")
    click.echo(f"From:     {parsed.from_}")
    if parsed.sender:
        click.echo(f"Sender:   {parsed.sender}")
    for label, recipients in (("To:", parsed.to), ("Cc:", parsed.cc), ("Bcc:", parsed.bcc)):
        if recipients:
            click.echo(f"{label:<10}{', '.join(r.email for r in recipients)}")
    click.echo(f"Date:     {parsed.date:%Y-%m-%d %H:%M:%S %Z}")
    headers = parsed.headers
    if headers is not None and headers.received_by_email:
        received_by = headers.received_by_email
        if headers.received_by_name:
            received_by = f"{headers.received_by_name} <{received_by}>"
        click.echo(f"Received: {received_by}")
    click.echo()

    if parsed.body_html:
        click.echo(f"Body:     HTML ({len(parsed.body_html):,} chars)")
    elif parsed.body:
        click.echo(f"Body:     Plain text ({len(parsed.body):,} chars)")
    else:
        click.echo("Body:     (empty)")

    if parsed.calendar_event:
        event = parsed.calendar_event
        click.echo(f"Meeting:  {event.start_time:%Y-%m-%d %H:%M} to {event.end_time:%Y-%m-%d %H:%M}")

    if parsed.attachments:
        click.echo()
        click.echo(f"Attachments ({len(parsed.attachments)}):")
        for att in parsed.attachments:
            inline_marker = " [inline]" if att.is_inline else ""
            msg_marker = " [embedded message]" if att.is_embedded_message else ""
            click.echo(f"  • {att.filename} ({att.size_display}){inline_marker}{msg_marker}")


if __name__ == "__main__":
    cli()
