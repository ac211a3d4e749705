#!/usr/bin/env python3
"""Command-line interface for redcoder."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from redcoder import create_release_service, create_tracker_client
from redcoder.config import load_settings
from redcoder.exceptions import RedcoderError
from redcoder.models.enums import ReleaseStatus, TargetFormat
from redcoder.models.progress import TranscodeProgress
from redcoder.models.results import ReleaseOutcome, count_by_status
from redcoder.services.tools import check_dependencies

logger = logging.getLogger("redcoder")

# Same console for Progress and RichHandler so logs render above the bars.
PROGRESS_COLUMNS = (
    SpinnerColumn(),
    TextColumn("[progress.description]{task.description}"),
    BarColumn(),
    TaskProgressColumn(),
    TimeElapsedColumn(),
)


def setup_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Configure logging with a Rich handler.

    Clears existing handlers first, so it can be called again to switch to
    a console shared with a progress display.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise INFO.
        console: Optional Console instance for the RichHandler.
    """
    level = logging.DEBUG if verbose else logging.INFO

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = RichHandler(
        rich_tracebacks=True,
        show_path=False,
        console=console,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


class ClickPrompter:
    """Prompter backed by click prompts and rich tables."""

    def __init__(self, console: Console) -> None:
        self._console = console

    def confirm(self, message: str, *, default: bool = True) -> bool:
        return click.confirm(message, default=default)

    def rename(self, folder_name: str, longest: int, limit: int) -> str | None:
        self._console.print(
            f"[red]Folder name {folder_name} is too long for the tracker "
            f"({longest} > {limit} characters), please shorten it[/red]"
        )
        return click.prompt("Folder name", default=folder_name)

    def present(self, title: str, fields: list[tuple[str, str]]) -> None:
        table = Table(
            show_header=False,
            padding=(0, 1),
            title=f"[bold yellow]{title}[/bold yellow]",
            title_justify="left",
        )
        table.add_column("Field", style="bold cyan", width=20)
        table.add_column("Value", overflow="fold")
        for label, value in fields:
            table.add_row(label, value)
        self._console.print()
        self._console.print(table)


class TranscodeProgressDisplay:
    """Per-format progress bars fed by the release service's callback.

    The display starts on the first update of a release and stops once all
    files are done, so prompts that follow are not drawn over.
    """

    def __init__(self, console: Console) -> None:
        self._console = console
        self._progress: Progress | None = None
        self._tasks: dict[TargetFormat, TaskID] = {}

    def __call__(self, update: TranscodeProgress) -> None:
        if self._progress is None:
            self._progress = Progress(*PROGRESS_COLUMNS, console=self._console)
            self._progress.start()
            self._tasks = {}

        fp = update.format_progress
        task = self._tasks.get(fp.target)
        if task is None:
            task = self._progress.add_task(
                f"Transcoding {fp.target.display_name}", total=fp.total
            )
            self._tasks[fp.target] = task
        self._progress.update(task, completed=fp.completed)

        if update.error:
            self._console.print(f"  [red]FAIL[/red] {update.error}")

        if update.current >= update.total:
            self.stop()

    def stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None


def print_summary(console: Console, outcomes: list[ReleaseOutcome]) -> None:
    """Print per-release status and totals."""
    status_icon = {
        ReleaseStatus.SUCCESS: "[green]OK[/green]",
        ReleaseStatus.SKIPPED: "[yellow]SKIP[/yellow]",
        ReleaseStatus.FAILED: "[red]FAIL[/red]",
    }

    console.print()
    console.rule(style="dim")
    console.print("  SUMMARY")
    console.rule(style="dim")
    for outcome in outcomes:
        line = f"  {status_icon[outcome.status]} {outcome.url}"
        if outcome.message:
            line += f" [dim]({outcome.message})[/dim]"
        console.print(line)
        for output in outcome.outputs:
            console.print(f"      [dim]→ {output.path}[/dim]")

    counts = count_by_status(outcomes)
    console.print()
    console.print(
        f"  [green]Done: {counts[ReleaseStatus.SUCCESS]}[/green]  "
        f"[yellow]Skipped: {counts[ReleaseStatus.SKIPPED]}[/yellow]  "
        f"[red]Failed: {counts[ReleaseStatus.FAILED]}[/red]"
    )


def _flag(value: bool) -> bool | None:
    """CLI flags only switch features on; absent flags defer to the config."""
    return True if value else None


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Transcode lossless tracker releases into their missing formats."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose=verbose)


@main.command(name="transcode")
@click.argument("urls", nargs=-1, required=True, metavar="URL...")
@click.option("--api-key", help="Tracker API key.")
@click.option(
    "--content-directory",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding the downloaded source torrents.",
)
@click.option(
    "--transcode-directory",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory transcodes are written to.",
)
@click.option(
    "--torrent-directory",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory .torrent files are written to.",
)
@click.option(
    "--spectrogram-directory",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory spectrograms are written to.",
)
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a redcoder.config.json file.",
)
@click.option(
    "-f",
    "--allowed-transcode-formats",
    "formats",
    multiple=True,
    type=click.Choice([f.value for f in TargetFormat if f != TargetFormat.FLAC24]),
    help="Format to transcode to (repeatable; defaults to all).",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    help="Maximum parallel encoder chains (default: CPU count).",
)
@click.option("-a", "--automatic-upload", is_flag=True, help="Upload automatically.")
@click.option(
    "-m",
    "--move-transcode-to-content",
    is_flag=True,
    help="Move finished transcodes into the content directory to start seeding.",
)
@click.option(
    "--skip-existing-formats-check",
    is_flag=True,
    help="Transcode even if a format already exists (allowed formats still apply).",
)
@click.option(
    "--skip-hash-check",
    is_flag=True,
    help="Skip the hash check of the source torrent (not recommended).",
)
@click.option(
    "--skip-spectrogram",
    is_flag=True,
    help="Skip the spectrogram review (not recommended).",
)
@click.option("-d", "--dry-run", is_flag=True, help="Never upload anything.")
@click.pass_context
def transcode_cmd(
    ctx: click.Context,
    urls: tuple[str, ...],
    api_key: str | None,
    content_directory: Path | None,
    transcode_directory: Path | None,
    torrent_directory: Path | None,
    spectrogram_directory: Path | None,
    config_file: Path | None,
    formats: tuple[str, ...],
    concurrency: int | None,
    automatic_upload: bool,
    move_transcode_to_content: bool,
    skip_existing_formats_check: bool,
    skip_hash_check: bool,
    skip_spectrogram: bool,
    dry_run: bool,
) -> None:
    """Transcode the torrents behind one or more permalinks.

    Each URL must be a permalink including group and torrent id. Values
    given here override the config file, which overrides REDCODER_*
    environment variables.

    \b
    Examples:
      redcoder transcode "https://redacted.sh/torrents.php?id=1&torrentid=2"
      redcoder transcode -f mp3-v0 -f mp3-320 --dry-run URL1 URL2
    """
    console = Console()
    verbose = ctx.obj.get("verbose", False)
    setup_logging(verbose=verbose, console=console)

    display = TranscodeProgressDisplay(console)
    try:
        settings = load_settings(
            config_file,
            api_key=api_key,
            content_directory=content_directory,
            transcode_directory=transcode_directory,
            torrent_directory=torrent_directory,
            spectrogram_directory=spectrogram_directory,
            allowed_transcode_formats=list(formats),
            concurrency=concurrency,
            automatic_upload=_flag(automatic_upload),
            move_transcode_to_content=_flag(move_transcode_to_content),
            skip_existing_formats_check=_flag(skip_existing_formats_check),
            skip_hash_check=_flag(skip_hash_check),
            skip_spectrogram=_flag(skip_spectrogram),
            dry_run=_flag(dry_run),
        )
        check_dependencies()

        with create_tracker_client(settings) as client:
            service = create_release_service(
                settings,
                client,
                prompter=ClickPrompter(console),
                on_progress=display,
            )
            outcomes = service.transcode_all(urls)
    except RedcoderError as e:
        logger.error(str(e))
        error = click.ClickException(str(e))
        error.exit_code = e.exit_code
        raise error from e
    finally:
        display.stop()

    print_summary(console, outcomes)
    if any(o.status == ReleaseStatus.FAILED for o in outcomes):
        ctx.exit(1)


if __name__ == "__main__":
    main()
