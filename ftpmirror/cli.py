"""CLI interface for ftpmirror."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

import click
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TransferSpeedColumn,
)

from . import __version__
from .config import SyncConfig, load_config, merge_options
from .exceptions import ConfigError, FtpMirrorError, SyncCancelledError, SyncError
from .output import OutputFormatter
from .sync.engine import SyncEngine
from .sync.modes import Direction
from .sync.status import SyncPhase, SyncStatus

logger = logging.getLogger(__name__)

# Seconds between status polls while a sync runs in the background
POLL_INTERVAL = 0.1

_PHASE_DESCRIPTIONS = {
    SyncPhase.IDLE: "Starting...",
    SyncPhase.SETUP: "Connecting...",
    SyncPhase.COLLECT: "Scanning local and remote trees...",
    SyncPhase.CONSOLIDATE: "Comparing trees...",
    SyncPhase.COMMIT: "Syncing",
    SyncPhase.DONE: "Sync complete",
    SyncPhase.FAILED: "Sync failed",
}


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__, prog_name="ftpmirror")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """ftpmirror - Mirror a local directory to an FTP server and back."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("ftpmirror").setLevel(logging.DEBUG)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument("local", required=False, type=click.Path(file_okay=False))
@click.argument("remote", required=False)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON config file",
)
@click.option("--host", "-H", envvar="FTPMIRROR_HOST", help="FTP server hostname")
@click.option("--port", "-P", type=int, default=None, help="FTP port (default: 21)")
@click.option("--user", "-u", envvar="FTPMIRROR_USER", help="FTP user")
@click.option(
    "--password",
    "-p",
    envvar="FTPMIRROR_PASSWORD",
    help="FTP password (or set FTPMIRROR_PASSWORD)",
)
@click.option(
    "--direction",
    "-d",
    default=None,
    help="localToRemote (l2r, upload) or remoteToLocal (r2l, download)",
)
@click.option(
    "--ignore",
    "-i",
    multiple=True,
    help="Glob pattern to exclude on both sides (repeatable)",
)
@click.option(
    "--connections",
    "-j",
    type=int,
    default=None,
    help="Number of parallel operations (default: 1)",
)
@click.option(
    "--retry-limit",
    type=int,
    default=None,
    help="Retries for operations failing with a connection error (default: 3)",
)
@click.option(
    "--mtime-tolerance",
    type=float,
    default=None,
    help="Seconds a file must be newer by to be updated (default: 60)",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be done without syncing"
)
@click.pass_context
def sync(
    ctx: Any,
    local: Optional[str],
    remote: Optional[str],
    config_path: Optional[str],
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    direction: Optional[str],
    ignore: tuple[str, ...],
    connections: Optional[int],
    retry_limit: Optional[int],
    mtime_tolerance: Optional[float],
    dry_run: bool,
) -> None:
    """Mirror LOCAL to REMOTE (or REMOTE to LOCAL).

    LOCAL: Local directory (default: current directory)

    REMOTE: Remote directory (default: /)

    Examples:

        ftpmirror sync ./site /www --host ftp.example.com --user deploy

        ftpmirror sync ./backup /data -H ftp.example.com -d r2l --dry-run

        ftpmirror sync --config mirror.json -i "*.tmp" -i .git
    """
    out: OutputFormatter = ctx.obj["out"]
    verbose: bool = ctx.obj.get("verbose", False)

    try:
        base: Optional[SyncConfig] = load_config(config_path) if config_path else None
        config = merge_options(
            base,
            local=local,
            remote=remote,
            host=host,
            port=port,
            user=user,
            password=password,
            direction=direction,
            ignore=list(ignore) if ignore else None,
            connections=connections,
            retry_limit=retry_limit,
            mtime_tolerance=mtime_tolerance,
            verbose=True if verbose else None,
        )
        sync_direction = Direction.from_string(config.direction)
    except (ConfigError, ValueError) as e:
        out.error(str(e))
        ctx.exit(1)

    if not config.connection.host:
        out.error("No FTP host given (use --host, FTPMIRROR_HOST or a config file)")
        ctx.exit(1)

    arrow = "->" if sync_direction == Direction.LOCAL_TO_REMOTE else "<-"
    out.info(
        f"Syncing: {config.local} {arrow} "
        f"{config.connection.host}:{config.remote}"
    )
    if dry_run:
        out.info("Dry run: No changes will be made")

    with SyncEngine(config, sync_direction) as engine:
        try:
            if dry_run:
                engine.setup()
                engine.collect()
                plan = engine.consolidate()
                out.print_plan(plan, verbose=verbose)
                return

            status = run_with_progress(engine, out)
            out.print_summary(status)
        except SyncCancelledError:
            out.warning("Sync cancelled by user")
            ctx.exit(130)  # Standard exit code for SIGINT
        except SyncError as e:
            out.error(f"{e.phase.capitalize()} failed: {e.message}")
            ctx.exit(1)
        except FtpMirrorError as e:
            out.error(str(e))
            ctx.exit(1)


def run_with_progress(engine: SyncEngine, out: OutputFormatter) -> SyncStatus:
    """Run the engine on a background thread while rendering its status.

    Ctrl+C cancels the run: in-flight operations finish, nothing new starts,
    and the resulting SyncCancelledError propagates.

    Args:
        engine: Engine to run
        out: Output formatter (no progress bar in quiet or JSON mode)

    Returns:
        Final SyncStatus
    """
    with ThreadPoolExecutor(
        max_workers=1, thread_name_prefix="ftpmirror-run"
    ) as executor:
        future = executor.submit(engine.run)
        try:
            if out.quiet or out.json_output:
                while not future.done():
                    time.sleep(POLL_INTERVAL)
            else:
                _render_progress(engine, future)
        except KeyboardInterrupt:
            out.warning("Cancelling, waiting for running operations to finish...")
            engine.cancel()
        return future.result()


def _render_progress(engine: SyncEngine, future: Any) -> None:
    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeElapsedColumn(),
        transient=True,
    ) as progress:
        task = progress.add_task(_PHASE_DESCRIPTIONS[SyncPhase.IDLE], total=None)
        while True:
            done = future.done()
            status = engine.get_status()
            _update_task(progress, task, status)
            if done:
                break
            time.sleep(POLL_INTERVAL)


def _update_task(progress: Progress, task: Any, status: SyncStatus) -> None:
    description = _PHASE_DESCRIPTIONS[status.phase]
    if status.phase == SyncPhase.COMMIT:
        description = f"Syncing {status.change_count} change(s)"
    # Indeterminate until the plan says how much will be transferred
    total = status.transfer_size if status.transfer_size > 0 else None
    progress.update(
        task,
        description=description,
        total=total,
        completed=status.transferred_size,
    )


if __name__ == "__main__":
    main()
