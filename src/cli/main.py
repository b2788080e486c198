"""Typer application behind the wiki-sync console script.

Everything is an option of a single command: one sync cycle by default,
--watch for a scheduled loop, --status for a report, plus operator controls
for strategies, manual holds and the cache.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer

from src.cli.models import ExitCode
from src.cli.output import OutputHandler
from src.cli.sync_command import SyncCommand
from src.config import ConfigLoader

app = typer.Typer(
    name="wiki-sync",
    help="""Keep a wiki available offline and in sync with its remote store.

QUICK START:
  wiki-sync                              # Run one sync cycle
  wiki-sync --watch --interval 15        # Sync every 15 minutes until Ctrl+C
  wiki-sync --status                     # Show status and recent events
  wiki-sync --strategy welcome=merge     # Merge conflicts on page 'welcome'
  wiki-sync --clear-hold faq             # Release a conflict held for review""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=False,
)

logger = logging.getLogger(__name__)


_LEVELS = {0: logging.WARNING, 1: logging.INFO}
_CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Attach handlers to the 'src' logger for the requested verbosity.

    Third-party loggers and the root logger keep their own settings.

    Args:
        verbosity: 0 shows warnings, 1 adds info, 2 or more adds debug
        logdir: Also write a per-run log file into this directory
    """
    level = _LEVELS.get(verbosity, logging.DEBUG)
    sync_logger = logging.getLogger("src")
    sync_logger.setLevel(level)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
    sync_logger.addHandler(stderr_handler)

    if not logdir:
        return

    directory = Path(logdir)
    directory.mkdir(parents=True, exist_ok=True)
    run_log = directory / f"wiki-sync_{datetime.now():%Y%m%d_%H%M%S}.log"
    run_handler = logging.FileHandler(run_log, encoding="utf-8")
    run_handler.setLevel(level)
    run_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
    sync_logger.addHandler(run_handler)
    logger.info(f"Writing log file {run_log}")


@app.command()
def main_command(
    watch: bool = typer.Option(
        False,
        "--watch",
        "-w",
        help="Keep running and sync on a schedule until interrupted",
    ),
    status: bool = typer.Option(
        False,
        "--status",
        help="Show sync status, statistics and recent events",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Minutes between scheduled sync cycles",
        metavar="MINUTES",
    ),
    clear_hold: Optional[List[str]] = typer.Option(
        None,
        "--clear-hold",
        help="Release an item held for manual resolution (can be used multiple times)",
        metavar="ID",
    ),
    strategy: Optional[List[str]] = typer.Option(
        None,
        "--strategy",
        help="Conflict strategy for an item: local-wins, remote-wins, merge or manual "
             "(can be used multiple times)",
        metavar="ID=STRATEGY",
    ),
    clear_cache: bool = typer.Option(
        False,
        "--clear-cache",
        help="Empty the local cache (refused while local changes are pending)",
    ),
    config: str = typer.Option(
        ConfigLoader.default_path(),
        "--config",
        "-c",
        help="Path to the configuration file",
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Also write a timestamped log file into this directory",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="0 prints the summary only, 1 adds progress, 2 adds debug detail",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Plain output without colors",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Print the version and exit",
    ),
) -> None:
    """Keep a wiki available offline and in sync with its remote store.

    \b
    QUICK START:
      wiki-sync                              # Run one sync cycle
      wiki-sync --watch --interval 15        # Sync every 15 minutes until Ctrl+C
      wiki-sync --status                     # Show status and recent events

    \b
    CONFLICTS:
      # Choose how conflicts on one page or category are resolved
      wiki-sync --strategy welcome=merge --strategy guides=local-wins

      # Release an item held for manual resolution
      wiki-sync --clear-hold faq

    NOTE:
      - Items without a strategy use the configured default (remote-wins)
      - Credentials are read from the environment or a .env file
    """
    if version:
        typer.echo("wiki-sync version 0.1.0")
        raise typer.Exit()

    if watch and status:
        typer.echo("Error: --watch and --status cannot be combined", err=True)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    _configure_logging(verbosity, logdir)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    sync_cmd = SyncCommand(config_path=config, output_handler=output)
    exit_code = sync_cmd.run(
        watch=watch,
        status=status,
        interval=interval,
        clear_holds=clear_hold,
        strategies=strategy,
        clear_cache=clear_cache,
    )

    raise typer.Exit(exit_code)


def main() -> None:
    """Console script entry point (wiki-sync)."""
    app()


if __name__ == "__main__":
    main()
