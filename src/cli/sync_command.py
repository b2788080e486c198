"""Sync command orchestration for CLI.

This module provides the SyncCommand class that drives the sync engine from
the command line: one cycle (default), a scheduled loop (--watch), a status
report (--status), and operator controls for manual holds, per-item
strategies and the local cache.
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional, Tuple

from src.cli.errors import (
    CLIError,
    ConfigNotFoundError,
    InvalidOptionError,
    PendingChangesError,
)
from src.cli.models import ExitCode
from src.cli.output import OutputHandler
from src.config import ConfigLoader, ConfigLoaderError, SyncConfig
from src.remote_store import (
    RateLimitedError,
    RemoteAuthError,
    SyncError,
    TransientNetworkError,
)
from src.remote_store.transport import DocumentTransport
from src.sync_engine.context import SyncContext, build_context
from src.sync_engine.errors import UnknownStrategyError
from src.sync_engine.models import CycleReport, Strategy

logger = logging.getLogger(__name__)

NETWORK_ERRORS = (TransientNetworkError, RateLimitedError)


class SyncCommand:
    """Runs the sync engine for one CLI invocation.

    The workflow:
        1. Load configuration and build the engine context
        2. Apply operator controls (strategies, cleared holds, cache reset)
        3. Report status, run one cycle, or schedule cycles until interrupted
        4. Return an exit code describing the outcome

    Example:
        >>> output = OutputHandler(verbosity=1)
        >>> sync_cmd = SyncCommand(output_handler=output)
        >>> exit_code = sync_cmd.run()
        >>> sys.exit(exit_code)
    """

    def __init__(
        self,
        config_path: str = ".wiki-sync/config.yaml",
        output_handler: Optional[OutputHandler] = None,
        context: Optional[SyncContext] = None,
        transport: Optional[DocumentTransport] = None,
    ):
        """Initialize sync command with dependencies.

        Args:
            config_path: Path to configuration YAML file
            output_handler: OutputHandler for terminal output (optional)
            context: Prebuilt engine context (optional, mainly for tests)
            transport: Backend adapter overriding the configured one (optional)
        """
        self.config_path = config_path
        self.output_handler = output_handler or OutputHandler()
        self.context = context
        self.transport = transport
        self.stop_event = threading.Event()

    def run(
        self,
        watch: bool = False,
        status: bool = False,
        interval: Optional[float] = None,
        clear_holds: Optional[List[str]] = None,
        strategies: Optional[List[str]] = None,
        clear_cache: bool = False,
    ) -> ExitCode:
        """Execute the requested operation.

        This is the main entry point. It translates exceptions to the
        appropriate exit codes.

        Args:
            watch: Schedule recurring cycles until interrupted
            status: Print the sync status instead of syncing
            interval: Minutes between cycles (overrides the configuration)
            clear_holds: Item ids to release from manual resolution
            strategies: "ID=STRATEGY" assignments to persist
            clear_cache: Empty the local cache before anything else

        Returns:
            ExitCode indicating success or specific failure type
        """
        try:
            config = self._load_config()
            if interval is not None and interval <= 0:
                raise InvalidOptionError("--interval", str(interval), "must be positive")

            assignments = [_parse_assignment(value) for value in strategies or []]
            if assignments:
                self._save_strategies(config, assignments)

            if self.context is None:
                self.context = build_context(config, transport=self.transport)
            context = self.context

            for item_id, strategy in assignments:
                context.orchestrator.set_strategy(item_id, strategy)
                self.output_handler.success(f"Strategy for '{item_id}' set to {strategy.value}")

            for item_id in clear_holds or []:
                if context.orchestrator.clear_manual_hold(item_id):
                    self.output_handler.success(f"Cleared manual hold on '{item_id}'")
                else:
                    self.output_handler.warning(f"No manual hold on '{item_id}'")

            if clear_cache:
                self._clear_cache(context)

            if status:
                return self._show_status(context)

            if watch:
                return self._run_watch(context, interval)

            if interval is not None:
                context.orchestrator.update_interval(interval)

            if assignments or clear_holds or clear_cache:
                # Operator controls alone do not trigger a cycle
                return ExitCode.SUCCESS

            return self._run_once(context)

        except RemoteAuthError as e:
            logger.error(f"Authentication failed: {e}")
            self.output_handler.error(f"Authentication failed: {e}")
            self.output_handler.info(
                "Check the credentials in your environment or .env file"
            )
            return ExitCode.AUTH_ERROR

        except NETWORK_ERRORS as e:
            logger.error(f"Remote store error: {e}")
            self.output_handler.error(f"Remote store error: {e}")
            self.output_handler.info("Check your internet connection and try again")
            return ExitCode.NETWORK_ERROR

        except (ConfigLoaderError, ConfigNotFoundError) as e:
            logger.error(f"Configuration error: {e}")
            self.output_handler.error(f"Configuration error: {e}")
            return ExitCode.GENERAL_ERROR

        except CLIError as e:
            logger.error(f"CLI error: {e}")
            self.output_handler.error(f"Error: {e}")
            return ExitCode.GENERAL_ERROR

        except SyncError as e:
            logger.error(f"Sync error: {e}")
            self.output_handler.error(f"Error: {e}")
            return ExitCode.GENERAL_ERROR

        except Exception as e:
            logger.exception("Unexpected error during sync")
            self.output_handler.error(f"Unexpected error: {e}")
            return ExitCode.GENERAL_ERROR

    def _load_config(self) -> SyncConfig:
        if self.context is not None:
            return self.context.config
        logger.info(f"Loading configuration from {self.config_path}")
        if not Path(self.config_path).exists():
            self._print_getting_started()
            raise ConfigNotFoundError(self.config_path)
        return ConfigLoader.load(self.config_path)

    def _save_strategies(self, config: SyncConfig, assignments: List[Tuple[str, Strategy]]) -> None:
        for item_id, strategy in assignments:
            config.strategies[item_id] = strategy.value
        if self.context is None:
            ConfigLoader.save(self.config_path, config)
            self.output_handler.info(f"Saved {len(assignments)} strategy assignment(s) to {self.config_path}")

    def _clear_cache(self, context: SyncContext) -> None:
        pending = len(context.queue)
        if pending:
            raise PendingChangesError(pending)
        context.cache.clear()
        self.output_handler.success(f"Cleared local cache at {context.cache.cache_dir}")

    def _show_status(self, context: SyncContext) -> ExitCode:
        orchestrator = context.orchestrator
        state = orchestrator.get_status()
        self.output_handler.print_status(
            state,
            orchestrator.get_sync_stats(),
            orchestrator.get_cache_info(),
        )
        self.output_handler.print_history(orchestrator.get_history())
        if state.manual_holds:
            return ExitCode.CONFLICTS
        return ExitCode.SUCCESS

    def _run_once(self, context: SyncContext) -> ExitCode:
        with self.output_handler.spinner("Syncing..."):
            report = context.orchestrator.run_cycle()

        if report is None:
            self.output_handler.error("Another sync cycle is already running")
            return ExitCode.GENERAL_ERROR

        self.output_handler.print_summary(report)
        return self._exit_code_for(report, context)

    def _run_watch(self, context: SyncContext, interval: Optional[float]) -> ExitCode:
        orchestrator = context.orchestrator
        orchestrator.start(interval)
        self.output_handler.success(
            f"Syncing every {orchestrator.interval_minutes:g} minute(s); press Ctrl+C to stop"
        )
        try:
            while not self.stop_event.wait(1.0):
                pass
        except KeyboardInterrupt:
            self.output_handler.print("")
        finally:
            orchestrator.stop()
        self.output_handler.success("Stopped scheduled sync")

        report = orchestrator.last_report
        if report is None:
            return ExitCode.SUCCESS
        return self._exit_code_for(report, context)

    @staticmethod
    def _exit_code_for(report: CycleReport, context: SyncContext) -> ExitCode:
        if report.aborted:
            if isinstance(report.exception, RemoteAuthError):
                return ExitCode.AUTH_ERROR
            if isinstance(report.exception, NETWORK_ERRORS):
                return ExitCode.NETWORK_ERROR
            return ExitCode.GENERAL_ERROR
        if report.manual or context.state_store.load().manual_holds:
            return ExitCode.CONFLICTS
        if report.failed:
            return ExitCode.GENERAL_ERROR
        return ExitCode.SUCCESS

    def _print_getting_started(self) -> None:
        self.output_handler.print("No sync configuration found.\n")
        self.output_handler.print(f"Create {self.config_path} describing your remote, for example:\n")
        self.output_handler.print("  remote:")
        self.output_handler.print("    backend: confluence")
        self.output_handler.print("    space_key: WIKI")
        self.output_handler.print("    parent_page_id: \"123456\"\n")
        self.output_handler.print("Required environment variables (or .env):")
        self.output_handler.print("  CONFLUENCE_URL          - Your Confluence base URL")
        self.output_handler.print("  CONFLUENCE_USER         - Your email address")
        self.output_handler.print("  CONFLUENCE_API_TOKEN    - API token from Atlassian")
        self.output_handler.print("  GITHUB_TOKEN            - For the github backend\n")
        self.output_handler.print("Run 'wiki-sync --help' for more options.")


def _parse_assignment(value: str) -> Tuple[str, Strategy]:
    """Parse an "ID=STRATEGY" option value.

    Raises:
        InvalidOptionError: If the value is malformed or names no strategy
    """
    item_id, separator, name = value.partition("=")
    if not separator or not item_id.strip():
        raise InvalidOptionError("--strategy", value, "expected ID=STRATEGY")
    try:
        return item_id.strip(), Strategy.parse(name)
    except UnknownStrategyError as e:
        raise InvalidOptionError("--strategy", value, str(e)) from e
