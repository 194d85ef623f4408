"""
Base Command Class

Abstract base for all devsetup CLI commands.
Provides common functionality and structure.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from devsetup.core.config_loader import Configuration, ConfigLoader, resolve_config_path
from devsetup.exceptions import ConfigurationError, DevSetupError
from devsetup.logger import RunLogger
from devsetup.ui_components import show_header


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Logger initialization
    - Header display
    - Configuration loading
    - Error handling
    """

    def __init__(
        self,
        verbose: bool = False,
        config_path: Optional[str] = None,
        console: Optional[Console] = None,
        log_dir: Optional[Path] = None,
    ):
        self.verbose = verbose
        self.config_path = config_path
        self.console = console or Console()
        self.log_dir = log_dir
        self.logger: Optional[RunLogger] = None

    def init_logger(self, operation: str) -> RunLogger:
        """
        Initialize the run logger.

        Args:
            operation: Operation name, used in the log file name

        Returns:
            RunLogger instance
        """
        self.logger = RunLogger(
            operation, verbose=self.verbose, log_dir=self.log_dir, console=self.console
        )
        return self.logger

    def load_config(self) -> Configuration:
        """
        Load the configuration file for this run.

        Raises:
            ConfigNotFoundError: If the file does not exist
            ConfigParseError: If it is malformed
        """
        path = resolve_config_path(self.config_path)
        if self.logger:
            self.logger.log(f"Loading configuration from {path}")
        return ConfigLoader(path).load()

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skipped in verbose mode)."""
        if not self.verbose:
            show_header(title=title, subtitle=subtitle, details=details, console=self.console)

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {escape(message)}[/green]")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗ {escape(message)}[/red]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def print_dim(self, message: str) -> None:
        self.console.print(f"[dim]{escape(message)}[/dim]")

    def _logs_hint(self) -> None:
        if self.logger and self.logger.log_path:
            self.console.print(f"[dim]Logs saved to:[/dim] {self.logger.log_path}\n")

    @abstractmethod
    def execute(self, **kwargs) -> int:
        """
        Execute command logic.

        Must be implemented by subclasses.

        Returns:
            Process exit code
        """

    def run(self, **kwargs) -> None:
        """
        Run command with error handling.

        Configuration errors are fatal (exit 1). Everything else a command
        meets should already be recorded against its domain.

        Args:
            **kwargs: Command arguments
        """
        try:
            code = self.execute(**kwargs)
        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            self._logs_hint()
            raise SystemExit(130)
        except SystemExit:
            raise
        except ConfigurationError as e:
            self.console.print(f"\n[bold red]✗ {escape(e.message)}[/bold red]")
            if e.context:
                self.print_dim(e.context)
            self.console.print()
            if self.logger:
                self.logger.log_error(e.message, context=e.context)
            self._logs_hint()
            raise SystemExit(1)
        except DevSetupError as e:
            self.console.print(f"\n[bold red]✗ Error:[/bold red] {escape(e.message)}\n")
            if self.logger:
                self.logger.log_error(e.message, context=e.context)
            self._logs_hint()
            raise SystemExit(1)
        except PermissionError as e:
            self.console.print(f"\n[bold red]✗ Permission denied:[/bold red] {escape(str(e))}\n")
            self.console.print("[dim]Try running from an elevated terminal[/dim]\n")
            if self.logger:
                self.logger.log_error(f"Permission error: {e}")
            self._logs_hint()
            raise SystemExit(1)
        finally:
            if self.logger:
                self.logger.close()

        if code:
            raise SystemExit(code)
