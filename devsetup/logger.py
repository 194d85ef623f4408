"""
Logging system for devsetup
Provides real-time logging to files with clean console output
"""

import os
import re
import subprocess
from pathlib import Path
from datetime import datetime
from typing import Optional, Sequence, TextIO
from rich.console import Console
from rich.markup import escape
from rich.live import Live
from rich.spinner import Spinner
from rich.text import Text
from rich.padding import Padding

from devsetup.constants import (
    DEFAULT_LOG_DIR,
    LOG_DATE_FORMAT,
    LOG_DIR_ENV_VAR,
    LOG_TIME_FORMAT,
)

default_console = Console()

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def get_log_root() -> Path:
    """Directory that holds per-day log folders."""
    return Path(os.environ.get(LOG_DIR_ENV_VAR) or DEFAULT_LOG_DIR).expanduser()


class RunLogger:
    """
    Manages logging for a provisioning run
    - Writes all output to log files in real-time
    - Shows clean progress UI in console (unless verbose)
    - Captures errors with context
    """

    def __init__(
        self,
        operation: str,
        verbose: bool = False,
        log_dir: Optional[Path] = None,
        console: Optional[Console] = None,
    ):
        """
        Initialize logger

        Args:
            operation: Operation name (e.g., 'provision', 'dry-run', 'doctor')
            verbose: If True, show all output in console
            log_dir: Root log directory (defaults to $DEVSETUP_LOG_DIR or ~/.devsetup/logs)
            console: Rich console to print to
        """
        self.operation = operation
        self.verbose = verbose
        self.console = console or default_console
        self.log_file: Optional[TextIO] = None
        self.log_path: Optional[Path] = None
        self.current_step = ""
        self.has_errors = False

        # Structure: logs/{date}/{time}_{operation}.log
        now = datetime.now()
        day_dir = (log_dir or get_log_root()) / now.strftime(LOG_DATE_FORMAT)
        day_dir.mkdir(parents=True, exist_ok=True)

        self.log_path = day_dir / f"{now.strftime(LOG_TIME_FORMAT)}_{operation}.log"

        # Line-buffered for real-time tailing
        self.log_file = open(self.log_path, "w", buffering=1, encoding="utf-8")

        self._write_log_header()

    def _write_log_header(self):
        """Write log file header"""
        header = f"""
{"=" * 80}
devsetup Run Log
{"=" * 80}
Operation: {self.operation}
Started: {datetime.now().isoformat()}
{"=" * 80}

"""
        self.log_file.write(header)
        self.log_file.flush()

    def log(self, message: str, level: str = "INFO"):
        """
        Log a message to file and optionally console

        Args:
            message: Message to log
            level: Log level (INFO, WARNING, ERROR, DEBUG)
        """
        timestamp = datetime.now().strftime("%H:%M:%S")
        log_line = f"[{timestamp}] [{level}] {message}\n"

        if self.log_file:
            self.log_file.write(log_line)
            self.log_file.flush()

        if self.verbose:
            if level == "ERROR":
                self.console.print(f"[red]{escape(message)}[/red]")
            elif level == "WARNING":
                self.console.print(f"[yellow]{escape(message)}[/yellow]")
            elif level == "DEBUG":
                self.console.print(f"[dim]{escape(message)}[/dim]")
            else:
                self.console.print(message, markup=False)

    def log_command(self, command: str):
        """Log a command being executed"""
        self.log(f"Executing: {command}", "DEBUG")

    def log_output(self, output: str, stream: str = "stdout"):
        """
        Log command output

        Always written to the log file, shown in console only if verbose.

        Args:
            output: Command output (single line or multiline)
            stream: Stream name (stdout, stderr)
        """
        if not output:
            return

        clean_output = ANSI_ESCAPE.sub("", output)

        if self.log_file:
            try:
                for line in clean_output.splitlines():
                    self.log_file.write(f"  [{stream}] {line}\n")
                self.log_file.flush()
            except OSError:
                # Skip lines that cannot be written
                pass

        if self.verbose:
            self.console.print(output, markup=False)

    def log_error(self, error: str, context: Optional[str] = None):
        """
        Log an error with context

        Args:
            error: Error message
            context: Additional context (e.g., command that failed)
        """
        self.has_errors = True

        error_block = f"""
{"!" * 80}
ERROR OCCURRED
{"!" * 80}
{error}
"""
        if context:
            error_block += f"\nContext: {context}\n"

        error_block += f"{'!' * 80}\n\n"

        if self.log_file:
            self.log_file.write(error_block)
            self.log_file.flush()

        self.console.print(f"  [bold red]✗ {escape(error)}[/bold red]")
        if context:
            self.console.print(f"    [color(208)]{escape(context)}[/color(208)]")

    def step(self, step_name: str):
        """
        Start a new step

        Args:
            step_name: Name of the step
        """
        if self.current_step and not self.verbose:
            self.console.print()

        self.current_step = step_name
        self.log(f"Step: {step_name}", "INFO")

        if not self.verbose:
            self.console.print(f"[color(214)]▶[/color(214)] [white]{step_name}[/white]")

    def success(self, message: str):
        """Log a success message"""
        self.log(message, "INFO")

        if not self.verbose:
            self.console.print(f"  [dim]✓ {escape(message)}[/dim]")

    def warning(self, message: str):
        """Log a warning message"""
        self.log(message, "WARNING")

        if not self.verbose:
            self.console.print(f"  [yellow]⚠[/yellow] [dim]{escape(message)}[/dim]")

    def close(self):
        """Close log file"""
        if self.log_file:
            footer = f"""
{"=" * 80}
Completed: {datetime.now().isoformat()}
Status: {"FAILED" if self.has_errors else "SUCCESS"}
{"=" * 80}
"""
            self.log_file.write(footer)
            self.log_file.close()
            self.log_file = None

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        """Context manager exit"""
        if exc_type is not None and exc_type != SystemExit:
            self.log_error(
                str(exc_val) if exc_val else "Operation failed",
                context=f"{exc_type.__name__}",
            )
        self.close()
        return False  # Don't suppress exceptions


def run_with_progress(
    logger: RunLogger,
    args: Sequence[str],
    description: str,
    timeout: Optional[int] = None,
) -> tuple[int, str, str]:
    """
    Run a command with progress indicator

    Args:
        logger: RunLogger instance
        args: Command and arguments
        description: Description for progress indicator
        timeout: Seconds before the command is abandoned

    Returns:
        Tuple of (return_code, stdout, stderr)

    Raises:
        FileNotFoundError: If the executable does not exist
        subprocess.TimeoutExpired: If the command outlives the timeout
    """
    logger.log_command(subprocess.list2cmdline(list(args)))

    if logger.verbose:
        # Verbose mode: stream output as it arrives
        process = subprocess.Popen(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,
        )

        stdout_lines = []

        if process.stdout:
            for line in process.stdout:
                line_stripped = line.rstrip()
                stdout_lines.append(line_stripped)
                logger.log_output(line_stripped, "stdout")

        process.wait(timeout=timeout)
        stderr_content = process.stderr.read() if process.stderr else ""
        if stderr_content:
            logger.log_output(stderr_content, "stderr")

        return process.returncode, "\n".join(stdout_lines), stderr_content

    # Non-verbose: show spinner, capture output
    spinner = Spinner("dots", text=f"[cyan]{description}...[/cyan]")
    padded_spinner = Padding(spinner, (0, 0, 0, 2))

    with Live(
        padded_spinner,
        console=logger.console,
        refresh_per_second=10,
    ) as live:
        result = subprocess.run(
            list(args), capture_output=True, text=True, timeout=timeout
        )

        if result.stdout:
            logger.log_output(result.stdout, "stdout")
        if result.stderr:
            logger.log_output(result.stderr, "stderr")

        if result.returncode == 0:
            checkmark = Text("  ✓ ", style="dim")
            checkmark.append(description, style="dim")
            live.update(checkmark)
        else:
            x_mark = Text("  ✗ ", style="red")
            x_mark.append(description, style="dim")
            live.update(x_mark)

    return result.returncode, result.stdout, result.stderr
