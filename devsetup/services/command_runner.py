"""Command runner used by every tool adapter."""

import shutil
import subprocess
from typing import Optional, Protocol, Sequence

from devsetup.constants import COMMAND_TIMEOUT
from devsetup.exceptions import CommandError
from devsetup.logger import RunLogger, run_with_progress
from devsetup.models.results import ExecutionResult

NOT_FOUND_RETURNCODE = 127
TIMEOUT_RETURNCODE = 124


class CommandRunner(Protocol):
    """Narrow request/response contract for invoking external tools."""

    def run(
        self,
        args: Sequence[str],
        input: Optional[str] = None,
        timeout: Optional[int] = COMMAND_TIMEOUT,
        description: Optional[str] = None,
        interactive: bool = False,
    ) -> ExecutionResult:  # pragma: no cover - protocol
        ...

    def which(self, tool: str) -> bool:  # pragma: no cover - protocol
        ...


class SubprocessRunner:
    """
    Runs commands with subprocess.

    A missing executable or a timeout is reported through the returned
    ExecutionResult, never raised, so probes can default cleanly.
    """

    def __init__(self, logger: Optional[RunLogger] = None):
        self.logger = logger

    def which(self, tool: str) -> bool:
        """Check if a tool is on PATH."""
        return shutil.which(tool) is not None

    def run(
        self,
        args: Sequence[str],
        input: Optional[str] = None,
        timeout: Optional[int] = COMMAND_TIMEOUT,
        description: Optional[str] = None,
        interactive: bool = False,
    ) -> ExecutionResult:
        """
        Run a command.

        Args:
            args: Command and arguments (never a shell string)
            input: Text fed to stdin; never logged
            timeout: Seconds before the command is abandoned (None waits forever)
            description: Show a spinner with this text while it runs
            interactive: Inherit the terminal so the tool can prompt the user

        Returns:
            ExecutionResult
        """
        command = subprocess.list2cmdline(list(args))
        # Full path lets Windows launch .cmd shims (code, choco) without a shell
        args = [shutil.which(args[0]) or args[0], *args[1:]]

        try:
            if interactive:
                if self.logger:
                    self.logger.log_command(command)
                completed = subprocess.run(list(args), timeout=timeout)
                return ExecutionResult(returncode=completed.returncode, command=command)

            if description and self.logger and input is None:
                returncode, stdout, stderr = run_with_progress(
                    self.logger, args, description, timeout=timeout
                )
                return ExecutionResult(returncode, stdout, stderr, command)

            if self.logger:
                self.logger.log_command(command)
            completed = subprocess.run(
                list(args),
                input=input,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError:
            return ExecutionResult(
                returncode=NOT_FOUND_RETURNCODE,
                stderr=f"{args[0]}: command not found",
                command=command,
            )
        except subprocess.TimeoutExpired:
            return ExecutionResult(
                returncode=TIMEOUT_RETURNCODE,
                stderr=f"Timed out after {timeout}s",
                command=command,
            )

        if self.logger:
            self.logger.log_output(completed.stderr, "stderr")
        return ExecutionResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            command=command,
        )


def check_result(result: ExecutionResult) -> ExecutionResult:
    """
    Raise CommandError for a failed execution.

    Args:
        result: ExecutionResult to check

    Returns:
        The same result when it succeeded

    Raises:
        CommandError: If the command exited non-zero
    """
    if result.is_failure:
        raise CommandError(result.command, result.returncode, result.output)
    return result
