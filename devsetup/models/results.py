"""
Result Models

Dataclass models for planned changes, apply outcomes and command outputs.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional
from enum import Enum

from devsetup.models.state import MachineState


class ResultStatus(Enum):
    """Status of a domain run."""

    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"
    SKIPPED = "skipped"
    PLANNED = "planned"


@dataclass
class ExecutionResult:
    """Result of a command execution (subprocess)."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    command: str = ""

    @property
    def is_success(self) -> bool:
        """Check if execution succeeded."""
        return self.returncode == 0

    @property
    def is_failure(self) -> bool:
        """Check if execution failed."""
        return self.returncode != 0

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def __repr__(self) -> str:
        return f"ExecutionResult(returncode={self.returncode}, command='{self.command[:50]}...')"


@dataclass
class Change:
    """
    One planned change.

    The description is what the operator reads; the action performs it.
    probe/before/after feed the dry-run state table.
    """

    description: str
    action: Optional[Callable[[], None]] = field(default=None, repr=False, compare=False)
    probe: Optional[str] = None
    before: Any = None
    after: Any = None
    step: Optional[str] = None

    def __str__(self) -> str:
        return self.description


@dataclass
class ChangeFailure:
    """A change that raised while being applied."""

    change: Change
    error: str


@dataclass
class ApplyResult:
    """Outcome of applying a plan. Successes and failures are kept apart."""

    applied: List[Change] = field(default_factory=list)
    failures: List[ChangeFailure] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return len(self.failures) > 0

    def failed(self, change: Change) -> bool:
        """Check whether a specific change failed."""
        return any(f.change is change for f in self.failures)

    def __repr__(self) -> str:
        return f"ApplyResult(applied={len(self.applied)}, failures={len(self.failures)})"


@dataclass
class DomainResult:
    """Everything one reconciler produced during a run."""

    domain: str
    changes: List[Change] = field(default_factory=list)
    dry_run: bool = True
    state: Optional[MachineState] = None
    apply_result: Optional[ApplyResult] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    skipped: Optional[str] = None
    stage: Optional[str] = None

    @property
    def descriptions(self) -> List[str]:
        """Planned change descriptions in plan order."""
        return [change.description for change in self.changes]

    @property
    def status(self) -> ResultStatus:
        if self.skipped:
            return ResultStatus.SKIPPED
        if self.dry_run or self.apply_result is None:
            return ResultStatus.FAILURE if self.errors and not self.changes else ResultStatus.PLANNED
        if self.apply_result.has_failures:
            if self.apply_result.applied:
                return ResultStatus.PARTIAL
            return ResultStatus.FAILURE
        if self.errors:
            return ResultStatus.PARTIAL
        return ResultStatus.SUCCESS

    @property
    def has_failures(self) -> bool:
        if self.errors:
            return True
        return self.apply_result is not None and self.apply_result.has_failures

    def __repr__(self) -> str:
        return f"DomainResult(domain={self.domain}, changes={len(self.changes)}, status={self.status.value})"
