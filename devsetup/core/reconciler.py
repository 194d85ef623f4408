"""
Reconciler Base Class

Abstract base for the five domain reconcilers. Every domain follows the
same cycle: snapshot current state -> plan changes -> (unless dry-run)
apply them. Running twice with an unchanged config yields an empty plan.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from devsetup.constants import DOMAIN_LABELS
from devsetup.core.config_loader import Configuration
from devsetup.core.context import EnvironmentContext
from devsetup.exceptions import DevSetupError, PlanError
from devsetup.logger import RunLogger
from devsetup.models.results import ApplyResult, Change, ChangeFailure, DomainResult
from devsetup.models.state import MachineState
from devsetup.services.command_runner import CommandRunner
from devsetup.services.prompt_service import DefaultsPromptProvider, PromptProvider


class Reconciler(ABC):
    """
    Abstract domain reconciler.

    Subclasses provide:
    - section(): their slice of the configuration (None skips the domain)
    - snapshot(): read-only probes of the machine, defaulting on failure
    - plan(): side-effect-free list of changes, step-level problems go to
      self.plan_errors instead of aborting the whole plan
    """

    domain: str = ""
    config_key: str = ""

    def __init__(
        self,
        context: EnvironmentContext,
        runner: CommandRunner,
        logger: Optional[RunLogger] = None,
        prompt: Optional[PromptProvider] = None,
    ):
        self.context = context
        self.runner = runner
        self.logger = logger
        self.prompt = prompt or DefaultsPromptProvider()
        self.plan_errors: List[PlanError] = []
        self.plan_warnings: List[str] = []

    @property
    def label(self) -> str:
        return DOMAIN_LABELS.get(self.domain, self.domain)

    @abstractmethod
    def section(self, config: Configuration) -> Optional[Any]:
        """Configuration section this domain reconciles."""

    @abstractmethod
    def snapshot(self, section: Any) -> MachineState:
        """Read current machine state. Must never mutate the system."""

    @abstractmethod
    def plan(self, section: Any, state: MachineState) -> List[Change]:
        """
        Compute the changes needed to reach the configured state.

        Raises:
            PlanError: If the domain cannot be planned at all
        """

    def probe(self, state: MachineState, name: str, read, default=None) -> None:
        """
        Record one probe, falling back to a default on any read failure.

        Args:
            state: State being built
            name: Probe name
            read: Zero-argument callable returning the value
            default: Value recorded when read() fails
        """
        try:
            value = read()
        except (DevSetupError, OSError, ValueError) as e:
            if self.logger:
                self.logger.log(f"Probe {name} defaulted: {e}", "DEBUG")
            value = default
        state.set(name, value)

    def add_plan_error(self, message: str, step: Optional[str] = None, context: Optional[str] = None) -> None:
        self.plan_errors.append(PlanError(message, step=step, context=context))

    def warn(self, message: str) -> None:
        self.plan_warnings.append(message)

    def apply(self, plan: List[Change]) -> ApplyResult:
        """
        Execute planned changes in order.

        A failing change is logged and recorded; the remaining changes
        are still attempted.

        Args:
            plan: Changes returned by plan()

        Returns:
            ApplyResult with successes and failures kept apart
        """
        result = ApplyResult()
        for change in plan:
            try:
                if change.action is not None:
                    change.action()
            except Exception as e:
                message = e.message if isinstance(e, DevSetupError) else f"{type(e).__name__}: {e}"
                context = e.context if isinstance(e, DevSetupError) else None
                result.failures.append(ChangeFailure(change=change, error=message))
                if self.logger:
                    self.logger.log_error(f"{change.description}: {message}", context=context)
                continue
            result.applied.append(change)
            if self.logger:
                self.logger.success(change.description)
        return result

    def run(self, config: Configuration, dry_run: bool = True) -> DomainResult:
        """
        Snapshot, plan and (unless dry_run) apply.

        Args:
            config: Loaded configuration
            dry_run: Only plan when True

        Returns:
            DomainResult
        """
        result = DomainResult(domain=self.domain, dry_run=dry_run)
        section = self.section(config)
        if section is None:
            result.skipped = f"No '{self.config_key}' section in configuration"
            return result

        self.plan_errors = []
        self.plan_warnings = []

        result.state = self.snapshot(section)

        try:
            result.changes = self.plan(section, result.state)
        except PlanError as e:
            self.plan_errors.append(e)

        result.errors = [self._format_plan_error(e) for e in self.plan_errors]
        result.warnings = list(self.plan_warnings)
        for warning in result.warnings:
            if self.logger:
                self.logger.warning(warning)
        for error in self.plan_errors:
            if self.logger:
                self.logger.log_error(self._format_plan_error(error), context=error.context)

        if not dry_run and result.changes:
            result.apply_result = self.apply(result.changes)

        self.finalize(section, result)
        return result

    def finalize(self, section: Any, result: DomainResult) -> None:
        """Hook for domain-specific post-run bookkeeping."""

    @staticmethod
    def _format_plan_error(error: PlanError) -> str:
        if error.step:
            return f"[{error.step}] {error.message}"
        return error.message
