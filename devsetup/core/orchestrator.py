"""
Orchestrator

Runs the enabled domains in a fixed order with one dry-run flag for all
of them. A domain that blows up is recorded and the next one still runs.
"""

from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional

from devsetup.constants import DOMAIN_LABELS, DOMAIN_ORDER
from devsetup.core.config_loader import Configuration
from devsetup.core.context import EnvironmentContext
from devsetup.exceptions import DevSetupError
from devsetup.logger import RunLogger
from devsetup.models.results import DomainResult, ResultStatus
from devsetup.reconcilers import build_reconciler
from devsetup.services.command_runner import CommandRunner
from devsetup.services.prompt_service import PromptProvider
from devsetup.services.secret_service import OnePasswordProvider, SecretProvider


class Orchestrator:
    """Sequences the domain reconcilers for one run."""

    def __init__(
        self,
        config: Configuration,
        context: EnvironmentContext,
        runner: CommandRunner,
        logger: Optional[RunLogger] = None,
        prompt: Optional[PromptProvider] = None,
        factory: Callable = build_reconciler,
    ):
        self.config = config
        self.context = context
        self.runner = runner
        self.logger = logger
        self.prompt = prompt
        self.factory = factory
        self._secrets: Optional[SecretProvider] = None

    @property
    def secrets(self) -> Optional[SecretProvider]:
        """Vault provider shared by every domain run, so sign-in happens at most once."""
        if self._secrets is None and self.config.vault_enabled:
            self._secrets = OnePasswordProvider(
                self.runner, self.config.secrets_vault, prompt=self.prompt, logger=self.logger
            )
        return self._secrets

    def run_domain(self, domain: str, dry_run: bool = True) -> DomainResult:
        """
        Run one domain.

        Unexpected exceptions are turned into a failed DomainResult so the
        caller can carry on with the remaining domains.
        """
        if self.logger:
            mode = "Planning" if dry_run else "Applying"
            self.logger.step(f"{mode} {DOMAIN_LABELS.get(domain, domain)}")

        try:
            reconciler = self.factory(
                domain, self.config, self.context, self.runner, self.logger, self.prompt, self.secrets
            )
            return reconciler.run(self.config, dry_run=dry_run)
        except DevSetupError as e:
            if self.logger:
                self.logger.log_error(e.message, context=e.context)
            return DomainResult(domain=domain, dry_run=dry_run, errors=[e.message])
        except Exception as e:
            message = f"{type(e).__name__}: {e}"
            if self.logger:
                self.logger.log_error(message, context=f"Unexpected error in {domain}")
            return DomainResult(domain=domain, dry_run=dry_run, errors=[message])

    def run_all(self, enabled_domains: Iterable[str], dry_run: bool = True) -> Dict[str, DomainResult]:
        """
        Run enabled domains in DOMAIN_ORDER.

        Args:
            enabled_domains: Domains to run (order is ignored)
            dry_run: Plan only

        Returns:
            Ordered mapping of domain -> DomainResult
        """
        enabled = set(enabled_domains)
        results: Dict[str, DomainResult] = OrderedDict()
        for domain in DOMAIN_ORDER:
            if domain in enabled:
                results[domain] = self.run_domain(domain, dry_run=dry_run)
        return results


def count_totals(results: Dict[str, DomainResult]) -> Dict[str, int]:
    """Planned / applied / failed / error counts across all domains."""
    totals = {"planned": 0, "applied": 0, "failed": 0, "errors": 0, "skipped": 0}
    for result in results.values():
        totals["planned"] += len(result.changes)
        totals["errors"] += len(result.errors)
        if result.status == ResultStatus.SKIPPED:
            totals["skipped"] += 1
        if result.apply_result is not None:
            totals["applied"] += len(result.apply_result.applied)
            totals["failed"] += len(result.apply_result.failures)
    return totals


def failed_domains(results: Dict[str, DomainResult]) -> List[str]:
    return [domain for domain, result in results.items() if result.has_failures]


def exit_code(results: Dict[str, DomainResult]) -> int:
    """1 when any domain reported an error or a failed change, else 0."""
    return 1 if failed_domains(results) else 0
