"""devsetup - Provision command (force, dry-run and interactive menu)"""

from typing import Dict, Iterable, List, Optional

from devsetup.base import BaseCommand
from devsetup.constants import (
    DOMAIN_EXPLORER,
    DOMAIN_FILE_LOCATIONS,
    DOMAIN_IDENTITY,
    DOMAIN_ORDER,
    DOMAIN_SOFTWARE,
    DOMAIN_TERMINAL,
)
from devsetup.core.config_loader import Configuration
from devsetup.core.context import EnvironmentContext
from devsetup.core.orchestrator import Orchestrator, count_totals, exit_code
from devsetup.models.results import DomainResult
from devsetup.services.command_runner import CommandRunner, SubprocessRunner
from devsetup.services.environment import default_environment_store
from devsetup.services.prompt_service import (
    DefaultsPromptProvider,
    PromptProvider,
    RichPromptProvider,
)
from devsetup.ui_components import show_domain_result, show_failures, show_menu, show_totals

MENU_DOMAINS = {
    "1": DOMAIN_FILE_LOCATIONS,
    "2": DOMAIN_TERMINAL,
    "3": DOMAIN_SOFTWARE,
    "4": DOMAIN_EXPLORER,
    "5": DOMAIN_IDENTITY,
}
MENU_RUN_ALL = "6"
MENU_DRY_RUN = "7"
MENU_QUIT = "q"


class ProvisionCommand(BaseCommand):
    """
    Provision the machine from the configuration file.

    Modes:
    - dry_run: plan every enabled domain, print before/after tables, exit
    - force: apply every enabled domain once, exit non-zero on any failure
    - otherwise: interactive menu until the operator quits
    """

    def __init__(
        self,
        force: bool = False,
        dry_run: bool = False,
        skip: Iterable[str] = (),
        runner: Optional[CommandRunner] = None,
        prompt: Optional[PromptProvider] = None,
        context: Optional[EnvironmentContext] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.force = force
        self.dry_run = dry_run
        self.skip = set(skip)
        self.runner = runner
        self.prompt = prompt
        self.context = context

    @property
    def interactive(self) -> bool:
        return not self.force and not self.dry_run

    @property
    def enabled_domains(self) -> List[str]:
        return [domain for domain in DOMAIN_ORDER if domain not in self.skip]

    def _operation(self) -> str:
        if self.dry_run:
            return "dry-run"
        return "provision" if self.force else "interactive"

    def build_orchestrator(self, config: Configuration) -> Orchestrator:
        """Wire the runner, environment context and prompt provider for this run."""
        runner = self.runner or SubprocessRunner(self.logger)
        context = self.context or EnvironmentContext.from_process(default_environment_store(runner))
        prompt = self.prompt
        if prompt is None:
            prompt = RichPromptProvider(self.console) if self.interactive else DefaultsPromptProvider()
        return Orchestrator(config, context, runner, logger=self.logger, prompt=prompt)

    def run_pass(
        self, orchestrator: Orchestrator, domains: List[str], dry_run: bool
    ) -> Dict[str, DomainResult]:
        """Run domains once and print their results and the totals."""
        results = orchestrator.run_all(domains, dry_run=dry_run)

        self.console.print()
        for result in results.values():
            show_domain_result(result, self.console, show_state=dry_run)
        show_totals(results, count_totals(results), self.console, dry_run=dry_run)
        if not dry_run:
            show_failures(results, self.console)
        return results

    def run_menu(self, orchestrator: Orchestrator) -> int:
        """Interactive loop. Re-renders the menu after every run."""
        while True:
            show_menu(self.console)
            choice = orchestrator.prompt.ask("Select an option", default=MENU_QUIT)
            choice = (choice or "").strip().lower()

            if choice == MENU_QUIT:
                self.print_dim("Bye.")
                return 0
            if choice in MENU_DOMAINS:
                self.run_pass(orchestrator, [MENU_DOMAINS[choice]], dry_run=False)
            elif choice == MENU_RUN_ALL:
                self.run_pass(orchestrator, self.enabled_domains, dry_run=False)
            elif choice == MENU_DRY_RUN:
                self.run_pass(orchestrator, self.enabled_domains, dry_run=True)
            else:
                self.print_warning(f"Unknown option: {choice}")

    def execute(self) -> int:
        """Execute provision command."""
        self.init_logger(self._operation())

        title = "Dry Run" if self.dry_run else "Provision"
        details = {"Mode": self._operation()}
        if self.skip:
            details["Skipping"] = ", ".join(sorted(self.skip))
        self.show_header(title=title, subtitle="Declarative developer machine setup", details=details)

        config = self.load_config()
        orchestrator = self.build_orchestrator(config)

        if self.dry_run:
            self.run_pass(orchestrator, self.enabled_domains, dry_run=True)
            self._logs_hint()
            return 0

        if self.force:
            results = self.run_pass(orchestrator, self.enabled_domains, dry_run=False)
            self._logs_hint()
            return exit_code(results)

        code = self.run_menu(orchestrator)
        self._logs_hint()
        return code
