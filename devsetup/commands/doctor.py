"""devsetup - Doctor command"""

from typing import Optional

import rich_click as click
from rich.table import Table

from devsetup.base import BaseCommand
from devsetup.constants import REQUIRED_TOOLS
from devsetup.core.config_loader import Configuration, resolve_config_path
from devsetup.exceptions import ConfigurationError
from devsetup.services.command_runner import CommandRunner, SubprocessRunner
from devsetup.services.git_service import GitHubCliService

TOOL_HINTS = {
    "git": "winget install Git.Git",
    "gh": "winget install GitHub.cli",
    "gpg": "winget install GnuPG.GnuPG",
    "ssh-keygen": "Add the OpenSSH Client optional feature",
    "op": "winget install AgileBits.1Password.CLI",
    "winget": "Install 'App Installer' from the Microsoft Store",
    "choco": "https://chocolatey.org/install",
    "code": "winget install Microsoft.VisualStudioCode",
    "oh-my-posh": "winget install JanDeDobbeleer.OhMyPosh",
}


class DoctorCommand(BaseCommand):
    """Tool, authentication and configuration health check."""

    def __init__(self, runner: Optional[CommandRunner] = None, **kwargs):
        super().__init__(**kwargs)
        self.runner = runner or SubprocessRunner()
        self.problems = 0
        self.config: Optional[Configuration] = None
        self.config_error: Optional[ConfigurationError] = None
        self.table = Table(
            title="System Health Report", title_justify="left", padding=(0, 1)
        )
        self.table.add_column("Check", style="cyan", no_wrap=True)
        self.table.add_column("Status")
        self.table.add_column("Details", style="dim")

    def check_tools(self) -> None:
        """Check required tools installation."""
        for tool in REQUIRED_TOOLS:
            if self.runner.which(tool):
                self.table.add_row(f"✅ {tool}", "[green]Installed[/green]", "")
            else:
                self.table.add_row(
                    f"❌ {tool}", "[red]Missing[/red]", TOOL_HINTS.get(tool, "")
                )

    def check_authentication(self) -> None:
        """Check authentication status."""
        gh = GitHubCliService(self.runner)
        if gh.is_installed():
            if gh.is_authenticated():
                self.table.add_row("✅ GitHub CLI", "[green]Authenticated[/green]", "")
            else:
                self.table.add_row(
                    "❌ GitHub CLI", "[red]Not authenticated[/red]", "Run: gh auth login"
                )

        if self.runner.which("op"):
            whoami = ["op", "whoami"]
            vault = self.config.secrets_vault if self.config is not None else None
            if vault is not None and vault.account:
                whoami += ["--account", vault.account]
            if self.runner.run(whoami).is_success:
                self.table.add_row("✅ 1Password CLI", "[green]Signed in[/green]", "")
            else:
                self.table.add_row(
                    "⏳ 1Password CLI", "[yellow]Signed out[/yellow]", "Run: op signin"
                )

    def read_configuration(self) -> None:
        """Load the configuration once; the result is reported by check_configuration."""
        try:
            self.config = self.load_config()
        except ConfigurationError as e:
            self.config_error = e

    def check_configuration(self) -> None:
        """Check that the configuration file loads."""
        path = resolve_config_path(self.config_path)
        error = self.config_error
        if error is not None:
            self.problems += 1
            self.table.add_row("❌ Configuration", "[red]Invalid[/red]", error.context or error.message)
            return
        config = self.config

        sections = [
            name
            for name, value in [
                ("fileLocations", config.file_locations),
                ("terminal", config.terminal),
                ("software", config.software),
                ("explorer", config.explorer),
                ("github", config.github),
            ]
            if value is not None
        ]
        self.table.add_row(
            "✅ Configuration", "[green]Valid[/green]", f"{path} ({', '.join(sections) or 'empty'})"
        )

    def execute(self) -> int:
        """Execute doctor command."""
        self.show_header(
            title="System Diagnostics",
            subtitle="Checking tools, authentication and configuration",
        )

        self.read_configuration()
        self.check_tools()
        self.check_authentication()
        self.check_configuration()

        self.console.print(self.table)
        self.console.print()
        if self.problems:
            self.print_error("Configuration problems found. Review results above.")
            return 1
        self.print_success("Diagnostics complete! Review results above.")
        return 0


@click.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Show all output")
def doctor(config_path, verbose):
    """
    Health check & diagnostics

    Checks:
    - Required tools installation
    - GitHub CLI and 1Password CLI authentication
    - Configuration validity
    """
    cmd = DoctorCommand(verbose=verbose, config_path=config_path)
    cmd.run()
