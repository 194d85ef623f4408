#!/usr/bin/env python3
"""devsetup CLI - Main entry point"""

import functools
import os
import sys

import rich_click as click
from click.exceptions import ClickException, UsageError
from rich.console import Console

from devsetup import __version__
from devsetup.commands.doctor import doctor
from devsetup.commands.provision import ProvisionCommand
from devsetup.constants import (
    DOMAIN_EXPLORER,
    DOMAIN_FILE_LOCATIONS,
    DOMAIN_IDENTITY,
    DOMAIN_SOFTWARE,
    DOMAIN_TERMINAL,
)

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = False
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100

click.rich_click.STYLE_COMMAND = "bold cyan"
click.rich_click.STYLE_OPTION = "bold magenta"
click.rich_click.STYLE_SWITCH = "bold green"
click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_USAGE = "bold yellow"
click.rich_click.STYLE_USAGE_COMMAND = "bold cyan"
click.rich_click.STYLE_HELPTEXT_FIRST_LINE = "bold white"
click.rich_click.STYLE_HELPTEXT = ""
click.rich_click.STYLE_OPTION_HELP = ""
click.rich_click.STYLE_OPTION_DEFAULT = "dim cyan"
click.rich_click.STYLE_OPTIONS_PANEL_BORDER = "cyan"
click.rich_click.STYLE_COMMANDS_PANEL_BORDER = "cyan"
click.rich_click.ALIGN_OPTIONS_PANEL = "left"
click.rich_click.ALIGN_ERRORS_PANEL = "left"
click.rich_click.ERRORS_EPILOGUE = ""

console = Console()

SKIP_FLAGS = {
    "skip_file_locations": DOMAIN_FILE_LOCATIONS,
    "skip_terminal": DOMAIN_TERMINAL,
    "skip_software": DOMAIN_SOFTWARE,
    "skip_explorer": DOMAIN_EXPLORER,
    "skip_github": DOMAIN_IDENTITY,
}


def handle_cli_errors(func):
    """Decorator to handle CLI errors gracefully."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UsageError as e:
            console.print(f"\n[bold red]✗ Error:[/bold red] {e.format_message()}\n")
            console.print(
                "[dim]Run[/dim] [cyan]devsetup --help[/cyan] [dim]for usage information[/dim]\n"
            )
            sys.exit(2)
        except ClickException as e:
            e.show()
            sys.exit(e.exit_code)
        except KeyboardInterrupt:
            console.print("\n\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            sys.exit(130)
        except Exception as e:
            console.print(f"\n[bold red]✗ Unexpected error:[/bold red] {e}\n")
            console.print("[dim]If this persists, please report this issue.[/dim]\n")

            if os.environ.get("DEBUG") or os.environ.get("VERBOSE"):
                import traceback

                console.print("[dim]Traceback:[/dim]")
                traceback.print_exc()
            sys.exit(1)

    return wrapper


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option("--force", "--yes", "-y", "force", is_flag=True, help="Apply every enabled domain without the menu")
@click.option("--dry-run", is_flag=True, help="Only show what would change")
@click.option("--skip-file-locations", is_flag=True, help="Skip directories and DEV_HOME/PROJECTS_HOME")
@click.option("--skip-terminal", is_flag=True, help="Skip terminal appearance and prompt")
@click.option("--skip-software", is_flag=True, help="Skip package managers, apps and extensions")
@click.option("--skip-explorer", is_flag=True, help="Skip Explorer preferences")
@click.option("--skip-github", is_flag=True, help="Skip Git identity, keys and GitHub CLI")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Configuration file (default: $DEVSETUP_CONFIG or ./config.json)")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.pass_context
def cli(ctx: click.Context, force, dry_run, config_path, verbose, **skip_flags) -> None:
    """
    devsetup - Provision a developer machine from one JSON file.

    \b
    Quick Start:
      devsetup --dry-run          # Preview every change
      devsetup --force            # Apply everything, no questions
      devsetup                    # Interactive menu
      devsetup doctor             # Check tools and configuration
    """
    if ctx.invoked_subcommand is not None:
        return

    skip = [domain for flag, domain in SKIP_FLAGS.items() if skip_flags.get(flag)]
    cmd = ProvisionCommand(
        force=force,
        dry_run=dry_run,
        skip=skip,
        verbose=verbose,
        config_path=config_path,
    )
    cmd.run()


cli.add_command(doctor)


@handle_cli_errors
def main():
    """Main entry point with error handling."""
    cli()


if __name__ == "__main__":
    main()
