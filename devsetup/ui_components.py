"""
devsetup - UI Components
Standardized headers, menus and run summaries
"""

from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from devsetup.constants import DOMAIN_LABELS
from devsetup.models.results import Change, DomainResult, ResultStatus

BRAND = "[bold color(214)]devsetup[/bold color(214)] [dim]›[/dim]"

STATUS_STYLES = {
    ResultStatus.SUCCESS: "[green]Success[/green]",
    ResultStatus.PARTIAL: "[yellow]Partial[/yellow]",
    ResultStatus.FAILURE: "[red]Failed[/red]",
    ResultStatus.SKIPPED: "[dim]Skipped[/dim]",
    ResultStatus.PLANNED: "[cyan]Planned[/cyan]",
}


def show_header(
    title: str,
    subtitle: Optional[str] = None,
    details: Optional[dict] = None,
    console: Optional[Console] = None,
):
    """
    Display a standardized devsetup command header.

    Args:
        title: Main title (e.g., "Provision", "Dry Run")
        subtitle: Optional subtitle line
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)
    """
    if console is None:
        console = Console()

    console.print(f" {BRAND} [bold white]{title}[/bold white]")
    if subtitle:
        console.print(f" {BRAND} [dim]{subtitle}[/dim]")
    if details:
        for key, value in details.items():
            console.print(f" {BRAND} {key}: [cyan]{value}[/cyan]")
    console.print()


def show_menu(console: Console) -> None:
    """Print the interactive main menu."""
    console.print("[bold white]What would you like to set up?[/bold white]\n")
    entries = [
        ("1", "File locations"),
        ("2", "Terminal"),
        ("3", "Software"),
        ("4", "Explorer"),
        ("5", "Git & GitHub"),
        ("6", "Run all"),
        ("7", "Dry run (preview everything)"),
        ("Q", "Quit"),
    ]
    for key, label in entries:
        console.print(f"  [color(214)]{key}[/color(214)]  {label}")
    console.print()


def _display(value: Any) -> str:
    if value is None:
        return "[dim]-[/dim]"
    if isinstance(value, bool):
        return "[green]yes[/green]" if value else "[red]no[/red]"
    if isinstance(value, list):
        return escape(", ".join(str(v) for v in value)) if value else "[dim]none[/dim]"
    text = str(value)
    if "\n" in text:
        text = text.splitlines()[0] + " …"
    return escape(text)


def state_table(result: DomainResult) -> Table:
    """
    Before/after table for one domain.

    Every snapshot entry gets a row. Entries with a planned change show its
    target and description; the rest are marked unchanged. Changes that
    match no snapshot entry are appended at the end.

    Args:
        result: Planned DomainResult

    Returns:
        Rich table with Probe / Current / Desired / Change columns
    """
    label = DOMAIN_LABELS.get(result.domain, result.domain)
    table = Table(title=label, title_justify="left", padding=(0, 1))
    table.add_column("Probe", style="cyan", no_wrap=True)
    table.add_column("Current")
    table.add_column("Desired", style="green")
    table.add_column("Change", style="dim")

    planned: Dict[str, List[Change]] = {}
    unmatched: List[Change] = []
    for change in result.changes:
        if change.probe and result.state is not None and change.probe in result.state:
            planned.setdefault(change.probe, []).append(change)
        else:
            unmatched.append(change)

    rows = result.state.rows() if result.state is not None else []
    for name, value in rows:
        if name not in planned:
            table.add_row(escape(name), _display(value), "[dim]unchanged[/dim]", "")
            continue
        for change in planned[name]:
            table.add_row(
                escape(name), _display(change.before), _display(change.after), escape(change.description)
            )

    for change in unmatched:
        table.add_row(
            escape(change.probe or "-"),
            _display(change.before),
            _display(change.after),
            escape(change.description),
        )
    return table


def show_domain_result(result: DomainResult, console: Console, show_state: bool = False) -> None:
    """
    Print one domain's outcome.

    Args:
        result: DomainResult to show
        console: Rich console
        show_state: Render the before/after table (dry-run)
    """
    label = DOMAIN_LABELS.get(result.domain, result.domain)

    if result.skipped:
        console.print(f"[dim]○ {label}: {escape(result.skipped)}[/dim]")
        return

    up_to_date = not result.changes and not result.errors
    has_rows = result.state is not None and len(result.state) > 0

    if show_state and (result.changes or has_rows):
        console.print(state_table(result))
        if up_to_date:
            console.print(f"[green]✓[/green] {label}: [dim]already up to date[/dim]\n")
            return
    elif up_to_date:
        console.print(f"[green]✓[/green] {label}: [dim]already up to date[/dim]")
        return
    else:
        console.print(f"[bold white]{label}[/bold white]")
        for change in result.changes:
            marker = "[cyan]→[/cyan]"
            if result.apply_result is not None:
                marker = "[red]✗[/red]" if result.apply_result.failed(change) else "[green]✓[/green]"
            console.print(f"  {marker} {escape(change.description)}")

    for warning in result.warnings:
        console.print(f"  [yellow]⚠[/yellow] [dim]{escape(warning)}[/dim]")
    for error in result.errors:
        console.print(f"  [red]✗ {escape(error)}[/red]")
    if result.stage:
        console.print(f"  [dim]Identity stage:[/dim] [cyan]{result.stage}[/cyan]")
    console.print()


def show_totals(
    results: Dict[str, DomainResult],
    totals: Dict[str, int],
    console: Console,
    dry_run: bool = False,
) -> None:
    """Print the per-domain status table and the overall counts."""
    title = "Dry Run Summary" if dry_run else "Run Summary"
    table = Table(title=title, title_justify="left", padding=(0, 1))
    table.add_column("Domain", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Changes", justify="right")
    table.add_column("Errors", justify="right")

    for domain, result in results.items():
        table.add_row(
            DOMAIN_LABELS.get(domain, domain),
            STATUS_STYLES[result.status],
            str(len(result.changes)),
            str(len(result.errors) + (len(result.apply_result.failures) if result.apply_result else 0)),
        )
    console.print(table)

    if dry_run:
        console.print(
            f"\n[cyan]{totals['planned']}[/cyan] change(s) planned, "
            f"[red]{totals['errors']}[/red] error(s). [dim]Nothing was changed.[/dim]\n"
        )
    else:
        console.print(
            f"\n[green]{totals['applied']}[/green] applied, "
            f"[red]{totals['failed']}[/red] failed, "
            f"[yellow]{totals['errors']}[/yellow] error(s)\n"
        )


def show_failures(results: Dict[str, DomainResult], console: Console) -> None:
    """List every failed change so the operator can retry by hand."""
    failures = [
        (domain, failure)
        for domain, result in results.items()
        if result.apply_result is not None
        for failure in result.apply_result.failures
    ]
    if not failures:
        return
    console.print("[bold red]Failed changes[/bold red]")
    for domain, failure in failures:
        label = DOMAIN_LABELS.get(domain, domain)
        console.print(f"  [red]✗[/red] {escape(f'[{label}]')} {escape(failure.change.description)}")
        console.print(f"    [dim]{escape(failure.error)}[/dim]")
    console.print()
