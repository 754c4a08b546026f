"""CLI for DuoSpend using Typer."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

import typer
from rich.console import Console
from rich.table import Table

from .clients.coach import SpendingCoach
from .config import load_settings
from .db import Database
from .exceptions import DuoSpendError
from .ledger import split_list
from .models import PartnerProfile, PartnerRole, SyncStatus, Window
from .service import LedgerService
from .ui import prompt_splits

app = typer.Typer(
    name="duospend",
    help="Shared expense tracking and settlement for two partners",
)

console = Console()

MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]  # fmt: skip


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@contextmanager
def open_service(verbose: bool = False) -> Iterator[LedgerService]:
    """
    Build a LedgerService for one command and report its errors.

    The coach capability is decided here, once, from the settings.
    """
    setup_logging(verbose)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        coach = (
            SpendingCoach(settings.openai_api_key, model=settings.coach_model)
            if settings.coach_enabled
            else None
        )
        yield LedgerService(settings, db, coach=coach)
    except (DuoSpendError, ValueError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


def format_money(amount: Decimal, use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"($[red]{abs_amount:,.2f}[/red])"
        return f"(${abs_amount:,.2f})"
    return f" ${abs_amount:,.2f} "


def parse_month(service: LedgerService, month: str | None) -> Window:
    """Parse a YYYY-MM option into a month window (default: this month)."""
    if month is None:
        return service.window_for()
    try:
        parsed = datetime.strptime(month, "%Y-%m")
    except ValueError as e:
        raise ValueError(f"Month must look like 2025-03, got {month!r}") from e
    return service.window_for(parsed.year, parsed.month)


def parse_split(value: str) -> tuple[str, str]:
    """Parse a 'Category=amount' option."""
    category, sep, amount = value.rpartition("=")
    if not sep or not category.strip():
        raise ValueError(f"Split must look like 'Food & Dining=12.50', got {value!r}")
    return category.strip(), amount.strip()


def window_label(window: Window) -> str:
    return window.start.strftime("%B %Y")


@app.command()
def add(
    description: str = typer.Argument(..., help="What the money was spent on"),
    payer: str = typer.Option(
        ..., "--payer", "-p", help="Who paid (name, 1 or 2)"
    ),
    split: list[str] = typer.Option(
        [], "--split", "-s", help="Category=amount (repeatable)"
    ),
    date: str | None = typer.Option(
        None, "--date", "-d", help="Date as YYYY-MM-DD (default: now)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Record a new shared expense.

    Without --split, categories and amounts are asked for interactively.
    """
    with open_service(verbose) as service:
        role = service.get_partners().role_for(payer)

        when = None
        if date:
            when = datetime.fromisoformat(date)
            if when.tzinfo is None:
                when = when.replace(tzinfo=service.settings.tz)

        splits = [parse_split(value) for value in split]
        if not splits:
            console.print(f"\n[bold]📝 {description}[/bold]")
            splits = prompt_splits(service.categories)
            if not splits:
                console.print("[yellow]No splits entered, nothing recorded.[/yellow]")
                return

        transaction = service.add_transaction(description, role, splits, date=when)

        console.print(
            f"\n[bold green]✓ Recorded {transaction.description}[/bold green] "
            f"{format_money(transaction.total_amount)} "
            f"paid by {service.get_partners().name_for(role)}"
        )
        console.print(f"[dim]{split_list(transaction.splits)}[/dim]")


@app.command("list")
def list_transactions(
    month: str | None = typer.Option(
        None, "--month", "-m", help="Only show YYYY-MM"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List transactions, newest first."""
    with open_service(verbose) as service:
        window = parse_month(service, month) if month else None
        transactions = service.list_transactions(window)
        partners = service.get_partners()

        if not transactions:
            console.print("[yellow]No transactions yet.[/yellow]")
            return

        table = Table(title="Transactions", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", width=8)
        table.add_column("Date", width=10)
        table.add_column("Description", style="cyan", width=30)
        table.add_column("Paid by", style="yellow")
        table.add_column("Splits", no_wrap=False)
        table.add_column("Total", justify="right", width=12)

        for t in transactions:
            desc = t.description
            table.add_row(
                t.id[:8],
                t.date.astimezone(service.settings.tz).date().isoformat(),
                desc[:30] + "..." if len(desc) > 30 else desc,
                partners.name_for(t.payer),
                split_list(t.splits),
                format_money(t.total_amount),
            )

        console.print(table)


@app.command()
def delete(
    transaction_id: str = typer.Argument(..., help="Transaction id or unique prefix"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a transaction."""
    with open_service(verbose) as service:
        matches = [
            t for t in service.get_transactions() if t.id.startswith(transaction_id)
        ]
        if not matches:
            console.print(f"[yellow]No transaction matches {transaction_id}.[/yellow]")
            return
        if len(matches) > 1:
            console.print(
                f"[yellow]{len(matches)} transactions match {transaction_id}; "
                f"use a longer id.[/yellow]"
            )
            return

        target = matches[0]
        console.print(
            f"\n{target.description} {format_money(target.total_amount)} "
            f"({target.date.date().isoformat()})"
        )
        if not yes:
            confirm = input("Delete this entry? [y/N] ").strip().lower()
            if confirm not in ("y", "yes"):
                console.print("[yellow]Cancelled.[/yellow]")
                return

        service.delete_transaction(target.id)
        console.print("[bold green]✓ Deleted[/bold green]")


@app.command()
def equity(
    month: str | None = typer.Option(None, "--month", "-m", help="YYYY-MM"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show who owes whom for a month."""
    with open_service(verbose) as service:
        window = parse_month(service, month)
        result = service.equity(window)
        partners = service.get_partners()
        ratio = service.settings.ratio

        console.print(f"\n[bold]Shared equity, {window_label(window)}[/bold]")
        for role in PartnerRole:
            console.print(
                f"  {partners.name_for(role)} paid {format_money(result.paid[role])} "
                f"[dim](share {ratio.share_of(role):.0%})[/dim]"
            )
        console.print(f"  Combined: {format_money(result.combined_total)}\n")

        if result.owing_partner is None:
            console.print("[bold green]Balanced ✨[/bold green]")
        else:
            console.print(
                f"[bold]{partners.name_for(result.owing_partner)} owes "
                f"{partners.name_for(result.owing_partner.other)} "
                f"${result.owed_amount:,.2f}[/bold]"
            )


@app.command()
def budget(
    month: str | None = typer.Option(None, "--month", "-m", help="YYYY-MM"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show spending against monthly limits."""
    with open_service(verbose) as service:
        window = parse_month(service, month)
        report = service.budget_report(window)
        icons = {cat.name: cat.icon for cat in service.categories}

        table = Table(
            title=f"Budget Health, {window_label(window)}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Category", style="cyan")
        table.add_column("Spent", justify="right")
        table.add_column("Limit", justify="right")
        table.add_column("Status", justify="center")

        for row in report.categories:
            status = "[red]over[/red]" if row.over_budget else "[green]ok[/green]"
            if row.limit == 0:
                status = "[dim]no limit[/dim]"
            table.add_row(
                f"{icons.get(row.category, '')} {row.category}".strip(),
                format_money(row.spent),
                format_money(row.limit, use_color=False),
                status,
            )

        console.print(table)
        console.print(f"  Total spent: {format_money(report.total_spent)}")
        console.print(f"  Total limit: {format_money(report.total_limit)}")
        console.print(f"  Remaining:   {format_money(report.remaining)}")


@app.command("set-budget")
def set_budget(
    category: str = typer.Argument(..., help="Category name"),
    limit: str = typer.Argument(..., help="Monthly limit"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Set the monthly limit of a category."""
    with open_service(verbose) as service:
        budgets = service.set_budget(category, limit)
        console.print(
            f"[bold green]✓ {category}[/bold green] limit is now "
            f"{format_money(budgets[category], use_color=False)}"
        )


@app.command("settle-up")
def settle_up(
    month: str | None = typer.Option(None, "--month", "-m", help="YYYY-MM"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record a settlement that balances a month."""
    with open_service(verbose) as service:
        window = parse_month(service, month)
        result = service.equity(window)
        partners = service.get_partners()

        if result.owing_partner is None:
            console.print("[green]Already balanced ✨ Nothing to settle.[/green]")
            return

        console.print(
            f"\n{partners.name_for(result.owing_partner)} owes "
            f"{partners.name_for(result.owing_partner.other)} "
            f"${result.owed_amount:,.2f} for {window_label(window)}"
        )
        if not yes:
            confirm = input("Record the settlement? [y/N] ").strip().lower()
            if confirm not in ("y", "yes"):
                console.print("[yellow]Cancelled.[/yellow]")
                return

        settlement = service.settle_up(window)
        console.print(
            f"[bold green]✓ Settled[/bold green] "
            f"[dim](adjustment {format_money(settlement.total_amount)}, "
            f"id {settlement.id[:8]})[/dim]"
        )


def _confirm_overwrite(local_count: int) -> bool:
    console.print(
        f"\n[bold yellow]⚠️  The remote store returned no transactions, "
        f"but {local_count} exist on this device.[/bold yellow]"
    )
    console.print("[dim]The spreadsheet may be new or wiped.[/dim]")
    confirm = input("Replace local data with the empty remote copy? [y/N] ")
    return confirm.strip().lower() in ("y", "yes")


@app.command()
def sync(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Sync with the remote spreadsheet store.

    Pushes the full local state and adopts what the remote store holds
    afterwards. Nothing changes locally if the sync fails.
    """
    with open_service(verbose) as service:
        console.print("\n[bold blue]Syncing with remote store...[/bold blue]")
        result = service.sync(confirm_overwrite=_confirm_overwrite)

        if result.status is SyncStatus.SKIPPED:
            console.print("[yellow]Sync skipped. Local data kept as is.[/yellow]")
            return

        console.print(
            f"[bold green]✓ Synced[/bold green] {len(result.transactions)} "
            f"transactions, {len(result.budgets)} budgets"
        )


@app.command()
def summary(
    year: int | None = typer.Option(
        None, "--year", "-y", help="Calendar year (default: this year)"
    ),
    partner: str = typer.Option(
        "1", "--partner", "-p", help="Partner whose share row is shown"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show a month-by-category summary for a year."""
    with open_service(verbose) as service:
        year = year or datetime.now(service.settings.tz).year
        role = service.get_partners().role_for(partner)
        result = service.yearly_summary(year, share_partner=role)

        if not result.rows:
            console.print(f"[yellow]No transactions in {year}.[/yellow]")
            return

        table = Table(title=f"Summary {year}", show_header=True, header_style="bold magenta")
        table.add_column("Category", style="cyan")
        for name in MONTH_NAMES:
            table.add_column(name, justify="right")
        table.add_column("Yearly Total", justify="right", style="bold")

        for row in result.rows:
            table.add_row(
                row.category,
                *(f"{amount:,.2f}" for amount in row.months),
                f"{row.total:,.2f}",
            )

        table.add_row(
            "[bold]GRAND TOTAL[/bold]",
            *(f"{amount:,.2f}" for amount in result.grand_totals),
            f"{result.grand_total:,.2f}",
        )
        table.add_row(
            f"[bold]{service.get_partners().name_for(role)} owes "
            f"({result.share_ratio:.0%})[/bold]",
            *(f"{amount:,.2f}" for amount in result.share_totals),
            f"{result.share_total:,.2f}",
        )

        console.print(table)


@app.command()
def partners(
    partner_1: str | None = typer.Option(None, "--partner-1", help="Name of partner 1"),
    partner_2: str | None = typer.Option(None, "--partner-2", help="Name of partner 2"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show or change partner display names."""
    with open_service(verbose) as service:
        profile: PartnerProfile = service.get_partners()
        if partner_1 or partner_2:
            profile = service.set_partners(
                partner_1 or profile.partner_1, partner_2 or profile.partner_2
            )
            console.print("[bold green]✓ Partner names updated[/bold green]")

        console.print(f"  Partner 1: [cyan]{profile.partner_1}[/cyan]")
        console.print(f"  Partner 2: [cyan]{profile.partner_2}[/cyan]")


@app.command("set-url")
def set_url(
    url: str = typer.Argument(..., help="Remote store endpoint URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Store the remote store URL used by `sync`."""
    with open_service(verbose) as service:
        service.set_sync_url(url)
        console.print("[bold green]✓ Sync URL saved[/bold green]")


@app.command()
def coach(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Ask the spending coach for tips on this month."""
    with open_service(verbose) as service:
        console.print("\n[bold blue]Asking the coach...[/bold blue]\n")
        console.print(service.advise())


@app.command()
def reset(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Erase local transactions and restore default budgets."""
    with open_service(verbose) as service:
        console.print(
            "\n[bold yellow]⚠️  This erases all local transactions and budgets[/bold yellow]"
        )
        confirm = input("Are you sure? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        service.reset()
        console.print("[bold green]✓ Local data reset[/bold green]")


@app.command()
def status(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show sync configuration and the last sync time."""
    with open_service(verbose) as service:
        last_sync = service.get_last_sync()
        console.print(f"  Sync URL:  {service.get_sync_url() or '[dim]not set[/dim]'}")
        console.print(f"  Sync mode: {service.settings.sync_mode}")
        if last_sync:
            console.print(
                f"  Last sync: {last_sync.astimezone(service.settings.tz):%Y-%m-%d %H:%M}"
            )
        else:
            console.print("  Last sync: [dim]never[/dim]")
        console.print(f"  Transactions: {len(service.get_transactions())}")
        console.print(
            f"  Coach: {'enabled' if service.coach is not None else 'disabled'}"
        )


if __name__ == "__main__":
    app()
