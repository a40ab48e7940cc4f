"""CLI for MealSplit using Typer."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .db import Database
from .exceptions import MealSplitError
from .models import Member, Period, SettlementReport
from .service import LedgerService
from .ui import confirm_action, prompt_passcode, select_member_interactive

app = typer.Typer(
    name="mealsplit",
    help="Split a shared apartment's food costs by meals eaten",
)

console = Console()

ZERO_SUM_TOLERANCE = Decimal("1e-9")


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def parse_period(value: str | None) -> Period:
    """Turn "M-YYYY" / "YYYY-MM" into a Period, default today."""
    if value is None:
        return Period.current()
    try:
        return Period.parse(value)
    except ValueError as e:
        raise typer.BadParameter(
            f"{value!r} is not a month (use M-YYYY or YYYY-MM)"
        ) from e


PERIOD_OPTION = typer.Option(
    None,
    "--period",
    "-p",
    help="Month as M-YYYY or YYYY-MM (default: current month)",
)
MEMBER_OPTION = typer.Option(
    None, "--member", "-m", help="Member id or exact name (prompted if omitted)"
)
PASSCODE_OPTION = typer.Option(
    None,
    "--passcode",
    envvar="MEALSPLIT_ADMIN_PASSCODE",
    help="Admin passcode (prompted if required and omitted)",
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose output")


@contextmanager
def open_ledger(verbose: bool) -> Iterator[LedgerService]:
    """Load settings, open the database and report errors the way every command does."""
    setup_logging(verbose)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield LedgerService(settings, db)
    except MealSplitError as e:
        console.print(f"\n[bold yellow]⚠️  {e}[/bold yellow]\n")
        if verbose:
            raise
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


def resolve_member(service: LedgerService, member: str | None) -> Member | None:
    """Look up --member, or ask interactively when it was not given."""
    if member is not None:
        return service.find_member(member)
    return select_member_interactive(service.members())


def require_admin(service: LedgerService, passcode: str | None):
    """Prompt for and check the admin passcode when one is configured."""
    if service.requires_admin() and passcode is None:
        passcode = prompt_passcode()
    service.verify_admin(passcode)


def format_money(amount: Decimal, symbol: str = "৳", use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: (৳85.02)
    Positive amounts have spaces:      ৳85.02
    The spaces ensure decimal points align in tables.
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            formatted = f"({symbol}[red]{abs_amount:,.2f}[/red])"
        else:
            formatted = f"({symbol}{abs_amount:,.2f})"
    else:
        if use_color:
            formatted = f" [green]{symbol}{abs_amount:,.2f}[/green] "
        else:
            formatted = f" {symbol}{abs_amount:,.2f} "
    return formatted


def display_report(report: SettlementReport, symbol: str):
    """Display a settlement report in a table."""
    title = report.period.label if report.period else "Settlement"
    console.print(f"\n[bold]Settlement for {title}:[/bold]")
    console.print(f"  Total expenses: {format_money(report.total_expenses, symbol)}")
    console.print(f"  Total meals: {report.total_meals}")
    console.print(f"  Per-meal price: {format_money(report.per_meal_price, symbol)}")
    console.print()

    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Member", style="cyan", width=28)
    table.add_column("Paid", justify="right", width=14)
    table.add_column("Meals", justify="right", width=7)
    table.add_column("Meal cost", justify="right", width=14)
    table.add_column("Balance", justify="right", width=14)

    for entry in report.entries:
        table.add_row(
            str(entry.member_id),
            entry.member_name,
            format_money(entry.total_expenses, symbol),
            str(entry.total_meals),
            format_money(entry.meal_cost, symbol),
            format_money(entry.balance, symbol),
        )

    console.print(table)

    # Verification
    console.print()
    if report.total_meals == 0:
        console.print("  [dim]No meals logged: balances equal amounts paid[/dim]")
    elif abs(report.balance_sum) <= ZERO_SUM_TOLERANCE:
        console.print("  [green]✓ Balances sum to zero[/green]")
    else:
        console.print(
            f"  [red]✗ Balances sum to {report.balance_sum}, expected 0[/red]"
        )
    console.print(
        "  [dim]Positive balance: the household owes the member. "
        "Negative: the member owes the household.[/dim]"
    )


# ============================================================================
# Roster
# ============================================================================


@app.command()
def members(verbose: bool = VERBOSE_OPTION):
    """List household members."""
    with open_ledger(verbose) as service:
        roster = service.members()
        if not roster:
            console.print("[yellow]No members yet.[/yellow]")
            return

        table = Table(title="Members", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Name", style="cyan")
        for member in roster:
            table.add_row(str(member.id), member.name)
        console.print(table)


@app.command("add-member")
def add_member(
    name: str = typer.Argument(..., help="Display name (must be unique)"),
    passcode: str | None = PASSCODE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Add a member to the roster (admin)."""
    with open_ledger(verbose) as service:
        require_admin(service, passcode)
        member = service.add_member(name)
        console.print(f"[green]✓ Added {member.name} (#{member.id})[/green]")


@app.command()
def seed(
    passcode: str | None = PASSCODE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Insert the roster from MEALSPLIT_DEFAULT_MEMBERS (admin)."""
    with open_ledger(verbose) as service:
        require_admin(service, passcode)
        added = service.seed_members()
        if not added:
            console.print("[yellow]Roster already up to date.[/yellow]")
            return
        for member in added:
            console.print(f"[green]✓ Added {member.name} (#{member.id})[/green]")


# ============================================================================
# Member actions
# ============================================================================


@app.command()
def expense(
    amount: str = typer.Argument(..., help="Amount paid"),
    description: str = typer.Option("", "--description", "-d", help="What it was"),
    member: str | None = MEMBER_OPTION,
    period: str | None = PERIOD_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Log an expense you paid for the household."""
    month = parse_period(period)
    with open_ledger(verbose) as service:
        payer = resolve_member(service, member)
        if payer is None:
            console.print("[yellow]No member selected.[/yellow]")
            return

        record = service.record_expense(payer.id, amount, description, month)
        console.print(
            f"[green]✓ Recorded {format_money(record.amount, service.settings.currency_symbol, use_color=False).strip()} "
            f"for {payer.name} in {record.period.label} (expense #{record.id})[/green]"
        )


@app.command()
def meal(
    count: int = typer.Argument(1, help="Number of meals eaten that day"),
    on: datetime | None = typer.Option(
        None, "--date", "-D", formats=["%Y-%m-%d"], help="Day (default: today)"
    ),
    member: str | None = MEMBER_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Log your meal count for a day. Logging the same day again replaces it."""
    with open_ledger(verbose) as service:
        eater = resolve_member(service, member)
        if eater is None:
            console.print("[yellow]No member selected.[/yellow]")
            return

        record = service.record_meal(eater.id, on.date() if on else None, count)
        console.print(
            f"[green]✓ {eater.name}: {record.count} meals on {record.meal_date}"
            f" (entry #{record.id})[/green]"
        )


@app.command()
def statement(
    member: str | None = MEMBER_OPTION,
    period: str | None = PERIOD_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show your own expenses, meals and balance for a month."""
    month = parse_period(period)
    with open_ledger(verbose) as service:
        who = resolve_member(service, member)
        if who is None:
            console.print("[yellow]No member selected.[/yellow]")
            return

        symbol = service.settings.currency_symbol
        stmt = service.member_statement(who.id, month)

        console.print(f"\n[bold]{who.name} - {stmt.period.label}[/bold]")

        expenses_table = Table(title="Expenses", header_style="bold magenta")
        expenses_table.add_column("ID", style="dim", width=6)
        expenses_table.add_column("Logged", width=16)
        expenses_table.add_column("Description", style="cyan", width=36)
        expenses_table.add_column("Amount", justify="right", width=14)
        for record in stmt.expenses:
            expenses_table.add_row(
                str(record.id),
                record.created_at.strftime("%Y-%m-%d %H:%M"),
                record.description or "[dim]—[/dim]",
                format_money(record.amount, symbol),
            )
        console.print(expenses_table)

        meals_table = Table(title="Meals", header_style="bold magenta")
        meals_table.add_column("ID", style="dim", width=6)
        meals_table.add_column("Date", width=12)
        meals_table.add_column("Count", justify="right", width=7)
        for record in stmt.meals:
            meals_table.add_row(
                str(record.id), record.meal_date.isoformat(), str(record.count)
            )
        console.print(meals_table)

        entry = stmt.entry
        console.print()
        console.print(f"  Paid: {format_money(entry.total_expenses, symbol)}")
        console.print(
            f"  Meals: {entry.total_meals} x {format_money(stmt.per_meal_price, symbol).strip()}"
            f" = {format_money(entry.meal_cost, symbol)}"
        )
        console.print(f"  Balance: {format_money(entry.balance, symbol)}")


# ============================================================================
# Admin views
# ============================================================================


@app.command()
def report(
    period: str | None = PERIOD_OPTION,
    passcode: str | None = PASSCODE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show who owes whom for a month (admin)."""
    month = parse_period(period)
    with open_ledger(verbose) as service:
        require_admin(service, passcode)
        display_report(service.settle(month), service.settings.currency_symbol)


@app.command("expenses")
def list_expenses(
    period: str | None = PERIOD_OPTION,
    passcode: str | None = PASSCODE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """List every expense in a month (admin)."""
    month = parse_period(period)
    with open_ledger(verbose) as service:
        require_admin(service, passcode)
        names = {member.id: member.name for member in service.members()}
        symbol = service.settings.currency_symbol

        table = Table(title=f"Expenses - {month.label}", header_style="bold magenta")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Logged", width=16)
        table.add_column("Member", style="cyan", width=24)
        table.add_column("Description", width=36)
        table.add_column("Amount", justify="right", width=14)
        for record in service.expenses(month):
            table.add_row(
                str(record.id),
                record.created_at.strftime("%Y-%m-%d %H:%M"),
                names.get(record.member_id, f"#{record.member_id}"),
                record.description or "[dim]—[/dim]",
                format_money(record.amount, symbol),
            )
        console.print(table)


@app.command("meals")
def list_meals(
    period: str | None = PERIOD_OPTION,
    passcode: str | None = PASSCODE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """List every meal entry in a month, newest first (admin)."""
    month = parse_period(period)
    with open_ledger(verbose) as service:
        require_admin(service, passcode)
        names = {member.id: member.name for member in service.members()}

        table = Table(title=f"Meals - {month.label}", header_style="bold magenta")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Date", width=12)
        table.add_column("Member", style="cyan", width=24)
        table.add_column("Count", justify="right", width=7)
        for record in service.meals(month, newest_first=True):
            table.add_row(
                str(record.id),
                record.meal_date.isoformat(),
                names.get(record.member_id, f"#{record.member_id}"),
                str(record.count),
            )
        console.print(table)


@app.command()
def months(verbose: bool = VERBOSE_OPTION):
    """List months that have any expenses or meals, newest first."""
    with open_ledger(verbose) as service:
        periods = service.available_periods()
        if not periods:
            console.print("[yellow]Nothing recorded yet.[/yellow]")
            return
        for item in periods:
            console.print(f"  {item.month}-{item.year}  [dim]{item.label}[/dim]")


@app.command("edit-expense")
def edit_expense(
    expense_id: int = typer.Argument(..., help="Expense id"),
    amount: str | None = typer.Option(None, "--amount", "-a", help="New amount"),
    description: str | None = typer.Option(
        None, "--description", "-d", help="New description"
    ),
    passcode: str | None = PASSCODE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Change an expense's amount or description (admin)."""
    with open_ledger(verbose) as service:
        require_admin(service, passcode)
        if amount is None and description is None:
            console.print("[yellow]Nothing to change.[/yellow]")
            return
        record = service.edit_expense(expense_id, amount, description)
        console.print(
            f"[green]✓ Expense #{record.id}: "
            f"{format_money(record.amount, service.settings.currency_symbol, use_color=False).strip()}"
            f" {record.description}[/green]"
        )


@app.command("delete-expense")
def delete_expense(
    expense_id: int = typer.Argument(..., help="Expense id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    passcode: str | None = PASSCODE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Delete an expense (admin)."""
    with open_ledger(verbose) as service:
        require_admin(service, passcode)
        record = service.get_expense(expense_id)
        if not yes and not confirm_action(
            f"⚠️  Delete expense #{record.id} ({record.amount}, {record.description or 'no description'})?"
        ):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        service.remove_expense(expense_id)
        console.print(f"[green]✓ Deleted expense #{expense_id}[/green]")


@app.command("edit-meal")
def edit_meal(
    meal_id: int = typer.Argument(..., help="Meal entry id"),
    on: datetime | None = typer.Option(
        None, "--date", "-D", formats=["%Y-%m-%d"], help="New day (same month)"
    ),
    count: int | None = typer.Option(None, "--count", "-c", help="New meal count"),
    passcode: str | None = PASSCODE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Change a meal entry's day or count (admin)."""
    with open_ledger(verbose) as service:
        require_admin(service, passcode)
        if on is None and count is None:
            console.print("[yellow]Nothing to change.[/yellow]")
            return
        record = service.edit_meal(meal_id, on.date() if on else None, count)
        console.print(
            f"[green]✓ Meal entry #{record.id}: {record.count} meals on "
            f"{record.meal_date}[/green]"
        )


@app.command("delete-meal")
def delete_meal(
    meal_id: int = typer.Argument(..., help="Meal entry id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    passcode: str | None = PASSCODE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Delete a meal entry (admin)."""
    with open_ledger(verbose) as service:
        require_admin(service, passcode)
        record = service.get_meal(meal_id)
        if not yes and not confirm_action(
            f"⚠️  Delete meal entry #{record.id} ({record.count} meals on {record.meal_date})?"
        ):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        service.remove_meal(meal_id)
        console.print(f"[green]✓ Deleted meal entry #{meal_id}[/green]")


@app.command()
def export(
    period: str | None = PERIOD_OPTION,
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write JSON to this file instead of stdout"
    ),
    passcode: str | None = PASSCODE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Export a month's members, records and settlement as JSON (admin)."""
    month = parse_period(period)
    with open_ledger(verbose) as service:
        require_admin(service, passcode)
        previous = service.last_backup()
        payload = service.export_period(month).model_dump_json(indent=2)
        if output is None:
            console.print_json(payload)
            return
        output.write_text(payload, encoding="utf-8")
        console.print(f"[green]✓ Exported {month.label} to {output}[/green]")
        if previous is not None:
            console.print(f"[dim]Previous backup: {previous:%Y-%m-%d %H:%M}[/dim]")


if __name__ == "__main__":
    app()
