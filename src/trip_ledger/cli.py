"""CLI for trip-ledger using Typer."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .db import Database
from .models import DocumentType, ExpenseCategory, Group, Snapshot
from .rounding import is_settled
from .service import LedgerService
from .settlement import apply_settlement
from .ui import confirm_action, select_group_interactive

app = typer.Typer(
    name="trip-ledger",
    help="Track shared travel expenses, balances and settle-up payments",
)

console = Console()

GROUP_OPTION_HELP = "Group id or name (prompts when omitted and there are several)"


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@contextmanager
def open_service(verbose: bool) -> Iterator[LedgerService]:
    """
    Open the snapshot store and yield a service.

    Bad option values propagate so typer reports them as usage errors (exit 2);
    anything else is printed and exits 1.
    """
    setup_logging(verbose)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path, key=settings.snapshot_key)
        yield LedgerService(settings, db)
    except typer.BadParameter:
        raise
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


def format_money(amount: Decimal | float, symbol: str = "₹", use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: (₹85.02)
    Positive amounts have spaces:      ₹85.02
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"({symbol}[red]{abs_amount:,.2f}[/red])"
        return f"({symbol}{abs_amount:,.2f})"
    if use_color:
        return f" [green]{symbol}{abs_amount:,.2f}[/green] "
    return f" {symbol}{abs_amount:,.2f} "


def parse_date_option(value: str | None, option: str) -> date | None:
    """Parse a YYYY-MM-DD option value."""
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise typer.BadParameter(f"{value!r} is not a YYYY-MM-DD date", param_hint=option) from e


def pick_group(service: LedgerService, group_ref: str | None) -> Group | None:
    """Resolve --group, or choose interactively when it was not given."""
    if group_ref:
        return service.resolve_group(group_ref)

    groups = service.list_groups()
    if not groups:
        console.print("[yellow]No groups found. Create one with 'trip-ledger add-group'.[/yellow]")
        return None
    if len(groups) == 1:
        return groups[0]

    group_id = select_group_interactive(groups)
    if group_id is None:
        console.print("[yellow]No group selected.[/yellow]")
        return None
    return service.resolve_group(group_id)


def member_names(group: Group) -> dict[str, str]:
    return {m.id: m.name for m in group.members}


@app.command()
def groups(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List all groups."""
    with open_service(verbose) as service:
        all_groups = service.list_groups()
        if not all_groups:
            console.print("[yellow]No groups found.[/yellow]")
            return

        table = Table(title="Groups", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Members")
        table.add_column("Trip dates", style="yellow")

        for group in all_groups:
            dates = "—"
            if group.start_date or group.end_date:
                dates = f"{group.start_date or '?'} → {group.end_date or '?'}"
            table.add_row(
                group.id,
                group.name,
                ", ".join(m.name for m in group.members),
                dates,
            )

        console.print(table)


@app.command()
def summary(
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_OPTION_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show totals, category breakdown, member balances and forecast."""
    with open_service(verbose) as service:
        selected = pick_group(service, group)
        if selected is None:
            return

        symbol = service.settings.currency_symbol
        totals = service.group_totals(selected.id)
        forecast_total = service.forecast(selected.id)
        names = member_names(selected)

        console.print(f"\n[bold]{selected.name}[/bold]")
        console.print(f"  Total spent: {format_money(totals.total, symbol)}")
        console.print(f"  Forecast total: {format_money(forecast_total, symbol)}")
        console.print()

        if totals.by_category:
            categories = Table(title="By Category", show_header=True, header_style="bold magenta")
            categories.add_column("Category", style="cyan")
            categories.add_column("Amount", justify="right")
            for label, amount in sorted(totals.by_category.items()):
                categories.add_row(label, format_money(amount, symbol))
            console.print(categories)

        balances = Table(title="Balances", show_header=True, header_style="bold magenta")
        balances.add_column("Member", style="cyan")
        balances.add_column("Balance", justify="right")
        balances.add_column("Status")
        for member_id, balance in totals.member_balances.items():
            if is_settled(balance):
                status = "settled"
            else:
                status = "owed" if balance > 0 else "owes"
            balances.add_row(
                names.get(member_id, member_id), format_money(balance, symbol), status
            )
        console.print(balances)


@app.command()
def settle(
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_OPTION_HELP),
    simple: bool = typer.Option(
        False, "--simple", help="Use plain largest-first matching (no exact-match pass)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show the payments that settle everyone up."""
    with open_service(verbose) as service:
        selected = pick_group(service, group)
        if selected is None:
            return

        symbol = service.settings.currency_symbol
        plan = service.settlement_plan(selected.id, simple=simple)
        if not plan:
            console.print(
                f"\n[green]No settlements needed for {selected.name}. Everyone is even.[/green]"
            )
            return

        names = member_names(selected)
        table = Table(
            title=f"Settlement for {selected.name}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("From", style="cyan")
        table.add_column("To", style="cyan")
        table.add_column("Amount", justify="right")
        for tx in plan:
            table.add_row(
                names.get(tx.from_member_id, tx.from_member_id),
                names.get(tx.to_member_id, tx.to_member_id),
                format_money(tx.amount, symbol),
            )
        console.print(table)

        balances = service.group_totals(selected.id).member_balances
        residual = apply_settlement(balances, plan)
        worst = max((abs(v) for v in residual.values()), default=Decimal("0"))
        console.print(f"\n  Payments: {len(plan)}")
        if worst <= Decimal("0.01"):
            console.print("  [green]✓ All balances settle to zero[/green]")
        else:
            console.print(f"  [red]✗ Residual balance of {worst:.2f} remains[/red]")


@app.command()
def forecast(
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_OPTION_HELP),
    lookahead: int | None = typer.Option(
        None, "--lookahead", "-l", min=0, help="Days to project when trip dates are unknown"
    ),
    today: str | None = typer.Option(None, "--today", help="Treat this YYYY-MM-DD as today"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Forecast the group's final trip spend."""
    with open_service(verbose) as service:
        selected = pick_group(service, group)
        if selected is None:
            return

        symbol = service.settings.currency_symbol
        as_of = parse_date_option(today, "--today")
        spent = service.group_totals(selected.id).total
        predicted = service.forecast(selected.id, lookahead=lookahead, today=as_of)

        console.print(f"\n[bold]{selected.name}[/bold]")
        console.print(f"  Spent so far: {format_money(spent, symbol)}")
        console.print(f"  Forecast total: {format_money(predicted, symbol)}")


@app.command()
def activity(
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Entries to show"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show recent activity, newest first."""
    with open_service(verbose) as service:
        entries = service.recent_activity(limit)
        if not entries:
            console.print("[yellow]No activity yet.[/yellow]")
            return

        table = Table(title="Recent Activity", show_header=True, header_style="bold magenta")
        table.add_column("When", style="dim")
        table.add_column("Type", style="yellow")
        table.add_column("Message", style="cyan")
        for entry in entries:
            stamp = entry.at.astimezone().strftime("%Y-%m-%d %H:%M")
            table.add_row(stamp, entry.type, entry.message)
        console.print(table)


@app.command("add-group")
def add_group(
    name: str = typer.Argument(..., help="Group name"),
    member: list[str] = typer.Option(..., "--member", "-m", help="Member name (repeatable)"),
    start: str | None = typer.Option(None, "--start", help="Trip start date YYYY-MM-DD"),
    end: str | None = typer.Option(None, "--end", help="Trip end date YYYY-MM-DD"),
    description: str | None = typer.Option(None, "--description", "-d", help="Description"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a travel group."""
    with open_service(verbose) as service:
        created = service.add_group(
            name,
            member,
            start_date=parse_date_option(start, "--start"),
            end_date=parse_date_option(end, "--end"),
            description=description,
        )
        console.print(
            f"[bold green]✓ Created group {created.name}[/bold green] "
            f"[dim]({created.id}, {len(created.members)} members)[/dim]"
        )


@app.command("add-expense")
def add_expense(
    amount: str = typer.Argument(..., help="Amount, e.g. 1250.50"),
    description: str = typer.Argument(..., help="What was paid for"),
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_OPTION_HELP),
    paid_by: str = typer.Option(..., "--paid-by", "-p", help="Payer (member name or id)"),
    split: list[str] | None = typer.Option(
        None, "--split", "-s", help="Member to split with (repeatable, default: everyone)"
    ),
    category: ExpenseCategory = typer.Option(
        ExpenseCategory.OTHER, "--category", "-c", case_sensitive=False, help="Category"
    ),
    when: str | None = typer.Option(None, "--date", help="ISO date or timestamp (default: now)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record an expense split equally among members."""
    with open_service(verbose) as service:
        selected = pick_group(service, group)
        if selected is None:
            return

        timestamp = None
        if when:
            try:
                timestamp = datetime.fromisoformat(when)
            except ValueError as e:
                raise typer.BadParameter(f"{when!r} is not an ISO date", param_hint="--date") from e

        expense = service.add_expense(
            selected.id,
            amount,
            description,
            paid_by=paid_by,
            split_among=split or None,
            category=category,
            when=timestamp,
        )
        console.print(
            f"[bold green]✓ Added {expense.description}[/bold green] "
            f"{format_money(expense.amount or 0, service.settings.currency_symbol)} "
            f"[dim]split {len(expense.split_member_ids)} ways[/dim]"
        )


@app.command("add-doc")
def add_doc(
    title: str = typer.Argument(..., help="Document title"),
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_OPTION_HELP),
    doc_type: DocumentType = typer.Option(
        DocumentType.OTHER, "--type", "-t", case_sensitive=False, help="Document type"
    ),
    url: str | None = typer.Option(None, "--url", help="Link to the document"),
    expiry: str | None = typer.Option(None, "--expiry", help="Expiry date YYYY-MM-DD"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Attach a travel document to a group."""
    with open_service(verbose) as service:
        selected = pick_group(service, group)
        if selected is None:
            return

        expiry_date = parse_date_option(expiry, "--expiry")
        doc = service.add_document(
            selected.id,
            title,
            doc_type=doc_type,
            url=url,
            expiry_date=(
                datetime.combine(expiry_date, datetime.min.time()) if expiry_date else None
            ),
        )
        console.print(f"[bold green]✓ Saved {doc.type.value}: {doc.title}[/bold green]")


@app.command("remove-group")
def remove_group(
    group: str | None = typer.Option(None, "--group", "-g", help=GROUP_OPTION_HELP),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a group with its expenses and documents."""
    with open_service(verbose) as service:
        selected = pick_group(service, group)
        if selected is None:
            return

        if not yes and not confirm_action(
            f"Delete {selected.name} and all of its expenses and documents?"
        ):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        removed = service.remove_group(selected.id)
        console.print(f"[bold green]✓ Deleted group {removed.name}[/bold green]")


@app.command("import")
def import_snapshot(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Snapshot JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Replace the stored data with a JSON snapshot."""
    with open_service(verbose) as service:
        snapshot = Snapshot.model_validate_json(path.read_text(encoding="utf-8"))
        service.replace_snapshot(snapshot)
        console.print(
            f"[bold green]✓ Imported {len(snapshot.groups)} groups, "
            f"{len(snapshot.expenses)} expenses[/bold green]"
        )


@app.command("export")
def export_snapshot(
    path: Path = typer.Argument(..., dir_okay=False, help="Destination JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Write the stored data to a JSON snapshot."""
    with open_service(verbose) as service:
        snapshot = service.snapshot()
        path.write_text(snapshot.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        console.print(f"[bold green]✓ Exported to {path}[/bold green]")


if __name__ == "__main__":
    app()
