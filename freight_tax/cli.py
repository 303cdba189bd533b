"""
Command-line interface for the freight tax ledger.

Provides subcommands for the jurisdiction rate table, one-off load
calculations, ledger summaries with CSV export, and party deletion checks.
"""

from __future__ import annotations

import argparse
import sys
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from freight_tax.calculator import quick_calculate, to_amount
from freight_tax.config import get_settings
from freight_tax.errors import LedgerError
from freight_tax.exporter import LedgerExporter, sort_loads
from freight_tax.importer import ImportResult, load_book
from freight_tax.logging_config import configure_logging
from freight_tax.parties import PartyKind
from freight_tax.rates import JurisdictionTable
from freight_tax.timestamps import format_timestamp

console = Console()


def _money(value: Decimal) -> str:
    return f"${value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):,.2f}"


def _rate(value: Decimal) -> str:
    return f"{value:.3%}"


def _load_book(args: argparse.Namespace) -> ImportResult:
    settings = get_settings()
    result = load_book(
        loads_path=args.loads,
        itcs_path=args.itcs,
        clients_path=getattr(args, "clients", None),
        carriers_path=getattr(args, "carriers", None),
        vendors_path=getattr(args, "vendors", None),
        default_jurisdiction=settings.default_jurisdiction,
    )
    for error in result.errors:
        console.print(f"[yellow]Skipping {error}[/yellow]")
    return result


# -----------------------------------------------------------------------
# Subcommand: rates
# -----------------------------------------------------------------------


def cmd_rates(args: argparse.Namespace) -> None:
    """Display the jurisdiction rate table or one jurisdiction's history."""
    table = JurisdictionTable()

    if args.jurisdiction:
        versions = table.history(args.jurisdiction)
        current = versions[-1]
        console.print(
            Panel(
                f"[bold]Jurisdiction:[/bold] {current.name} ({current.code or '-'})\n"
                f"[bold]Rate:[/bold] {_rate(current.rate)}\n"
                f"[bold]Label:[/bold] {current.label}\n"
                f"[bold]Versions:[/bold] {len(versions)}",
                title=f"{current.name} Tax Profile",
                border_style="cyan",
            )
        )
        return

    rates_table = Table(title="Jurisdiction Tax Rates", box=box.ROUNDED)
    rates_table.add_column("Code", style="bold")
    rates_table.add_column("Jurisdiction")
    rates_table.add_column("Rate", justify="right")
    rates_table.add_column("Label")
    for rate in table.all_jurisdictions():
        rates_table.add_row(rate.code or "-", rate.name, _rate(rate.rate), rate.label)
    console.print(rates_table)


# -----------------------------------------------------------------------
# Subcommand: calculate
# -----------------------------------------------------------------------


def cmd_calculate(args: argparse.Namespace) -> None:
    """Calculate tax figures for a single load."""
    settings = get_settings()
    jurisdiction = JurisdictionTable().get(
        args.jurisdiction or settings.default_jurisdiction
    )
    rate = to_amount(args.rate, "Tax rate") if args.rate is not None else jurisdiction.rate
    result = quick_calculate(
        args.client_base, args.carrier_all_in, rate, args.itc or "0"
    )

    console.print(
        Panel(
            f"[bold]Jurisdiction:[/bold] {jurisdiction.name} ({_rate(rate)})\n"
            f"[bold]Client Base:[/bold] {_money(result.client_base_amount)}\n"
            f"[bold]Tax Collected:[/bold] {_money(result.client_tax_collected)}\n"
            f"[bold]Client Total:[/bold] {_money(result.client_total_collected)}\n"
            f"[bold]Carrier All-In:[/bold] {_money(result.carrier_all_in_amount)}\n"
            f"[bold]Carrier Pre-Tax:[/bold] {_money(result.carrier_pre_tax_amount)}\n"
            f"[bold]Tax Paid (ITC):[/bold] {_money(result.carrier_tax_paid)}\n"
            f"[bold]Tax Payable:[/bold] {_money(result.tax_payable)}\n"
            f"[bold]Additional ITCs:[/bold] {_money(result.additional_itcs)}\n"
            f"[bold]Final Tax Payable:[/bold] {_money(result.final_tax_payable)}\n"
            f"[bold]Profit:[/bold] {_money(result.profit)}",
            title="Load Tax Calculation",
            border_style="blue",
        )
    )


# -----------------------------------------------------------------------
# Subcommand: ledger
# -----------------------------------------------------------------------


def cmd_ledger(args: argparse.Namespace) -> None:
    """Summarize a ledger from CSV input and optionally export it."""
    settings = get_settings()
    result = _load_book(args)
    book = result.book
    sort_key = args.sort_by or settings.export_sort_key
    descending = False if args.ascending else settings.export_descending

    names = {(p.kind, p.party_id): p.name for p in book.parties()}
    table = Table(title="Load Ledger", box=box.ROUNDED, show_lines=True)
    table.add_column("Load #", style="dim")
    table.add_column("Delivered")
    table.add_column("Client")
    table.add_column("Carrier")
    table.add_column("Jurisdiction")
    table.add_column("Client Base", justify="right")
    table.add_column("Tax Collected", justify="right")
    table.add_column("Tax Paid", justify="right")
    table.add_column("Profit", justify="right", style="bold")

    for load in sort_loads(book.loads(), sort_key, descending):
        table.add_row(
            load.load_number,
            format_timestamp(load.delivered_at),
            names.get((PartyKind.CLIENT, load.client_id), load.client_id),
            names.get((PartyKind.CARRIER, load.carrier_id), load.carrier_id),
            load.tax_jurisdiction,
            _money(load.client_base_amount),
            _money(load.client_tax),
            _money(load.carrier_tax),
            _money(load.profit),
        )
    console.print(table)

    totals = book.totals()
    console.print()
    console.print(
        Panel(
            f"[bold]Loads:[/bold] {totals.load_count}   "
            f"[bold]ITCs:[/bold] {totals.itc_count}\n"
            f"[bold]Tax Collected:[/bold] {_money(totals.total_client_tax)}\n"
            f"[bold]Tax Paid to Carriers:[/bold] {_money(totals.total_carrier_tax)}\n"
            f"[bold]Additional ITCs:[/bold] {_money(totals.total_itc_tax)}\n"
            f"[bold]Net Tax Payable (amount owed):[/bold] "
            f"{_money(totals.ledger_net_payable)}\n"
            f"[bold]Total Profit:[/bold] {_money(totals.total_profit)}",
            title="Ledger Summary",
            border_style="green",
        )
    )

    if args.export_csv:
        exporter = LedgerExporter(args.output_dir or settings.export_dir)
        path = exporter.export(
            book.loads(),
            book.itcs(),
            totals,
            filename=args.export_csv,
            parties=book.parties(),
            sort_key=sort_key,
            descending=descending,
        )
        console.print(f"[green]CSV exported to {path}[/green]")


# -----------------------------------------------------------------------
# Subcommand: can-delete
# -----------------------------------------------------------------------


def cmd_can_delete(args: argparse.Namespace) -> None:
    """Check whether a client, carrier or vendor may be deleted."""
    result = _load_book(args)
    if result.errors:
        # a skipped row may be the one referencing this party
        console.print(
            f"[red]Cannot check {args.kind} {args.id}: "
            f"{len(result.errors)} input row(s) could not be imported[/red]"
        )
        sys.exit(1)
    verdict = result.book.check_party_deletion(args.kind, args.id)
    if verdict.allowed:
        console.print(f"[green]{args.kind.title()} {args.id} can be deleted[/green]")
        return
    console.print(f"[red]{verdict.reason}[/red]")
    sys.exit(1)


# -----------------------------------------------------------------------
# Argument parser
# -----------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="freight-tax",
        description="Freight Tax Ledger - Multi-jurisdiction tax position, ITC tracking, and ledger export for freight brokerages",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default from FREIGHT_TAX_LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # rates
    rates_p = subparsers.add_parser("rates", help="View jurisdiction tax rates")
    rates_p.add_argument("--jurisdiction", "-j", help="Jurisdiction name or code")
    rates_p.set_defaults(func=cmd_rates)

    # calculate
    calc_p = subparsers.add_parser("calculate", help="Calculate tax for one load")
    calc_p.add_argument("--client-base", required=True, help="Client base amount (before tax)")
    calc_p.add_argument("--carrier-all-in", required=True, help="Carrier all-in amount (tax included)")
    calc_p.add_argument("--jurisdiction", "-j", help="Tax jurisdiction name or code")
    calc_p.add_argument("--rate", help="Override tax rate as a fraction, e.g. 0.13")
    calc_p.add_argument("--itc", help="Additional ITCs to deduct")
    calc_p.set_defaults(func=cmd_calculate)

    # ledger
    ledger_p = subparsers.add_parser("ledger", help="Summarize and export a ledger")
    ledger_p.add_argument("--loads", "-l", required=True, help="CSV file with loads")
    ledger_p.add_argument("--itcs", "-i", help="CSV file with ITCs")
    ledger_p.add_argument("--clients", help="CSV file with clients")
    ledger_p.add_argument("--carriers", help="CSV file with carriers")
    ledger_p.add_argument("--vendors", help="CSV file with vendors")
    ledger_p.add_argument("--sort-by", help="Load field to sort by (default: load_number)")
    ledger_p.add_argument("--ascending", action="store_true", help="Sort ascending")
    ledger_p.add_argument("--export-csv", help="Export ledger to CSV filename")
    ledger_p.add_argument("--output-dir", help="Output directory for exports")
    ledger_p.set_defaults(func=cmd_ledger)

    # can-delete
    del_p = subparsers.add_parser("can-delete", help="Check whether a party may be deleted")
    del_p.add_argument("--kind", required=True, choices=[k.value for k in PartyKind])
    del_p.add_argument("--id", required=True, help="Party id")
    del_p.add_argument("--loads", "-l", help="CSV file with loads")
    del_p.add_argument("--itcs", "-i", help="CSV file with ITCs")
    del_p.add_argument("--clients", help="CSV file with clients")
    del_p.add_argument("--carriers", help="CSV file with carriers")
    del_p.add_argument("--vendors", help="CSV file with vendors")
    del_p.set_defaults(func=cmd_can_delete)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    configure_logging(args.log_level or get_settings().log_level, console=Console(stderr=True))

    try:
        args.func(args)
    except (LedgerError, FileNotFoundError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
