"""
Ledger CSV exporter.

Produces a spreadsheet-ready snapshot of the whole ledger. The layout is
a fixed contract for downstream consumers:

    load header / load rows / blank /
    "Additional ITCs" / ITC header / ITC rows / ITC TOTALS /
    blank / TOTALS

Every row has the same number of cells as the load header. Amounts are
rounded half-up to two decimals and timestamps use ``MM/DD/YYYY HH:MM``.
"""

from __future__ import annotations

import csv
import dataclasses
import io
import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Iterable, Optional

from freight_tax.aggregator import LedgerTotals, aggregate
from freight_tax.calculator import LoadLedgerEntry
from freight_tax.errors import PreconditionError
from freight_tax.itc import ITCLedgerEntry
from freight_tax.logging_config import get_logger
from freight_tax.parties import Party, PartyKind
from freight_tax.timestamps import format_timestamp

logger = get_logger(__name__)

LOAD_HEADERS = [
    "Load Number",
    "Delivery Date & Time",
    "Client",
    "Carrier",
    "Tax Jurisdiction",
    "Delivery Jurisdiction",
    "Client Base",
    "Client Tax",
    "Client Total",
    "Carrier All-In",
    "Carrier Pre-Tax",
    "Carrier Tax",
    "Tax Payable",
    "Profit",
]

ITC_HEADERS = [
    "ITC #",
    "Description",
    "Paid To",
    "Category",
    "Invoice Date",
    "Tax Registration Number",
    "Payment Date",
    "Amount Before Tax",
    "Tax Amount (ITC)",
]

ITC_SECTION_TITLE = "Additional ITCs"
UNKNOWN_CLIENT = "Unknown Client"
UNKNOWN_CARRIER = "Unknown Carrier"

_SORTABLE_FIELDS = frozenset(f.name for f in dataclasses.fields(LoadLedgerEntry))
_WIDTH = len(LOAD_HEADERS)


def format_money(value: Decimal) -> str:
    """Round half-up to cents and render with exactly two decimals."""
    return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def load_number_key(load_number: str) -> int:
    """Numeric portion of a load number; ``LD-0042`` sorts as 42, none as 0."""
    digits = re.sub(r"\D", "", load_number or "")
    return int(digits) if digits else 0


def sort_loads(
    loads: Iterable[LoadLedgerEntry],
    sort_key: str = "load_number",
    descending: bool = True,
) -> list[LoadLedgerEntry]:
    """
    Order loads by any entry field.

    ``load_number`` compares the digits it contains as an integer. Other
    fields compare by value.
    """
    if sort_key not in _SORTABLE_FIELDS:
        raise PreconditionError(
            f"Cannot sort loads by {sort_key!r}; choose one of "
            f"{', '.join(sorted(_SORTABLE_FIELDS))}"
        )
    if sort_key == "load_number":
        key = lambda load: load_number_key(load.load_number)  # noqa: E731
    else:
        key = lambda load: getattr(load, sort_key)  # noqa: E731
    return sorted(loads, key=key, reverse=descending)


def _pad(row: list[str]) -> list[str]:
    return row + [""] * (_WIDTH - len(row))


def _party_names(parties: Optional[Iterable[Party]]) -> dict[tuple[PartyKind, str], str]:
    return {(p.kind, p.party_id): p.name for p in parties or ()}


def export_ledger_to_csv(
    loads: Iterable[LoadLedgerEntry],
    itcs: Iterable[ITCLedgerEntry],
    totals: Optional[LedgerTotals] = None,
    parties: Optional[Iterable[Party]] = None,
    sort_key: str = "load_number",
    descending: bool = True,
) -> str:
    """
    Render the ledger as CSV text.

    ``totals`` should come from ``aggregate`` over the same entries; when
    omitted it is computed here. The TOTALS row prints those figures as
    given, including the ITC-inclusive net payable.
    """
    loads = list(loads)
    itcs = list(itcs)
    if totals is None:
        totals = aggregate(loads, itcs)
    names = _party_names(parties)

    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(LOAD_HEADERS)

    for load in sort_loads(loads, sort_key, descending):
        writer.writerow(
            [
                load.load_number,
                format_timestamp(load.delivered_at),
                names.get((PartyKind.CLIENT, load.client_id), UNKNOWN_CLIENT),
                names.get((PartyKind.CARRIER, load.carrier_id), UNKNOWN_CARRIER),
                load.tax_jurisdiction,
                load.delivery_jurisdiction or load.tax_jurisdiction,
                format_money(load.client_base_amount),
                format_money(load.client_tax),
                format_money(load.client_total),
                format_money(load.carrier_all_in_amount),
                format_money(load.carrier_pre_tax_amount),
                format_money(load.carrier_tax),
                format_money(load.net_payable_for_entry),
                format_money(load.profit),
            ]
        )

    writer.writerow(_pad([]))
    writer.writerow(_pad([ITC_SECTION_TITLE]))
    writer.writerow(_pad(list(ITC_HEADERS)))

    for index, itc in enumerate(itcs, start=1):
        writer.writerow(
            _pad(
                [
                    str(index),
                    itc.description,
                    f"{itc.payee_name} (Vendor)" if itc.vendor_id else itc.payee_name,
                    itc.category or "",
                    format_timestamp(itc.invoiced_at),
                    itc.tax_registration_number or "",
                    format_timestamp(itc.paid_at),
                    format_money(itc.amount_before_tax),
                    format_money(itc.tax_amount),
                ]
            )
        )

    writer.writerow(
        _pad(
            ["ITC TOTALS", "", "", "", "", "", ""]
            + [
                format_money(totals.total_itc_before_tax),
                format_money(totals.total_itc_tax),
            ]
        )
    )
    writer.writerow(_pad([]))
    writer.writerow(
        ["TOTALS", "", "", "", "", ""]
        + [
            format_money(totals.total_client_base),
            format_money(totals.total_client_tax),
            format_money(totals.total_client_total),
            format_money(totals.total_carrier_all_in),
            format_money(totals.total_carrier_pre_tax),
            format_money(totals.total_carrier_tax),
            format_money(totals.ledger_net_payable),
            format_money(totals.total_profit),
        ]
    )
    return output.getvalue()


class LedgerExporter:
    """
    Writes ledger exports into an output directory.

    The directory is created on first write.
    """

    def __init__(self, output_dir: Optional[str] = None) -> None:
        self.output_dir = Path(output_dir) if output_dir else Path("exports")

    @staticmethod
    def default_filename(today: Optional[date] = None) -> str:
        return f"tax-ledger-export-{(today or date.today()).isoformat()}.csv"

    def export(
        self,
        loads: Iterable[LoadLedgerEntry],
        itcs: Iterable[ITCLedgerEntry],
        totals: Optional[LedgerTotals] = None,
        filename: Optional[str] = None,
        **options: Any,
    ) -> Path:
        """Export to ``output_dir/filename`` and return the written path."""
        csv_str = export_ledger_to_csv(loads, itcs, totals, **options)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / (filename or self.default_filename())
        path.write_text(csv_str, encoding="utf-8")
        logger.info("Exported ledger to %s", path)
        return path
