"""
Ledger-wide totals.

Totals are recomputed from the current entries on every call and never
stored, so they stay correct after any insert or delete.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Iterable

from freight_tax.calculator import ZERO, LoadLedgerEntry, net_payable
from freight_tax.itc import ITCLedgerEntry


@dataclass(frozen=True)
class LedgerTotals:
    """Sums over the loads and ITCs of a ledger."""

    total_client_base: Decimal = ZERO
    total_client_tax: Decimal = ZERO
    total_client_total: Decimal = ZERO
    total_carrier_all_in: Decimal = ZERO
    total_carrier_pre_tax: Decimal = ZERO
    total_carrier_tax: Decimal = ZERO
    total_net_payable_for_entries: Decimal = ZERO
    total_profit: Decimal = ZERO
    total_itc_before_tax: Decimal = ZERO
    total_itc_tax: Decimal = ZERO
    load_count: int = 0
    itc_count: int = 0

    @property
    def ledger_net_payable(self) -> Decimal:
        """Amount owed to the tax authority, after all ITCs."""
        return net_payable(
            self.total_client_tax, self.total_carrier_tax, self.total_itc_tax
        )

    def as_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["ledger_net_payable"] = self.ledger_net_payable
        return data


def aggregate(
    loads: Iterable[LoadLedgerEntry], itcs: Iterable[ITCLedgerEntry]
) -> LedgerTotals:
    """Straight sums over every entry. Empty input yields all zeros."""
    loads = list(loads)
    itcs = list(itcs)
    return LedgerTotals(
        total_client_base=sum((l.client_base_amount for l in loads), ZERO),
        total_client_tax=sum((l.client_tax for l in loads), ZERO),
        total_client_total=sum((l.client_total for l in loads), ZERO),
        total_carrier_all_in=sum((l.carrier_all_in_amount for l in loads), ZERO),
        total_carrier_pre_tax=sum((l.carrier_pre_tax_amount for l in loads), ZERO),
        total_carrier_tax=sum((l.carrier_tax for l in loads), ZERO),
        total_net_payable_for_entries=sum(
            (l.net_payable_for_entry for l in loads), ZERO
        ),
        total_profit=sum((l.profit for l in loads), ZERO),
        total_itc_before_tax=sum((i.amount_before_tax for i in itcs), ZERO),
        total_itc_tax=sum((i.tax_amount for i in itcs), ZERO),
        load_count=len(loads),
        itc_count=len(itcs),
    )
