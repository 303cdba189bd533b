"""
Freight load tax calculation engine.

Handles:
- Tax collected on the client invoice (tax-exclusive base amount)
- Tax backed out of the carrier's all-in (tax-inclusive) payment
- Per-load net payable and profit
- Rate snapshotting from the jurisdiction table at entry creation

No rounding happens here. Figures keep full ``Decimal`` precision and are
rounded to cents only when displayed or exported.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from freight_tax.errors import PreconditionError
from freight_tax.logging_config import get_logger
from freight_tax.parties import require_id
from freight_tax.rates import DEFAULT_JURISDICTION, JurisdictionRate, JurisdictionTable
from freight_tax.timestamps import parse_timestamp

logger = get_logger(__name__)

ZERO = Decimal("0")


def to_amount(value: Any, field_name: str = "amount") -> Decimal:
    """Convert user input to a non-negative Decimal or raise PreconditionError."""
    if value is None or isinstance(value, bool):
        raise PreconditionError(f"{field_name} is required")
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip().replace(",", "")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise PreconditionError(f"{field_name} is not a number: {value!r}") from None
    if not amount.is_finite():
        raise PreconditionError(f"{field_name} must be finite: {value!r}")
    if amount < 0:
        raise PreconditionError(f"{field_name} cannot be negative: {amount}")
    return amount


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------


def client_tax(client_base_amount: Decimal, tax_rate: Decimal) -> Decimal:
    return client_base_amount * tax_rate


def client_total(client_base_amount: Decimal, tax: Decimal) -> Decimal:
    return client_base_amount + tax


def carrier_pre_tax(carrier_all_in_amount: Decimal, tax_rate: Decimal) -> Decimal:
    """Back the pre-tax cost out of a tax-inclusive carrier payment."""
    return carrier_all_in_amount / (1 + tax_rate)


def carrier_tax(carrier_all_in_amount: Decimal, pre_tax_amount: Decimal) -> Decimal:
    return carrier_all_in_amount - pre_tax_amount


def net_payable(
    collected: Decimal, paid: Decimal, additional_itcs: Decimal = ZERO
) -> Decimal:
    return collected - paid - additional_itcs


def profit(client_base_amount: Decimal, carrier_pre_tax_amount: Decimal) -> Decimal:
    return client_base_amount - carrier_pre_tax_amount


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class Load:
    """Raw load details as entered, before any tax is computed."""

    load_number: str
    delivered_at: datetime
    client_id: str
    carrier_id: str
    client_base_amount: Decimal
    carrier_all_in_amount: Decimal
    tax_jurisdiction: Optional[str] = None
    delivery_jurisdiction: Optional[str] = None
    entry_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Load":
        delivered = data.get("delivered_at", data.get("delivery_date"))
        if isinstance(delivered, str):
            delivered = parse_timestamp(delivered)
        if not isinstance(delivered, datetime):
            raise PreconditionError("Delivery date is required")
        return cls(
            load_number=str(data.get("load_number", "")).strip(),
            delivered_at=delivered,
            client_id=str(data.get("client_id", "")),
            carrier_id=str(data.get("carrier_id", "")),
            client_base_amount=to_amount(
                data.get("client_base_amount"), "Client base amount"
            ),
            carrier_all_in_amount=to_amount(
                data.get("carrier_all_in_amount"), "Carrier all-in amount"
            ),
            tax_jurisdiction=(str(data.get("tax_jurisdiction") or "").strip() or None),
            delivery_jurisdiction=(
                str(data.get("delivery_jurisdiction") or "").strip() or None
            ),
            entry_id=(str(data.get("id") or "").strip() or None),
        )


@dataclass(frozen=True)
class LoadLedgerEntry:
    """
    A load with its tax figures computed once at creation.

    ``tax_rate`` is the jurisdiction rate captured when the entry was made.
    It is stored, never re-read from the table, so later rate changes do
    not alter historical figures.
    """

    entry_id: str
    load_number: str
    delivered_at: datetime
    client_id: str
    carrier_id: str
    tax_jurisdiction: str
    delivery_jurisdiction: str
    client_base_amount: Decimal
    carrier_all_in_amount: Decimal
    tax_rate: Decimal

    client_tax: Decimal
    client_total: Decimal
    carrier_pre_tax_amount: Decimal
    carrier_tax: Decimal
    net_payable_for_entry: Decimal  # ignores ITCs; see LedgerTotals
    profit: Decimal


@dataclass(frozen=True)
class TaxBreakdown:
    """Result of a one-off calculation outside the ledger."""

    client_base_amount: Decimal
    client_tax_collected: Decimal
    client_total_collected: Decimal
    carrier_all_in_amount: Decimal
    carrier_pre_tax_amount: Decimal
    carrier_tax_paid: Decimal
    tax_payable: Decimal
    additional_itcs: Decimal
    final_tax_payable: Decimal
    profit: Decimal


def _validated_rate(tax_rate: Any) -> Decimal:
    if tax_rate is None:
        raise PreconditionError("Tax rate is required")
    return to_amount(tax_rate, "Tax rate")


def compute_load_entry(load: Load, jurisdiction_rate: JurisdictionRate) -> LoadLedgerEntry:
    """
    Turn a raw load into a ledger entry using a snapshot of the rate.

    All inputs are validated before any arithmetic so an invalid entry can
    never be constructed.
    """
    if jurisdiction_rate is None:
        raise PreconditionError("Tax rate is required")
    rate = _validated_rate(jurisdiction_rate.rate)
    base = to_amount(load.client_base_amount, "Client base amount")
    all_in = to_amount(load.carrier_all_in_amount, "Carrier all-in amount")
    load_number = require_id(load.load_number, "load number")
    client_id = require_id(load.client_id, "client id")
    carrier_id = require_id(load.carrier_id, "carrier id")
    if not isinstance(load.delivered_at, datetime):
        raise PreconditionError("Delivery date is required")

    collected = client_tax(base, rate)
    pre_tax = carrier_pre_tax(all_in, rate)
    paid = carrier_tax(all_in, pre_tax)

    entry = LoadLedgerEntry(
        entry_id=load.entry_id or str(uuid.uuid4()),
        load_number=load_number,
        delivered_at=load.delivered_at,
        client_id=client_id,
        carrier_id=carrier_id,
        tax_jurisdiction=jurisdiction_rate.name,
        delivery_jurisdiction=load.delivery_jurisdiction or jurisdiction_rate.name,
        client_base_amount=base,
        carrier_all_in_amount=all_in,
        tax_rate=rate,
        client_tax=collected,
        client_total=client_total(base, collected),
        carrier_pre_tax_amount=pre_tax,
        carrier_tax=paid,
        net_payable_for_entry=net_payable(collected, paid),
        profit=profit(base, pre_tax),
    )
    logger.debug(
        "Load %s @ %s: collected %s, paid %s",
        entry.load_number,
        rate,
        collected,
        paid,
    )
    return entry


def quick_calculate(
    client_base_amount: Any,
    carrier_all_in_amount: Any,
    tax_rate: Any,
    additional_itcs: Any = ZERO,
) -> TaxBreakdown:
    """Single-load what-if calculation, optionally deducting extra ITCs."""
    rate = _validated_rate(tax_rate)
    base = to_amount(client_base_amount, "Client base amount")
    all_in = to_amount(carrier_all_in_amount, "Carrier all-in amount")
    itcs = to_amount(additional_itcs, "Additional ITCs")

    collected = client_tax(base, rate)
    pre_tax = carrier_pre_tax(all_in, rate)
    paid = carrier_tax(all_in, pre_tax)
    payable = net_payable(collected, paid)

    return TaxBreakdown(
        client_base_amount=base,
        client_tax_collected=collected,
        client_total_collected=client_total(base, collected),
        carrier_all_in_amount=all_in,
        carrier_pre_tax_amount=pre_tax,
        carrier_tax_paid=paid,
        tax_payable=payable,
        additional_itcs=itcs,
        final_tax_payable=payable - itcs,
        profit=profit(base, pre_tax),
    )


class LoadCalculator:
    """
    Resolves a load's jurisdiction in the rate table and computes its entry.

    Loads without a tax jurisdiction use ``default_jurisdiction``.
    """

    def __init__(
        self,
        table: Optional[JurisdictionTable] = None,
        default_jurisdiction: str = DEFAULT_JURISDICTION,
    ) -> None:
        self.table = table or JurisdictionTable()
        self.default_jurisdiction = default_jurisdiction

    def rate_for(self, load: Load) -> JurisdictionRate:
        return self.table.get(load.tax_jurisdiction or self.default_jurisdiction)

    def calculate(self, load: Load) -> LoadLedgerEntry:
        return compute_load_entry(load, self.rate_for(load))
