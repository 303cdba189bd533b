"""
Input tax credit (ITC) entries.

An ITC records tax paid on a business expense. It only contributes its
tax amount as a deduction from the ledger's net payable and is independent
of any load.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from freight_tax.calculator import to_amount
from freight_tax.errors import PreconditionError
from freight_tax.parties import Party, PartyKind, require_id
from freight_tax.timestamps import parse_optional_timestamp, parse_timestamp


@dataclass(frozen=True)
class ITCLedgerEntry:
    """A single input tax credit."""

    entry_id: str
    description: str
    payee_name: str
    amount_before_tax: Decimal
    tax_amount: Decimal
    paid_at: datetime
    vendor_id: Optional[str] = None
    invoiced_at: Optional[datetime] = None
    tax_registration_number: Optional[str] = None
    category: Optional[str] = None
    jurisdiction: Optional[str] = None


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _clean(value: Optional[str]) -> Optional[str]:
    return None if _blank(value) else str(value).strip()


def build_itc_entry(
    description: str,
    amount_before_tax: Any,
    tax_amount: Any,
    paid_at: "datetime | str",
    payee_name: Optional[str] = None,
    vendor: Optional[Party] = None,
    invoiced_at: "datetime | str | None" = None,
    tax_registration_number: Optional[str] = None,
    category: Optional[str] = None,
    jurisdiction: Optional[str] = None,
    entry_id: Optional[str] = None,
) -> ITCLedgerEntry:
    """
    Validate input and build an ITC entry.

    When a vendor is given, blank payee, registration number, category and
    jurisdiction are filled from it once. The entry keeps copies, so later
    edits to either side do not propagate.
    """
    if vendor is not None:
        if vendor.kind is not PartyKind.VENDOR:
            raise PreconditionError(
                f"{vendor.party_id} is a {vendor.kind.value}, not a vendor"
            )
        if _blank(payee_name):
            payee_name = vendor.name
        if _blank(tax_registration_number):
            tax_registration_number = vendor.tax_registration_number
        if _blank(category):
            category = vendor.category
        if _blank(jurisdiction):
            jurisdiction = vendor.jurisdiction

    if _blank(payee_name):
        raise PreconditionError("Paid-to name is required")

    if isinstance(paid_at, str):
        if not paid_at.strip():
            raise PreconditionError("Payment date is required")
        paid_at = parse_timestamp(paid_at)
    if not isinstance(paid_at, datetime):
        raise PreconditionError("Payment date is required")
    if isinstance(invoiced_at, str):
        invoiced_at = parse_optional_timestamp(invoiced_at)
    if invoiced_at is not None and not isinstance(invoiced_at, datetime):
        raise PreconditionError(f"Invoice date must be a date: {invoiced_at!r}")

    return ITCLedgerEntry(
        entry_id=entry_id or str(uuid.uuid4()),
        description=(description or "").strip(),
        payee_name=str(payee_name).strip(),
        amount_before_tax=to_amount(amount_before_tax, "Amount before tax"),
        tax_amount=to_amount(tax_amount, "Tax amount"),
        paid_at=paid_at,
        vendor_id=require_id(vendor.party_id, "vendor id") if vendor else None,
        invoiced_at=invoiced_at,
        tax_registration_number=_clean(tax_registration_number),
        category=_clean(category),
        jurisdiction=_clean(jurisdiction),
    )
