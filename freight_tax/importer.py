"""
CSV input for the ledger book.

Reads party directories, loads and ITCs exported from the brokerage's
spreadsheets. Column names are matched case-insensitively. Rows that fail
validation are skipped and reported, the rest are recorded.

Expected columns:
    parties: id, name, email, phone, address, tax_registration_number,
             jurisdiction, mc_number, category
    loads:   id, load_number, delivery_date, client_id, carrier_id,
             tax_jurisdiction, delivery_jurisdiction, client_base_amount,
             carrier_all_in_amount
    itcs:    id, description, paid_to, vendor_id, invoice_date,
             tax_registration_number, amount_before_tax, tax_amount,
             payment_date, category, jurisdiction
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from freight_tax.calculator import Load
from freight_tax.errors import LedgerError
from freight_tax.ledger import LedgerBook
from freight_tax.logging_config import get_logger
from freight_tax.parties import Party, PartyKind
from freight_tax.rates import JurisdictionTable

logger = get_logger(__name__)

PathLike = Union[str, Path]


@dataclass
class ImportResult:
    """A populated book plus the rows that could not be recorded."""

    book: LedgerBook
    loads_recorded: int = 0
    itcs_recorded: int = 0
    errors: list[str] = field(default_factory=list)


def _read_rows(path: PathLike) -> list[dict[str, Any]]:
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    frame = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    frame.columns = [str(c).strip().lower() for c in frame.columns]
    for column in frame.columns:
        frame[column] = frame[column].astype(str).str.strip()
    return frame.to_dict(orient="records")


def read_parties_csv(path: PathLike, kind: "PartyKind | str") -> list[Party]:
    """Read a client, carrier or vendor directory."""
    kind = PartyKind.parse(kind)
    return [Party.from_dict(row, kind) for row in _read_rows(path)]


def read_loads_csv(path: PathLike) -> list[Load]:
    return [Load.from_dict(row) for row in _read_rows(path)]


def read_itc_rows(path: PathLike) -> list[dict[str, Any]]:
    """ITC rows mapped to ``LedgerBook.record_itc`` keyword arguments."""
    rows = []
    for row in _read_rows(path):
        rows.append(
            {
                "entry_id": row.get("id") or None,
                "vendor_id": row.get("vendor_id") or None,
                "description": row.get("description", ""),
                "payee_name": row.get("paid_to", row.get("payee_name")) or None,
                "invoiced_at": row.get("invoice_date") or None,
                "tax_registration_number": row.get("tax_registration_number") or None,
                "amount_before_tax": row.get("amount_before_tax"),
                "tax_amount": row.get("tax_amount"),
                "paid_at": row.get("payment_date", ""),
                "category": row.get("category") or None,
                "jurisdiction": row.get("jurisdiction") or None,
            }
        )
    return rows


def _register_implicit(book: LedgerBook, kind: PartyKind, ids: set[str]) -> None:
    # no directory supplied: the id doubles as the display name
    for party_id in sorted(i for i in ids if i):
        book.add_party(Party(party_id=party_id, kind=kind, name=party_id))
        logger.debug("Registered %s %s from entry data", kind.value, party_id)


def load_book(
    loads_path: Optional[PathLike] = None,
    itcs_path: Optional[PathLike] = None,
    clients_path: Optional[PathLike] = None,
    carriers_path: Optional[PathLike] = None,
    vendors_path: Optional[PathLike] = None,
    table: Optional[JurisdictionTable] = None,
    default_jurisdiction: Optional[str] = None,
) -> ImportResult:
    """
    Build a ledger book from CSV files.

    When no client, carrier or vendor directory is given, every id the
    loads or ITCs reference is registered as a party named after its id.
    Directory rows that fail validation are skipped and reported like
    load and ITC rows.
    """
    result = ImportResult(book=LedgerBook(table, default_jurisdiction))
    book = result.book

    for path, kind in (
        (clients_path, PartyKind.CLIENT),
        (carriers_path, PartyKind.CARRIER),
        (vendors_path, PartyKind.VENDOR),
    ):
        if path is None:
            continue
        for line, row in enumerate(_read_rows(path), start=2):
            try:
                book.add_party(Party.from_dict(row, kind))
            except LedgerError as e:
                result.errors.append(f"{Path(path).name} line {line}: {e}")

    load_rows = _read_rows(loads_path) if loads_path is not None else []
    itc_rows = read_itc_rows(itcs_path) if itcs_path is not None else []
    if clients_path is None:
        _register_implicit(
            book, PartyKind.CLIENT, {str(r.get("client_id", "")) for r in load_rows}
        )
    if carriers_path is None:
        _register_implicit(
            book, PartyKind.CARRIER, {str(r.get("carrier_id", "")) for r in load_rows}
        )
    if vendors_path is None:
        _register_implicit(
            book, PartyKind.VENDOR, {r["vendor_id"] or "" for r in itc_rows}
        )

    for line, row in enumerate(load_rows, start=2):
        try:
            book.record_load(Load.from_dict(row))
            result.loads_recorded += 1
        except LedgerError as e:
            result.errors.append(f"{Path(loads_path).name} line {line}: {e}")

    for line, fields in enumerate(itc_rows, start=2):
        try:
            book.record_itc(**fields)
            result.itcs_recorded += 1
        except LedgerError as e:
            result.errors.append(f"{Path(itcs_path).name} line {line}: {e}")

    for error in result.errors:
        logger.warning("Skipped %s", error)
    return result
