"""
Referential integrity guard.

Decides whether a client, carrier or vendor may be deleted. A party that
any load or ITC still references stays, no matter how old the entry is.
Dependent entries are never deleted as a side effect.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from freight_tax.calculator import LoadLedgerEntry
from freight_tax.itc import ITCLedgerEntry
from freight_tax.parties import PartyKind, require_id


@dataclass(frozen=True)
class DeletionVerdict:
    """Outcome of an integrity check."""

    allowed: bool
    reason: str = ""
    reference_count: int = 0


def count_references(
    party_id: str,
    kind: PartyKind,
    loads: Iterable[LoadLedgerEntry],
    itcs: Iterable[ITCLedgerEntry],
) -> int:
    """Number of entries pointing at the party in its role."""
    kind = PartyKind.parse(kind)
    party_id = require_id(party_id, "party id")
    if kind is PartyKind.CLIENT:
        return sum(1 for load in loads if load.client_id == party_id)
    if kind is PartyKind.CARRIER:
        return sum(1 for load in loads if load.carrier_id == party_id)
    return sum(1 for itc in itcs if itc.vendor_id == party_id)


def can_delete_party(
    party_id: str,
    kind: "PartyKind | str",
    loads: Iterable[LoadLedgerEntry],
    itcs: Iterable[ITCLedgerEntry],
) -> DeletionVerdict:
    """
    Scan every load and ITC for references to the party.

    Clients and carriers are referenced by loads, vendors by ITCs.
    """
    kind = PartyKind.parse(kind)
    party_id = require_id(party_id, "party id")
    count = count_references(party_id, kind, loads, itcs)
    if count == 0:
        return DeletionVerdict(allowed=True)

    noun = "ITC(s)" if kind is PartyKind.VENDOR else "load(s)"
    return DeletionVerdict(
        allowed=False,
        reason=f"Cannot delete {kind.value} {party_id}: referenced by {count} {noun}",
        reference_count=count,
    )
