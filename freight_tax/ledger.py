"""
In-memory ledger book.

Hosts parties, load entries and ITC entries for one brokerage and is the
only place they are mutated. Each mutation validates fully before
touching state, so a failed call leaves the book unchanged.

Deleting a party and creating an entry that references it are serialized
per party id: ``remove_party`` holds the party's lock across the integrity
scan and the delete, and ``record_load`` / ``record_itc`` take the same
locks before checking the party still exists.
"""

from __future__ import annotations

import threading
from contextlib import ExitStack
from typing import Any, Iterator, Optional

from freight_tax.aggregator import LedgerTotals, aggregate
from freight_tax.calculator import Load, LoadCalculator, LoadLedgerEntry
from freight_tax.errors import (
    IntegrityViolationError,
    PreconditionError,
    UnknownPartyError,
)
from freight_tax.exporter import export_ledger_to_csv
from freight_tax.integrity import DeletionVerdict, can_delete_party
from freight_tax.itc import ITCLedgerEntry, build_itc_entry
from freight_tax.logging_config import get_logger
from freight_tax.parties import Party, PartyKind, require_id
from freight_tax.rates import JurisdictionTable

logger = get_logger(__name__)

_PartyKey = tuple[PartyKind, str]


class LedgerBook:
    """Parties plus the load and ITC entries that reference them."""

    def __init__(
        self,
        table: Optional[JurisdictionTable] = None,
        default_jurisdiction: Optional[str] = None,
    ) -> None:
        if default_jurisdiction:
            self.calculator = LoadCalculator(table, default_jurisdiction)
        else:
            self.calculator = LoadCalculator(table)
        self._parties: dict[_PartyKey, Party] = {}
        self._loads: dict[str, LoadLedgerEntry] = {}
        self._itcs: dict[str, ITCLedgerEntry] = {}
        self._last_load: Optional[LoadLedgerEntry] = None

        self._entries_lock = threading.RLock()
        self._registry_lock = threading.Lock()
        self._party_locks: dict[_PartyKey, threading.Lock] = {}

    @property
    def table(self) -> JurisdictionTable:
        return self.calculator.table

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    def _party_lock(self, key: _PartyKey) -> threading.Lock:
        with self._registry_lock:
            lock = self._party_locks.get(key)
            if lock is None:
                lock = self._party_locks[key] = threading.Lock()
            return lock

    def _locked(self, stack: ExitStack, *keys: _PartyKey) -> None:
        # fixed order so two creates never deadlock
        for key in sorted(set(keys), key=lambda k: (k[0].value, k[1])):
            stack.enter_context(self._party_lock(key))

    def _require_party(self, kind: PartyKind, party_id: str) -> Party:
        party = self._parties.get((kind, party_id))
        if party is None:
            raise UnknownPartyError(kind.value, party_id)
        return party

    # ------------------------------------------------------------------
    # Parties
    # ------------------------------------------------------------------

    def add_party(self, party: Party) -> Party:
        key = (party.kind, party.party_id)
        with self._party_lock(key):
            if key in self._parties:
                raise PreconditionError(
                    f"{party.kind.value.title()} {party.party_id} already exists"
                )
            self._parties[key] = party
        logger.info("Added %s %s (%s)", party.kind.value, party.party_id, party.name)
        return party

    def get_party(self, kind: "PartyKind | str", party_id: str) -> Party:
        return self._require_party(PartyKind.parse(kind), party_id)

    def parties(self, kind: "PartyKind | str | None" = None) -> list[Party]:
        """Parties of one kind (or all), sorted by name."""
        wanted = PartyKind.parse(kind) if kind is not None else None
        return sorted(
            (p for p in self._parties.values() if wanted is None or p.kind is wanted),
            key=lambda p: p.name.lower(),
        )

    def check_party_deletion(
        self, kind: "PartyKind | str", party_id: str
    ) -> DeletionVerdict:
        """Integrity verdict without deleting anything."""
        kind = PartyKind.parse(kind)
        with self._entries_lock:
            return can_delete_party(
                party_id, kind, self._loads.values(), self._itcs.values()
            )

    def remove_party(self, kind: "PartyKind | str", party_id: str) -> Party:
        """
        Delete a party that no entry references.

        Raises IntegrityViolationError, leaving the party in place, when any
        load or ITC still points at it.
        """
        kind = PartyKind.parse(kind)
        key = (kind, party_id)
        with self._party_lock(key):
            party = self._require_party(kind, party_id)
            verdict = self.check_party_deletion(kind, party_id)
            if not verdict.allowed:
                logger.warning("Refused deletion: %s", verdict.reason)
                raise IntegrityViolationError(verdict)
            del self._parties[key]
        logger.info("Removed %s %s", kind.value, party_id)
        return party

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def record_load(self, load: Load) -> LoadLedgerEntry:
        """Compute a load's ledger entry and add it to the book."""
        client_id = require_id(load.client_id, "client id")
        carrier_id = require_id(load.carrier_id, "carrier id")
        with ExitStack() as stack:
            self._locked(
                stack,
                (PartyKind.CLIENT, client_id),
                (PartyKind.CARRIER, carrier_id),
            )
            self._require_party(PartyKind.CLIENT, client_id)
            self._require_party(PartyKind.CARRIER, carrier_id)
            entry = self.calculator.calculate(load)
            with self._entries_lock:
                if entry.entry_id in self._loads:
                    raise PreconditionError(f"Load entry {entry.entry_id} already exists")
                self._loads[entry.entry_id] = entry
                self._last_load = entry
        logger.info(
            "Recorded load %s (%s @ %s)",
            entry.load_number,
            entry.tax_jurisdiction,
            entry.tax_rate,
        )
        return entry

    def record_itc(self, vendor_id: Optional[str] = None, **fields: Any) -> ITCLedgerEntry:
        """
        Build an ITC entry and add it to the book.

        ``fields`` are passed to ``build_itc_entry``; with ``vendor_id`` the
        vendor's details fill any blanks.
        """
        with ExitStack() as stack:
            vendor = None
            if vendor_id:
                self._locked(stack, (PartyKind.VENDOR, vendor_id))
                vendor = self._require_party(PartyKind.VENDOR, vendor_id)
            entry = build_itc_entry(vendor=vendor, **fields)
            with self._entries_lock:
                if entry.entry_id in self._itcs:
                    raise PreconditionError(f"ITC entry {entry.entry_id} already exists")
                self._itcs[entry.entry_id] = entry
        logger.info("Recorded ITC %s (%s)", entry.description, entry.tax_amount)
        return entry

    def delete_load(self, entry_id: str) -> LoadLedgerEntry:
        with self._entries_lock:
            try:
                entry = self._loads.pop(entry_id)
            except KeyError:
                raise PreconditionError(f"No load entry {entry_id}") from None
            if self._last_load is not None and self._last_load.entry_id == entry_id:
                self._last_load = None
        logger.info("Deleted load %s", entry.load_number)
        return entry

    def delete_itc(self, entry_id: str) -> ITCLedgerEntry:
        with self._entries_lock:
            try:
                entry = self._itcs.pop(entry_id)
            except KeyError:
                raise PreconditionError(f"No ITC entry {entry_id}") from None
        logger.info("Deleted ITC %s", entry.description)
        return entry

    def loads(self) -> list[LoadLedgerEntry]:
        with self._entries_lock:
            return list(self._loads.values())

    def itcs(self) -> list[ITCLedgerEntry]:
        with self._entries_lock:
            return list(self._itcs.values())

    def __iter__(self) -> Iterator[LoadLedgerEntry]:
        return iter(self.loads())

    @property
    def last_load(self) -> Optional[LoadLedgerEntry]:
        """Most recent load still in the book, for pre-filling the next one."""
        return self._last_load

    def repeat_last_load(self) -> Optional[Load]:
        """A fresh Load carrying the last load's details, without its id."""
        last = self._last_load
        if last is None:
            return None
        return Load(
            load_number=last.load_number,
            delivered_at=last.delivered_at,
            client_id=last.client_id,
            carrier_id=last.carrier_id,
            client_base_amount=last.client_base_amount,
            carrier_all_in_amount=last.carrier_all_in_amount,
            tax_jurisdiction=last.tax_jurisdiction,
            delivery_jurisdiction=last.delivery_jurisdiction,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def totals(self) -> LedgerTotals:
        with self._entries_lock:
            return aggregate(self._loads.values(), self._itcs.values())

    def export_csv(self, sort_key: str = "load_number", descending: bool = True) -> str:
        with self._entries_lock:
            loads = list(self._loads.values())
            itcs = list(self._itcs.values())
        return export_ledger_to_csv(
            loads,
            itcs,
            aggregate(loads, itcs),
            parties=list(self._parties.values()),
            sort_key=sort_key,
            descending=descending,
        )
