"""
Ledger error types.

Every error raised by the engine derives from ``LedgerError`` so a host
can catch the whole family at its call boundary. The input-validation
errors also derive from the builtin they replace (``ValueError`` or
``KeyError``) so generic handlers keep working.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from freight_tax.integrity import DeletionVerdict


class LedgerError(Exception):
    """Base class for all tax ledger errors."""


class PreconditionError(LedgerError, ValueError):
    """Input that must never reach the calculator (negative amount, bad id)."""


class TimestampFormatError(LedgerError, ValueError):
    """A user-entered timestamp matched neither accepted pattern."""

    ACCEPTED_FORMATS = ("MM/DD/YYYY HH:MM", "MM/DD/YYYY")

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(
            f"Invalid date {text!r}: please enter date as "
            f"{self.ACCEPTED_FORMATS[0]} or {self.ACCEPTED_FORMATS[1]}"
        )


class UnknownJurisdictionError(LedgerError, KeyError):
    """Jurisdiction lookup failed. Never substituted with a default rate."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown jurisdiction: {self.name}"


class UnknownPartyError(LedgerError, KeyError):
    """An entry referenced a client, carrier or vendor that does not exist."""

    def __init__(self, kind: str, party_id: str) -> None:
        self.kind = kind
        self.party_id = party_id
        super().__init__(party_id)

    def __str__(self) -> str:
        return f"Unknown {self.kind}: {self.party_id}"


class IntegrityViolationError(LedgerError):
    """Deletion of a party that is still referenced by ledger entries."""

    def __init__(self, verdict: DeletionVerdict) -> None:
        self.verdict = verdict
        super().__init__(verdict.reason)

    @property
    def reference_count(self) -> int:
        return self.verdict.reference_count
