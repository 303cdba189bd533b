"""
Clients, carriers and vendors.

The three share one record shape tagged by role, so the integrity guard
and the ledger book treat them uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from freight_tax.errors import PreconditionError


class PartyKind(Enum):
    CLIENT = "client"  # billed for loads
    CARRIER = "carrier"  # paid for loads
    VENDOR = "vendor"  # paid for ITC-eligible expenses

    @classmethod
    def parse(cls, value: "str | PartyKind") -> "PartyKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise PreconditionError(
                f"Unknown party kind {value!r}; expected one of "
                f"{', '.join(k.value for k in cls)}"
            ) from None


def require_id(value: object, what: str) -> str:
    """Return a stripped id, rejecting blanks and non-strings."""
    if not isinstance(value, str) or not value.strip():
        raise PreconditionError(f"Malformed {what}: {value!r}")
    return value.strip()


@dataclass(frozen=True)
class Party:
    """A client, carrier or vendor."""

    party_id: str
    kind: PartyKind
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_registration_number: Optional[str] = None
    jurisdiction: Optional[str] = None
    mc_number: Optional[str] = None  # carriers
    category: Optional[str] = None  # vendors

    def __post_init__(self) -> None:
        object.__setattr__(self, "party_id", require_id(self.party_id, "party id"))
        object.__setattr__(self, "kind", PartyKind.parse(self.kind))
        if not isinstance(self.name, str) or not self.name.strip():
            raise PreconditionError(f"{self.kind.value.title()} name is required")

    @classmethod
    def from_dict(cls, data: dict, kind: "str | PartyKind | None" = None) -> "Party":
        def _opt(key: str) -> Optional[str]:
            value = data.get(key)
            if value is None:
                return None
            value = str(value).strip()
            return value or None

        return cls(
            party_id=str(data.get("id", data.get("party_id", ""))),
            kind=PartyKind.parse(kind if kind is not None else data.get("kind", "")),
            name=str(data.get("name", "")),
            email=_opt("email"),
            phone=_opt("phone"),
            address=_opt("address"),
            tax_registration_number=_opt("tax_registration_number"),
            jurisdiction=_opt("jurisdiction"),
            mc_number=_opt("mc_number"),
            category=_opt("category"),
        )
