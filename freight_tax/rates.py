"""
Jurisdiction tax rate table.

Covers the Canadian provinces and territories a brokerage bills into,
each with a single combined sales tax rate (HST, or GST plus the
provincial portion) and the label shown on invoices.

Rates are reference data. A rate change is recorded by adding a new
effective version; earlier versions stay in the table so historical
lookups keep returning the rate that applied at the time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from freight_tax.errors import PreconditionError, UnknownJurisdictionError
from freight_tax.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class JurisdictionRate:
    """One effective version of a jurisdiction's tax rate."""

    name: str
    rate: Decimal  # fraction, e.g. 0.13 = 13%
    label: str
    code: Optional[str] = None
    effective_from: Optional[date] = None  # None = since the beginning

    def __post_init__(self) -> None:
        if self.rate < 0:
            raise PreconditionError(
                f"Tax rate for {self.name} cannot be negative: {self.rate}"
            )


# ---------------------------------------------------------------------------
# Default table: provinces and territories
# ---------------------------------------------------------------------------

_PROVINCE_DATA: dict[str, dict] = {
    "ON": {"name": "Ontario", "rate": "0.13", "label": "HST (13%)"},
    "BC": {"name": "British Columbia", "rate": "0.12", "label": "GST+PST (12%)"},
    "AB": {"name": "Alberta", "rate": "0.05", "label": "GST (5%)"},
    "QC": {"name": "Quebec", "rate": "0.14975", "label": "GST+QST (14.975%)"},
    "MB": {"name": "Manitoba", "rate": "0.12", "label": "GST+PST (12%)"},
    "SK": {"name": "Saskatchewan", "rate": "0.11", "label": "GST+PST (11%)"},
    "NS": {"name": "Nova Scotia", "rate": "0.15", "label": "HST (15%)"},
    "NB": {"name": "New Brunswick", "rate": "0.15", "label": "HST (15%)"},
    "NL": {
        "name": "Newfoundland and Labrador",
        "rate": "0.15",
        "label": "HST (15%)",
    },
    "PE": {"name": "Prince Edward Island", "rate": "0.15", "label": "HST (15%)"},
    "NT": {"name": "Northwest Territories", "rate": "0.05", "label": "GST (5%)"},
    "NU": {"name": "Nunavut", "rate": "0.05", "label": "GST (5%)"},
    "YT": {"name": "Yukon", "rate": "0.05", "label": "GST (5%)"},
}

DEFAULT_JURISDICTION = "Ontario"


def _effective_key(rate: JurisdictionRate) -> date:
    return rate.effective_from or date.min


class JurisdictionTable:
    """
    Queryable table of jurisdiction tax rates.

    Lookups accept the full name or the two-letter code, case-insensitive.
    An unknown jurisdiction raises ``UnknownJurisdictionError``.
    """

    def __init__(self, rates: Optional[list[JurisdictionRate]] = None) -> None:
        # lowercase name -> versions sorted by effective date
        self._versions: dict[str, list[JurisdictionRate]] = {}
        self._codes: dict[str, str] = {}
        if rates is None:
            self._load_defaults()
        else:
            for rate in rates:
                self._insert(rate)

    def _load_defaults(self) -> None:
        for code, data in _PROVINCE_DATA.items():
            self._insert(
                JurisdictionRate(
                    name=data["name"],
                    rate=Decimal(data["rate"]),
                    label=data["label"],
                    code=code,
                )
            )

    def _insert(self, rate: JurisdictionRate) -> None:
        key = rate.name.lower()
        versions = self._versions.setdefault(key, [])
        versions.append(rate)
        versions.sort(key=_effective_key)
        if rate.code:
            self._codes[rate.code.upper()] = key

    def _resolve(self, name_or_code: str) -> list[JurisdictionRate]:
        if not name_or_code or not name_or_code.strip():
            raise UnknownJurisdictionError(name_or_code)
        text = name_or_code.strip()
        key = self._codes.get(text.upper(), text.lower())
        versions = self._versions.get(key)
        if not versions:
            raise UnknownJurisdictionError(name_or_code)
        return versions

    @property
    def jurisdiction_count(self) -> int:
        return len(self._versions)

    def __contains__(self, name_or_code: object) -> bool:
        if not isinstance(name_or_code, str):
            return False
        try:
            self._resolve(name_or_code)
        except UnknownJurisdictionError:
            return False
        return True

    def get(
        self, name_or_code: str, as_of: Optional[date] = None
    ) -> JurisdictionRate:
        """
        Return the rate version in force.

        Without ``as_of`` the most recent version is returned. With a date,
        the latest version whose effective date is on or before it.
        """
        versions = self._resolve(name_or_code)
        if as_of is None:
            return versions[-1]
        applicable = [v for v in versions if _effective_key(v) <= as_of]
        if not applicable:
            raise UnknownJurisdictionError(
                f"{name_or_code} (no rate effective on {as_of.isoformat()})"
            )
        return applicable[-1]

    def get_rate(self, name_or_code: str, as_of: Optional[date] = None) -> Decimal:
        """Return just the rate fraction."""
        return self.get(name_or_code, as_of).rate

    def history(self, name_or_code: str) -> list[JurisdictionRate]:
        """All versions for a jurisdiction, oldest first."""
        return list(self._resolve(name_or_code))

    def add_rate(
        self,
        name: str,
        rate: Decimal,
        label: str,
        effective_from: date,
    ) -> JurisdictionRate:
        """
        Record a new effective rate for a jurisdiction.

        Existing versions are left untouched. The code of the previous
        version is carried over for known jurisdictions.
        """
        code = None
        if name in self:
            previous = self.get(name)
            code = previous.code
            name = previous.name
            if _effective_key(previous) >= effective_from:
                raise PreconditionError(
                    f"New rate for {name} must take effect after "
                    f"{_effective_key(previous).isoformat()}"
                )
        new_rate = JurisdictionRate(
            name=name,
            rate=Decimal(str(rate)),
            label=label,
            code=code,
            effective_from=effective_from,
        )
        self._insert(new_rate)
        logger.info(
            "Added rate %s for %s effective %s",
            new_rate.rate,
            name,
            effective_from.isoformat(),
        )
        return new_rate

    def all_jurisdictions(self) -> list[JurisdictionRate]:
        """Current version of every jurisdiction, sorted by name."""
        return sorted(
            (versions[-1] for versions in self._versions.values()),
            key=lambda r: r.name,
        )

    def highest_rate_jurisdictions(self, n: int = 5) -> list[JurisdictionRate]:
        """Return the N jurisdictions with the highest current rate."""
        return sorted(
            self.all_jurisdictions(), key=lambda r: r.rate, reverse=True
        )[:n]
