#!/usr/bin/env python3
"""
Quick Start Example
===================

Demonstrates recording a client, a carrier and a vendor, one Ontario load
and one ITC, then printing the ledger totals and the CSV export.

Usage:
    python examples/quick_start.py
"""

from decimal import Decimal

from freight_tax.calculator import Load
from freight_tax.errors import IntegrityViolationError
from freight_tax.ledger import LedgerBook
from freight_tax.parties import Party, PartyKind
from freight_tax.timestamps import parse_timestamp


def main() -> None:
    book = LedgerBook()

    # Parties are created independently of any load
    book.add_party(Party("C-1", PartyKind.CLIENT, "Maple Foods"))
    book.add_party(Party("CR-1", PartyKind.CARRIER, "Northern Haulage"))
    book.add_party(
        Party(
            "V-1",
            PartyKind.VENDOR,
            "Fuel Depot",
            tax_registration_number="123456789RT0001",
            category="Fuel",
            jurisdiction="Ontario",
        )
    )

    # $1,000 billed to the client, $565 all-in paid to the carrier
    entry = book.record_load(
        Load(
            load_number="LD-1001",
            delivered_at=parse_timestamp("03/05/2024 14:30"),
            client_id="C-1",
            carrier_id="CR-1",
            client_base_amount=Decimal("1000"),
            carrier_all_in_amount=Decimal("565"),
            tax_jurisdiction="Ontario",
        )
    )
    print(f"Load:            {entry.load_number}")
    print(f"Tax Rate:        {entry.tax_rate:.2%}")
    print(f"Client Tax:      ${entry.client_tax:.2f}")
    print(f"Client Total:    ${entry.client_total:.2f}")
    print(f"Carrier Pre-Tax: ${entry.carrier_pre_tax_amount:.2f}")
    print(f"Carrier Tax:     ${entry.carrier_tax:.2f}")
    print(f"Profit:          ${entry.profit:.2f}")

    # Payee, registration number and category come from the vendor
    book.record_itc(
        vendor_id="V-1",
        description="Fuel card",
        amount_before_tax=Decimal("153.85"),
        tax_amount=Decimal("20"),
        paid_at="03/06/2024",
    )

    totals = book.totals()
    print(f"\nNet Tax Payable: ${totals.ledger_net_payable:.2f}")

    try:
        book.remove_party(PartyKind.CLIENT, "C-1")
    except IntegrityViolationError as e:
        print(f"Delete refused:  {e}")

    print("\n--- CSV Export ---")
    print(book.export_csv())


if __name__ == "__main__":
    main()
