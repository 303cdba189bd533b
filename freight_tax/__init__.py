"""
Freight Tax Ledger
==================

A multi-jurisdiction sales tax ledger for freight brokerages: tax collected
from clients, tax paid to carriers, input tax credits, and the resulting
net amount owed to the tax authority.

Modules:
    rates          - Jurisdiction tax rate table with effective-dated versions
    timestamps     - MM/DD/YYYY [HH:MM] parsing and display
    parties        - Clients, carriers and vendors
    calculator     - Per-load tax split and profit
    itc            - Input tax credit entries
    integrity      - Party deletion guard
    aggregator     - Ledger-wide totals
    exporter       - CSV ledger export
    ledger         - In-memory ledger book
    importer       - CSV input (pandas)
    cli            - Command-line interface
"""

__version__ = "1.0.0"

from freight_tax.rates import JurisdictionRate, JurisdictionTable
from freight_tax.timestamps import format_timestamp, parse_timestamp
from freight_tax.parties import Party, PartyKind
from freight_tax.calculator import Load, LoadLedgerEntry, compute_load_entry
from freight_tax.itc import ITCLedgerEntry, build_itc_entry
from freight_tax.integrity import DeletionVerdict, can_delete_party
from freight_tax.aggregator import LedgerTotals, aggregate
from freight_tax.exporter import LedgerExporter, export_ledger_to_csv
from freight_tax.ledger import LedgerBook

__all__ = [
    "JurisdictionRate",
    "JurisdictionTable",
    "format_timestamp",
    "parse_timestamp",
    "Party",
    "PartyKind",
    "Load",
    "LoadLedgerEntry",
    "compute_load_entry",
    "ITCLedgerEntry",
    "build_itc_entry",
    "DeletionVerdict",
    "can_delete_party",
    "LedgerTotals",
    "aggregate",
    "LedgerExporter",
    "export_ledger_to_csv",
    "LedgerBook",
]
