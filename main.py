#!/usr/bin/env python3
"""
Freight Tax Ledger - Entry Point

A sales tax ledger for freight brokerages. Computes tax collected from
clients and paid to carriers per load, deducts input tax credits, guards
party deletions, and exports the full ledger to CSV.

Usage:
    python main.py rates
    python main.py rates --jurisdiction ON
    python main.py calculate --client-base 1000 --carrier-all-in 565 --jurisdiction Ontario
    python main.py ledger --loads data/loads.csv --itcs data/itcs.csv --export-csv ledger.csv
    python main.py can-delete --kind client --id C-1 --loads data/loads.csv
"""

from freight_tax.cli import main

if __name__ == "__main__":
    main()
