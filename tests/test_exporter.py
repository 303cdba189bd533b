"""Tests for the ledger CSV exporter."""

import csv
import io
from datetime import date, datetime
from decimal import Decimal

import pytest

from freight_tax.aggregator import aggregate
from freight_tax.calculator import Load, compute_load_entry
from freight_tax.errors import PreconditionError
from freight_tax.exporter import (
    ITC_HEADERS,
    LOAD_HEADERS,
    LedgerExporter,
    export_ledger_to_csv,
    format_money,
    load_number_key,
    sort_loads,
)
from freight_tax.itc import ITCLedgerEntry, build_itc_entry
from freight_tax.parties import Party, PartyKind
from freight_tax.rates import JurisdictionRate

ONTARIO = JurisdictionRate("Ontario", Decimal("0.13"), "HST (13%)", "ON")

PARTIES = [
    Party("C-1", PartyKind.CLIENT, "Maple Foods"),
    Party("CR-1", PartyKind.CARRIER, "Northern Haulage"),
]


def _entry(
    load_number: str = "LD-1001",
    base: str = "1000",
    all_in: str = "565",
    delivered: datetime = datetime(2024, 3, 5, 14, 30),
    client_id: str = "C-1",
):
    return compute_load_entry(
        Load(
            load_number=load_number,
            delivered_at=delivered,
            client_id=client_id,
            carrier_id="CR-1",
            client_base_amount=Decimal(base),
            carrier_all_in_amount=Decimal(all_in),
        ),
        ONTARIO,
    )


def _vendor_itc() -> ITCLedgerEntry:
    return ITCLedgerEntry(
        entry_id="itc-1",
        description="Fuel card",
        payee_name="Fuel Depot",
        amount_before_tax=Decimal("153.85"),
        tax_amount=Decimal("20"),
        paid_at=datetime(2024, 3, 6),
        vendor_id="V-1",
        tax_registration_number="123456789RT0001",
        category="Fuel",
    )


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


# ── Layout contract ──────────────────────────────────────────────────


def test_full_export_layout():
    loads = [_entry()]
    itcs = [_vendor_itc()]
    text = export_ledger_to_csv(loads, itcs, aggregate(loads, itcs), parties=PARTIES)
    expected = "\n".join(
        [
            "Load Number,Delivery Date & Time,Client,Carrier,Tax Jurisdiction,"
            "Delivery Jurisdiction,Client Base,Client Tax,Client Total,"
            "Carrier All-In,Carrier Pre-Tax,Carrier Tax,Tax Payable,Profit",
            "LD-1001,03/05/2024 14:30,Maple Foods,Northern Haulage,Ontario,Ontario,"
            "1000.00,130.00,1130.00,565.00,500.00,65.00,65.00,500.00",
            ",,,,,,,,,,,,,",
            "Additional ITCs,,,,,,,,,,,,,",
            "ITC #,Description,Paid To,Category,Invoice Date,Tax Registration Number,"
            "Payment Date,Amount Before Tax,Tax Amount (ITC),,,,,",
            "1,Fuel card,Fuel Depot (Vendor),Fuel,-,123456789RT0001,"
            "03/06/2024 00:00,153.85,20.00,,,,,",
            "ITC TOTALS,,,,,,,153.85,20.00,,,,,",
            ",,,,,,,,,,,,,",
            "TOTALS,,,,,,1000.00,130.00,1130.00,565.00,500.00,65.00,45.00,500.00",
        ]
    )
    assert text == expected + "\n"


def test_every_row_has_same_width():
    loads = [_entry("LD-1"), _entry("LD-2")]
    itcs = [_vendor_itc()]
    for row in _rows(export_ledger_to_csv(loads, itcs)):
        assert len(row) == len(LOAD_HEADERS)


def test_empty_ledger_still_has_all_sections():
    rows = _rows(export_ledger_to_csv([], []))
    assert rows[0] == LOAD_HEADERS
    assert rows[2][0] == "Additional ITCs"
    assert rows[3][: len(ITC_HEADERS)] == ITC_HEADERS
    assert rows[4][0] == "ITC TOTALS"
    assert rows[-1] == ["TOTALS", "", "", "", "", ""] + ["0.00"] * 8


def test_unknown_parties_fall_back():
    row = _rows(export_ledger_to_csv([_entry(client_id="C-404")], []))[1]
    assert row[2] == "Unknown Client"
    assert row[3] == "Unknown Carrier"


def test_plain_payee_has_no_vendor_suffix():
    itc = build_itc_entry("Tolls", "50", "6.50", "03/06/2024 08:15", payee_name="407 ETR")
    row = _rows(export_ledger_to_csv([], [itc]))[4]
    assert row[:3] == ["1", "Tolls", "407 ETR"]
    assert row[4] == "-"
    assert row[6] == "03/06/2024 08:15"


def test_fields_with_commas_are_quoted():
    itc = build_itc_entry("Fuel, diesel", "50", "6.50", "03/06/2024", payee_name="A")
    text = export_ledger_to_csv([], [itc])
    assert '"Fuel, diesel"' in text
    assert _rows(text)[4][1] == "Fuel, diesel"


# ── Totals agree with the aggregator ─────────────────────────────────


def test_exported_totals_match_aggregate():
    loads = [_entry("LD-1", "1234.56", "987.65"), _entry("LD-2", "99.99", "45.45")]
    itcs = [
        build_itc_entry("Fuel", "42.69", "5.55", "03/06/2024", payee_name="A"),
        build_itc_entry("Tolls", "10.01", "1.30", "03/07/2024", payee_name="B"),
    ]
    totals = aggregate(loads, itcs)
    rows = _rows(export_ledger_to_csv(loads, itcs, totals))

    assert rows[-1][6:] == [
        format_money(totals.total_client_base),
        format_money(totals.total_client_tax),
        format_money(totals.total_client_total),
        format_money(totals.total_carrier_all_in),
        format_money(totals.total_carrier_pre_tax),
        format_money(totals.total_carrier_tax),
        format_money(totals.ledger_net_payable),
        format_money(totals.total_profit),
    ]
    itc_totals = next(r for r in rows if r[0] == "ITC TOTALS")
    assert itc_totals[7:9] == [
        format_money(totals.total_itc_before_tax),
        format_money(totals.total_itc_tax),
    ]


def test_totals_computed_when_omitted():
    loads = [_entry()]
    assert export_ledger_to_csv(loads, []) == export_ledger_to_csv(
        loads, [], aggregate(loads, [])
    )


# ── Formatting ───────────────────────────────────────────────────────


def test_format_money_rounds_half_up():
    assert format_money(Decimal("2.675")) == "2.68"
    assert format_money(Decimal("2.665")) == "2.67"
    assert format_money(Decimal("5E+2")) == "500.00"
    assert format_money(Decimal("0")) == "0.00"


# ── Sorting ──────────────────────────────────────────────────────────


def test_load_number_key():
    assert load_number_key("LD-0042") == 42
    assert load_number_key("1001") == 1001
    assert load_number_key("NONE") == 0


def test_default_sort_is_numeric_descending():
    loads = [_entry("LD-9"), _entry("LD-100"), _entry("LD-10"), _entry("XYZ")]
    ordered = [l.load_number for l in sort_loads(loads)]
    assert ordered == ["LD-100", "LD-10", "LD-9", "XYZ"]


def test_ascending_sort():
    loads = [_entry("LD-9"), _entry("LD-100"), _entry("LD-10")]
    ordered = [l.load_number for l in sort_loads(loads, descending=False)]
    assert ordered == ["LD-9", "LD-10", "LD-100"]


def test_sort_by_other_field():
    loads = [
        _entry("LD-1", delivered=datetime(2024, 3, 7)),
        _entry("LD-2", delivered=datetime(2024, 3, 5)),
        _entry("LD-3", delivered=datetime(2024, 3, 6)),
    ]
    ordered = [l.load_number for l in sort_loads(loads, "delivered_at", False)]
    assert ordered == ["LD-2", "LD-3", "LD-1"]


def test_export_uses_requested_order():
    loads = [_entry("LD-1", base="10"), _entry("LD-2", base="30"), _entry("LD-3", base="20")]
    rows = _rows(export_ledger_to_csv(loads, [], sort_key="client_base_amount"))
    assert [r[0] for r in rows[1:4]] == ["LD-2", "LD-3", "LD-1"]


def test_unknown_sort_key_rejected():
    with pytest.raises(PreconditionError):
        sort_loads([_entry()], "colour")


# ── File export ──────────────────────────────────────────────────────


def test_exporter_writes_file(tmp_path):
    exporter = LedgerExporter(str(tmp_path / "out"))
    loads = [_entry()]
    path = exporter.export(loads, [], filename="ledger.csv", parties=PARTIES)
    assert path == tmp_path / "out" / "ledger.csv"
    assert path.read_text(encoding="utf-8") == export_ledger_to_csv(
        loads, [], parties=PARTIES
    )


def test_default_filename():
    assert (
        LedgerExporter.default_filename(date(2024, 3, 5))
        == "tax-ledger-export-2024-03-05.csv"
    )
