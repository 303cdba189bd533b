"""Tests for the ledger book."""

import threading
from datetime import date, datetime
from decimal import Decimal

import pytest

from freight_tax.calculator import Load
from freight_tax.errors import (
    IntegrityViolationError,
    PreconditionError,
    UnknownJurisdictionError,
    UnknownPartyError,
)
from freight_tax.ledger import LedgerBook
from freight_tax.parties import Party, PartyKind
from freight_tax.rates import JurisdictionTable


def _load(
    client_id: str = "C-1",
    carrier_id: str = "CR-1",
    base: str = "1000",
    all_in: str = "565",
    jurisdiction: str | None = "Ontario",
    load_number: str = "LD-1001",
) -> Load:
    return Load(
        load_number=load_number,
        delivered_at=datetime(2024, 3, 5, 14, 30),
        client_id=client_id,
        carrier_id=carrier_id,
        client_base_amount=Decimal(base),
        carrier_all_in_amount=Decimal(all_in),
        tax_jurisdiction=jurisdiction,
    )


@pytest.fixture
def book() -> LedgerBook:
    book = LedgerBook()
    book.add_party(Party("C-1", PartyKind.CLIENT, "Maple Foods"))
    book.add_party(Party("C-2", PartyKind.CLIENT, "Aurora Grocers"))
    book.add_party(Party("CR-1", PartyKind.CARRIER, "Northern Haulage"))
    book.add_party(
        Party(
            "V-1",
            PartyKind.VENDOR,
            "Fuel Depot",
            tax_registration_number="123456789RT0001",
            category="Fuel",
        )
    )
    return book


# ── Parties ──────────────────────────────────────────────────────────


def test_duplicate_party_rejected(book: LedgerBook):
    with pytest.raises(PreconditionError):
        book.add_party(Party("C-1", PartyKind.CLIENT, "Someone Else"))
    assert book.get_party("client", "C-1").name == "Maple Foods"


def test_same_id_allowed_across_kinds(book: LedgerBook):
    book.add_party(Party("C-1", PartyKind.VENDOR, "Maple Fuel"))
    assert book.get_party(PartyKind.VENDOR, "C-1").name == "Maple Fuel"


def test_parties_sorted_by_name(book: LedgerBook):
    assert [p.name for p in book.parties("client")] == ["Aurora Grocers", "Maple Foods"]
    assert len(book.parties()) == 4


def test_get_missing_party(book: LedgerBook):
    with pytest.raises(UnknownPartyError):
        book.get_party("carrier", "CR-404")


# ── Recording loads ──────────────────────────────────────────────────


def test_record_load(book: LedgerBook):
    entry = book.record_load(_load())
    assert entry.client_tax == Decimal("130.00")
    assert book.loads() == [entry]
    assert list(book) == [entry]


def test_unknown_client_rejected(book: LedgerBook):
    with pytest.raises(UnknownPartyError):
        book.record_load(_load(client_id="C-404"))
    assert book.loads() == []


def test_unknown_carrier_rejected(book: LedgerBook):
    with pytest.raises(UnknownPartyError):
        book.record_load(_load(carrier_id="CR-404"))


def test_client_id_is_not_a_carrier(book: LedgerBook):
    with pytest.raises(UnknownPartyError):
        book.record_load(_load(carrier_id="C-1"))


def test_blank_client_id_rejected(book: LedgerBook):
    with pytest.raises(PreconditionError):
        book.record_load(_load(client_id=" "))


def test_failed_record_leaves_book_unchanged(book: LedgerBook):
    book.record_load(_load())
    before = book.totals()
    with pytest.raises(PreconditionError):
        book.record_load(_load(base="-5"))
    with pytest.raises(UnknownJurisdictionError):
        book.record_load(_load(jurisdiction="Texas"))
    assert len(book.loads()) == 1
    assert book.totals() == before


def test_duplicate_entry_id_rejected(book: LedgerBook):
    load = _load()
    load.entry_id = "load-1"
    book.record_load(load)
    with pytest.raises(PreconditionError):
        book.record_load(load)
    assert len(book.loads()) == 1


def test_default_jurisdiction_applies():
    book = LedgerBook(default_jurisdiction="Alberta")
    book.add_party(Party("C-1", PartyKind.CLIENT, "Maple Foods"))
    book.add_party(Party("CR-1", PartyKind.CARRIER, "Northern Haulage"))
    entry = book.record_load(_load(jurisdiction=None))
    assert entry.tax_jurisdiction == "Alberta"
    assert entry.tax_rate == Decimal("0.05")


# ── Rate snapshot ────────────────────────────────────────────────────


def test_rate_change_does_not_touch_existing_entries():
    table = JurisdictionTable()
    book = LedgerBook(table)
    book.add_party(Party("C-1", PartyKind.CLIENT, "Maple Foods"))
    book.add_party(Party("CR-1", PartyKind.CARRIER, "Northern Haulage"))

    old = book.record_load(_load())
    table.add_rate("Ontario", Decimal("0.15"), "HST (15%)", date(2025, 1, 1))
    new = book.record_load(_load(load_number="LD-1002"))

    assert old.tax_rate == Decimal("0.13")
    assert old.client_tax == Decimal("130.00")
    assert new.tax_rate == Decimal("0.15")
    stored = {e.load_number: e for e in book.loads()}
    assert stored["LD-1001"].client_tax == Decimal("130.00")
    assert book.totals().total_client_tax == Decimal("280.00")


# ── Last load ────────────────────────────────────────────────────────


def test_last_load_empty_book():
    book = LedgerBook()
    assert book.last_load is None
    assert book.repeat_last_load() is None


def test_repeat_last_load(book: LedgerBook):
    book.record_load(_load())
    entry = book.record_load(_load(client_id="C-2", base="2500", load_number="LD-1002"))
    assert book.last_load == entry

    again = book.repeat_last_load()
    assert again.client_id == "C-2"
    assert again.client_base_amount == Decimal("2500")
    assert again.entry_id is None

    second = book.record_load(again)
    assert second.entry_id != entry.entry_id
    assert len(book.loads()) == 3


def test_deleting_last_load_clears_it(book: LedgerBook):
    first = book.record_load(_load())
    last = book.record_load(_load(load_number="LD-1002"))
    book.delete_load(first.entry_id)
    assert book.last_load == last

    book.delete_load(last.entry_id)
    assert book.last_load is None
    assert book.repeat_last_load() is None


# ── ITCs ─────────────────────────────────────────────────────────────


def test_record_itc_with_vendor(book: LedgerBook):
    itc = book.record_itc(
        vendor_id="V-1",
        description="Fuel card",
        amount_before_tax="153.85",
        tax_amount="20",
        paid_at="03/06/2024",
    )
    assert itc.payee_name == "Fuel Depot"
    assert itc.tax_registration_number == "123456789RT0001"
    assert book.itcs() == [itc]


def test_record_itc_without_vendor(book: LedgerBook):
    itc = book.record_itc(
        description="Tolls",
        payee_name="407 ETR",
        amount_before_tax="50",
        tax_amount="6.50",
        paid_at="03/06/2024",
    )
    assert itc.vendor_id is None


def test_record_itc_unknown_vendor(book: LedgerBook):
    with pytest.raises(UnknownPartyError):
        book.record_itc(
            vendor_id="V-404",
            description="Fuel",
            amount_before_tax="1",
            tax_amount="0.13",
            paid_at="03/06/2024",
        )
    assert book.itcs() == []


def test_totals_include_itcs(book: LedgerBook):
    book.record_load(_load())
    book.record_itc(
        vendor_id="V-1",
        description="Fuel card",
        amount_before_tax="153.85",
        tax_amount="20",
        paid_at="03/06/2024",
    )
    assert book.totals().ledger_net_payable == Decimal("45.00")
    assert book.export_csv().splitlines()[-1].split(",")[12] == "45.00"


# ── Deletion ─────────────────────────────────────────────────────────


def test_delete_entries(book: LedgerBook):
    entry = book.record_load(_load())
    assert book.delete_load(entry.entry_id) == entry
    assert book.loads() == []
    with pytest.raises(PreconditionError):
        book.delete_load(entry.entry_id)
    with pytest.raises(PreconditionError):
        book.delete_itc("missing")


def test_referenced_party_cannot_be_removed(book: LedgerBook):
    entry = book.record_load(_load())
    totals = book.totals()

    with pytest.raises(IntegrityViolationError) as exc:
        book.remove_party("client", "C-1")

    assert exc.value.reference_count == 1
    assert "referenced by 1 load(s)" in str(exc.value)
    assert book.get_party("client", "C-1").name == "Maple Foods"
    assert book.loads() == [entry]
    assert book.totals() == totals


def test_party_removable_after_entries_deleted(book: LedgerBook):
    entry = book.record_load(_load())
    assert book.check_party_deletion("carrier", "CR-1").allowed is False
    book.delete_load(entry.entry_id)
    assert book.check_party_deletion("carrier", "CR-1").allowed is True
    removed = book.remove_party("carrier", "CR-1")
    assert removed.name == "Northern Haulage"
    with pytest.raises(UnknownPartyError):
        book.get_party("carrier", "CR-1")


def test_referenced_vendor_cannot_be_removed(book: LedgerBook):
    book.record_itc(
        vendor_id="V-1",
        description="Fuel card",
        amount_before_tax="153.85",
        tax_amount="20",
        paid_at="03/06/2024",
    )
    with pytest.raises(IntegrityViolationError):
        book.remove_party("vendor", "V-1")


def test_unreferenced_party_removed(book: LedgerBook):
    book.record_load(_load())
    book.remove_party("client", "C-2")
    assert [p.party_id for p in book.parties("client")] == ["C-1"]


def test_remove_missing_party(book: LedgerBook):
    with pytest.raises(UnknownPartyError):
        book.remove_party("client", "C-404")


# ── Concurrency ──────────────────────────────────────────────────────


def test_concurrent_delete_and_create_keep_references_valid():
    for _ in range(20):
        book = LedgerBook()
        book.add_party(Party("C-1", PartyKind.CLIENT, "Maple Foods"))
        book.add_party(Party("CR-1", PartyKind.CARRIER, "Northern Haulage"))
        start = threading.Barrier(2)

        def create():
            start.wait()
            try:
                book.record_load(_load())
            except UnknownPartyError:
                pass

        def delete():
            start.wait()
            try:
                book.remove_party("client", "C-1")
            except IntegrityViolationError:
                pass

        threads = [threading.Thread(target=create), threading.Thread(target=delete)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        client_ids = {p.party_id for p in book.parties("client")}
        loads = book.loads()
        # exactly one side wins
        assert (len(loads) == 1) == ("C-1" in client_ids)
        for load in loads:
            assert load.client_id in client_ids


def test_concurrent_records_all_land():
    book = LedgerBook()
    book.add_party(Party("C-1", PartyKind.CLIENT, "Maple Foods"))
    book.add_party(Party("CR-1", PartyKind.CARRIER, "Northern Haulage"))

    def worker(n: int):
        for i in range(25):
            book.record_load(_load(load_number=f"LD-{n}-{i}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(book.loads()) == 100
    assert book.totals().total_client_tax == Decimal("13000.00")
