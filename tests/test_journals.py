from __future__ import annotations
import datetime as dt
from decimal import Decimal

from comptalog.services.cash_ledger import CashLedger
from comptalog.services.vat_journal import VatJournal
from comptalog.storage.json_repo import JsonRepository


def test_cash_ledger_records_and_snapshots():
    ledger = CashLedger()
    ledger.record("INCOME", "1060.29", "Vente Transport", "INVOICE", "INV-1", "Paiement", vehicle_id="TRUCK-1")
    ledger.record("EXPENSE", "535", "FUEL", "EXPENSE", "EXP-1", "Gasoil", vehicle_id="TRUCK-1")
    ledger.record("EXPENSE", "100", "OFFICE", "EXPENSE", "EXP-2", "Papeterie")

    txns = ledger.list()
    assert [t.reference_id for t in txns] == ["INV-1", "EXP-1", "EXP-2"]
    assert txns[0].currency == "TND"
    assert txns[0].amount == Decimal("1060.290")

    snap = ledger.snapshot()
    assert snap.total_revenue == Decimal("1060.290")
    assert snap.total_expenses == Decimal("635")
    assert snap.cash_flow == snap.net_profit == Decimal("425.290")
    assert ledger.profit_by_vehicle("TRUCK-1") == Decimal("525.290")
    assert ledger.profit_by_vehicle("TRUCK-9") == 0


def test_cash_ledger_list_is_a_copy_and_clear_empties():
    ledger = CashLedger()
    ledger.record("INCOME", 10, "Capital", "CAPITAL", "CAP-1")
    ledger.list().clear()
    assert len(ledger.list()) == 1
    ledger.clear()
    assert ledger.list() == []
    assert ledger.snapshot().cash_flow == 0


def test_cash_ledger_persists_to_json(tmp_path):
    path = tmp_path / "cash.json"
    ledger = CashLedger(JsonRepository(path, "transaction"))
    txn = ledger.record("EXPENSE", "12.345", "TOLLS", "EXPENSE", "EXP-1", "Péage A1")

    reloaded = CashLedger(JsonRepository(path, "transaction"))
    assert [t.id for t in reloaded.list()] == [txn.id]
    assert reloaded.list()[0].amount == Decimal("12.345")

    reloaded.clear()
    assert CashLedger(JsonRepository(path)).list() == []
    assert list(tmp_path.glob("cash.*.bak.json"))


def test_vat_journal_logs_operation():
    journal = VatJournal()
    entry = journal.log_operation("DEDUCTIBLE", "333.333", 19, "DEPENSE-EXP-1", at=dt.datetime(2024, 5, 3))

    assert entry.period == "2024-05"
    assert entry.tax_amount == Decimal("63.333")
    assert entry.declared is False
    assert journal.list() == [entry]


def test_vat_journal_mark_declared():
    journal = VatJournal()
    journal.log_operation("COLLECTED", 1000, 7, "FACTURE-1", at=dt.datetime(2024, 5, 3))
    journal.log_operation("COLLECTED", 2000, 7, "FACTURE-2", at=dt.datetime(2024, 6, 3))

    assert journal.mark_declared("2024-05") == 1
    assert journal.mark_declared("2024-05") == 0
    assert [e.declared for e in journal.entries_for_period("2024-05")] == [True]
    assert [e.declared for e in journal.entries_for_period("2024-06")] == [False]


def test_vat_journal_returns_copies():
    journal = VatJournal()
    journal.log_operation("COLLECTED", 1000, 7, "FACTURE-1", at=dt.datetime(2024, 5, 3))
    journal.list()[0].declared = True
    assert journal.list()[0].declared is False


def test_vat_journal_persists_declared_flag(tmp_path):
    repo = JsonRepository(tmp_path / "tva.json", "tva", backup_enabled=False)
    journal = VatJournal(repo)
    journal.log_operation("COLLECTED", 1000, 7, "FACTURE-1", at=dt.datetime(2024, 5, 3))
    journal.mark_declared("2024-05")

    reloaded = VatJournal(JsonRepository(tmp_path / "tva.json"))
    assert reloaded.list()[0].declared is True
    assert reloaded.list()[0].tax_amount == Decimal("70")

    reloaded.clear()
    assert VatJournal(repo).list() == []
