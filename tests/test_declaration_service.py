from __future__ import annotations
import datetime as dt
import logging
from decimal import Decimal

import pytest

from comptalog.config import FiscalSettings
from comptalog.errors import PeriodFormatError
from comptalog.models.client import Client
from comptalog.services import declaration_service as ds
from comptalog.services.ledger_generator import generate_ledger
from comptalog.services.tax_calculator import compute_payroll

PAY_DAY = dt.date(2024, 5, 31)


def _ledger(invoices, expenses, employees=()):
    return generate_ledger(invoices, expenses, employees, payroll_date=PAY_DAY).entries


def test_monthly_vat_declaration_end_to_end(make_invoice, make_expense):
    entries = _ledger(
        [make_invoice(ht="1000"), make_invoice(ht="2000"),
         make_invoice(ht="9999", date=dt.date(2024, 6, 1))],
        [make_expense(ht="500", tva="35", tva_rate="7")],
    )
    decl = ds.vat_declaration(entries, "2024-05")

    assert decl.sales.base_ht == Decimal("3000")
    assert decl.sales.vat_collected == Decimal("210")
    assert decl.purchases.base_ht == Decimal("500")
    assert decl.purchases.vat_deductible == Decimal("35")
    assert decl.vat_payable == Decimal("175")
    assert decl.vat_credit == 0


def test_vat_declaration_with_prior_credit(make_invoice, make_expense):
    entries = _ledger([make_invoice(ht="1000")], [make_expense(ht="500", tva="35")])
    decl = ds.vat_declaration(entries, "2024-05", previous_credit=100)
    assert decl.credit_reported == Decimal("100")
    assert decl.vat_payable == 0
    assert decl.vat_credit == Decimal("65")


def test_period_boundaries_are_inclusive(make_invoice):
    entries = _ledger(
        [make_invoice(ht="100", date=dt.date(2024, 2, 1)),
         make_invoice(ht="200", date=dt.date(2024, 2, 29)),
         make_invoice(ht="400", date=dt.date(2024, 3, 1))],
        [],
    )
    assert ds.vat_declaration(entries, "2024-02").sales.base_ht == Decimal("300")


def test_bad_period_key():
    with pytest.raises(PeriodFormatError):
        ds.vat_declaration([], "2024-13")
    with pytest.raises(PeriodFormatError):
        ds.social_security_declaration("2024-Q5", [])


def test_vat_declaration_reports_effective_sales_rate(make_invoice):
    standard = ds.vat_declaration(_ledger([make_invoice("1000", vat_rate="19")], []), "2024-05")
    assert standard.sales.rate == Decimal("19")

    mixed = ds.vat_declaration(
        _ledger([make_invoice("1000", vat_rate="7"), make_invoice("1000", vat_rate="19")], []), "2024-05")
    assert mixed.sales.vat_collected == Decimal("260")
    assert mixed.sales.rate == Decimal("13")

    assert ds.vat_declaration([], "2024-05").sales.rate is None


def test_draft_invoice_contributes_nothing(make_invoice):
    draft = make_invoice(ht="1000", status="DRAFT")
    validated = draft.model_copy(update={"status": "VALIDATED"})

    assert _ledger([draft], []) == []
    empty = ds.vat_declaration(_ledger([draft], []), "2024-05")
    assert empty.sales.base_ht == 0 and empty.sales.vat_collected == 0
    assert ds.client_statement([draft]) == []
    assert ds.corporate_tax_declaration(_ledger([draft], []), 2024).revenue == 0

    full = ds.vat_declaration(_ledger([validated], []), "2024-05")
    assert full.sales.base_ht == Decimal("1000")
    assert full.sales.vat_collected == Decimal("70")
    assert ds.client_statement([validated])[0].total_ht == Decimal("1000")


def test_quarterly_cnss_single_employee(driver):
    decl = ds.social_security_declaration("2024-Q2", [driver])
    monthly = compute_payroll(600, "SINGLE", 0)
    line = decl.employees[0]

    assert decl.quarter == "2024-Q2"
    assert line.gross_salary == Decimal("1800")
    assert line.employee_part == monthly.cnss_employee * 3 == Decimal("165.240")
    assert line.employer_part == monthly.cnss_employer * 3 == Decimal("343.260")
    assert line.cnss_number == "08123456"  # CIN à défaut de numéro CNSS
    assert decl.total_due == line.employee_part + line.employer_part == Decimal("508.500")


def test_cnss_empty_roster():
    decl = ds.social_security_declaration("2024-Q1", [])
    assert decl.employees == [] and decl.total_due == 0


def test_withholding_declaration(roster, make_expense):
    fees = make_expense(ht="1000", tva="190", category="OTHER", supplier_id="AVOCAT-1",
                        withholding_type="HONORAIRES", withholding_rate="15")
    outside = make_expense(ht="1000", tva="190", date=dt.date(2024, 4, 30),
                           withholding_type="LOYERS", withholding_rate="10")
    decl = ds.withholding_declaration([fees, outside, make_expense()], "2024-05", roster)
    lines = {ln.type: ln for ln in decl.withholding}

    expected = [compute_payroll(e.base_salary, e.marital_status, e.children_count) for e in roster]
    assert lines["SALAIRES"].beneficiary_count == 2
    assert lines["SALAIRES"].base == sum(p.gross for p in expected)
    assert lines["SALAIRES"].withheld_amount == sum(p.irpp_monthly for p in expected)
    assert lines["HONORAIRES"].base == Decimal("1190")
    assert lines["HONORAIRES"].withheld_amount == Decimal("178.500")
    assert lines["HONORAIRES"].beneficiary_count == 1
    assert lines["LOYERS"].withheld_amount == 0
    assert decl.total_withheld == lines["SALAIRES"].withheld_amount + Decimal("178.500")


def test_withholding_declaration_without_data():
    decl = ds.withholding_declaration([], "2024-05", [])
    assert [ln.type for ln in decl.withholding] == ["SALAIRES", "HONORAIRES", "LOYERS"]
    assert decl.total_withheld == 0


def test_corporate_tax_adds_back_non_deductible(make_invoice, make_expense):
    entries = _ledger(
        [make_invoice(ht="10000")],
        [make_expense(ht="3000", tva="570", category="FUEL"),
         make_expense(ht="500", tva="0", category="PERSONAL"),
         make_expense(ht="700", tva="0", date=dt.date(2023, 12, 31))],
    )
    decl = ds.corporate_tax_declaration(entries, 2024)
    assert decl.revenue == Decimal("10000")
    assert decl.expenses_deductible == Decimal("3500")
    assert decl.expenses_nondeductible == Decimal("500")
    assert decl.taxable_profit == Decimal("7000")
    assert decl.corporate_tax == Decimal("1050")

    plain = ds.corporate_tax_declaration(entries, 2024, FiscalSettings(non_deductible_categories=[]))
    assert plain.expenses_nondeductible == 0
    assert plain.corporate_tax == Decimal("975")


def test_corporate_tax_on_loss_is_zero(make_invoice, make_expense):
    entries = _ledger([make_invoice(ht="100")], [make_expense(ht="900", tva="0")])
    decl = ds.corporate_tax_declaration(entries, 2024)
    assert decl.taxable_profit == Decimal("-800")
    assert decl.corporate_tax == 0


def test_client_statement_groups_by_client(make_invoice):
    invoices = [
        make_invoice(ht="1000", client_id="C1", client_name=None),
        make_invoice(ht="500", client_id="C1", stamp="1"),
        make_invoice(ht="300", client_id="C2", client_name="Sfax Trans"),
        make_invoice(ht="999", client_id="C2", status="CANCELLED"),
    ]
    directory = [Client(id="C1", name="TunisFret", matricule_fiscal="1234567/A/M/000")]
    lines = {ln.id: ln for ln in ds.client_statement(invoices, directory)}

    assert lines["C1"].name == "TunisFret"
    assert lines["C1"].matricule_fiscal == "1234567/A/M/000"
    assert lines["C1"].total_ht == Decimal("1500")
    assert lines["C1"].total_tva == Decimal("105")
    assert lines["C2"].name == "Sfax Trans"
    assert lines["C2"].total_ht == Decimal("300")


def test_supplier_statement_prefers_supplier_id(make_expense, caplog):
    caplog.set_level(logging.WARNING, logger="comptalog.services.declaration_service")
    expenses = [
        make_expense(ht="100", tva="19", supplier_id="SHELL"),
        make_expense(ht="50", tva="9.5", supplier_id="SHELL", description="Agil - plein"),
        make_expense(ht="80", tva="15.2", description="Agil - plein camion 2"),
        make_expense(ht="10", tva="0", description=""),
    ]
    lines = {ln.id: ln for ln in ds.supplier_statement(expenses)}

    assert lines["SHELL"].total_ht == Decimal("150")
    assert lines["SHELL"].total_tva == Decimal("28.5")
    assert lines["Agil"].total_ht == Decimal("80")
    assert lines[ds.MISC_SUPPLIER].total_ht == Decimal("10")
    fallbacks = [r for r in caplog.records if "sans supplier_id" in r.getMessage()]
    assert len(fallbacks) == 2
    assert all(r.levelno == logging.WARNING for r in fallbacks)


def test_statements_skip_invalid_raw_documents(make_invoice):
    lines = ds.client_statement([make_invoice(), {"id": "BROKEN", "status": "VALIDATED"}])
    assert len(lines) == 1
