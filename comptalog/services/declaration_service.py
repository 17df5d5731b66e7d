"""
Projections du grand livre (ou des documents bruts) vers les déclarations
fiscales tunisiennes : TVA, retenues à la source, CNSS, IS, états 930/940.
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Type

from comptalog.config import FiscalSettings, get_settings
from comptalog.errors import DocumentValidationError
from comptalog.models.accounting import AccountingEntry
from comptalog.models.client import Client
from comptalog.models.common import ZERO, to_money
from comptalog.models.declarations import (
    CnssEmployeeLine, CorporateTaxDeclaration, PartyStatementLine, SocialSecurityDeclaration,
    VatDeclaration, VatPurchases, VatSales, WithholdingDeclaration, WithholdingLine,
)
from comptalog.models.employee import Employee
from comptalog.models.expense import Expense
from comptalog.models.invoice import Invoice
from comptalog.services import chart_of_accounts as coa
from comptalog.services.ledger_generator import M, coerce_document
from comptalog.services.periods import in_period, month_bounds, quarter_bounds, year_bounds
from comptalog.services.tax_calculator import compute_payroll

logger = logging.getLogger(__name__)

MISC_SUPPLIER = "Divers"
UNKNOWN_CLIENT = "Client inconnu"
DEFAULT_CNSS_NUMBER = "00000000"


def valid_documents(docs: Iterable, model_cls: Type[M], reference_type: str) -> Iterator[M]:
    for raw in docs or []:
        try:
            yield coerce_document(model_cls, raw, reference_type)
        except DocumentValidationError as e:
            logger.warning("Document ignoré pour la déclaration: %s", e)


def _in(entries: Iterable[AccountingEntry], start, end) -> List[AccountingEntry]:
    return [e for e in entries if in_period(e.date, start, end)]


# 1. Déclaration mensuelle de TVA
def vat_declaration(entries: Iterable[AccountingEntry], period: str, previous_credit=0) -> VatDeclaration:
    filtered = _in(entries, *month_bounds(period))

    base_sales = sum((e.credit for e in filtered if e.account_code == coa.TRANSPORT_REVENUE), ZERO)
    collected = sum((e.credit for e in filtered if e.account_code == coa.VAT_COLLECTED), ZERO)
    base_purchases = sum((e.debit for e in filtered if coa.is_expense_class(e.account_code)), ZERO)
    deductible = sum((e.debit for e in filtered if e.account_code == coa.VAT_DEDUCTIBLE), ZERO)

    # le grand livre ne garde pas le taux : on publie le taux effectif
    rate = (collected * 100 / base_sales).quantize(Decimal("0.01")) if base_sales > 0 else None
    prior = to_money(previous_credit)
    net = to_money(collected - deductible - prior)
    return VatDeclaration(
        period=period,
        sales=VatSales(base_ht=base_sales, vat_collected=collected, rate=rate),
        purchases=VatPurchases(base_ht=base_purchases, vat_deductible=deductible),
        credit_reported=prior,
        net=net,
        vat_payable=net if net > 0 else ZERO,
        vat_credit=-net if net < 0 else ZERO,
    )


# 2. Déclaration mensuelle des retenues à la source
def withholding_declaration(expenses: Iterable, period: str, employees: Iterable,
                            settings: Optional[FiscalSettings] = None) -> WithholdingDeclaration:
    s = settings or get_settings()
    start, end = month_bounds(period)

    salaries = WithholdingLine(type="SALAIRES")
    for emp in valid_documents(employees, Employee, "PAYROLL"):
        p = compute_payroll(emp.base_salary, emp.marital_status, emp.children_count,
                            emp.variable_bonus, s)
        salaries.base += p.gross
        salaries.withheld_amount += p.irpp_monthly
        salaries.beneficiary_count += 1

    buckets = {
        "HONORAIRES": WithholdingLine(type="HONORAIRES", rate=s.fees_withholding_rate),
        "LOYERS": WithholdingLine(type="LOYERS", rate=s.rent_withholding_rate),
    }
    beneficiaries: Dict[str, set] = {k: set() for k in buckets}
    for exp in valid_documents(expenses, Expense, "EXPENSE"):
        if not exp.withholding_type or not in_period(exp.date, start, end):
            continue
        line = buckets[exp.withholding_type]
        line.base += exp.amount_ttc
        line.withheld_amount += exp.withholding_amount
        beneficiaries[exp.withholding_type].add(supplier_key(exp, log_fallback=False)[0])
    for kind, line in buckets.items():
        line.beneficiary_count = len(beneficiaries[kind])

    lines = [salaries, *buckets.values()]
    return WithholdingDeclaration(
        month=period,
        withholding=lines,
        total_withheld=sum((ln.withheld_amount for ln in lines), ZERO),
    )


# 3. Déclaration trimestrielle CNSS
def social_security_declaration(quarter: str, employees: Iterable,
                                settings: Optional[FiscalSettings] = None) -> SocialSecurityDeclaration:
    """Trois mois de paie identiques : pas de changement en cours de trimestre."""
    s = settings or get_settings()
    quarter_bounds(quarter)  # valide le format YYYY-Qn

    lines: List[CnssEmployeeLine] = []
    for emp in valid_documents(employees, Employee, "PAYROLL"):
        p = compute_payroll(emp.base_salary, emp.marital_status, emp.children_count,
                            emp.variable_bonus, s)
        lines.append(CnssEmployeeLine(
            employee_id=emp.id,
            cnss_number=emp.cnss_number or emp.cin or DEFAULT_CNSS_NUMBER,
            full_name=emp.full_name,
            gross_salary=p.gross * 3,
            employee_part=p.cnss_employee * 3,
            employer_part=p.cnss_employer * 3,
        ))
    total = sum((ln.employee_part + ln.employer_part for ln in lines), ZERO)
    return SocialSecurityDeclaration(quarter=quarter.upper(), employees=lines, total_due=total)


# 4. Impôt sur les sociétés
def corporate_tax_declaration(entries: Iterable[AccountingEntry], year: int,
                              settings: Optional[FiscalSettings] = None) -> CorporateTaxDeclaration:
    s = settings or get_settings()
    filtered = _in(entries, *year_bounds(year))
    non_deductible_categories = {c.upper() for c in s.non_deductible_categories}

    revenue = sum((e.credit for e in filtered if coa.is_revenue_class(e.account_code)), ZERO)
    charges = [e for e in filtered if coa.is_expense_class(e.account_code)]
    expenses = sum((e.debit for e in charges), ZERO)
    # réintégrations : charges des catégories non déductibles (dépenses personnelles...)
    non_deductible = sum(
        (e.debit for e in charges if (e.category or "").upper() in non_deductible_categories),
        ZERO,
    )

    taxable = to_money(revenue - expenses + non_deductible)
    tax = to_money(taxable * s.corporate_tax_rate) if taxable > 0 else ZERO
    return CorporateTaxDeclaration(
        year=int(year),
        revenue=revenue,
        expenses_deductible=expenses,
        expenses_nondeductible=non_deductible,
        taxable_profit=taxable,
        corporate_tax=tax,
    )


# 5. État 930 (clients)
def client_statement(invoices: Iterable, clients: Optional[Iterable[Client]] = None) -> List[PartyStatementLine]:
    directory: Mapping[str, Client] = {c.id: c for c in clients or []}
    out: Dict[str, PartyStatementLine] = {}
    for inv in valid_documents(invoices, Invoice, "INVOICE"):
        if not inv.is_postable:
            continue
        line = out.get(inv.client_id)
        if line is None:
            known = directory.get(inv.client_id)
            line = out[inv.client_id] = PartyStatementLine(
                id=inv.client_id,
                name=(known.name if known else None) or inv.client_name or UNKNOWN_CLIENT,
                matricule_fiscal=(known.matricule_fiscal if known else None) or "",
            )
        line.total_ht += inv.total_ht
        line.total_tva += inv.vat_amount
    return list(out.values())


# 6. État 940 (fournisseurs)
def supplier_key(exp: Expense, *, log_fallback: bool = True) -> Tuple[str, str]:
    """
    Clé fournisseur : supplier_id quand il existe, sinon le début du libellé
    (avant le premier '-'), sinon "Divers".
    """
    if exp.supplier_id:
        return exp.supplier_id, exp.supplier_id
    name = (exp.description or "").split("-")[0].strip() or MISC_SUPPLIER
    if log_fallback:
        logger.warning("Dépense %s sans supplier_id, fournisseur déduit du libellé: %r", exp.id, name)
    return name, name


def supplier_statement(expenses: Iterable, suppliers: Optional[Iterable[Client]] = None) -> List[PartyStatementLine]:
    directory: Mapping[str, Client] = {c.id: c for c in suppliers or []}
    out: Dict[str, PartyStatementLine] = {}
    for exp in valid_documents(expenses, Expense, "EXPENSE"):
        key, name = supplier_key(exp)
        line = out.get(key)
        if line is None:
            known = directory.get(key)
            line = out[key] = PartyStatementLine(
                id=key,
                name=known.name if known else name,
                matricule_fiscal=(known.matricule_fiscal if known else None) or "",
            )
        line.total_ht += exp.amount_ht
        line.total_tva += exp.tva_amount
    return list(out.values())
