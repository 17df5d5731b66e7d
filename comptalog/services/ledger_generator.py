"""
Moteur comptable : dérive les écritures du grand livre à partir des factures,
dépenses et de la paie.

Recalcul complet et sans mémoire : chaque appel repart des documents sources,
le résultat remplace intégralement le précédent. Un document invalide ne
bloque pas le lot, il est signalé dans LedgerResult.errors.
"""
from __future__ import annotations
import logging
import datetime as dt
from typing import Any, Iterable, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from comptalog.config import FiscalSettings
from comptalog.errors import DocumentValidationError
from comptalog.models.accounting import (
    AccountingEntry, JournalCode, LedgerResult, PostingError, ReferenceType,
)
from comptalog.models.common import ZERO
from comptalog.models.employee import Employee
from comptalog.models.expense import Expense
from comptalog.models.invoice import Invoice
from comptalog.services import chart_of_accounts as coa
from comptalog.services.tax_calculator import compute_payroll

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
Document = Union[M, Mapping[str, Any]]


# ---------- Validation à la frontière ----------
def coerce_document(model_cls: Type[M], raw: Any, reference_type: str) -> M:
    if isinstance(raw, model_cls):
        return raw
    doc_id = raw.get("id") if isinstance(raw, Mapping) else None
    if not isinstance(raw, Mapping):
        raise DocumentValidationError(doc_id, reference_type, f"document illisible ({type(raw).__name__})")
    try:
        return model_cls.model_validate(raw)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "<document>" for err in e.errors())
        raise DocumentValidationError(doc_id, reference_type, f"champs invalides: {fields}") from e
    except ArithmeticError as e:
        raise DocumentValidationError(doc_id, reference_type, f"montant incalculable: {e!r}") from e


def _line(date: dt.date, journal: JournalCode, account: str, label: str, *,
          reference_id: str, reference_type: ReferenceType,
          debit=ZERO, credit=ZERO, category: Optional[str] = None,
          vehicle_id: Optional[str] = None) -> AccountingEntry:
    return AccountingEntry(
        date=date,
        journal_code=journal,
        account_code=account,
        account_label=coa.account_label(account),
        label=label,
        debit=debit,
        credit=credit,
        reference_id=reference_id,
        reference_type=reference_type,
        category=category,
        vehicle_id=vehicle_id,
    )


# ---------- Générateurs par document ----------
def invoice_entries(inv: Invoice) -> List[AccountingEntry]:
    """Journal des ventes. Brouillons et factures annulées ne sont pas comptabilisés."""
    if not inv.is_postable:
        return []
    label = f"Facture N° {inv.number or inv.id} - {inv.client_name or inv.client_id}"
    ref = dict(reference_id=inv.id, reference_type="INVOICE")

    out = [
        _line(inv.date, "VT", coa.CUSTOMERS, label, debit=inv.total_ttc, **ref),
        _line(inv.date, "VT", coa.TRANSPORT_REVENUE, label, credit=inv.total_ht, **ref),
    ]
    if inv.vat_amount > 0:
        out.append(_line(inv.date, "VT", coa.VAT_COLLECTED, label, credit=inv.vat_amount, **ref))
    if inv.stamp_duty > 0:
        out.append(_line(inv.date, "VT", coa.STAMP_DUTY, label, credit=inv.stamp_duty, **ref))
    return out


def expense_entries(exp: Expense) -> List[AccountingEntry]:
    """
    Journal des achats. La TVA d'une dépense non déductible reste une charge :
    elle est portée au débit du compte de charge avec le HT.
    """
    label = f"{exp.description or 'Dépense'} ({exp.category})"
    account = coa.expense_account(exp.category)
    if not exp.is_known_category:
        logger.debug("Catégorie %r inconnue, imputée au compte %s", exp.category, account)
    ref = dict(reference_id=exp.id, reference_type="EXPENSE",
               category=exp.category, vehicle_id=exp.vehicle_id)

    deduct_vat = exp.is_deductible and exp.tva_amount > 0
    charge = exp.amount_ht if deduct_vat else exp.amount_ttc

    out = [_line(exp.date, "AC", account, label, debit=charge, **ref)]
    if deduct_vat:
        out.append(_line(exp.date, "AC", coa.VAT_DEDUCTIBLE, label, debit=exp.tva_amount, **ref))
    out.append(_line(exp.date, "AC", coa.SUPPLIERS, label, credit=exp.amount_ttc, **ref))
    return out


def payroll_entries(emp: Employee, payroll_date: dt.date,
                    settings: Optional[FiscalSettings] = None) -> List[AccountingEntry]:
    """Opérations diverses : une paie mensuelle par salarié."""
    p = compute_payroll(emp.base_salary, emp.marital_status, emp.children_count,
                        emp.variable_bonus, settings)
    label = f"Paie mensuelle - {emp.full_name}"
    ref = dict(reference_id=emp.id, reference_type="PAYROLL", vehicle_id=emp.vehicle_id)
    return [
        _line(payroll_date, "OD", coa.GROSS_SALARIES, label, debit=p.gross, **ref),
        _line(payroll_date, "OD", coa.EMPLOYER_CHARGES, f"{label} - CNSS pat.",
              debit=p.cnss_employer, **ref),
        _line(payroll_date, "OD", coa.SOCIAL_SECURITY, f"{label} - CNSS global",
              credit=p.cnss_employee + p.cnss_employer,
              reference_id=emp.id, reference_type="CNSS", vehicle_id=emp.vehicle_id),
        _line(payroll_date, "OD", coa.INCOME_TAX_WITHHELD, f"{label} - IRPP",
              credit=p.irpp_monthly, **ref),
        _line(payroll_date, "OD", coa.SALARIES_PAYABLE, f"{label} - Net",
              credit=p.net_salary, **ref),
    ]


# ---------- Moteur ----------
def generate_ledger(invoices: Iterable[Document], expenses: Iterable[Document],
                    employees: Iterable[Document], *,
                    payroll_date: Optional[dt.date] = None,
                    settings: Optional[FiscalSettings] = None) -> LedgerResult:
    """
    Recalcule tout le grand livre. Les écritures sont triées par date (tri
    stable : ventes, achats puis paie à date égale).
    """
    entries: List[AccountingEntry] = []
    errors: List[PostingError] = []

    def _collect(docs, model_cls, reference_type, build):
        for raw in docs or []:
            try:
                doc = coerce_document(model_cls, raw, reference_type)
                try:
                    lines = build(doc)
                except (ValueError, ArithmeticError) as e:
                    raise DocumentValidationError(doc.id, reference_type, f"écritures incalculables: {e}") from e
            except DocumentValidationError as e:
                logger.warning("Écritures non générées: %s", e)
                errors.append(PostingError(reference_id=e.document_id,
                                           reference_type=reference_type, message=e.details))
                continue
            entries.extend(lines)

    _collect(invoices, Invoice, "INVOICE", invoice_entries)
    _collect(expenses, Expense, "EXPENSE", expense_entries)

    run_date = payroll_date or dt.date.today()
    _collect(employees, Employee, "PAYROLL",
             lambda emp: payroll_entries(emp, run_date, settings))

    entries.sort(key=lambda e: e.date)
    return LedgerResult(entries=entries, errors=errors)
