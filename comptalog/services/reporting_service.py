"""
Indicateurs de gestion (tableau de bord). Le choix HT/TTC est un paramètre
explicite et ne concerne jamais les déclarations fiscales.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Iterable, Optional

from comptalog.config import FiscalSettings, get_settings
from comptalog.models.common import ZERO, to_money
from comptalog.models.employee import Employee
from comptalog.models.expense import Expense
from comptalog.models.invoice import Invoice
from comptalog.models.reporting import AmountBasis, MonthlyFinancials, ProfitAndLoss
from comptalog.services.declaration_service import valid_documents
from comptalog.services.tax_calculator import compute_payroll

DIRECT_COST_CATEGORIES = {"FUEL", "SPARE_PARTS"}
EXTERNAL_SERVICE_CATEGORIES = {"MAINTENANCE", "INSURANCE", "TOLLS", "OFFICE", "OTHER"}
TAX_CATEGORIES = {"TAXES"}


def _amount(ht: Decimal, ttc: Decimal, basis: AmountBasis) -> Decimal:
    return ttc if basis is AmountBasis.TTC else ht


def profit_and_loss(invoices: Iterable, expenses: Iterable, employees: Iterable,
                    basis: AmountBasis, period: str = "",
                    settings: Optional[FiscalSettings] = None) -> ProfitAndLoss:
    s = settings or get_settings()
    basis = AmountBasis(basis)
    invoices = [i for i in valid_documents(invoices, Invoice, "INVOICE") if i.is_postable]
    expenses = list(valid_documents(expenses, Expense, "EXPENSE"))

    def _expenses(categories) -> Decimal:
        return sum((_amount(e.amount_ht, e.amount_ttc, basis)
                    for e in expenses if e.category in categories), ZERO)

    turnover = sum((_amount(i.total_ht, i.total_ttc, basis) for i in invoices), ZERO)
    direct = _expenses(DIRECT_COST_CATEGORIES)
    external = _expenses(EXTERNAL_SERVICE_CATEGORIES)
    taxes = _expenses(TAX_CATEGORIES)
    personnel = sum(
        (compute_payroll(e.base_salary, e.marital_status, e.children_count,
                         e.variable_bonus, s).total_cost
         for e in valid_documents(employees, Employee, "PAYROLL")),
        ZERO,
    )
    return ProfitAndLoss(
        period=period,
        basis=basis,
        turnover=turnover,
        direct_costs=direct,
        external_services=external,
        personnel_costs=personnel,
        taxes=taxes,
        ebitda=to_money(turnover - (direct + external + personnel + taxes)),
    )


def monthly_financials(invoices: Iterable, expenses: Iterable) -> MonthlyFinancials:
    invoices = [i for i in valid_documents(invoices, Invoice, "INVOICE") if i.is_postable]
    expenses = list(valid_documents(expenses, Expense, "EXPENSE"))

    revenue = sum((i.total_ht for i in invoices), ZERO)
    collected = sum((i.vat_amount for i in invoices), ZERO)
    spent = sum((e.amount_ht for e in expenses), ZERO)
    deductible = sum((e.tva_amount for e in expenses if e.is_deductible), ZERO)
    net_vat = collected - deductible
    return MonthlyFinancials(
        revenue_ht=revenue,
        expenses_ht=spent,
        net_income=revenue - spent,
        vat_collected=collected,
        vat_deductible=deductible,
        vat_payable=net_vat if net_vat > 0 else ZERO,
        vat_credit=-net_vat if net_vat < 0 else ZERO,
    )
