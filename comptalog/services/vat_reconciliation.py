from __future__ import annotations
from decimal import Decimal
from typing import Iterable, Optional

from comptalog.config import FiscalSettings, get_settings
from comptalog.models.accounting import AccountingEntry
from comptalog.models.common import ZERO, to_money
from comptalog.models.declarations import VatAlert, VatReconciliation
from comptalog.models.ledger import VatJournalEntry
from comptalog.services import chart_of_accounts as coa
from comptalog.services.periods import as_date, in_period


def vat_alert(net: Decimal, settings: Optional[FiscalSettings] = None) -> Optional[VatAlert]:
    """Alerte indicative, jamais bloquante."""
    thresholds = (settings or get_settings()).vat_alerts
    if net > thresholds.high_payable:
        return VatAlert(
            code="HIGH_PAYABLE",
            message=f"Montant de TVA à payer élevé (> {thresholds.high_payable} TND). "
                    "Vérifiez votre trésorerie.",
        )
    if net < thresholds.large_credit:
        return VatAlert(
            code="LARGE_CREDIT",
            message="Crédit de TVA important. Vérifiez s'il s'agit d'un crédit "
                    "structurel (investissement).",
        )
    return None


def _settle(collected: Decimal, deductible: Decimal, prior_credit,
            settings: Optional[FiscalSettings], **period) -> VatReconciliation:
    prior = to_money(prior_credit)
    net = to_money(collected - deductible - prior)
    return VatReconciliation(
        collected=collected,
        deductible=deductible,
        prior_credit=prior,
        net=net,
        payable=net if net > 0 else ZERO,
        credit=-net if net < 0 else ZERO,
        alert=vat_alert(net, settings),
        **period,
    )


def reconcile_from_entries(entries: Iterable[AccountingEntry], start, end, prior_credit=0,
                           settings: Optional[FiscalSettings] = None) -> VatReconciliation:
    """TVA collectée (crédits 44571) moins TVA déductible (débits 44566) sur [start, end]."""
    start, end = as_date(start), as_date(end)
    collected = deductible = ZERO
    for e in entries:
        if not in_period(e.date, start, end):
            continue
        if e.account_code == coa.VAT_COLLECTED:
            collected += e.credit
        elif e.account_code == coa.VAT_DEDUCTIBLE:
            deductible += e.debit
    return _settle(collected, deductible, prior_credit, settings, start=start, end=end)


def reconcile_from_journal(journal: Iterable[VatJournalEntry], period: str, prior_credit=0,
                           settings: Optional[FiscalSettings] = None) -> VatReconciliation:
    """Même calcul à partir du journal TVA, filtré sur la clé de période YYYY-MM."""
    collected = deductible = ZERO
    for e in journal:
        if e.period != period:
            continue
        if e.type == "COLLECTED":
            collected += e.tax_amount
        else:
            deductible += e.tax_amount
    return _settle(collected, deductible, prior_credit, settings, period=period)
