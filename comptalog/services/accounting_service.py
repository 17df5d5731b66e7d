from __future__ import annotations
import datetime as dt
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from comptalog.config import FiscalSettings
from comptalog.models.accounting import (
    AccountingEntry, LedgerResult, PostingError, TrialBalance, TrialBalanceLine,
)
from comptalog.models.common import ZERO
from comptalog.services import chart_of_accounts as coa
from comptalog.services.ledger_generator import Document, generate_ledger

logger = logging.getLogger(__name__)


class AccountingService:
    """
    Détient le grand livre courant. Chaque regenerate() remplace l'ensemble des
    écritures : pas de mise à jour incrémentale.
    """

    def __init__(self, settings: Optional[FiscalSettings] = None):
        self.settings = settings
        self._result = LedgerResult()

    def regenerate(self, invoices: Iterable[Document], expenses: Iterable[Document],
                   employees: Iterable[Document], *,
                   payroll_date: Optional[dt.date] = None) -> LedgerResult:
        result = generate_ledger(invoices, expenses, employees,
                                 payroll_date=payroll_date, settings=self.settings)
        self._result = result
        logger.info("Grand livre recalculé: %d écritures, %d documents rejetés",
                    len(result.entries), len(result.errors))
        return result

    def list_entries(self) -> List[AccountingEntry]:
        return list(self._result.entries)

    @property
    def errors(self) -> List[PostingError]:
        return list(self._result.errors)

    def reset(self) -> None:
        self._result = LedgerResult()

    def trial_balance(self) -> TrialBalance:
        """Balance par compte : seul contrôle d'équilibre débit/crédit."""
        debit: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        credit: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        for e in self._result.entries:
            debit[e.account_code] += e.debit
            credit[e.account_code] += e.credit

        lines = [
            TrialBalanceLine(account_code=code, account_label=coa.account_label(code),
                             debit=debit[code], credit=credit[code])
            for code in sorted(set(debit) | set(credit))
        ]
        return TrialBalance(
            lines=lines,
            total_debit=sum((ln.debit for ln in lines), ZERO),
            total_credit=sum((ln.credit for ln in lines), ZERO),
        )
