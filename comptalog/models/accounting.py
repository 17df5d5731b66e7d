from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional
from datetime import datetime
import datetime as dt
from .common import Money, ZERO, gen_id

AccountType = Literal["ASSET", "LIABILITY", "EXPENSE", "REVENUE", "EQUITY"]
JournalCode = Literal["VT", "AC", "OD", "BQ"]  # Ventes, Achats, Opérations diverses, Banque
ReferenceType = Literal["INVOICE", "EXPENSE", "PAYROLL", "CNSS"]

class ChartAccount(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    label: str
    type: AccountType

class AccountingEntry(BaseModel):
    """Ligne de journal. Un seul des deux montants est non nul."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=gen_id)
    date: dt.date
    journal_code: JournalCode
    account_code: str
    account_label: str
    label: str
    debit: Money = ZERO
    credit: Money = ZERO
    reference_id: Optional[str] = None
    reference_type: Optional[ReferenceType] = None
    # axes analytiques
    category: Optional[str] = None
    vehicle_id: Optional[str] = None

class PostingError(BaseModel):
    reference_id: Optional[str] = None
    reference_type: ReferenceType
    message: str

class LedgerResult(BaseModel):
    entries: List[AccountingEntry] = Field(default_factory=list)
    errors: List[PostingError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

class TrialBalanceLine(BaseModel):
    account_code: str
    account_label: str
    debit: Money = ZERO
    credit: Money = ZERO

    @property
    def balance(self):
        return self.debit - self.credit

class TrialBalance(BaseModel):
    lines: List[TrialBalanceLine] = Field(default_factory=list)
    total_debit: Money = ZERO
    total_credit: Money = ZERO

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit

class FiscalPeriod(BaseModel):
    """
    Exercice comptable. Une fois CLOSED, aucune écriture datée de l'exercice ne
    doit être créée, modifiée ou supprimée : la couche de persistance doit le
    vérifier avant d'appeler le moteur.
    """
    id: str = Field(default_factory=gen_id)
    year: int
    status: Literal["OPEN", "CLOSED"] = "OPEN"
    closed_at: Optional[datetime] = None
    closed_by: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self.status == "CLOSED"

    def contains(self, d: dt.date) -> bool:
        return d.year == self.year

    def close(self, by: str) -> "FiscalPeriod":
        if not self.is_closed:
            self.status = "CLOSED"
            self.closed_at = datetime.now()
            self.closed_by = by
        return self
