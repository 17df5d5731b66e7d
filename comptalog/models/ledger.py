from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional
from datetime import datetime
from decimal import Decimal
from .common import Money, ZERO, gen_id

TransactionType = Literal["INCOME", "EXPENSE"]
CashReferenceType = Literal["INVOICE", "EXPENSE", "SALARY", "CAPITAL", "MISSION"]
VatOperationType = Literal["COLLECTED", "DEDUCTIBLE"]

class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"txn-{gen_id()}")
    at: datetime = Field(default_factory=datetime.now)
    type: TransactionType
    amount: Money
    currency: str = "TND"
    reference_type: CashReferenceType
    reference_id: str
    category: str
    description: str = ""
    vehicle_id: Optional[str] = None

class CashSnapshot(BaseModel):
    total_revenue: Money = ZERO
    total_expenses: Money = ZERO
    cash_flow: Money = ZERO
    net_profit: Money = ZERO

class VatJournalEntry(BaseModel):
    id: str = Field(default_factory=lambda: f"tva-{gen_id()}")
    at: datetime = Field(default_factory=datetime.now)
    period: str  # YYYY-MM
    type: VatOperationType
    base_amount: Money
    rate: Decimal
    tax_amount: Money
    reference_source: str
    declared: bool = False
