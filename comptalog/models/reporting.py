from __future__ import annotations
from enum import Enum
from pydantic import BaseModel
from .common import Money, ZERO

class AmountBasis(str, Enum):
    HT = "HT"
    TTC = "TTC"

class ProfitAndLoss(BaseModel):
    period: str
    basis: AmountBasis
    turnover: Money = ZERO            # classe 70
    direct_costs: Money = ZERO        # achats consommés (60)
    external_services: Money = ZERO   # services extérieurs (61/62)
    personnel_costs: Money = ZERO     # charges de personnel (64)
    taxes: Money = ZERO               # impôts et taxes (66)
    ebitda: Money = ZERO

class MonthlyFinancials(BaseModel):
    revenue_ht: Money = ZERO
    expenses_ht: Money = ZERO
    net_income: Money = ZERO
    vat_collected: Money = ZERO
    vat_deductible: Money = ZERO
    vat_payable: Money = ZERO
    vat_credit: Money = ZERO
