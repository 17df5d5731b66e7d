from __future__ import annotations
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
import datetime as dt
from decimal import Decimal
from .common import Money, ZERO

# ---------- Réconciliation TVA ----------
class VatAlert(BaseModel):
    code: Literal["HIGH_PAYABLE", "LARGE_CREDIT"]
    message: str

class VatReconciliation(BaseModel):
    start: Optional[dt.date] = None
    end: Optional[dt.date] = None
    period: Optional[str] = None
    collected: Money = ZERO
    deductible: Money = ZERO
    prior_credit: Money = ZERO
    net: Money = ZERO
    payable: Money = ZERO
    credit: Money = ZERO
    alert: Optional[VatAlert] = None

# ---------- Déclaration mensuelle TVA ----------
class VatSales(BaseModel):
    base_ht: Money = ZERO          # crédits 701
    vat_collected: Money = ZERO    # crédits 44571
    rate: Optional[Decimal] = None  # taux effectif du mois (collectée / base), None sans vente

class VatPurchases(BaseModel):
    base_ht: Money = ZERO          # débits classe 6
    vat_deductible: Money = ZERO   # débits 44566

class VatDeclaration(BaseModel):
    period: str
    sales: VatSales = Field(default_factory=VatSales)
    purchases: VatPurchases = Field(default_factory=VatPurchases)
    credit_reported: Money = ZERO
    net: Money = ZERO
    vat_payable: Money = ZERO
    vat_credit: Money = ZERO

# ---------- Retenues à la source ----------
WithholdingKind = Literal["SALAIRES", "HONORAIRES", "LOYERS"]

class WithholdingLine(BaseModel):
    type: WithholdingKind
    base: Money = ZERO
    rate: Decimal = Decimal("0")  # 0 = barème progressif (salaires)
    withheld_amount: Money = ZERO
    beneficiary_count: int = 0

class WithholdingDeclaration(BaseModel):
    month: str
    withholding: List[WithholdingLine] = Field(default_factory=list)
    total_withheld: Money = ZERO

# ---------- CNSS trimestrielle ----------
class CnssEmployeeLine(BaseModel):
    employee_id: str
    cnss_number: str
    full_name: str
    gross_salary: Money = ZERO
    employee_part: Money = ZERO
    employer_part: Money = ZERO

class SocialSecurityDeclaration(BaseModel):
    quarter: str  # YYYY-Qn
    employees: List[CnssEmployeeLine] = Field(default_factory=list)
    total_due: Money = ZERO

# ---------- Impôt sur les sociétés ----------
class CorporateTaxDeclaration(BaseModel):
    year: int
    revenue: Money = ZERO
    expenses_deductible: Money = ZERO
    expenses_nondeductible: Money = ZERO  # réintégrations
    taxable_profit: Money = ZERO
    corporate_tax: Money = ZERO

# ---------- États clients (930) / fournisseurs (940) ----------
class PartyStatementLine(BaseModel):
    id: str
    name: str
    matricule_fiscal: str = ""
    total_ht: Money = ZERO
    total_tva: Money = ZERO
