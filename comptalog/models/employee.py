from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal, Optional
from decimal import Decimal
from .common import Money, ZERO, gen_id

MaritalStatus = Literal["SINGLE", "MARRIED"]

class Employee(BaseModel):
    id: str = Field(default_factory=gen_id)
    full_name: str
    role: str = "Chauffeur"
    cin: Optional[str] = None
    cnss_number: Optional[str] = None
    vehicle_id: Optional[str] = None

    base_salary: Money = Field(ge=0)
    marital_status: MaritalStatus = "SINGLE"
    children_count: int = Field(default=0, ge=0)
    variable_bonus: Money = Field(default=ZERO, ge=0)  # primes trajets du mois

    model_config = {"extra": "ignore"}

class EmployerContribution(BaseModel):
    cnss: Money = ZERO
    tfp: Money = ZERO
    foprolos: Money = ZERO
    accident_work: Money = ZERO

    @property
    def total(self) -> Decimal:
        return self.cnss + self.tfp + self.foprolos + self.accident_work

class PayrollResult(BaseModel):
    gross: Money
    cnss_employee: Money
    employer: EmployerContribution
    cnss_employer: Money
    taxable_annual: Money
    gross_tax_annual: Money
    family_deductions: Money
    irpp_annual: Money
    irpp_monthly: Money
    net_salary: Money
    total_cost: Money
    target_net: Optional[Money] = None  # renseigné par le calcul inverse
