from __future__ import annotations
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Literal, Optional
from decimal import Decimal
import datetime as dt
from .common import MILLIME, Money, ZERO, gen_id, to_money

EXPENSE_CATEGORIES = (
    "FUEL", "MAINTENANCE", "SPARE_PARTS", "TOLLS", "INSURANCE",
    "TAXES", "SALARY", "OFFICE", "PERSONAL", "OTHER",
)

WithholdingType = Literal["HONORAIRES", "LOYERS"]

class Expense(BaseModel):
    id: str = Field(default_factory=gen_id)
    # chaîne libre : une catégorie inconnue est imputée au compte divers
    category: str = "OTHER"
    description: Optional[str] = None
    date: dt.date

    supplier_id: Optional[str] = None
    vehicle_id: Optional[str] = None   # centre de coût (camion)
    driver_id: Optional[str] = None
    invoice_ref_supplier: Optional[str] = None

    amount_ht: Money = Field(ge=0)
    tva_rate: Optional[Decimal] = Field(default=None, ge=0)
    tva_amount: Optional[Money] = Field(default=None, ge=0)
    amount_ttc: Optional[Money] = Field(default=None, ge=0)
    is_deductible: bool = True
    payment_status: Literal["PAID", "UNPAID"] = "UNPAID"

    # retenue à la source opérée sur le fournisseur (honoraires, loyers)
    withholding_type: Optional[WithholdingType] = None
    withholding_rate: Optional[Decimal] = Field(default=None, ge=0)
    withholding_amount: Money = ZERO

    model_config = {"extra": "ignore"}

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, v):
        return str(v or "OTHER").strip().upper().replace(" ", "_")

    @model_validator(mode="after")
    def _complete_amounts(self) -> "Expense":
        if self.tva_amount is None:
            rate = self.tva_rate or Decimal("0")
            self.tva_amount = to_money(self.amount_ht * rate / 100)
        expected_ttc = self.amount_ht + self.tva_amount
        if self.amount_ttc is None:
            self.amount_ttc = expected_ttc
        elif abs(self.amount_ttc - expected_ttc) > MILLIME:
            raise ValueError(
                f"amount_ttc={self.amount_ttc} incohérent avec HT+TVA={expected_ttc}"
            )
        if self.withholding_type and self.withholding_rate and not self.withholding_amount:
            self.withholding_amount = to_money(self.amount_ttc * self.withholding_rate / 100)
        return self

    @property
    def is_known_category(self) -> bool:
        return self.category in EXPENSE_CATEGORIES
