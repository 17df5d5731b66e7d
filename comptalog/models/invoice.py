from __future__ import annotations
from pydantic import BaseModel, Field, model_validator
from typing import List, Literal, Optional
import datetime as dt
from decimal import Decimal
from .common import Money, ZERO, gen_id, to_money
from comptalog.services import tax_calculator

InvoiceStatus = Literal["DRAFT", "VALIDATED", "PAID", "CANCELLED"]

# seuls ces statuts alimentent le grand livre et les déclarations
POSTABLE_STATUSES = ("VALIDATED", "PAID")

class InvoiceLine(BaseModel):
    description: str = ""
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit_price: Money = Field(ge=0)
    mission_id: Optional[str] = None
    route: Optional[str] = None  # "Kairouan - Tunis"

    @property
    def total(self) -> Decimal:
        return to_money(self.quantity * self.unit_price)

class Invoice(BaseModel):
    id: str = Field(default_factory=gen_id)
    number: Optional[str] = None
    status: InvoiceStatus = "DRAFT"

    client_id: str
    client_name: Optional[str] = None

    date: dt.date
    due_date: Optional[dt.date] = None

    lines: List[InvoiceLine] = Field(default_factory=list)
    vat_rate: Decimal = Field(default=Decimal("7"), ge=0)
    stamp_duty: Money = Field(default=ZERO, ge=0)

    # retenue à la source, sur option de l'émetteur
    apply_withholding: bool = False
    withholding_rate: Decimal = Field(default=Decimal("1"), ge=0)

    # totaux dérivés des lignes, jamais saisis
    total_ht: Money = ZERO
    vat_amount: Money = ZERO
    total_ttc: Money = ZERO
    withholding_amount: Money = ZERO
    net_to_pay: Money = ZERO

    notes: Optional[str] = None

    model_config = {"extra": "ignore"}  # tolère d'anciennes clés

    @model_validator(mode="after")
    def _recompute_totals(self) -> "Invoice":
        return self.recompute_totals()

    def recompute_totals(self) -> "Invoice":
        ht = to_money(sum((ln.total for ln in self.lines), ZERO))
        self.total_ht = ht
        self.vat_amount = tax_calculator.vat_amount(ht, self.vat_rate)
        self.total_ttc = to_money(ht + self.vat_amount + self.stamp_duty)
        self.withholding_amount = tax_calculator.withholding_amount(
            self.total_ttc, self.withholding_rate, self.apply_withholding
        )
        self.net_to_pay = to_money(self.total_ttc - self.withholding_amount)
        return self

    @property
    def is_postable(self) -> bool:
        return self.status in POSTABLE_STATUSES
