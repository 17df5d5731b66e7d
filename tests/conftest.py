from __future__ import annotations
import datetime as dt
from decimal import Decimal

import pytest

from comptalog.config import FiscalSettings
from comptalog.models.employee import Employee
from comptalog.models.expense import Expense
from comptalog.models.invoice import Invoice, InvoiceLine


@pytest.fixture
def settings() -> FiscalSettings:
    return FiscalSettings()


@pytest.fixture
def make_invoice():
    def _make(ht="1000", status="VALIDATED", date=dt.date(2024, 5, 10), client_id="CLI-1",
              vat_rate="7", stamp="0", **kw) -> Invoice:
        return Invoice(
            client_id=client_id,
            client_name=kw.pop("client_name", "Société Cliente"),
            number=kw.pop("number", None),
            status=status,
            date=date,
            lines=[InvoiceLine(description="Transport Kairouan - Tunis", quantity=1,
                               unit_price=Decimal(ht))],
            vat_rate=Decimal(vat_rate),
            stamp_duty=Decimal(stamp),
            **kw,
        )
    return _make


@pytest.fixture
def make_expense():
    def _make(ht="500", tva="35", category="FUEL", date=dt.date(2024, 5, 12), **kw) -> Expense:
        return Expense(category=category, date=date, amount_ht=Decimal(ht),
                       tva_amount=Decimal(tva), **kw)
    return _make


@pytest.fixture
def driver() -> Employee:
    return Employee(id="EMP-1", full_name="Ali Ben Salah", cin="08123456",
                    base_salary=Decimal("600"), marital_status="SINGLE", children_count=0)


@pytest.fixture
def roster(driver) -> list[Employee]:
    return [
        driver,
        Employee(id="EMP-2", full_name="Sami Trabelsi", cnss_number="CN-2",
                 base_salary=Decimal("1500"), marital_status="MARRIED", children_count=2),
    ]
