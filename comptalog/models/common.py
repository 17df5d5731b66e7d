from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated, Any
from pydantic import AfterValidator
import uuid

MILLIME = Decimal("0.001")
ZERO = Decimal("0.000")


def gen_id() -> str:
    return str(uuid.uuid4())


def to_decimal(value: Any) -> Decimal:
    """Convertit int/float/str en Decimal sans passer par la représentation binaire."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def to_money(value: Any) -> Decimal:
    """Arrondi au millime (3 décimales), règle commerciale."""
    try:
        return to_decimal(value).quantize(MILLIME, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"montant hors limites: {value!r}") from e


# Montant en dinars, toujours arrondi au millime dès la validation
Money = Annotated[Decimal, AfterValidator(to_money)]
