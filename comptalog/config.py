from __future__ import annotations
import os
import json
import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = ROOT_DIR / "data"
SETTINGS_JSON = DATA_DIR / "settings.json"
SETTINGS_ENV = "COMPTALOG_SETTINGS"


# ---------- Sections ----------
class TaxConfig(BaseModel):
    vat_transport: Decimal = Decimal("7")     # TVA transport (régularisation 2025)
    vat_standard: Decimal = Decimal("19")
    stamp_duty: Decimal = Decimal("1.000")    # timbre fiscal par facture
    withholding_transport: Decimal = Decimal("1")
    withholding_threshold: Decimal = Decimal("1000")  # indicatif, jamais bloquant


class SocialRates(BaseModel):
    cnss_employee: Decimal = Decimal("9.18")
    cnss_employer: Decimal = Decimal("16.57")
    tfp: Decimal = Decimal("1.0")             # taxe formation professionnelle
    foprolos: Decimal = Decimal("1.0")        # fonds logement salariés
    accident_work: Decimal = Decimal("0.5")


class IrppBracket(BaseModel):
    limit: Optional[Decimal] = None  # None = tranche ouverte
    rate: Decimal


class IrppConfig(BaseModel):
    brackets: List[IrppBracket] = Field(default_factory=lambda: [
        IrppBracket(limit=Decimal("5000"), rate=Decimal("0")),
        IrppBracket(limit=Decimal("20000"), rate=Decimal("0.26")),
        IrppBracket(limit=Decimal("30000"), rate=Decimal("0.28")),
        IrppBracket(limit=Decimal("50000"), rate=Decimal("0.32")),
        IrppBracket(limit=None, rate=Decimal("0.35")),
    ])
    professional_rate: Decimal = Decimal("0.10")
    professional_cap: Decimal = Decimal("2000")
    head_of_household: Decimal = Decimal("300")
    per_child: Decimal = Decimal("100")
    max_children: int = 4


class VatAlertThresholds(BaseModel):
    high_payable: Decimal = Decimal("5000")
    large_credit: Decimal = Decimal("-2000")


class FiscalSettings(BaseModel):
    currency: str = "TND"
    tax: TaxConfig = Field(default_factory=TaxConfig)
    social: SocialRates = Field(default_factory=SocialRates)
    irpp: IrppConfig = Field(default_factory=IrppConfig)
    vat_alerts: VatAlertThresholds = Field(default_factory=VatAlertThresholds)
    corporate_tax_rate: Decimal = Decimal("0.15")
    fees_withholding_rate: Decimal = Decimal("15")
    rent_withholding_rate: Decimal = Decimal("10")
    non_deductible_categories: List[str] = Field(default_factory=lambda: ["PERSONAL"])


# ---------- Chargement ----------
def _load_json(path: os.PathLike | str):
    p = Path(path)
    if not p.exists():
        return None
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Lecture impossible de %s (%s), paramètres par défaut", p, e)
        return None


def load_settings(path: Optional[os.PathLike | str] = None) -> FiscalSettings:
    """
    Charge les paramètres fiscaux :
    - chemin explicite
    - variable d'env COMPTALOG_SETTINGS
    - data/settings.json -> section "fiscal"
    Retombe sur les valeurs par défaut si rien n'est lisible.
    """
    if path is None:
        path = os.environ.get(SETTINGS_ENV) or SETTINGS_JSON
    s = _load_json(path) or {}
    section = s.get("fiscal", s) if isinstance(s, dict) else {}
    try:
        return FiscalSettings.model_validate(section)
    except ValidationError as e:
        logger.warning("Paramètres fiscaux invalides dans %s, valeurs par défaut: %s", path, e)
        return FiscalSettings()


@lru_cache(maxsize=1)
def get_settings() -> FiscalSettings:
    return load_settings()
