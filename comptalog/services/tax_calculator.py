from __future__ import annotations
import logging
from decimal import Decimal
from typing import Iterable, Optional

from comptalog.config import FiscalSettings, IrppBracket, get_settings
from comptalog.models.common import ZERO, to_decimal, to_money
from comptalog.models.employee import EmployerContribution, PayrollResult

logger = logging.getLogger(__name__)

MARITAL_STATUSES = ("SINGLE", "MARRIED")

# ---------- HT <-> TTC ----------
def vat_amount(ht, vat_rate) -> Decimal:
    return to_money(to_decimal(ht) * to_decimal(vat_rate) / 100)

def ttc_from_ht(ht, vat_rate, stamp=0) -> Decimal:
    """TTC = HT + HT x TVA + timbre"""
    ht = to_money(ht)
    return to_money(ht + vat_amount(ht, vat_rate) + to_money(stamp))

def ht_from_ttc(ttc, vat_rate, stamp=0) -> Decimal:
    """HT = (TTC - timbre) / (1 + TVA)"""
    base = to_decimal(ttc) - to_decimal(stamp)
    return to_money(base / (1 + to_decimal(vat_rate) / 100))

# ---------- Retenue à la source ----------
def withholding_amount(ttc, rate, forced: bool) -> Decimal:
    """
    La retenue est une option déclarée par l'émetteur de la facture.
    Le seuil légal (1000 TND) n'est qu'indicatif : voir withholding_expected().
    """
    if not forced:
        return ZERO
    return to_money(to_decimal(ttc) * to_decimal(rate) / 100)

def withholding_expected(ttc, settings: Optional[FiscalSettings] = None) -> bool:
    s = settings or get_settings()
    return to_decimal(ttc) >= s.tax.withholding_threshold

# ---------- Paie ----------
def _pct(amount: Decimal, rate) -> Decimal:
    return to_money(amount * to_decimal(rate) / 100)

def _check_family(marital_status: str, children_count: int) -> str:
    status = str(marital_status).upper()
    if status not in MARITAL_STATUSES:
        raise ValueError(f"situation familiale inconnue: {marital_status!r}")
    if children_count < 0:
        raise ValueError("children_count doit être >= 0")
    return status

def progressive_tax(taxable: Decimal, brackets: Iterable[IrppBracket]) -> Decimal:
    tax = ZERO
    previous = ZERO
    for b in brackets:
        if taxable > previous:
            upper = taxable if b.limit is None else min(taxable, b.limit)
            tax += (upper - previous) * b.rate
        if b.limit is None:
            break
        previous = b.limit
    return to_money(tax)

def family_deductions(marital_status: str, children_count: int,
                      settings: Optional[FiscalSettings] = None) -> Decimal:
    irpp = (settings or get_settings()).irpp
    total = ZERO
    if marital_status == "MARRIED":
        total += irpp.head_of_household
    total += min(children_count, irpp.max_children) * irpp.per_child
    return to_money(total)

def compute_payroll(base_salary, marital_status: str, children_count: int,
                    variable_bonus=0, settings: Optional[FiscalSettings] = None) -> PayrollResult:
    s = settings or get_settings()
    status = _check_family(marital_status, children_count)
    social, irpp = s.social, s.irpp

    gross = to_money(to_decimal(base_salary) + to_decimal(variable_bonus))
    if gross < 0:
        raise ValueError("salaire brut négatif")

    # 1. CNSS
    cnss_employee = _pct(gross, social.cnss_employee)
    employer = EmployerContribution(
        cnss=_pct(gross, social.cnss_employer),
        tfp=_pct(gross, social.tfp),
        foprolos=_pct(gross, social.foprolos),
        accident_work=_pct(gross, social.accident_work),
    )

    # 2. IRPP annualisé : (brut - CNSS) x 12 - frais professionnels plafonnés
    annual_base = (gross - cnss_employee) * 12
    professional = min(annual_base * irpp.professional_rate, irpp.professional_cap)
    taxable = max(ZERO, annual_base - professional)
    gross_tax = progressive_tax(taxable, irpp.brackets)

    # 3. Déductions pour charges de famille
    deductions = family_deductions(status, children_count, s)
    irpp_annual = max(ZERO, gross_tax - deductions)
    irpp_monthly = to_money(irpp_annual / 12)

    # 4. Net
    net = gross - cnss_employee - irpp_monthly
    return PayrollResult(
        gross=gross,
        cnss_employee=cnss_employee,
        employer=employer,
        cnss_employer=employer.total,
        taxable_annual=taxable,
        gross_tax_annual=gross_tax,
        family_deductions=deductions,
        irpp_annual=irpp_annual,
        irpp_monthly=irpp_monthly,
        net_salary=net,
        total_cost=gross + employer.total,
    )

def compute_payroll_from_target_net(target_net, marital_status: str, children_count: int,
                                    net_bonus=0, settings: Optional[FiscalSettings] = None,
                                    *, max_iterations: int = 50,
                                    tolerance: Decimal = Decimal("0.001")) -> PayrollResult:
    """
    Brut nécessaire pour obtenir un net cible, par dichotomie sur [net, 2 x net].
    Approximation : sans convergence, on garde le brut dont le net est le plus proche.
    """
    total = to_decimal(target_net) + to_decimal(net_bonus)
    if total < 0:
        raise ValueError("net cible négatif")

    low, high = total, total * 2
    found, best_gap = total, None
    for _ in range(max_iterations):
        mid = (low + high) / 2
        result = compute_payroll(mid, marital_status, children_count, 0, settings)
        gap = abs(result.net_salary - total)
        if best_gap is None or gap < best_gap:
            found, best_gap = mid, gap
        if gap < tolerance:
            break
        if result.net_salary < total:
            low = mid
        else:
            high = mid
    else:
        logger.debug("Dichotomie non convergée pour net=%s, brut estimé=%s", total, found)

    final = compute_payroll(found, marital_status, children_count, 0, settings)
    return final.model_copy(update={"target_net": to_money(target_net)})
