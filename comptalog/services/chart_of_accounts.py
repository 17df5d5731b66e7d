from __future__ import annotations
from types import MappingProxyType
from typing import List, Mapping, Optional

from comptalog.models.accounting import AccountType, ChartAccount

# Plan comptable tunisien simplifié
CUSTOMERS = "411"
SUPPLIERS = "401"
VAT_COLLECTED = "44571"
VAT_DEDUCTIBLE = "44566"
STAMP_DUTY = "4367"
INCOME_TAX_WITHHELD = "432"
SOCIAL_SECURITY = "4531"
SALARIES_PAYABLE = "421"
BANK = "532"
CASH = "540"
GROSS_SALARIES = "640"
EMPLOYER_CHARGES = "647"
OTHER_PURCHASES = "6068"
TRANSPORT_REVENUE = "701"

UNKNOWN_LABEL = "Compte inconnu"

_ACCOUNTS = [
    ChartAccount(code=CUSTOMERS, label="Clients", type="ASSET"),
    ChartAccount(code=SUPPLIERS, label="Fournisseurs d'exploitation", type="LIABILITY"),
    ChartAccount(code=VAT_COLLECTED, label="État, TVA collectée", type="LIABILITY"),
    ChartAccount(code=VAT_DEDUCTIBLE, label="État, TVA déductible", type="ASSET"),
    ChartAccount(code=STAMP_DUTY, label="État, Timbre fiscal", type="LIABILITY"),
    ChartAccount(code=INCOME_TAX_WITHHELD, label="État, Impôt sur les revenus (IRPP)", type="LIABILITY"),
    ChartAccount(code=SOCIAL_SECURITY, label="CNSS - Cotisations à payer", type="LIABILITY"),
    ChartAccount(code=SALARIES_PAYABLE, label="Personnel - Rémunérations dues", type="LIABILITY"),
    ChartAccount(code=BANK, label="Banques", type="ASSET"),
    ChartAccount(code=CASH, label="Caisse", type="ASSET"),
    # Classe 6 - Charges
    ChartAccount(code="6061", label="Carburants et lubrifiants", type="EXPENSE"),
    ChartAccount(code="6063", label="Pièces de rechange", type="EXPENSE"),
    ChartAccount(code="615", label="Entretien et réparations", type="EXPENSE"),
    ChartAccount(code="616", label="Primes d'assurance", type="EXPENSE"),
    ChartAccount(code=GROSS_SALARIES, label="Charges du personnel (salaires bruts)", type="EXPENSE"),
    ChartAccount(code=EMPLOYER_CHARGES, label="Charges sociales légales (CNSS patronale)", type="EXPENSE"),
    ChartAccount(code="66", label="Impôts, taxes et versements assimilés", type="EXPENSE"),
    ChartAccount(code=OTHER_PURCHASES, label="Autres achats non stockés", type="EXPENSE"),
    # Classe 7 - Produits
    ChartAccount(code=TRANSPORT_REVENUE, label="Prestations de services (transport)", type="REVENUE"),
]

CHART_OF_ACCOUNTS: Mapping[str, ChartAccount] = MappingProxyType({a.code: a for a in _ACCOUNTS})

EXPENSE_ACCOUNTS: Mapping[str, str] = MappingProxyType({
    "FUEL": "6061",
    "SPARE_PARTS": "6063",
    "MAINTENANCE": "615",
    "INSURANCE": "616",
    "TAXES": "66",
    "SALARY": GROSS_SALARIES,
})


def account(code: str) -> Optional[ChartAccount]:
    return CHART_OF_ACCOUNTS.get(code)

def account_label(code: str) -> str:
    acc = CHART_OF_ACCOUNTS.get(code)
    return acc.label if acc else UNKNOWN_LABEL

def expense_account(category: Optional[str]) -> str:
    """Compte de charge d'une catégorie de dépense, 6068 par défaut."""
    return EXPENSE_ACCOUNTS.get((category or "").upper(), OTHER_PURCHASES)

def accounts_of_type(account_type: AccountType) -> List[ChartAccount]:
    return [a for a in CHART_OF_ACCOUNTS.values() if a.type == account_type]

def account_class(code: str) -> str:
    return code[:1]

def is_expense_class(code: str) -> bool:
    return account_class(code) == "6"

def is_revenue_class(code: str) -> bool:
    return account_class(code) == "7"
