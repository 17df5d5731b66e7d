from __future__ import annotations
import logging
import threading
from decimal import Decimal
from typing import List, Optional

from pydantic import ValidationError

from comptalog.models.common import ZERO, to_money
from comptalog.models.ledger import CashReferenceType, CashSnapshot, Transaction, TransactionType
from comptalog.storage.json_repo import JsonRepository

logger = logging.getLogger(__name__)


class CashLedger:
    """
    Grand livre de trésorerie, en ajout seul. Alimenté au moment de la
    validation / du paiement, indépendamment du recalcul du grand livre.
    Une instance par application, injectée là où on en a besoin.
    """

    def __init__(self, repo: Optional[JsonRepository] = None, currency: str = "TND"):
        self.repo = repo
        self.currency = currency
        self._lock = threading.Lock()
        self._transactions: List[Transaction] = []
        if repo is not None:
            for d in repo.list_all():
                try:
                    self._transactions.append(Transaction(**d))
                except ValidationError:
                    logger.warning("Transaction illisible ignorée: %s", d.get("id"))

    def record(self, type: TransactionType, amount, category: str,
               reference_type: CashReferenceType, reference_id: str,
               description: str = "", vehicle_id: Optional[str] = None) -> Transaction:
        txn = Transaction(
            type=type,
            amount=amount,
            currency=self.currency,
            reference_type=reference_type,
            reference_id=reference_id,
            category=category,
            description=description,
            vehicle_id=vehicle_id,
        )
        with self._lock:
            self._transactions.append(txn)
            if self.repo is not None:
                self.repo.append(txn)
        logger.info("Transaction enregistrée: %s %s %s (%s)", type, txn.amount, self.currency, description)
        return txn

    def list(self) -> List[Transaction]:
        with self._lock:
            return list(self._transactions)

    def clear(self) -> None:
        with self._lock:
            self._transactions.clear()
            if self.repo is not None:
                self.repo.truncate()

    # ---------- indicateurs ----------
    @staticmethod
    def _totals(txns: List[Transaction]) -> tuple[Decimal, Decimal]:
        revenue = sum((t.amount for t in txns if t.type == "INCOME"), ZERO)
        expenses = sum((t.amount for t in txns if t.type == "EXPENSE"), ZERO)
        return revenue, expenses

    def snapshot(self) -> CashSnapshot:
        revenue, expenses = self._totals(self.list())
        net = to_money(revenue - expenses)
        return CashSnapshot(total_revenue=revenue, total_expenses=expenses,
                            cash_flow=net, net_profit=net)

    def profit_by_vehicle(self, vehicle_id: str) -> Decimal:
        """Comptabilité analytique : résultat par camion."""
        revenue, expenses = self._totals([t for t in self.list() if t.vehicle_id == vehicle_id])
        return to_money(revenue - expenses)
