from __future__ import annotations
import logging
import threading
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from comptalog.models.ledger import VatJournalEntry, VatOperationType
from comptalog.services.periods import period_key
from comptalog.services.tax_calculator import vat_amount
from comptalog.storage.json_repo import JsonRepository

logger = logging.getLogger(__name__)


class VatJournal:
    """Journal TVA (collectée / déductible), en ajout seul."""

    def __init__(self, repo: Optional[JsonRepository] = None):
        self.repo = repo
        self._lock = threading.Lock()
        self._entries: List[VatJournalEntry] = []
        if repo is not None:
            for d in repo.list_all():
                try:
                    self._entries.append(VatJournalEntry(**d))
                except ValidationError:
                    logger.warning("Ligne de journal TVA illisible ignorée: %s", d.get("id"))

    def log_operation(self, type: VatOperationType, base_amount, rate, reference_source: str,
                      at: Optional[datetime] = None, tax_amount=None) -> VatJournalEntry:
        """tax_amount : montant déjà porté sur la pièce, sinon base x taux."""
        at = at or datetime.now()
        entry = VatJournalEntry(
            at=at,
            period=period_key(at),
            type=type,
            base_amount=base_amount,
            rate=rate,
            tax_amount=vat_amount(base_amount, rate) if tax_amount is None else tax_amount,
            reference_source=reference_source,
        )
        with self._lock:
            self._entries.append(entry)
            self._persist()
        logger.info("TVA %s: %s (base %s, taux %s%%)", type, entry.tax_amount, entry.base_amount, rate)
        return entry

    def _persist(self) -> None:
        if self.repo is not None:
            self.repo.replace_all(self._entries)

    def list(self) -> List[VatJournalEntry]:
        with self._lock:
            return [e.model_copy() for e in self._entries]

    def entries_for_period(self, period: str) -> List[VatJournalEntry]:
        return [e for e in self.list() if e.period == period]

    def mark_declared(self, period: str) -> int:
        """Marque les lignes de la période comme incluses dans une déclaration déposée."""
        count = 0
        with self._lock:
            for e in self._entries:
                if e.period == period and not e.declared:
                    e.declared = True
                    count += 1
            if count:
                self._persist()
        return count

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            if self.repo is not None:
                self.repo.truncate()
