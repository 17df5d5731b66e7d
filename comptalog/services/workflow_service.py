from __future__ import annotations
import logging
from datetime import datetime, time
from decimal import Decimal
from typing import Optional

from comptalog.errors import InvalidTransitionError
from comptalog.models.expense import Expense
from comptalog.models.invoice import Invoice
from comptalog.models.ledger import Transaction, VatJournalEntry
from comptalog.services.accounting_service import AccountingService
from comptalog.services.cash_ledger import CashLedger
from comptalog.services.vat_journal import VatJournal

logger = logging.getLogger(__name__)

DEFAULT_EXPENSE_VAT_RATE = Decimal("19")


def _at(d) -> datetime:
    return datetime.combine(d, time.min)


def _expense_vat_rate(exp: Expense) -> Decimal:
    if exp.tva_rate is not None:
        return exp.tva_rate
    if exp.amount_ht > 0:
        return (exp.tva_amount * 100 / exp.amount_ht).quantize(Decimal("0.01"))
    return DEFAULT_EXPENSE_VAT_RATE


class WorkflowService:
    """
    Effets comptables immédiats des actions utilisateur (validation, paiement,
    saisie de dépense). Les journaux sont fournis par la racine de composition.
    """

    def __init__(self, cash: CashLedger, vat: VatJournal,
                 accounting: Optional[AccountingService] = None):
        self.cash = cash
        self.vat = vat
        self.accounting = accounting

    # Facture : brouillon -> validée
    def validate_invoice(self, inv: Invoice) -> tuple[Invoice, VatJournalEntry]:
        if inv.status != "DRAFT":
            raise InvalidTransitionError(f"facture {inv.number or inv.id}: {inv.status} -> VALIDATED")
        inv.recompute_totals()
        inv.status = "VALIDATED"
        entry = self.vat.log_operation(
            "COLLECTED", inv.total_ht, inv.vat_rate,
            f"FACTURE-{inv.number or inv.id}", at=_at(inv.date), tax_amount=inv.vat_amount,
        )
        return inv, entry

    # Facture : validée -> payée (encaissement du net à payer, après retenue)
    def mark_invoice_paid(self, inv: Invoice) -> tuple[Invoice, Transaction]:
        if inv.status != "VALIDATED":
            raise InvalidTransitionError(f"facture {inv.number or inv.id}: {inv.status} -> PAID")
        inv.status = "PAID"
        txn = self.cash.record(
            "INCOME", inv.net_to_pay, "Vente Transport", "INVOICE", inv.id,
            f"Paiement facture {inv.number or inv.id} - {inv.client_name or inv.client_id}",
        )
        return inv, txn

    def cancel_invoice(self, inv: Invoice) -> Invoice:
        if inv.status == "PAID":
            raise InvalidTransitionError(f"facture {inv.number or inv.id}: PAID -> CANCELLED")
        inv.status = "CANCELLED"
        return inv

    # Dépense : décaissement TTC + TVA déductible le cas échéant
    def record_expense(self, exp: Expense) -> tuple[Transaction, Optional[VatJournalEntry]]:
        txn = self.cash.record(
            "EXPENSE", exp.amount_ttc, exp.category, "EXPENSE", exp.id,
            exp.description or "Dépense diverse", vehicle_id=exp.vehicle_id,
        )
        vat_entry = None
        if exp.is_deductible and exp.tva_amount > 0:
            # même montant que la ligne 44566 du grand livre
            vat_entry = self.vat.log_operation(
                "DEDUCTIBLE", exp.amount_ht, _expense_vat_rate(exp),
                f"DEPENSE-{exp.id}", at=_at(exp.date), tax_amount=exp.tva_amount,
            )
        return txn, vat_entry

    # Action d'administration : remise à zéro des données comptables
    def reset_accounting_data(self) -> None:
        self.cash.clear()
        self.vat.clear()
        if self.accounting is not None:
            self.accounting.reset()
        logger.warning("Données comptables remises à zéro")
