from __future__ import annotations
from typing import Optional


class ComptalogError(Exception):
    pass


class DocumentValidationError(ComptalogError, ValueError):
    """Un document source (facture, dépense, salarié) est inexploitable."""

    def __init__(self, document_id: Optional[str], reference_type: str, details: str):
        self.document_id = document_id
        self.reference_type = reference_type
        self.details = details
        super().__init__(f"{reference_type} {document_id or '<sans id>'}: {details}")


class PeriodFormatError(ComptalogError, ValueError):
    pass


class InvalidTransitionError(ComptalogError):
    pass
