from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from .common import gen_id

class Address(BaseModel):
    line1: str
    line2: Optional[str] = None
    postal_code: str
    city: str

class Client(BaseModel):
    """Client ou fournisseur (société tierce) tel que fourni par l'annuaire."""
    id: str = Field(default_factory=gen_id)
    name: str
    matricule_fiscal: Optional[str] = None  # ex. 1234567/A/M/000
    contact_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[Address] = None
    notes: Optional[str] = None
