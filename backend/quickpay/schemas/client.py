"""
Schemas Pydantic per l'entità Client
Progetto: QuickPay (Fatturazione e Pagamenti)

Contiene gli schemi per la validazione dei dati in input (create/update)
e la serializzazione delle risposte API.
"""

import datetime
import re
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field, field_validator

from quickpay.schemas.common import Money, Pagination

PHONE_PATTERN = re.compile(r"^\+?[0-9]{7,15}$")


# -------------------------------------------------------------------
# Funzioni di normalizzazione
# -------------------------------------------------------------------

def normalize_phone(v: Optional[str]) -> Optional[str]:
    """
    Normalizza il numero di telefono.

    Rimuove spazi, trattini, punti e parentesi; ammette il prefisso '+'.
    Stringa vuota diventa None.
    """
    if v is None:
        return None
    cleaned = re.sub(r"[\s\-\.\(\)]", "", str(v))
    if not cleaned:
        return None
    if not PHONE_PATTERN.match(cleaned):
        raise ValueError("Valid phone number is required")
    return cleaned


def strip_or_none(v: Optional[str]) -> Optional[str]:
    """Strip degli spazi; stringa vuota diventa None."""
    if v is None:
        return None
    stripped = str(v).strip()
    return stripped or None


class ClientValidatorsMixin(BaseModel):
    """
    Validator comuni per create e update.

    I campi sono dichiarati nelle classi figlie; i validator usano
    check_fields=False per applicarsi solo dove il campo esiste.
    """

    @field_validator("name", mode="before", check_fields=False)
    @classmethod
    def normalize_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        stripped = str(v).strip()
        if not stripped:
            raise ValueError("Name is required")
        return stripped

    @field_validator("email", mode="after", check_fields=False)
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        """Email sempre in minuscolo: l'unicità è case-insensitive."""
        return v.lower() if v else v

    _normalize_phone = field_validator("phone", mode="before", check_fields=False)(normalize_phone)

    _normalize_company = field_validator("company", mode="before", check_fields=False)(strip_or_none)

    @field_validator("address", mode="before", check_fields=False)
    @classmethod
    def validate_address(cls, v: Optional[str]) -> Optional[str]:
        v = strip_or_none(v)
        if v is not None and len(v) > 500:
            raise ValueError("Address cannot exceed 500 characters")
        return v


# -------------------------------------------------------------------
# Schemas per Creazione/Aggiornamento
# -------------------------------------------------------------------

class ClientBase(ClientValidatorsMixin):
    """Campi anagrafici condivisi."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(..., max_length=100, description="Nome o ragione sociale")
    email: EmailStr = Field(..., description="Email univoca")
    phone: Optional[str] = Field(None, description="Numero di telefono")
    company: Optional[str] = Field(None, max_length=100, description="Azienda")
    address: Optional[str] = Field(None, description="Indirizzo completo (max 500 caratteri)")


class ClientCreate(ClientBase):
    """Schema per la creazione di un cliente."""

    is_active: bool = Field(True, description="Stato del cliente")


class ClientUpdate(ClientBase):
    """
    Schema per l'aggiornamento (PUT) di un cliente.

    name ed email restano obbligatori come in creazione.
    """

    is_active: Optional[bool] = Field(None, description="Stato del cliente")


# -------------------------------------------------------------------
# Schemas per Lettura (API Response)
# -------------------------------------------------------------------

class ClientPaymentBrief(BaseModel):
    """Riepilogo di un pagamento mostrato nel dettaglio cliente."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    invoice_number: str
    amount: Money
    status: str
    due_date: datetime.date
    created_at: datetime.datetime


class ClientRead(ClientBase):
    """Schema di risposta con i campi di sistema."""

    id: uuid.UUID = Field(..., description="UUID del cliente")
    is_active: bool = Field(..., description="Stato del cliente")
    created_at: datetime.datetime = Field(..., description="Data/ora di creazione")
    updated_at: datetime.datetime = Field(..., description="Data/ora ultimo aggiornamento")


class ClientWithPayments(ClientRead):
    """Cliente con l'elenco sintetico dei pagamenti."""

    payments: list[ClientPaymentBrief] = Field(default_factory=list)

    @computed_field
    @property
    def total_invoiced(self) -> Money:
        """Somma degli importi di tutti i pagamenti del cliente."""
        return sum((p.amount for p in self.payments), Decimal("0.00"))


class ClientList(BaseModel):
    """Lista paginata di clienti."""

    model_config = ConfigDict(from_attributes=True)

    clients: list[ClientWithPayments] = Field(default_factory=list)
    pagination: Pagination


class ClientStats(BaseModel):
    """Statistiche di fatturazione di un singolo cliente."""

    model_config = ConfigDict(populate_by_name=True)

    total_invoices: int = Field(..., serialization_alias="totalInvoices")
    total_amount: Money = Field(..., serialization_alias="totalAmount")
    paid_amount: Money = Field(..., serialization_alias="paidAmount")
    pending_amount: Money = Field(..., serialization_alias="pendingAmount")
    overdue_amount: Money = Field(..., serialization_alias="overdueAmount")
    status_counts: dict[str, int] = Field(..., serialization_alias="statusCounts")
    payment_rate: float = Field(..., serialization_alias="paymentRate")



class ClientIdentity(BaseModel):
    """Dati essenziali del cliente restituiti con le statistiche."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    company: Optional[str] = None


class ClientStatsResponse(BaseModel):
    client: ClientIdentity
    statistics: ClientStats
