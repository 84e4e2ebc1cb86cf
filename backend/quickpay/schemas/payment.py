"""
Schemas Pydantic per i Pagamenti
Progetto: QuickPay (Fatturazione e Pagamenti)

Contiene:
- PaymentRead: testata pagamento con cliente
- PaymentUpdate: campi modificabili dopo la creazione
- PaymentList: lista paginata con riepilogo importi
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from quickpay.models.payment import PaymentMethod, PaymentStatus
from quickpay.schemas.client import ClientRead
from quickpay.schemas.common import JsonDecimal, Money, Pagination


class PaymentStatusFilter(str, Enum):
    """Filtro di stato per la lista pagamenti ('all' = nessun filtro)."""
    ALL = "all"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# -------------------------------------------------------------------
# Matrice delle transizioni di stato valide
# -------------------------------------------------------------------

# Applicata dal service layer solo se settings.enforce_status_transitions è True
VALID_TRANSITIONS: dict[PaymentStatus, list[PaymentStatus]] = {
    PaymentStatus.PENDING: [
        PaymentStatus.PROCESSING,
        PaymentStatus.COMPLETED,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
    ],
    PaymentStatus.PROCESSING: [
        PaymentStatus.COMPLETED,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
    ],
    PaymentStatus.FAILED: [PaymentStatus.PENDING],  # Nuovo tentativo di incasso
    PaymentStatus.COMPLETED: [],  # Stato finale
    PaymentStatus.CANCELLED: [],  # Stato finale
}


# -------------------------------------------------------------------
# Schemas per Lettura
# -------------------------------------------------------------------

class PaymentRead(BaseModel):
    """Testata pagamento/fattura come restituita dalle API."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(..., description="UUID del pagamento")
    invoice_number: str = Field(..., description="Numero fattura")
    client_id: uuid.UUID = Field(..., description="UUID del cliente")
    amount: Money = Field(..., description="Totale fattura")
    subtotal: Money = Field(..., description="Somma dei totali riga")
    tax_amount: Money = Field(..., description="Importo imposta")
    discount_amount: Money = Field(..., description="Sconto applicato")
    tax_rate: JsonDecimal = Field(..., description="Aliquota come frazione (0..1)")
    currency: str = Field(..., description="Valuta")
    status: PaymentStatus = Field(..., description="Stato del pagamento")
    due_date: datetime.date = Field(..., description="Data scadenza")
    description: Optional[str] = None
    notes: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime
    client: Optional[ClientRead] = Field(None, description="Cliente intestatario")

    @computed_field
    @property
    def tax_rate_percent(self) -> float:
        """Aliquota in percentuale, come inviata alla creazione."""
        return float(self.tax_rate * Decimal("100"))

    @computed_field
    @property
    def is_overdue(self) -> bool:
        return self.status == PaymentStatus.PENDING and self.due_date < datetime.date.today()


# -------------------------------------------------------------------
# Schemas per Aggiornamento
# -------------------------------------------------------------------

class PaymentUpdate(BaseModel):
    """
    Aggiornamento parziale (PATCH) di un pagamento.

    Numero fattura e importi non sono modificabili: campi sconosciuti
    vengono rifiutati.
    """

    model_config = ConfigDict(extra="forbid")

    status: Optional[PaymentStatus] = Field(None, description="Nuovo stato")
    notes: Optional[str] = Field(None, description="Note (max 1000 caratteri)")
    description: Optional[str] = Field(None, max_length=1000, description="Descrizione")
    payment_method: Optional[PaymentMethod] = Field(None, description="Metodo di pagamento")
    transaction_id: Optional[str] = Field(None, max_length=255, description="ID transazione esterno")
    due_date: Optional[datetime.date] = Field(None, description="Nuova data di scadenza")

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 1000:
            raise ValueError("Notes cannot exceed 1000 characters")
        return v

    @field_validator("status", "due_date", mode="before")
    @classmethod
    def reject_explicit_null(cls, v):
        if v is None:
            raise ValueError("Value cannot be null")
        return v


# -------------------------------------------------------------------
# Schemas per Lista
# -------------------------------------------------------------------

class PaymentSummary(BaseModel):
    """Riepilogo importi dei pagamenti filtrati."""

    model_config = ConfigDict(populate_by_name=True)

    total_amount: Money = Field(..., serialization_alias="totalAmount")
    average_amount: Money = Field(..., serialization_alias="averageAmount")
    count: int = Field(..., ge=0)


class PaymentList(BaseModel):
    """Lista paginata dei pagamenti."""

    payments: list[PaymentRead] = Field(default_factory=list)
    pagination: Pagination
    summary: PaymentSummary
