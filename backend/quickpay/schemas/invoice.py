"""
Schemas Pydantic per la Fatturazione
Progetto: QuickPay (Fatturazione e Pagamenti)

Contiene:
- InvoiceItemCreate / InvoiceCreate: richiesta di creazione fattura
- InvoiceItemRead / InvoiceRead: fattura creata con le sue righe
- InvoiceList: lista paginata delle fatture

Tutte le violazioni vengono raccolte da pydantic in un'unica
ValidationError; i messaggi restano quelli esposti dalle API.
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from quickpay.models.payment import PaymentMethod
from quickpay.schemas.common import JsonDecimal, Money, Pagination
from quickpay.schemas.payment import PaymentRead

CENT = Decimal("0.01")

# Limiti delle colonne Numeric(10, 2) e Numeric(12, 2)
MAX_QUANTITY = Decimal("99999999.99")
MAX_RATE = Decimal("99999999.99")
MAX_MONEY = Decimal("9999999999.99")


class InvoiceSortField(str, Enum):
    """Campi ammessi per l'ordinamento della lista fatture."""
    CREATED_AT = "created_at"
    DUE_DATE = "due_date"
    AMOUNT = "amount"
    STATUS = "status"
    INVOICE_NUMBER = "invoice_number"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _has_cents_precision(v: Decimal) -> bool:
    return v == v.quantize(CENT)


def _checked_decimal(v: Any, handler, message: str) -> Decimal:
    """Esegue la validazione standard; in caso di errore usa il messaggio dato."""
    try:
        return handler(v)
    except ValidationError:
        raise ValueError(message)


# -------------------------------------------------------------------
# Schemas per Creazione
# -------------------------------------------------------------------

class InvoiceItemCreate(BaseModel):
    """Riga richiesta: descrizione, quantità e prezzo unitario."""

    description: str = Field(..., description="Descrizione della riga (max 500 caratteri)")
    quantity: Decimal = Field(..., description="Quantità (> 0, max 2 decimali, max 99999999.99)")
    rate: Decimal = Field(..., description="Prezzo unitario (> 0, max 2 decimali, max 99999999.99)")
    category: Optional[str] = Field(None, max_length=100, description="Categoria")
    sku: Optional[str] = Field(None, max_length=100, description="Codice articolo")
    taxable: bool = Field(True, description="Riga soggetta a imposta")

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            raise ValueError("Item description is required")
        stripped = str(v).strip()
        if len(stripped) > 500:
            raise ValueError("Item description cannot exceed 500 characters")
        return stripped

    @field_validator("quantity", mode="wrap")
    @classmethod
    def validate_quantity(cls, v: Any, handler) -> Decimal:
        value = _checked_decimal(v, handler, "Quantity must be greater than 0")
        if not value.is_finite() or value <= 0:
            raise ValueError("Quantity must be greater than 0")
        if not _has_cents_precision(value):
            raise ValueError("Quantity cannot have more than 2 decimal places")
        if value > MAX_QUANTITY:
            raise ValueError(f"Quantity cannot exceed {MAX_QUANTITY}")
        return value

    @field_validator("rate", mode="wrap")
    @classmethod
    def validate_rate(cls, v: Any, handler) -> Decimal:
        value = _checked_decimal(v, handler, "Rate must be greater than 0")
        if not value.is_finite() or value <= 0:
            raise ValueError("Rate must be greater than 0")
        if not _has_cents_precision(value):
            raise ValueError("Rate cannot have more than 2 decimal places")
        if value > MAX_RATE:
            raise ValueError(f"Rate cannot exceed {MAX_RATE}")
        return value

    @model_validator(mode="after")
    def validate_line_total(self) -> "InvoiceItemCreate":
        line_total = self.quantity * self.rate
        if not _has_cents_precision(line_total):
            raise ValueError("Line total (quantity x rate) cannot have more than 2 decimal places")
        if line_total > MAX_MONEY:
            raise ValueError(f"Line total (quantity x rate) cannot exceed {MAX_MONEY}")
        return self


class InvoiceCreate(BaseModel):
    """
    Richiesta di creazione fattura.

    Lo stato non è accettato in input: la fattura nasce sempre 'pending'.
    """

    client_id: uuid.UUID = Field(..., description="UUID del cliente")
    due_date: date = Field(..., description="Data di scadenza (ISO-8601)")
    items: list[InvoiceItemCreate] = Field(..., description="Righe (almeno una)")
    tax_rate: Decimal = Field(Decimal("0"), description="Aliquota percentuale (0-100)")
    discount: Decimal = Field(Decimal("0"), description="Sconto fisso (>= 0)")
    notes: Optional[str] = Field(None, description="Note (max 1000 caratteri)")
    description: Optional[str] = Field(None, max_length=1000, description="Descrizione")
    currency: Optional[str] = Field(None, description="Valuta ISO (default da configurazione)")
    payment_method: Optional[PaymentMethod] = Field(None, description="Metodo di pagamento previsto")

    @field_validator("client_id", mode="wrap")
    @classmethod
    def validate_client_id(cls, v: Any, handler) -> uuid.UUID:
        try:
            return handler(v)
        except ValidationError:
            raise ValueError("Client ID must be a valid UUID")

    @field_validator("due_date", mode="wrap")
    @classmethod
    def validate_due_date(cls, v: Any, handler) -> date:
        try:
            return handler(v)
        except ValidationError:
            raise ValueError("Due date must be a valid date")

    @field_validator("items", mode="before")
    @classmethod
    def validate_items_not_empty(cls, v: Any) -> Any:
        if not isinstance(v, list) or len(v) == 0:
            raise ValueError("Items must be a non-empty array")
        return v

    @field_validator("tax_rate", mode="wrap")
    @classmethod
    def validate_tax_rate(cls, v: Any, handler) -> Decimal:
        message = "Tax rate must be between 0 and 100"
        if v is None:
            return Decimal("0")
        value = _checked_decimal(v, handler, message)
        if not value.is_finite() or value < 0 or value > 100:
            raise ValueError(message)
        if not _has_cents_precision(value):
            raise ValueError("Tax rate cannot have more than 2 decimal places")
        return value

    @field_validator("discount", mode="wrap")
    @classmethod
    def validate_discount(cls, v: Any, handler) -> Decimal:
        message = "Discount must be 0 or greater"
        if v is None:
            return Decimal("0")
        value = _checked_decimal(v, handler, message)
        if not value.is_finite() or value < 0:
            raise ValueError(message)
        if not _has_cents_precision(value):
            raise ValueError("Discount cannot have more than 2 decimal places")
        if value > MAX_MONEY:
            raise ValueError(f"Discount cannot exceed {MAX_MONEY}")
        return value

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 1000:
            raise ValueError("Notes cannot exceed 1000 characters")
        return v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        normalized = v.strip().upper()
        if len(normalized) != 3 or not normalized.isalpha():
            raise ValueError("Currency must be a 3-letter ISO code")
        return normalized


# -------------------------------------------------------------------
# Schemas per Lettura
# -------------------------------------------------------------------

class InvoiceItemRead(BaseModel):
    """Riga fattura: rate e amount corrispondono a unit_price e total_price."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    description: str
    quantity: JsonDecimal
    rate: Money = Field(..., validation_alias=AliasChoices("rate", "unit_price"))
    amount: Money = Field(..., validation_alias=AliasChoices("amount", "total_price"))
    category: Optional[str] = None
    sku: Optional[str] = None
    taxable: bool = True
    line_number: int = 1


class InvoiceRead(PaymentRead):
    """Fattura completa con le righe."""

    invoice_items: list[InvoiceItemRead] = Field(
        default_factory=list,
        validation_alias=AliasChoices("invoice_items", "items"),
        description="Righe della fattura",
    )


class InvoiceList(BaseModel):
    """Lista paginata delle fatture."""

    invoices: list[PaymentRead] = Field(default_factory=list)
    pagination: Pagination
