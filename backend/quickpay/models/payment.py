"""
Modelli SQLAlchemy per Pagamenti e Fatture
Progetto: QuickPay (Fatturazione e Pagamenti)

Contiene:
- Payment: Testata della fattura (importi, stato, scadenza)
- InvoiceItem: Righe della fattura
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quickpay.models import Base
from quickpay.models.mixins import TimestampMixin, UUIDMixin

# Import per type hinting relazioni (evita circular import)
if TYPE_CHECKING:
    from quickpay.models.client import Client


class PaymentStatus(str, Enum):
    """Stati possibili di un pagamento."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """Metodi di pagamento accettati."""
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    MANUAL = "manual"


def _sql_in(enum_cls: type[Enum]) -> str:
    return ", ".join(f"'{member.value}'" for member in enum_cls)


class Payment(Base, UUIDMixin, TimestampMixin):
    """
    Testata fattura/pagamento.

    Gli importi (subtotal, tax_amount, discount_amount, amount) sono calcolati
    una sola volta alla creazione e non vengono più ricalcolati.

    Attributes:
        id: UUID primary key, generato automaticamente
        invoice_number: Numero fattura univoco e immutabile (INV-YYYYMM-XXXXXXXX)
        client_id: UUID del cliente intestatario
        amount: Totale fattura (subtotal - discount_amount + tax_amount)
        subtotal: Somma dei totali riga
        tax_amount: Imposta calcolata su (subtotal - discount_amount)
        tax_rate: Aliquota come frazione (0..1)
        discount_amount: Sconto fisso (0..subtotal)
        currency: Codice valuta ISO
        status: Stato del pagamento
        due_date: Data di scadenza
        description: Descrizione opzionale
        notes: Note opzionali
        payment_method: Metodo di pagamento
        transaction_id: Identificativo esterno della transazione
        paid_at: Data/ora incasso (solo stato completed)

    Relationships:
        client: Cliente intestatario
        items: Righe della fattura
    """

    __tablename__ = "payments"

    # ------------------------------------------------------------
    # Colonne Identificazione
    # ------------------------------------------------------------
    invoice_number: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        unique=True,
        doc="Numero fattura univoco (formato: INV-YYYYMM-XXXXXXXX)",
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del cliente intestatario",
    )

    # ------------------------------------------------------------
    # Colonne Importi
    # ------------------------------------------------------------
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Totale fattura",
    )

    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Somma dei totali riga",
    )

    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Importo imposta",
    )

    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        nullable=False,
        default=Decimal("0"),
        doc="Aliquota come frazione (0.1000 = 10%)",
    )

    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Sconto fisso applicato prima dell'imposta",
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="USD",
        doc="Codice valuta ISO 4217",
    )

    # ------------------------------------------------------------
    # Colonne Stato e Scadenza
    # ------------------------------------------------------------
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
        doc="Stato: pending, processing, completed, failed, cancelled",
    )

    due_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Data scadenza pagamento",
    )

    paid_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Data/ora incasso",
    )

    # ------------------------------------------------------------
    # Colonne Descrittive
    # ------------------------------------------------------------
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Descrizione",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note",
    )

    payment_method: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Metodo: card, bank_transfer, paypal, stripe, manual",
    )

    transaction_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Identificativo esterno della transazione",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="payments",
        lazy="selectin",
        doc="Cliente intestatario",
    )

    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="payment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="InvoiceItem.line_number",
        doc="Righe della fattura",
    )

    # ------------------------------------------------------------
    # Properties Calcolate
    # ------------------------------------------------------------
    @property
    def is_overdue(self) -> bool:
        """True se ancora in attesa e oltre la scadenza."""
        return (
            self.status == PaymentStatus.PENDING.value
            and self.due_date < datetime.date.today()
        )

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        Index("ix_payments_client_id", "client_id"),
        Index("ix_payments_status", "status"),
        Index("ix_payments_due_date", "due_date"),
        Index("ix_payments_status_created", "status", "created_at"),
        CheckConstraint(f"status IN ({_sql_in(PaymentStatus)})", name="ck_payments_status"),
        CheckConstraint(
            f"payment_method IS NULL OR payment_method IN ({_sql_in(PaymentMethod)})",
            name="ck_payments_payment_method",
        ),
        CheckConstraint("amount >= 0", name="ck_payments_amount_positive"),
        CheckConstraint("subtotal >= 0", name="ck_payments_subtotal_positive"),
        CheckConstraint("tax_amount >= 0", name="ck_payments_tax_amount_positive"),
        CheckConstraint("tax_rate >= 0 AND tax_rate <= 1", name="ck_payments_tax_rate_range"),
        CheckConstraint(
            "discount_amount >= 0 AND discount_amount <= subtotal",
            name="ck_payments_discount_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, number={self.invoice_number}, amount={self.amount}, status={self.status})>"


class InvoiceItem(Base, UUIDMixin, TimestampMixin):
    """
    Riga della fattura.

    total_price è sempre quantity * unit_price: viene ricalcolato
    a ogni scrittura dall'event listener sottostante.

    Attributes:
        id: UUID primary key
        payment_id: UUID della testata
        description: Descrizione della riga
        quantity: Quantità (> 0)
        unit_price: Prezzo unitario (>= 0)
        total_price: Totale riga derivato
        category: Categoria opzionale
        sku: Codice articolo opzionale
        taxable: Riga soggetta a imposta
        line_number: Posizione della riga nella fattura
    """

    __tablename__ = "invoice_items"

    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID della testata",
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        doc="Descrizione della riga",
    )

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("1"),
        doc="Quantità",
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        doc="Prezzo unitario",
    )

    total_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Totale riga (quantity * unit_price)",
    )

    category: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Categoria",
    )

    sku: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Codice articolo",
    )

    taxable: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Riga soggetta a imposta",
    )

    line_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Numero progressivo riga nella fattura",
    )

    payment: Mapped["Payment"] = relationship(
        "Payment",
        back_populates="items",
        doc="Testata fattura",
    )

    def compute_total_price(self) -> Decimal:
        """Totale riga: prodotto esatto di quantity e unit_price."""
        return Decimal(self.quantity) * Decimal(self.unit_price)

    __table_args__ = (
        Index("ix_invoice_items_payment_line", "payment_id", "line_number"),
        CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_items_unit_price_positive"),
        CheckConstraint("length(trim(description)) > 0", name="ck_invoice_items_description"),
    )

    def __repr__(self) -> str:
        return f"<InvoiceItem(id={self.id}, description={self.description[:30]}, total={self.total_price})>"


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(InvoiceItem, "before_insert")
@event.listens_for(InvoiceItem, "before_update")
def derive_total_price(mapper, connection, target: InvoiceItem) -> None:
    """Ricalcola total_price a ogni scrittura, ignorando valori esterni."""
    target.total_price = target.compute_total_price()
