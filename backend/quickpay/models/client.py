"""
Modello SQLAlchemy per l'entità Client
Progetto: QuickPay (Fatturazione e Pagamenti)

Rappresenta l'anagrafica dei clienti a cui sono intestate le fatture.
"""


from __future__ import annotations
from typing import Optional, TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quickpay.models import Base
from quickpay.models.mixins import ActiveFlagMixin, TimestampMixin, UUIDMixin

# Import per type hinting relazioni (evita circular import)
if TYPE_CHECKING:
    from quickpay.models.payment import Payment


class Client(Base, UUIDMixin, TimestampMixin, ActiveFlagMixin):
    """
    Modello per l'anagrafica clienti.

    Un cliente può avere zero o più pagamenti (fatture) associati e
    può essere eliminato solo finché non ne possiede nessuno.

    Attributes:
        id: UUID primary key, generato automaticamente
        name: Nome o ragione sociale (obbligatorio)
        email: Indirizzo email, univoco e salvato in minuscolo
        phone: Numero di telefono
        company: Azienda di appartenenza
        address: Indirizzo completo
        is_active: Stato del cliente
        created_at: Data/ora creazione record
        updated_at: Data/ora ultimo aggiornamento

    Relationships:
        payments: Pagamenti/fatture intestati al cliente
    """

    __tablename__ = "clients"

    # ------------------------------------------------------------
    # Colonne Dati Anagrafici
    # ------------------------------------------------------------
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Nome o ragione sociale",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        doc="Email univoca (normalizzata in minuscolo)",
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Numero di telefono",
    )

    company: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Azienda",
    )

    address: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        doc="Indirizzo completo",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    # Caricata esplicitamente con selectinload dove serve
    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="client",
        lazy="raise",
        passive_deletes=True,
        doc="Pagamenti intestati al cliente",
    )

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        Index("ix_clients_name", "name"),
        CheckConstraint("email = lower(email)", name="ck_clients_email_lowercase"),
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name}, email={self.email})>"
