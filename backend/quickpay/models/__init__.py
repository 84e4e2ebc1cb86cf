"""
Modelli Database SQLAlchemy
Progetto: QuickPay (Fatturazione e Pagamenti)

Import centralizzato di tutti i modelli.

Modelli:
- Client: Anagrafica clienti
- Payment: Testata fattura/pagamento
- InvoiceItem: Righe della fattura
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from quickpay.models.client import Client
from quickpay.models.payment import InvoiceItem, Payment, PaymentMethod, PaymentStatus

__all__ = [
    "Base",
    "Client",
    "Payment",
    "PaymentStatus",
    "PaymentMethod",
    "InvoiceItem",
]
