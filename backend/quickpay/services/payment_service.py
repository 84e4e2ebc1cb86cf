"""
Service Layer per i Pagamenti
Progetto: QuickPay (Fatturazione e Pagamenti)

Definisce la logica di business per consultazione, aggiornamento
ed eliminazione dei pagamenti già creati.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quickpay.core.config import settings
from quickpay.core.exceptions import BusinessValidationError, NotFoundError
from quickpay.core.store_errors import translate_store_error
from quickpay.models import Client, Payment, PaymentStatus
from quickpay.schemas.payment import (
    VALID_TRANSITIONS,
    PaymentStatusFilter,
    PaymentUpdate,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)


class PaymentService:
    """
    Service per la gestione dei pagamenti.

    Implementa:
    - Lista paginata con filtri e riepilogo importi
    - Aggiornamento con controllo delle transizioni di stato
    - paid_at valorizzato solo nello stato completed
    - Eliminazione consentita solo in stato pending
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 10,
        status: PaymentStatusFilter = PaymentStatusFilter.ALL,
        client_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Payment], int, Decimal]:
        """
        Recupera la lista paginata dei pagamenti.

        Args:
            db: Sessione database
            page: Numero pagina
            per_page: Elementi per pagina
            status: Filtro stato ('all' = nessun filtro)
            client_id: Filtro per cliente
            search: Ricerca su numero fattura, descrizione, nome/email cliente

        Returns:
            Tuple di (pagamenti della pagina, totale filtrati, somma importi filtrati)
        """
        conditions = []

        if status != PaymentStatusFilter.ALL:
            conditions.append(Payment.status == status.value)

        if client_id:
            conditions.append(Payment.client_id == client_id)

        if search:
            search_term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Payment.invoice_number.ilike(search_term),
                    Payment.description.ilike(search_term),
                    Client.name.ilike(search_term),
                    Client.email.ilike(search_term),
                )
            )

        query = (
            select(Payment)
            .join(Client, Payment.client_id == Client.id)
            .options(selectinload(Payment.client))
            .order_by(Payment.created_at.desc(), Payment.id)
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        totals_query = select(
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount), 0),
        ).join(Client, Payment.client_id == Client.id)

        if conditions:
            query = query.where(*conditions)
            totals_query = totals_query.where(*conditions)

        result = await db.execute(query)
        payments = list(result.scalars().all())

        totals_result = await db.execute(totals_query)
        total, total_amount = totals_result.one()

        logger.info(
            "Recuperati %s pagamenti su %s totali (pagina %s, stato %s)",
            len(payments), total, page, status.value,
        )
        return payments, int(total or 0), Decimal(str(total_amount or 0))

    async def get_by_id(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
    ) -> Payment:
        """
        Recupera un pagamento con cliente e righe.

        Raises:
            NotFoundError: Se il pagamento non esiste
        """
        stmt = (
            select(Payment)
            .where(Payment.id == payment_id)
            .options(selectinload(Payment.client), selectinload(Payment.items))
        )
        result = await db.execute(stmt)
        payment = result.scalar_one_or_none()

        if payment is None:
            logger.warning("Pagamento non trovato: %s", payment_id)
            raise NotFoundError("Payment not found")

        return payment

    async def get_recent(
        self,
        db: AsyncSession,
        count: int = 10,
    ) -> list[Payment]:
        """Ultimi `count` pagamenti creati, dal più recente."""
        stmt = (
            select(Payment)
            .options(selectinload(Payment.client))
            .order_by(Payment.created_at.desc())
            .limit(count)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def update(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        payment_data: PaymentUpdate,
    ) -> Payment:
        """
        Aggiorna i campi modificabili di un pagamento.

        Args:
            db: Sessione database
            payment_id: UUID del pagamento
            payment_data: Campi da aggiornare (solo quelli inviati)

        Returns:
            Payment aggiornato

        Raises:
            NotFoundError: Se il pagamento non esiste
            BusinessValidationError: Se la transizione di stato non è consentita
        """
        payment = await self.get_by_id(db, payment_id)
        update_data = payment_data.model_dump(exclude_unset=True)

        new_status = update_data.pop("status", None)
        if new_status is not None:
            self.change_status(payment, PaymentStatus(new_status))

        if "payment_method" in update_data and update_data["payment_method"] is not None:
            update_data["payment_method"] = update_data["payment_method"].value

        for field, value in update_data.items():
            setattr(payment, field, value)

        try:
            await db.flush()
            await db.refresh(payment)
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_store_error(e, "aggiornamento pagamento") from e

        logger.info(
            "Aggiornato pagamento %s (campi: %s)",
            payment.invoice_number, ", ".join(sorted(payment_data.model_fields_set)),
        )
        return payment

    def change_status(self, payment: Payment, new_status: PaymentStatus) -> None:
        """
        Applica un cambio di stato al pagamento.

        Se settings.enforce_status_transitions è True valida la transizione
        con la matrice VALID_TRANSITIONS. Stesso stato = nessuna modifica.

        Raises:
            BusinessValidationError: Se la transizione non è consentita
        """
        try:
            current_status = PaymentStatus(payment.status)
        except ValueError:
            logger.error("Stato invalido nel database: %s", payment.status)
            raise BusinessValidationError(f"Invalid stored status: {payment.status}")

        if new_status == current_status:
            return

        if settings.enforce_status_transitions:
            allowed = VALID_TRANSITIONS.get(current_status, [])
            if new_status not in allowed:
                logger.warning(
                    "Transizione non consentita per %s: %s -> %s",
                    payment.invoice_number, current_status.value, new_status.value,
                )
                raise BusinessValidationError(
                    f"Status transition from '{current_status.value}' "
                    f"to '{new_status.value}' is not allowed",
                    error_code="INVALID_STATUS_TRANSITION",
                )

        payment.status = new_status.value

        if new_status == PaymentStatus.COMPLETED:
            payment.paid_at = datetime.datetime.now(datetime.timezone.utc)
        elif current_status == PaymentStatus.COMPLETED:
            payment.paid_at = None

        logger.info(
            "Pagamento %s: stato %s -> %s",
            payment.invoice_number, current_status.value, new_status.value,
        )

    async def delete(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
    ) -> None:
        """
        Elimina un pagamento e le sue righe.

        Raises:
            NotFoundError: Se il pagamento non esiste
            BusinessValidationError: Se il pagamento non è pending
        """
        payment = await self.get_by_id(db, payment_id)

        if payment.status != PaymentStatus.PENDING.value:
            logger.warning(
                "Eliminazione rifiutata per pagamento %s in stato %s",
                payment.invoice_number, payment.status,
            )
            raise BusinessValidationError("Only pending payments can be deleted")

        try:
            await db.delete(payment)
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_store_error(e, "eliminazione pagamento") from e

        logger.info("Eliminato pagamento %s (id %s)", payment.invoice_number, payment.id)
