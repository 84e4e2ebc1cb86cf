"""
Service Layer per l'entità Client
Progetto: QuickPay (Fatturazione e Pagamenti)

Definisce la logica di business per la gestione dei clienti:
- Email univoca (case-insensitive, salvata in minuscolo)
- Eliminazione consentita solo senza pagamenti associati
- Statistiche di fatturazione per cliente
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quickpay.core.exceptions import BusinessValidationError, DuplicateError, NotFoundError
from quickpay.core.store_errors import (
    is_foreign_key_violation,
    is_unique_violation,
    translate_store_error,
)
from quickpay.models import Client, Payment, PaymentStatus
from quickpay.schemas.client import ClientCreate, ClientStats, ClientUpdate

# Logger per questo modulo
logger = logging.getLogger(__name__)


def summarize_client_payments(
    payments: Iterable[tuple[Decimal, str, datetime.date]],
    today: Optional[datetime.date] = None,
) -> ClientStats:
    """
    Calcola le statistiche di un cliente dai suoi pagamenti.

    Args:
        payments: Tuple (amount, status, due_date)
        today: Data di riferimento per lo scaduto (default: oggi)

    Returns:
        ClientStats: Totali, importi per stato, conteggi e tasso di pagamento
    """
    today = today or datetime.date.today()
    zero = Decimal("0.00")
    status_counts = {status.value: 0 for status in PaymentStatus}
    total_amount = paid_amount = pending_amount = overdue_amount = zero
    total_invoices = 0

    for amount, status, due_date in payments:
        amount = Decimal(amount)
        total_invoices += 1
        total_amount += amount
        status_counts[status] = status_counts.get(status, 0) + 1
        if status == PaymentStatus.COMPLETED.value:
            paid_amount += amount
        elif status == PaymentStatus.PENDING.value:
            pending_amount += amount
            if due_date < today:
                overdue_amount += amount

    completed = status_counts[PaymentStatus.COMPLETED.value]
    payment_rate = (completed / total_invoices) * 100 if total_invoices else 0.0

    return ClientStats(
        total_invoices=total_invoices,
        total_amount=total_amount,
        paid_amount=paid_amount,
        pending_amount=pending_amount,
        overdue_amount=overdue_amount,
        status_counts=status_counts,
        payment_rate=round(payment_rate, 2),
    )


class ClientService:
    """
    Service per la gestione delle operazioni CRUD sui clienti.

    Fornisce metodi asincroni per interagire con il database
    in modo centralizzato, senza dipendenze da FastAPI.
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 10,
        search: Optional[str] = None,
    ) -> tuple[list[Client], int]:
        """
        Recupera la lista paginata dei clienti con i loro pagamenti.

        Args:
            db: Sessione database
            page: Numero pagina (default 1)
            per_page: Elementi per pagina (default 10)
            search: Ricerca su nome, email, azienda

        Returns:
            Tuple di (lista clienti, totale count)
        """
        conditions = []

        if search:
            search_term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Client.name.ilike(search_term),
                    Client.email.ilike(search_term),
                    Client.company.ilike(search_term),
                )
            )

        query = (
            select(Client)
            .options(selectinload(Client.payments).raiseload(Payment.items))
            .order_by(Client.name.asc(), Client.id)
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        count_query = select(func.count()).select_from(Client)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query)
        clients = list(result.scalars().all())

        count_result = await db.execute(count_query)
        total = count_result.scalar() or 0

        logger.info("Recuperati %s clienti su %s totali (pagina %s)", len(clients), total, page)
        return clients, total

    async def get_by_id(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        with_payments: bool = False,
    ) -> Client:
        """
        Recupera un cliente tramite ID.

        Args:
            db: Sessione database
            client_id: UUID del cliente
            with_payments: Se True carica anche i pagamenti

        Returns:
            Oggetto Client

        Raises:
            NotFoundError: Se il cliente non esiste
        """
        query = select(Client).where(Client.id == client_id)
        if with_payments:
            query = query.options(selectinload(Client.payments))
        result = await db.execute(query)
        client = result.scalar_one_or_none()

        if client is None:
            logger.warning("Cliente non trovato: %s", client_id)
            raise NotFoundError("Client not found")

        return client

    async def create(
        self,
        db: AsyncSession,
        client_data: ClientCreate,
    ) -> Client:
        """
        Crea un nuovo cliente.

        Raises:
            DuplicateError: Se l'email è già registrata
        """
        existing = await self._check_email_exists(db, client_data.email)
        if existing:
            logger.warning(
                "Tentativo di creare cliente con email duplicata: %s (esistente: %s)",
                client_data.email, existing.id,
            )
            raise DuplicateError("A client with this email already exists")

        client = Client(**client_data.model_dump())

        try:
            db.add(client)
            await db.flush()
            await db.refresh(client)
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e, "email"):
                logger.warning("Email duplicata in creazione cliente: %s", client_data.email)
                raise DuplicateError("A client with this email already exists") from e
            raise translate_store_error(e, "creazione cliente") from e
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_store_error(e, "creazione cliente") from e

        logger.info("Creato nuovo cliente: %s - %s <%s>", client.id, client.name, client.email)
        return client

    async def update(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        client_data: ClientUpdate,
    ) -> Client:
        """
        Aggiorna un cliente esistente.

        Raises:
            NotFoundError: Se il cliente non esiste
            DuplicateError: Se l'email è già usata da un altro cliente
        """
        client = await self.get_by_id(db, client_id)
        # PUT: i campi opzionali non inviati vengono azzerati
        update_data = client_data.model_dump()

        if update_data.get("is_active") is None:
            update_data.pop("is_active", None)

        new_email = update_data.get("email")
        if new_email and new_email != client.email:
            existing = await self._check_email_exists(db, new_email, exclude_id=client_id)
            if existing:
                logger.warning(
                    "Email %s già in uso dal cliente %s", new_email, existing.id
                )
                raise DuplicateError("Another client with this email already exists")

        for field, value in update_data.items():
            setattr(client, field, value)

        try:
            await db.flush()
            await db.refresh(client)
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e, "email"):
                raise DuplicateError("Another client with this email already exists") from e
            raise translate_store_error(e, "aggiornamento cliente") from e
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_store_error(e, "aggiornamento cliente") from e

        logger.info("Aggiornato cliente: %s - %s", client.id, client.name)
        return client

    async def delete(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
    ) -> None:
        """
        Elimina fisicamente un cliente senza pagamenti.

        Raises:
            NotFoundError: Se il cliente non esiste
            BusinessValidationError: Se il cliente ha pagamenti associati
        """
        client = await self.get_by_id(db, client_id)

        count_result = await db.execute(
            select(func.count(Payment.id)).where(Payment.client_id == client_id)
        )
        payment_count = count_result.scalar() or 0

        if payment_count > 0:
            logger.warning(
                "Eliminazione rifiutata per cliente %s: %s pagamenti associati",
                client_id, payment_count,
            )
            raise BusinessValidationError(
                "Client has existing invoices/payments and cannot be deleted"
            )

        try:
            await db.delete(client)
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            if is_foreign_key_violation(e):
                # Pagamento inserito dopo il conteggio
                logger.warning("Eliminazione rifiutata per cliente %s: pagamenti concorrenti", client_id)
                raise BusinessValidationError(
                    "Client has existing invoices/payments and cannot be deleted"
                ) from e
            raise translate_store_error(e, "eliminazione cliente") from e

        logger.info("Eliminato cliente: %s - %s", client.id, client.name)

    async def get_stats(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
    ) -> tuple[Client, ClientStats]:
        """
        Statistiche di fatturazione del cliente.

        Returns:
            Tuple di (cliente, statistiche)

        Raises:
            NotFoundError: Se il cliente non esiste
        """
        client = await self.get_by_id(db, client_id)

        result = await db.execute(
            select(Payment.amount, Payment.status, Payment.due_date).where(
                Payment.client_id == client_id
            )
        )
        stats = summarize_client_payments(result.all())
        return client, stats

    # ----------------------------------------------------------------
    # Metodi privati di supporto
    # ----------------------------------------------------------------

    async def _check_email_exists(
        self,
        db: AsyncSession,
        email: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[Client]:
        """
        Verifica se un'email è già in uso.

        Returns:
            Oggetto Client se trovato, None altrimenti
        """
        query = select(Client).where(func.lower(Client.email) == email.lower())
        if exclude_id:
            query = query.where(Client.id != exclude_id)
        result = await db.execute(query)
        return result.scalar_one_or_none()
