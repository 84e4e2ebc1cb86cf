"""
Service Layer per la Fatturazione
Progetto: QuickPay (Fatturazione e Pagamenti)

Definisce il workflow di creazione fattura (testata + righe in un'unica
unità di lavoro) e le operazioni di lettura/eliminazione delle fatture.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quickpay.core.config import settings
from quickpay.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    NotFoundError,
    PartialFailureError,
)
from quickpay.core.store_errors import is_unique_violation, translate_store_error
from quickpay.models import Client, InvoiceItem, Payment, PaymentStatus
from quickpay.schemas.invoice import InvoiceCreate, InvoiceSortField, SortOrder
from quickpay.services.invoice_number import generate_invoice_number
from quickpay.services.invoice_totals import InvoiceTotals, calculate_totals

# Logger per questo modulo
logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    InvoiceSortField.CREATED_AT: Payment.created_at,
    InvoiceSortField.DUE_DATE: Payment.due_date,
    InvoiceSortField.AMOUNT: Payment.amount,
    InvoiceSortField.STATUS: Payment.status,
    InvoiceSortField.INVOICE_NUMBER: Payment.invoice_number,
}

# Errori che possono emergere durante la scrittura delle righe
STORE_FAILURES = (SQLAlchemyError, OSError)


class InvoiceService:
    """
    Service per la gestione delle fatture.

    Implementa:
    - Creazione atomica testata + righe con rollback compensativo
    - Numerazione univoca con retry su collisione
    - Lettura per ID e per numero fattura
    - Lista paginata con ordinamento
    - Eliminazione (solo fatture in stato pending)
    """

    async def create_invoice(
        self,
        db: AsyncSession,
        data: InvoiceCreate,
    ) -> Payment:
        """
        Crea una fattura con le sue righe.

        Steps:
        1. Input già validato dallo schema (tutte le violazioni insieme)
        2. Verifica che il cliente esista
        3. Calcola subtotale, imposta e totale
        4-5. Inserisce la testata con numero univoco (savepoint + retry),
             poi le righe, e conferma tutto con un solo commit
        6. Restituisce la fattura ricaricata con cliente e righe

        Args:
            db: Sessione database
            data: Richiesta di creazione validata

        Returns:
            Payment: Fattura creata con items caricati

        Raises:
            NotFoundError: Cliente inesistente (nessuna scrittura eseguita)
            ValidationFailedError: Sconto superiore al subtotale
            ConflictError: Numero fattura in collisione dopo tutti i tentativi
            PartialFailureError: Righe fallite e rollback compensativo fallito
            StoreUnavailableError: Store non raggiungibile
        """
        # Step 2: Verifica esistenza cliente
        try:
            result = await db.execute(select(Client.id).where(Client.id == data.client_id))
            client_id = result.scalar_one_or_none()
        except STORE_FAILURES as e:
            raise translate_store_error(e, "verifica cliente") from e

        if client_id is None:
            logger.warning("Creazione fattura rifiutata: cliente %s non trovato", data.client_id)
            raise NotFoundError("Client not found")

        # Step 3: Calcolo totali (puro, nessuna scrittura)
        totals = calculate_totals(data.items, data.tax_rate, data.discount)

        # Step 4-5a: Testata con numero univoco
        payment = await self._insert_header(db, data, totals)
        payment_id = payment.id
        invoice_number = payment.invoice_number

        # Step 5b: Righe, solo dopo il flush riuscito della testata
        try:
            for line_number, (item, amount) in enumerate(
                zip(data.items, totals.line_amounts), start=1
            ):
                db.add(
                    InvoiceItem(
                        payment_id=payment_id,
                        description=item.description,
                        quantity=item.quantity,
                        unit_price=item.rate,
                        total_price=amount,
                        category=item.category,
                        sku=item.sku,
                        taxable=item.taxable,
                        line_number=line_number,
                    )
                )
            await db.flush()
            await db.commit()
        except STORE_FAILURES as e:
            await self._rollback_partial_write(db, payment_id, invoice_number, e)

        logger.info(
            "Creata fattura %s (id %s) per cliente %s: %s righe, totale %s",
            invoice_number, payment_id, data.client_id, len(data.items), totals.total,
        )

        # Step 6: Ricarica con relazioni
        return await self.get_by_id(db, payment_id)

    async def _insert_header(
        self,
        db: AsyncSession,
        data: InvoiceCreate,
        totals: InvoiceTotals,
    ) -> Payment:
        """
        Inserisce la testata dentro un SAVEPOINT.

        Su violazione dell'indice unique di invoice_number il savepoint
        viene annullato e si ritenta con un nuovo numero, fino a
        settings.invoice_number_max_attempts.

        Raises:
            ConflictError: Tentativi esauriti
        """
        max_attempts = settings.invoice_number_max_attempts

        for attempt in range(1, max_attempts + 1):
            payment = Payment(
                id=uuid.uuid4(),
                invoice_number=generate_invoice_number(),
                client_id=data.client_id,
                amount=totals.total,
                subtotal=totals.subtotal,
                tax_amount=totals.tax_amount,
                tax_rate=totals.tax_rate,
                discount_amount=totals.discount_amount,
                currency=data.currency or settings.default_currency,
                # Lo stato iniziale è sempre pending
                status=PaymentStatus.PENDING.value,
                due_date=data.due_date,
                description=data.description,
                notes=data.notes,
                payment_method=data.payment_method.value if data.payment_method else None,
            )

            try:
                async with db.begin_nested():
                    db.add(payment)
                    await db.flush()
                return payment

            except IntegrityError as e:
                if is_unique_violation(e, "invoice_number"):
                    logger.warning(
                        "Numero fattura %s già esistente (tentativo %s/%s)",
                        payment.invoice_number, attempt, max_attempts,
                    )
                    continue
                await db.rollback()
                raise translate_store_error(e, "inserimento testata fattura") from e

            except STORE_FAILURES as e:
                await db.rollback()
                raise translate_store_error(e, "inserimento testata fattura") from e

        await db.rollback()
        logger.error(
            "Impossibile generare un numero fattura univoco dopo %s tentativi", max_attempts
        )
        raise ConflictError("Could not assign a unique invoice number, please retry")

    async def _rollback_partial_write(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        invoice_number: str,
        cause: BaseException,
    ) -> None:
        """
        Annulla la testata già scritta quando le righe falliscono.

        Solleva sempre: l'errore tradotto se il rollback riesce,
        PartialFailureError se fallisce anche il rollback.
        """
        try:
            await db.rollback()
        except STORE_FAILURES as rollback_error:
            logger.error(
                "Rollback compensativo fallito per fattura %s (id %s): "
                "riconciliazione manuale richiesta. Errore righe: %s; errore rollback: %s",
                invoice_number, payment_id, cause, rollback_error,
            )
            raise PartialFailureError(
                "Invoice header was written but its items were not, and the rollback failed. "
                "Manual reconciliation required.",
                extra={"payment_id": str(payment_id), "invoice_number": invoice_number},
            ) from rollback_error

        logger.error(
            "Inserimento righe fallito per fattura %s (id %s): testata annullata",
            invoice_number, payment_id,
        )
        raise translate_store_error(cause, "inserimento righe fattura") from cause

    # ----------------------------------------------------------------
    # Lettura
    # ----------------------------------------------------------------

    async def get_by_id(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
    ) -> Payment:
        """
        Recupera una fattura con cliente e righe.

        Raises:
            NotFoundError: Se la fattura non esiste
        """
        stmt = (
            select(Payment)
            .where(Payment.id == invoice_id)
            .options(selectinload(Payment.client), selectinload(Payment.items))
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        invoice = result.scalar_one_or_none()

        if invoice is None:
            raise NotFoundError("Invoice not found")

        return invoice

    async def get_by_invoice_number(
        self,
        db: AsyncSession,
        invoice_number: str,
    ) -> Payment:
        """
        Recupera una fattura tramite il numero fattura.

        Raises:
            NotFoundError: Se nessuna fattura ha quel numero
        """
        stmt = (
            select(Payment)
            .where(Payment.invoice_number == invoice_number.strip().upper())
            .options(selectinload(Payment.client), selectinload(Payment.items))
        )
        result = await db.execute(stmt)
        invoice = result.scalar_one_or_none()

        if invoice is None:
            raise NotFoundError("Invoice not found")

        return invoice

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 10,
        status: Optional[PaymentStatus] = None,
        sort_by: InvoiceSortField = InvoiceSortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
    ) -> tuple[list[Payment], int]:
        """
        Lista paginata delle fatture.

        Returns:
            Tuple di (lista fatture, totale count)
        """
        conditions = []
        if status is not None:
            conditions.append(Payment.status == status.value)

        column = SORT_COLUMNS[sort_by]
        order = column.asc() if sort_order == SortOrder.ASC else column.desc()

        query = (
            select(Payment)
            .options(selectinload(Payment.client))
            .order_by(order, Payment.id)
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        count_query = select(func.count()).select_from(Payment)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query)
        invoices = list(result.scalars().all())

        count_result = await db.execute(count_query)
        total = count_result.scalar() or 0

        logger.info("Recuperate %s fatture su %s totali (pagina %s)", len(invoices), total, page)
        return invoices, total

    # ----------------------------------------------------------------
    # Eliminazione
    # ----------------------------------------------------------------

    async def delete(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
    ) -> None:
        """
        Elimina una fattura e, a cascata, le sue righe.

        Consentito solo se lo stato è pending.

        Raises:
            NotFoundError: Se la fattura non esiste
            BusinessValidationError: Se la fattura non è pending
        """
        invoice = await self.get_by_id(db, invoice_id)

        if invoice.status != PaymentStatus.PENDING.value:
            logger.warning(
                "Eliminazione rifiutata per fattura %s in stato %s",
                invoice.invoice_number, invoice.status,
            )
            raise BusinessValidationError("Only pending invoices can be deleted")

        try:
            await db.delete(invoice)
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_store_error(e, "eliminazione fattura") from e

        logger.info("Eliminata fattura %s (id %s)", invoice.invoice_number, invoice.id)

