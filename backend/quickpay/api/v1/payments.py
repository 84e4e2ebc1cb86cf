"""
Router FastAPI per i Pagamenti
Progetto: QuickPay (Fatturazione e Pagamenti)

Definisce gli endpoint API per consultare, aggiornare ed eliminare
i pagamenti.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quickpay.core.database import get_db
from quickpay.core.exceptions import ValidationFailedError
from quickpay.schemas.common import ApiResponse, Pagination
from quickpay.schemas.invoice import InvoiceRead
from quickpay.schemas.payment import (
    PaymentList,
    PaymentRead,
    PaymentStatusFilter,
    PaymentSummary,
    PaymentUpdate,
)
from quickpay.services.invoice_totals import ZERO, quantize_money
from quickpay.services.payment_service import PaymentService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/payments",
    tags=["Pagamenti"],
)

MAX_PAYMENTS_PER_PAGE = 10000
MAX_RECENT_PAYMENTS = 50


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_payment_service() -> PaymentService:
    """Dependency per ottenere un'istanza del PaymentService."""
    return PaymentService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "",
    name="pagamenti_lista",
    summary="Lista pagamenti",
    description="Lista paginata dei pagamenti con filtri e riepilogo importi.",
    response_model=ApiResponse[PaymentList],
    status_code=status.HTTP_200_OK,
)
async def get_payments(
    page: int = Query(1, ge=1, description="Numero pagina"),
    limit: int = Query(10, ge=1, le=MAX_PAYMENTS_PER_PAGE, description="Elementi per pagina"),
    status_filter: PaymentStatusFilter = Query(
        PaymentStatusFilter.ALL, alias="status", description="Filtro stato"
    ),
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro cliente"),
    search: Optional[str] = Query(None, description="Ricerca su numero fattura, descrizione, cliente"),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> ApiResponse[PaymentList]:
    """
    Recupera la lista paginata dei pagamenti.

    Il riepilogo (totale, media, conteggio) è calcolato su tutti i
    pagamenti filtrati, non solo sulla pagina corrente.
    """
    payments, total, total_amount = await service.get_all(
        db=db,
        page=page,
        per_page=limit,
        status=status_filter,
        client_id=client_id,
        search=search,
    )

    average = quantize_money(total_amount / total) if total else ZERO
    data = PaymentList(
        payments=[PaymentRead.model_validate(p) for p in payments],
        pagination=Pagination.build(page, limit, total),
        summary=PaymentSummary(total_amount=total_amount, average_amount=average, count=total),
    )
    return ApiResponse(data=data, message=f"Retrieved {len(payments)} payment(s)")


@router.get(
    "/recent/{count}",
    name="pagamenti_recenti",
    summary="Pagamenti recenti",
    description="Ultimi pagamenti creati (da 1 a 50).",
    response_model=ApiResponse[list[PaymentRead]],
    status_code=status.HTTP_200_OK,
)
async def get_recent_payments(
    count: int = Path(..., description="Numero di pagamenti (1-50)"),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> ApiResponse[list[PaymentRead]]:
    if not 1 <= count <= MAX_RECENT_PAYMENTS:
        raise ValidationFailedError(
            details=[{
                "field": "count",
                "message": f"Count must be between 1 and {MAX_RECENT_PAYMENTS}",
                "type": "value_error",
            }]
        )
    payments = await service.get_recent(db=db, count=count)
    return ApiResponse(
        data=[PaymentRead.model_validate(p) for p in payments],
        message="Recent payments retrieved successfully",
    )


@router.get(
    "/{payment_id}",
    name="pagamento_dettaglio",
    summary="Dettaglio pagamento",
    description="Recupera un pagamento con cliente e righe.",
    response_model=ApiResponse[InvoiceRead],
    status_code=status.HTTP_200_OK,
)
async def get_payment(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> ApiResponse[InvoiceRead]:
    payment = await service.get_by_id(db=db, payment_id=payment_id)
    return ApiResponse(
        data=InvoiceRead.model_validate(payment),
        message="Payment retrieved successfully",
    )


@router.patch(
    "/{payment_id}",
    name="pagamento_aggiorna",
    summary="Aggiorna pagamento",
    description=(
        "Aggiorna stato, note, descrizione, metodo, ID transazione o scadenza. "
        "Numero fattura e importi non sono modificabili."
    ),
    response_model=ApiResponse[PaymentRead],
    status_code=status.HTTP_200_OK,
)
async def update_payment(
    payment_id: uuid.UUID,
    payment_data: PaymentUpdate,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> ApiResponse[PaymentRead]:
    """
    Aggiorna un pagamento.

    Raises:
        NotFoundError: Se il pagamento non esiste
        BusinessValidationError: Se la transizione di stato non è consentita
    """
    payment = await service.update(db=db, payment_id=payment_id, payment_data=payment_data)
    await db.commit()
    return ApiResponse(
        data=PaymentRead.model_validate(payment),
        message="Payment updated successfully",
    )


@router.delete(
    "/{payment_id}",
    name="pagamento_elimina",
    summary="Elimina pagamento",
    description="Elimina un pagamento in stato pending e le sue righe.",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
)
async def delete_payment(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> ApiResponse[None]:
    await service.delete(db=db, payment_id=payment_id)
    await db.commit()
    return ApiResponse(data=None, message="Payment deleted successfully")
