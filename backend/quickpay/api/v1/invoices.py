"""
Router FastAPI per la Fatturazione
Progetto: QuickPay (Fatturazione e Pagamenti)

Definisce gli endpoint API per creazione, consultazione ed
eliminazione delle fatture.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quickpay.core.config import settings
from quickpay.core.database import get_db
from quickpay.models import PaymentStatus
from quickpay.schemas.common import ApiResponse, Pagination
from quickpay.schemas.invoice import (
    InvoiceCreate,
    InvoiceList,
    InvoiceRead,
    InvoiceSortField,
    SortOrder,
)
from quickpay.schemas.payment import PaymentRead
from quickpay.services.invoice_service import InvoiceService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/invoices",
    tags=["Fatture"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_invoice_service() -> InvoiceService:
    """Dependency per ottenere un'istanza dell'InvoiceService."""
    return InvoiceService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.post(
    "",
    name="fattura_crea",
    summary="Crea fattura",
    description=(
        "Crea una fattura con le sue righe. Totali e numero fattura sono "
        "calcolati dal server; la fattura nasce in stato pending."
    ),
    response_model=ApiResponse[InvoiceRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    invoice_data: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> ApiResponse[InvoiceRead]:
    """
    Crea una nuova fattura.

    Il commit è eseguito dal service: testata e righe vengono
    confermate insieme oppure annullate insieme.

    Raises:
        ValidationFailedError: Input non valido o sconto oltre il subtotale
        NotFoundError: Cliente inesistente
        ConflictError: Numero fattura non assegnabile
        PartialFailureError: Rollback compensativo fallito
    """
    invoice = await service.create_invoice(db=db, data=invoice_data)
    return ApiResponse(
        data=InvoiceRead.model_validate(invoice),
        message="Invoice created successfully",
    )


@router.get(
    "",
    name="fatture_lista",
    summary="Lista fatture",
    description="Lista paginata delle fatture con filtro di stato e ordinamento.",
    response_model=ApiResponse[InvoiceList],
    status_code=status.HTTP_200_OK,
)
async def get_invoices(
    page: int = Query(1, ge=1, description="Numero pagina"),
    limit: int = Query(10, ge=1, le=settings.max_page_size, description="Elementi per pagina"),
    status_filter: Optional[PaymentStatus] = Query(None, alias="status", description="Filtro stato"),
    sort_by: InvoiceSortField = Query(InvoiceSortField.CREATED_AT, description="Campo di ordinamento"),
    sort_order: SortOrder = Query(SortOrder.DESC, description="Direzione di ordinamento"),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> ApiResponse[InvoiceList]:
    invoices, total = await service.get_all(
        db=db,
        page=page,
        per_page=limit,
        status=status_filter,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    data = InvoiceList(
        invoices=[PaymentRead.model_validate(i) for i in invoices],
        pagination=Pagination.build(page, limit, total),
    )
    return ApiResponse(data=data, message=f"Retrieved {len(invoices)} invoice(s)")


@router.get(
    "/number/{invoice_number}",
    name="fattura_per_numero",
    summary="Fattura per numero",
    description="Recupera una fattura tramite il numero fattura.",
    response_model=ApiResponse[InvoiceRead],
    status_code=status.HTTP_200_OK,
)
async def get_invoice_by_number(
    invoice_number: str,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> ApiResponse[InvoiceRead]:
    invoice = await service.get_by_invoice_number(db=db, invoice_number=invoice_number)
    return ApiResponse(
        data=InvoiceRead.model_validate(invoice),
        message="Invoice retrieved successfully",
    )


@router.get(
    "/{invoice_id}",
    name="fattura_dettaglio",
    summary="Dettaglio fattura",
    description="Recupera una fattura con cliente e righe.",
    response_model=ApiResponse[InvoiceRead],
    status_code=status.HTTP_200_OK,
)
async def get_invoice(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> ApiResponse[InvoiceRead]:
    """
    Recupera i dettagli di una fattura.

    Raises:
        NotFoundError: Se la fattura non esiste
    """
    invoice = await service.get_by_id(db=db, invoice_id=invoice_id)
    return ApiResponse(
        data=InvoiceRead.model_validate(invoice),
        message="Invoice retrieved successfully",
    )


@router.delete(
    "/{invoice_id}",
    name="fattura_elimina",
    summary="Elimina fattura",
    description="Elimina una fattura in stato pending e le sue righe.",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
)
async def delete_invoice(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> ApiResponse[None]:
    """
    Elimina una fattura.

    Raises:
        NotFoundError: Se la fattura non esiste
        BusinessValidationError: Se la fattura non è pending
    """
    await service.delete(db=db, invoice_id=invoice_id)
    await db.commit()
    return ApiResponse(data=None, message="Invoice deleted successfully")
