"""
Router FastAPI per l'entità Client
Progetto: QuickPay (Fatturazione e Pagamenti)

Definisce gli endpoint API per la gestione dei clienti.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quickpay.core.database import get_db
from quickpay.schemas.client import (
    ClientCreate,
    ClientIdentity,
    ClientList,
    ClientRead,
    ClientStatsResponse,
    ClientUpdate,
    ClientWithPayments,
)
from quickpay.schemas.common import ApiResponse, Pagination
from quickpay.services.client_service import ClientService

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/clients",
    tags=["Clienti"],
)

# Limite massimo per pagina della lista clienti
MAX_CLIENTS_PER_PAGE = 10000


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_client_service() -> ClientService:
    """
    Dependency per ottenere un'istanza del ClientService.

    Questo permette di iniettare il service nei router senza
    usare istanze globali, facilitando i test e la manutenzione.
    """
    return ClientService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "",
    name="clienti_lista",
    summary="Lista clienti",
    description="Recupera la lista paginata dei clienti con eventuale filtro di ricerca.",
    response_model=ApiResponse[ClientList],
    status_code=status.HTTP_200_OK,
)
async def get_clients(
    page: int = Query(1, ge=1, description="Numero pagina"),
    limit: int = Query(10, ge=1, le=MAX_CLIENTS_PER_PAGE, description="Elementi per pagina"),
    search: Optional[str] = Query(None, description="Ricerca su nome, email, azienda"),
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ApiResponse[ClientList]:
    """
    Recupera la lista paginata dei clienti, ordinata per nome.

    Ogni cliente include il riepilogo dei suoi pagamenti.
    """
    clients, total = await service.get_all(db=db, page=page, per_page=limit, search=search)

    data = ClientList(
        clients=[ClientWithPayments.model_validate(c) for c in clients],
        pagination=Pagination.build(page, limit, total),
    )
    return ApiResponse(data=data, message=f"Retrieved {len(clients)} client(s)")


@router.get(
    "/{client_id}",
    name="cliente_dettaglio",
    summary="Dettaglio cliente",
    description="Recupera i dettagli di un cliente con i suoi pagamenti.",
    response_model=ApiResponse[ClientWithPayments],
    status_code=status.HTTP_200_OK,
)
async def get_client(
    client_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ApiResponse[ClientWithPayments]:
    """
    Recupera i dettagli di un cliente.

    Raises:
        NotFoundError: Se il cliente non esiste
    """
    client = await service.get_by_id(db=db, client_id=client_id, with_payments=True)
    return ApiResponse(
        data=ClientWithPayments.model_validate(client),
        message="Client retrieved successfully",
    )


@router.get(
    "/{client_id}/stats",
    name="cliente_statistiche",
    summary="Statistiche cliente",
    description="Totali fatturati, pagati, in attesa e scaduti del cliente.",
    response_model=ApiResponse[ClientStatsResponse],
    status_code=status.HTTP_200_OK,
)
async def get_client_stats(
    client_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ApiResponse[ClientStatsResponse]:
    client, stats = await service.get_stats(db=db, client_id=client_id)
    return ApiResponse(
        data=ClientStatsResponse(
            client=ClientIdentity.model_validate(client),
            statistics=stats,
        ),
        message="Client statistics retrieved successfully",
    )


@router.post(
    "",
    name="cliente_crea",
    summary="Crea cliente",
    description="Crea un nuovo cliente.",
    response_model=ApiResponse[ClientRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    client_data: ClientCreate,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ApiResponse[ClientRead]:
    """
    Crea un nuovo cliente.

    Args:
        client_data: Dati del cliente da creare
        db: Sessione database
        service: Istanza del ClientService (iniettata automaticamente)

    Returns:
        ApiResponse[ClientRead]: Cliente creato

    Raises:
        DuplicateError: Se l'email è già in uso
    """
    client = await service.create(db=db, client_data=client_data)
    await db.commit()
    return ApiResponse(
        data=ClientRead.model_validate(client),
        message="Client created successfully",
    )


@router.put(
    "/{client_id}",
    name="cliente_aggiorna",
    summary="Aggiorna cliente",
    description="Aggiorna i dati di un cliente esistente.",
    response_model=ApiResponse[ClientRead],
    status_code=status.HTTP_200_OK,
)
async def update_client(
    client_id: uuid.UUID,
    client_data: ClientUpdate,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ApiResponse[ClientRead]:
    """
    Aggiorna un cliente esistente.

    Raises:
        NotFoundError: Se il cliente non esiste
        DuplicateError: Se l'email è già usata da un altro cliente
    """
    client = await service.update(db=db, client_id=client_id, client_data=client_data)
    await db.commit()
    return ApiResponse(
        data=ClientRead.model_validate(client),
        message="Client updated successfully",
    )


@router.delete(
    "/{client_id}",
    name="cliente_elimina",
    summary="Elimina cliente",
    description="Elimina un cliente senza pagamenti associati.",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
)
async def delete_client(
    client_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ApiResponse[None]:
    """
    Elimina un cliente.

    Raises:
        NotFoundError: Se il cliente non esiste
        BusinessValidationError: Se il cliente ha pagamenti associati
    """
    await service.delete(db=db, client_id=client_id)
    await db.commit()
    return ApiResponse(data=None, message="Client deleted successfully")
