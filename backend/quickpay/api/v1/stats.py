"""
Router FastAPI per le Statistiche
Progetto: QuickPay (Fatturazione e Pagamenti)

Endpoint di sola lettura per dashboard e report.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quickpay.core.database import get_db
from quickpay.models import PaymentStatus
from quickpay.schemas.common import ApiResponse
from quickpay.schemas.stats import (
    ClientsStats,
    DashboardStats,
    OverviewStats,
    PaymentStats,
    StatsPeriod,
)
from quickpay.services.stats_service import StatsService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/stats",
    tags=["Statistiche"],
)


def get_stats_service() -> StatsService:
    """Dependency per ottenere un'istanza dello StatsService."""
    return StatsService()


@router.get(
    "",
    name="statistiche",
    summary="Statistiche principali",
    response_model=ApiResponse[OverviewStats],
    status_code=status.HTTP_200_OK,
)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    service: StatsService = Depends(get_stats_service),
) -> ApiResponse[OverviewStats]:
    stats = await service.get_overview(db=db)
    return ApiResponse(data=stats, message="Statistics retrieved successfully")


@router.get(
    "/dashboard",
    name="statistiche_dashboard",
    summary="Statistiche dashboard",
    description="Overview, distribuzione stati, trend degli ultimi 6 mesi e performance.",
    response_model=ApiResponse[DashboardStats],
    status_code=status.HTTP_200_OK,
)
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    service: StatsService = Depends(get_stats_service),
) -> ApiResponse[DashboardStats]:
    stats = await service.get_dashboard(db=db)
    return ApiResponse(data=stats, message="Dashboard statistics retrieved successfully")


@router.get(
    "/payments",
    name="statistiche_pagamenti",
    summary="Statistiche pagamenti",
    description="Riepilogo, andamento giornaliero e clienti principali nel periodo.",
    response_model=ApiResponse[PaymentStats],
    status_code=status.HTTP_200_OK,
)
async def get_payment_stats(
    period: StatsPeriod = Query(StatsPeriod.LAST_30_DAYS, description="Periodo: 7d, 30d, 90d, 1y"),
    status_filter: Optional[PaymentStatus] = Query(None, alias="status", description="Filtro stato"),
    db: AsyncSession = Depends(get_db),
    service: StatsService = Depends(get_stats_service),
) -> ApiResponse[PaymentStats]:
    stats = await service.get_payment_stats(db=db, period=period, status=status_filter)
    return ApiResponse(data=stats, message="Payment statistics retrieved successfully")


@router.get(
    "/clients",
    name="statistiche_clienti",
    summary="Statistiche clienti",
    description="Metriche per cliente ordinate per importo totale.",
    response_model=ApiResponse[ClientsStats],
    status_code=status.HTTP_200_OK,
)
async def get_clients_stats(
    db: AsyncSession = Depends(get_db),
    service: StatsService = Depends(get_stats_service),
) -> ApiResponse[ClientsStats]:
    stats = await service.get_client_stats(db=db)
    return ApiResponse(data=stats, message="Client statistics retrieved successfully")
