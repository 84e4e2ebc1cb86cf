"""
API v1 Routes
Progetto: QuickPay (Fatturazione e Pagamenti)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from quickpay.api.v1 import clients, invoices, payments, stats
from quickpay.core.config import settings

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")


@api_v1_router.get(
    "",
    name="api_info",
    summary="Informazioni API",
    tags=["System"],
)
async def api_info() -> dict:
    """Nome, versione e mappa degli endpoint disponibili."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "apiVersion": settings.api_version,
        "endpoints": {
            "clients": "/api/v1/clients",
            "invoices": "/api/v1/invoices",
            "payments": "/api/v1/payments",
            "stats": "/api/v1/stats",
            "health": "/health",
        },
    }


# Includi i router dei moduli
api_v1_router.include_router(clients.router)
api_v1_router.include_router(invoices.router)
api_v1_router.include_router(payments.router)
api_v1_router.include_router(stats.router)

# Esportazione
__all__ = ["api_v1_router"]
