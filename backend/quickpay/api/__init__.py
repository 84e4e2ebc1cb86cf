"""
API Routes
Progetto: QuickPay (Fatturazione e Pagamenti)

Modulo per l'aggregazione dei router versionati.
"""

from quickpay.api.v1 import api_v1_router

# Esportazione router
__all__ = ["api_v1_router"]
