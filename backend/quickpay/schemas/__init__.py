"""
Schemas Pydantic per il progetto QuickPay

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from quickpay.schemas import InvoiceCreate, ClientRead, etc.

from quickpay.schemas.common import (
    ApiResponse,
    ErrorResponse,
    Money,
    Pagination,
    ValidationDetail,
    collect_violations,
    format_validation_errors,
    validate_payload,
)
from quickpay.schemas.client import (
    ClientCreate,
    ClientList,
    ClientRead,
    ClientStats,
    ClientStatsResponse,
    ClientUpdate,
    ClientWithPayments,
)
from quickpay.schemas.payment import (
    VALID_TRANSITIONS,
    PaymentList,
    PaymentRead,
    PaymentStatusFilter,
    PaymentSummary,
    PaymentUpdate,
)
from quickpay.schemas.invoice import (
    InvoiceCreate,
    InvoiceItemCreate,
    InvoiceItemRead,
    InvoiceList,
    InvoiceRead,
    InvoiceSortField,
    SortOrder,
)
from quickpay.schemas.stats import (
    ClientsStats,
    DashboardStats,
    OverviewStats,
    PaymentStats,
    StatsPeriod,
)

__all__ = [
    # Common
    "ApiResponse",
    "ErrorResponse",
    "Money",
    "Pagination",
    "ValidationDetail",
    "collect_violations",
    "format_validation_errors",
    "validate_payload",
    # Client
    "ClientCreate",
    "ClientList",
    "ClientRead",
    "ClientStats",
    "ClientStatsResponse",
    "ClientUpdate",
    "ClientWithPayments",
    # Payment
    "VALID_TRANSITIONS",
    "PaymentList",
    "PaymentRead",
    "PaymentStatusFilter",
    "PaymentSummary",
    "PaymentUpdate",
    # Invoice
    "InvoiceCreate",
    "InvoiceItemCreate",
    "InvoiceItemRead",
    "InvoiceList",
    "InvoiceRead",
    "InvoiceSortField",
    "SortOrder",
    # Stats
    "ClientsStats",
    "DashboardStats",
    "OverviewStats",
    "PaymentStats",
    "StatsPeriod",
]
