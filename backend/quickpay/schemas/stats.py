"""
Schemas Pydantic per le Statistiche
Progetto: QuickPay (Fatturazione e Pagamenti)

Modelli di risposta per la dashboard e i report. Le chiavi JSON sono
camelCase, come atteso dal frontend.
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from quickpay.schemas.common import Money


class StatsPeriod(str, Enum):
    """Finestre temporali ammesse per le statistiche pagamenti."""
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    LAST_YEAR = "1y"

    @property
    def days(self) -> int:
        return {"7d": 7, "30d": 30, "90d": 90, "1y": 365}[self.value]


class CamelModel(BaseModel):
    """Base con serializzazione camelCase."""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(serialization_alias=to_camel),
        populate_by_name=True,
    )


# -------------------------------------------------------------------
# GET /stats
# -------------------------------------------------------------------

class OverviewStats(CamelModel):
    """Metriche principali: importi e conteggi per stato."""

    total: Money
    paid: Money
    pending: Money
    overdue: Money
    total_payments: int
    completed_payments: int
    pending_payments_count: int
    overdue_payments_count: int
    total_clients: int
    recent_payments_count: int = Field(..., description="Pagamenti creati negli ultimi 30 giorni")


# -------------------------------------------------------------------
# GET /stats/dashboard
# -------------------------------------------------------------------

class DashboardOverview(CamelModel):
    total_revenue: Money
    pending_amount: Money
    overdue_amount: Money
    total_invoices: int
    total_clients: int
    recent_revenue: Money = Field(..., description="Incassato negli ultimi 30 giorni")
    pending_invoices: int
    overdue_invoices: int


class MonthlyTrendPoint(CamelModel):
    month: str = Field(..., description="Etichetta mese, es. 'Oct 2026'")
    revenue: Money
    payments: int


class PerformanceStats(CamelModel):
    collection_rate: float
    average_invoice_value: Money
    on_time_payment_rate: float


class DashboardStats(CamelModel):
    """Statistiche complete della dashboard."""

    overview: DashboardOverview
    status_distribution: dict[str, int]
    monthly_trend: list[MonthlyTrendPoint]
    performance: PerformanceStats


# -------------------------------------------------------------------
# GET /stats/payments
# -------------------------------------------------------------------

class DateRange(CamelModel):
    start: datetime.datetime
    end: datetime.datetime


class PaymentStatsSummary(CamelModel):
    total_payments: int
    total_amount: Money
    average_amount: Money
    status_counts: dict[str, int]


class DailyBreakdown(CamelModel):
    date: datetime.date
    count: int
    amount: Money
    statuses: dict[str, int]


class TopClient(CamelModel):
    name: str
    amount: Money
    count: int


class PaymentStats(CamelModel):
    """Statistiche dei pagamenti creati nel periodo richiesto."""

    period: StatsPeriod
    date_range: DateRange
    summary: PaymentStatsSummary
    daily_breakdown: list[DailyBreakdown]
    top_clients: list[TopClient]


# -------------------------------------------------------------------
# GET /stats/clients
# -------------------------------------------------------------------

class ClientMetrics(CamelModel):
    total_invoices: int
    total_amount: Money
    paid_amount: Money
    pending_amount: Money
    payment_rate: float


class ClientStatsEntry(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    company: Optional[str] = None
    created_at: datetime.datetime
    metrics: ClientMetrics


class ClientsStatsSummary(CamelModel):
    total_clients: int
    active_clients: int = Field(..., description="Clienti con almeno un pagamento")
    total_revenue: Money
    average_client_value: Money


class ClientsStats(BaseModel):
    summary: ClientsStatsSummary
    clients: list[ClientStatsEntry]
