"""
Service Layer per le Statistiche
Progetto: QuickPay (Fatturazione e Pagamenti)

Aggrega importi e conteggi dei pagamenti per dashboard e report.
Le query caricano solo le colonne necessarie; le aggregazioni sono
funzioni pure, testabili senza database.
"""

import datetime
import logging
from collections import Counter
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quickpay.models import Client, Payment, PaymentStatus
from quickpay.schemas.stats import (
    ClientMetrics,
    ClientsStats,
    ClientsStatsSummary,
    ClientStatsEntry,
    DailyBreakdown,
    DashboardOverview,
    DashboardStats,
    DateRange,
    MonthlyTrendPoint,
    OverviewStats,
    PaymentStats,
    PaymentStatsSummary,
    PerformanceStats,
    StatsPeriod,
    TopClient,
)
from quickpay.services.invoice_totals import ZERO, quantize_money

# Logger per questo modulo
logger = logging.getLogger(__name__)

RECENT_WINDOW = datetime.timedelta(days=30)
TREND_MONTHS = 6
UNKNOWN_CLIENT = "Unknown"


class PaymentFact(NamedTuple):
    """Colonne di un pagamento usate dalle statistiche."""

    amount: Decimal
    status: str
    due_date: datetime.date
    created_at: datetime.datetime
    client_name: Optional[str] = None


def _sum(facts: Iterable[PaymentFact]) -> Decimal:
    return quantize_money(sum((Decimal(f.amount) for f in facts), ZERO))


def _is_overdue(fact: PaymentFact, today: datetime.date) -> bool:
    return fact.status == PaymentStatus.PENDING.value and fact.due_date < today


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _month_start(day: datetime.date, months_back: int) -> datetime.date:
    index = day.year * 12 + (day.month - 1) - months_back
    return datetime.date(index // 12, index % 12 + 1, 1)


# -------------------------------------------------------------------
# Aggregazioni pure
# -------------------------------------------------------------------

def build_overview(
    facts: Sequence[PaymentFact],
    total_clients: int,
    now: datetime.datetime,
) -> OverviewStats:
    """Metriche di GET /stats."""
    today = now.date()
    completed = [f for f in facts if f.status == PaymentStatus.COMPLETED.value]
    pending = [f for f in facts if f.status == PaymentStatus.PENDING.value]
    overdue = [f for f in pending if _is_overdue(f, today)]
    recent = [f for f in facts if f.created_at >= now - RECENT_WINDOW]
    revenue = _sum(completed)

    return OverviewStats(
        total=revenue,
        paid=revenue,
        pending=_sum(pending),
        overdue=_sum(overdue),
        total_payments=len(facts),
        completed_payments=len(completed),
        pending_payments_count=len(pending),
        overdue_payments_count=len(overdue),
        total_clients=total_clients,
        recent_payments_count=len(recent),
    )


def build_monthly_trend(
    facts: Sequence[PaymentFact],
    today: datetime.date,
    months: int = TREND_MONTHS,
) -> list[MonthlyTrendPoint]:
    """
    Incassato per mese di creazione, dal più vecchio al mese corrente.

    Considera solo i pagamenti completed.
    """
    buckets: dict[datetime.date, list[PaymentFact]] = {
        _month_start(today, back): [] for back in range(months - 1, -1, -1)
    }
    for fact in facts:
        if fact.status != PaymentStatus.COMPLETED.value:
            continue
        key = fact.created_at.date().replace(day=1)
        if key in buckets:
            buckets[key].append(fact)

    return [
        MonthlyTrendPoint(
            month=start.strftime("%b %Y"),
            revenue=_sum(bucket),
            payments=len(bucket),
        )
        for start, bucket in buckets.items()
    ]


def build_dashboard(
    facts: Sequence[PaymentFact],
    total_clients: int,
    now: datetime.datetime,
) -> DashboardStats:
    """Statistiche di GET /stats/dashboard."""
    today = now.date()
    counts = Counter(f.status for f in facts)
    status_distribution = {status.value: counts.get(status.value, 0) for status in PaymentStatus}

    pending = [f for f in facts if f.status == PaymentStatus.PENDING.value]
    overdue = [f for f in pending if _is_overdue(f, today)]
    status_distribution["overdue"] = len(overdue)

    completed = [f for f in facts if f.status == PaymentStatus.COMPLETED.value]
    recent_completed = [f for f in completed if f.created_at >= now - RECENT_WINDOW]
    collection_rate = _rate(len(completed), len(facts))
    average = quantize_money(_sum(facts) / len(facts)) if facts else ZERO

    return DashboardStats(
        overview=DashboardOverview(
            total_revenue=_sum(completed),
            pending_amount=_sum(pending),
            overdue_amount=_sum(overdue),
            total_invoices=len(facts),
            total_clients=total_clients,
            recent_revenue=_sum(recent_completed),
            pending_invoices=len(pending),
            overdue_invoices=len(overdue),
        ),
        status_distribution=status_distribution,
        monthly_trend=build_monthly_trend(facts, today),
        performance=PerformanceStats(
            collection_rate=collection_rate,
            average_invoice_value=average,
            on_time_payment_rate=_rate(len(facts) - len(overdue), len(facts)),
        ),
    )


def build_payment_stats(
    facts: Sequence[PaymentFact],
    period: StatsPeriod,
    start: datetime.datetime,
    end: datetime.datetime,
) -> PaymentStats:
    """Statistiche di GET /stats/payments sui pagamenti già filtrati."""
    counts = Counter(f.status for f in facts)
    total_amount = _sum(facts)

    daily: dict[datetime.date, list[PaymentFact]] = {}
    clients: dict[str, list[PaymentFact]] = {}
    for fact in facts:
        daily.setdefault(fact.created_at.date(), []).append(fact)
        clients.setdefault(fact.client_name or UNKNOWN_CLIENT, []).append(fact)

    top_clients = sorted(
        (TopClient(name=name, amount=_sum(group), count=len(group)) for name, group in clients.items()),
        key=lambda c: (-c.amount, c.name),
    )

    return PaymentStats(
        period=period,
        date_range=DateRange(start=start, end=end),
        summary=PaymentStatsSummary(
            total_payments=len(facts),
            total_amount=total_amount,
            average_amount=quantize_money(total_amount / len(facts)) if facts else ZERO,
            status_counts={status.value: counts.get(status.value, 0) for status in PaymentStatus},
        ),
        daily_breakdown=[
            DailyBreakdown(
                date=day,
                count=len(group),
                amount=_sum(group),
                statuses=dict(Counter(f.status for f in group)),
            )
            for day, group in sorted(daily.items())
        ],
        top_clients=top_clients,
    )


def build_client_metrics(facts: Sequence[PaymentFact]) -> ClientMetrics:
    completed = [f for f in facts if f.status == PaymentStatus.COMPLETED.value]
    return ClientMetrics(
        total_invoices=len(facts),
        total_amount=_sum(facts),
        paid_amount=_sum(completed),
        pending_amount=_sum(f for f in facts if f.status == PaymentStatus.PENDING.value),
        payment_rate=_rate(len(completed), len(facts)),
    )


# -------------------------------------------------------------------
# Service
# -------------------------------------------------------------------

class StatsService:
    """Service di sola lettura per dashboard e report."""

    async def _load_facts(
        self,
        db: AsyncSession,
        since: Optional[datetime.datetime] = None,
        status: Optional[PaymentStatus] = None,
    ) -> list[PaymentFact]:
        stmt = (
            select(
                Payment.amount,
                Payment.status,
                Payment.due_date,
                Payment.created_at,
                Client.name,
            )
            .join(Client, Payment.client_id == Client.id)
            .order_by(Payment.created_at.desc())
        )
        if since is not None:
            stmt = stmt.where(Payment.created_at >= since)
        if status is not None:
            stmt = stmt.where(Payment.status == status.value)

        result = await db.execute(stmt)
        return [PaymentFact(*row) for row in result.all()]

    async def _count_clients(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count(Client.id)))
        return result.scalar() or 0

    async def get_overview(
        self,
        db: AsyncSession,
        now: Optional[datetime.datetime] = None,
    ) -> OverviewStats:
        now = now or datetime.datetime.now(datetime.timezone.utc)
        facts = await self._load_facts(db)
        total_clients = await self._count_clients(db)
        return build_overview(facts, total_clients, now)

    async def get_dashboard(
        self,
        db: AsyncSession,
        now: Optional[datetime.datetime] = None,
    ) -> DashboardStats:
        """
        Statistiche complete per la dashboard.

        Args:
            db: Sessione database
            now: Istante di riferimento (default: adesso, UTC)

        Returns:
            DashboardStats: Overview, distribuzione stati, trend e performance
        """
        now = now or datetime.datetime.now(datetime.timezone.utc)
        facts = await self._load_facts(db)
        total_clients = await self._count_clients(db)
        stats = build_dashboard(facts, total_clients, now)
        logger.info(
            "Statistiche dashboard calcolate su %s pagamenti e %s clienti",
            len(facts), total_clients,
        )
        return stats

    async def get_payment_stats(
        self,
        db: AsyncSession,
        period: StatsPeriod = StatsPeriod.LAST_30_DAYS,
        status: Optional[PaymentStatus] = None,
        now: Optional[datetime.datetime] = None,
    ) -> PaymentStats:
        """Statistiche dei pagamenti creati nel periodo, con filtro di stato opzionale."""
        end = now or datetime.datetime.now(datetime.timezone.utc)
        start = end - datetime.timedelta(days=period.days)
        facts = await self._load_facts(db, since=start, status=status)
        return build_payment_stats(facts, period, start, end)

    async def get_client_stats(self, db: AsyncSession) -> ClientsStats:
        """
        Metriche per cliente, ordinate per importo totale decrescente.
        """
        clients_result = await db.execute(
            select(Client.id, Client.name, Client.email, Client.company, Client.created_at)
        )
        clients = clients_result.all()

        payments_result = await db.execute(
            select(
                Payment.client_id,
                Payment.amount,
                Payment.status,
                Payment.due_date,
                Payment.created_at,
            )
        )
        by_client: dict = {}
        for client_id, amount, status, due_date, created_at in payments_result.all():
            by_client.setdefault(client_id, []).append(
                PaymentFact(amount, status, due_date, created_at)
            )

        entries = [
            ClientStatsEntry(
                id=client_id,
                name=name,
                email=email,
                company=company,
                created_at=created_at,
                metrics=build_client_metrics(by_client.get(client_id, [])),
            )
            for client_id, name, email, company, created_at in clients
        ]
        entries.sort(key=lambda e: (-e.metrics.total_amount, e.name))

        total_value = sum((e.metrics.total_amount for e in entries), ZERO)
        summary = ClientsStatsSummary(
            total_clients=len(entries),
            active_clients=sum(1 for e in entries if e.metrics.total_invoices > 0),
            total_revenue=sum((e.metrics.paid_amount for e in entries), ZERO),
            average_client_value=quantize_money(total_value / len(entries)) if entries else ZERO,
        )
        return ClientsStats(summary=summary, clients=entries)
