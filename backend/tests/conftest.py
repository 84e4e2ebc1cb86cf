"""
Pytest configuration and fixtures.

I service sono testati con una AsyncSession mock; le API con httpx
AsyncClient su ASGITransport e dependency_overrides.
"""

import datetime
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


class _SavepointContext:
    """Context manager async restituito da begin_nested()."""

    def __init__(self, session):
        self.session = session

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.session.savepoint_rollbacks += 1
        return False


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    db.savepoint_rollbacks = 0
    db.begin_nested = MagicMock(side_effect=lambda: _SavepointContext(db))
    return db


def scalar_result(value):
    """Risultato di db.execute() con scalar_one_or_none()/scalar() = value."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar.return_value = value
    return result


def scalars_result(values):
    """Risultato di db.execute() con scalars().all() = values."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(values)
    return result


def rows_result(rows):
    """Risultato di db.execute() con all() = rows."""
    result = MagicMock()
    result.all.return_value = list(rows)
    return result


# ============================================================
# Oggetti mock (senza sessione reale)
# ============================================================


class MockClient:
    """Mock del modello Client."""

    def __init__(self, **kwargs):
        now = datetime.datetime(2026, 10, 1, 9, 0, tzinfo=datetime.timezone.utc)
        self.id = kwargs.get("id", uuid.uuid4())
        self.name = kwargs.get("name", "Acme Corp")
        self.email = kwargs.get("email", "billing@acme.com")
        self.phone = kwargs.get("phone", None)
        self.company = kwargs.get("company", "Acme")
        self.address = kwargs.get("address", None)
        self.is_active = kwargs.get("is_active", True)
        self.created_at = kwargs.get("created_at", now)
        self.updated_at = kwargs.get("updated_at", now)
        self.payments = kwargs.get("payments", [])


class MockInvoiceItem:
    """Mock del modello InvoiceItem."""

    def __init__(self, **kwargs):
        self.id = kwargs.get("id", uuid.uuid4())
        self.payment_id = kwargs.get("payment_id", uuid.uuid4())
        self.description = kwargs.get("description", "Development")
        self.quantity = kwargs.get("quantity", Decimal("10.00"))
        self.unit_price = kwargs.get("unit_price", Decimal("50.00"))
        self.total_price = kwargs.get("total_price", Decimal("500.00"))
        self.category = kwargs.get("category", None)
        self.sku = kwargs.get("sku", None)
        self.taxable = kwargs.get("taxable", True)
        self.line_number = kwargs.get("line_number", 1)


class MockPayment:
    """Mock del modello Payment (testata fattura)."""

    def __init__(self, **kwargs):
        now = datetime.datetime(2026, 10, 1, 9, 0, tzinfo=datetime.timezone.utc)
        self.id = kwargs.get("id", uuid.uuid4())
        self.invoice_number = kwargs.get("invoice_number", "INV-202610-0A1B2C3D")
        self.client_id = kwargs.get("client_id", uuid.uuid4())
        self.amount = kwargs.get("amount", Decimal("550.00"))
        self.subtotal = kwargs.get("subtotal", Decimal("500.00"))
        self.tax_amount = kwargs.get("tax_amount", Decimal("50.00"))
        self.discount_amount = kwargs.get("discount_amount", Decimal("0.00"))
        self.tax_rate = kwargs.get("tax_rate", Decimal("0.1000"))
        self.currency = kwargs.get("currency", "USD")
        self.status = kwargs.get("status", "pending")
        self.due_date = kwargs.get("due_date", datetime.date(2026, 11, 30))
        self.description = kwargs.get("description", None)
        self.notes = kwargs.get("notes", None)
        self.payment_method = kwargs.get("payment_method", None)
        self.transaction_id = kwargs.get("transaction_id", None)
        self.paid_at = kwargs.get("paid_at", None)
        self.created_at = kwargs.get("created_at", now)
        self.updated_at = kwargs.get("updated_at", now)
        self.client = kwargs.get("client", None)
        self.items = kwargs.get("items", [])


@pytest.fixture
def mock_client():
    """Crea un mock di Client con dati base."""
    return MockClient()


@pytest.fixture
def mock_payment(mock_client):
    """Crea un mock di fattura pending con una riga."""
    payment = MockPayment(client_id=mock_client.id, client=mock_client)
    payment.items = [MockInvoiceItem(payment_id=payment.id)]
    return payment


# ============================================================
# Client HTTP per i test delle API
# ============================================================


@pytest.fixture
def invoice_service_mock():
    return MagicMock()


@pytest.fixture
async def api_client(mock_db, invoice_service_mock):
    """
    AsyncClient sull'app FastAPI con sessione e InvoiceService sostituiti.
    """
    from quickpay.api.v1.invoices import get_invoice_service
    from quickpay.core.database import get_db
    from quickpay.main import app

    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_invoice_service] = lambda: invoice_service_mock

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


# ============================================================
# Store reale: SQLite in memoria (aiosqlite)
# ============================================================


@pytest.fixture
async def store_sessionmaker():
    """
    Sessioni su un database SQLite in memoria con lo schema completo.

    aiosqlite non emette BEGIN da solo: il BEGIN esplicito fa sì che i
    SAVEPOINT restino dentro la transazione esterna, come su PostgreSQL.
    """
    from quickpay.models import Base

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()
