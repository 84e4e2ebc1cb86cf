"""
Unit tests for InvoiceService.

Workflow di creazione fattura con AsyncSession mock: verifica cliente,
calcolo totali, testata con numero univoco, righe e rollback compensativo.
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from quickpay.core.config import settings
from quickpay.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    NotFoundError,
    PartialFailureError,
    StoreUnavailableError,
    ValidationFailedError,
)
from quickpay.models import InvoiceItem, Payment, PaymentStatus
from quickpay.schemas.common import validate_payload
from quickpay.schemas.invoice import InvoiceCreate
from quickpay.services.invoice_number import is_valid_invoice_number
from quickpay.services.invoice_service import InvoiceService

from conftest import MockPayment, scalar_result


class FakeDriverError(Exception):
    """Eccezione del driver con SQLSTATE e nome vincolo."""

    def __init__(self, message, sqlstate=None, constraint_name=None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.constraint_name = constraint_name


def invoice_number_collision():
    return IntegrityError(
        "INSERT INTO payments",
        {},
        FakeDriverError(
            "duplicate key value violates unique constraint",
            sqlstate="23505",
            constraint_name="ix_payments_invoice_number",
        ),
    )


def connection_lost():
    return OperationalError("INSERT INTO invoice_items", {}, FakeDriverError("connection lost"))


def make_request(client_id=None, **overrides):
    payload = {
        "client_id": str(client_id or uuid.uuid4()),
        "due_date": "2026-11-30",
        "items": [{"description": "Development", "quantity": 10, "rate": 50}],
        "tax_rate": 10,
    }
    payload.update(overrides)
    return InvoiceCreate.model_validate(payload)


def added_objects(mock_db, model):
    return [call.args[0] for call in mock_db.add.call_args_list if isinstance(call.args[0], model)]


@pytest.fixture
def service():
    return InvoiceService()


# ============================================================
# Creazione: percorso felice
# ============================================================


class TestCreateInvoice:

    async def test_single_item_with_tax(self, service, mock_db, mock_client):
        request = make_request(client_id=mock_client.id)
        stored = MockPayment(client_id=mock_client.id, client=mock_client)
        mock_db.execute.side_effect = [scalar_result(mock_client.id), scalar_result(stored)]

        result = await service.create_invoice(mock_db, request)

        assert result is stored
        header = added_objects(mock_db, Payment)[0]
        assert header.subtotal == Decimal("500.00")
        assert header.tax_amount == Decimal("50.00")
        assert header.amount == Decimal("550.00")
        assert header.tax_rate == Decimal("0.1000")
        assert header.status == PaymentStatus.PENDING.value
        assert header.currency == settings.default_currency
        assert is_valid_invoice_number(header.invoice_number)

        items = added_objects(mock_db, InvoiceItem)
        assert len(items) == 1
        assert items[0].payment_id == header.id
        assert items[0].unit_price == Decimal("50")
        assert items[0].total_price == Decimal("500.00")
        assert items[0].line_number == 1
        mock_db.commit.assert_awaited_once()
        mock_db.rollback.assert_not_awaited()

    async def test_multiple_items_with_discount(self, service, mock_db, mock_client):
        request = make_request(
            client_id=mock_client.id,
            items=[
                {"description": "Design", "quantity": 2, "rate": 100},
                {"description": "Hosting", "quantity": 1, "rate": 50},
            ],
            tax_rate=0,
            discount=20,
        )
        mock_db.execute.side_effect = [scalar_result(mock_client.id), scalar_result(MockPayment())]

        await service.create_invoice(mock_db, request)

        header = added_objects(mock_db, Payment)[0]
        assert header.subtotal == Decimal("250.00")
        assert header.discount_amount == Decimal("20.00")
        assert header.tax_amount == Decimal("0.00")
        assert header.amount == Decimal("230.00")
        items = added_objects(mock_db, InvoiceItem)
        assert [i.line_number for i in items] == [1, 2]
        assert [i.total_price for i in items] == [Decimal("200.00"), Decimal("50.00")]

    async def test_items_are_written_after_header(self, service, mock_db, mock_client):
        mock_db.execute.side_effect = [scalar_result(mock_client.id), scalar_result(MockPayment())]

        await service.create_invoice(mock_db, make_request(client_id=mock_client.id))

        added = [call.args[0] for call in mock_db.add.call_args_list]
        assert isinstance(added[0], Payment)
        assert all(isinstance(obj, InvoiceItem) for obj in added[1:])
        mock_db.begin_nested.assert_called_once()


# ============================================================
# Creazione: errori
# ============================================================


class TestCreateInvoiceErrors:

    def test_empty_items_is_rejected_before_any_write(self):
        with pytest.raises(ValidationFailedError) as exc_info:
            validate_payload(
                InvoiceCreate,
                {"client_id": str(uuid.uuid4()), "due_date": "2026-11-30", "items": []},
            )

        assert {
            "field": "items",
            "message": "Items must be a non-empty array",
            "type": "value_error",
        } in exc_info.value.details

    async def test_unknown_client_writes_nothing(self, service, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError) as exc_info:
            await service.create_invoice(mock_db, make_request())

        assert exc_info.value.detail == "Client not found"
        mock_db.add.assert_not_called()
        mock_db.begin_nested.assert_not_called()
        mock_db.commit.assert_not_awaited()

    async def test_discount_above_subtotal_writes_nothing(self, service, mock_db, mock_client):
        mock_db.execute.return_value = scalar_result(mock_client.id)
        request = make_request(client_id=mock_client.id, discount=600)

        with pytest.raises(ValidationFailedError):
            await service.create_invoice(mock_db, request)

        mock_db.add.assert_not_called()

    async def test_item_failure_rolls_back_header(self, service, mock_db, mock_client):
        mock_db.execute.return_value = scalar_result(mock_client.id)
        mock_db.flush.side_effect = [None, connection_lost()]

        with pytest.raises(StoreUnavailableError):
            await service.create_invoice(mock_db, make_request(client_id=mock_client.id))

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()

    async def test_failed_rollback_raises_partial_failure(self, service, mock_db, mock_client, caplog):
        mock_db.execute.return_value = scalar_result(mock_client.id)
        mock_db.flush.side_effect = [None, connection_lost()]
        mock_db.rollback.side_effect = connection_lost()

        with pytest.raises(PartialFailureError) as exc_info:
            await service.create_invoice(mock_db, make_request(client_id=mock_client.id))

        header = added_objects(mock_db, Payment)[0]
        assert exc_info.value.status_code == 500
        assert exc_info.value.extra == {
            "payment_id": str(header.id),
            "invoice_number": header.invoice_number,
        }
        assert "riconciliazione manuale richiesta" in caplog.text

    async def test_invoice_number_collision_is_retried(self, service, mock_db, mock_client):
        mock_db.execute.side_effect = [scalar_result(mock_client.id), scalar_result(MockPayment())]
        mock_db.flush.side_effect = [invoice_number_collision(), None, None]

        await service.create_invoice(mock_db, make_request(client_id=mock_client.id))

        headers = added_objects(mock_db, Payment)
        assert len(headers) == 2
        assert mock_db.savepoint_rollbacks == 1
        items = added_objects(mock_db, InvoiceItem)
        assert items[0].payment_id == headers[1].id
        mock_db.commit.assert_awaited_once()

    async def test_collisions_exhaust_attempts(self, service, mock_db, mock_client):
        mock_db.execute.return_value = scalar_result(mock_client.id)
        mock_db.flush.side_effect = [
            invoice_number_collision() for _ in range(settings.invoice_number_max_attempts)
        ]

        with pytest.raises(ConflictError):
            await service.create_invoice(mock_db, make_request(client_id=mock_client.id))

        assert mock_db.flush.await_count == settings.invoice_number_max_attempts
        assert not added_objects(mock_db, InvoiceItem)
        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()


# ============================================================
# Lettura ed eliminazione
# ============================================================


class TestInvoiceLookup:

    async def test_get_by_id_not_found(self, service, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError):
            await service.get_by_id(mock_db, uuid.uuid4())

    async def test_get_by_invoice_number(self, service, mock_db, mock_payment):
        mock_db.execute.return_value = scalar_result(mock_payment)

        result = await service.get_by_invoice_number(mock_db, " inv-202610-0a1b2c3d ")

        assert result is mock_payment


class TestDeleteInvoice:

    async def test_delete_pending(self, service, mock_db, mock_payment):
        mock_db.execute.return_value = scalar_result(mock_payment)

        await service.delete(mock_db, mock_payment.id)

        mock_db.delete.assert_awaited_once_with(mock_payment)
        mock_db.flush.assert_awaited()

    @pytest.mark.parametrize("status", ["processing", "completed", "failed", "cancelled"])
    async def test_delete_non_pending_is_rejected(self, service, mock_db, mock_payment, status):
        mock_payment.status = status
        mock_db.execute.return_value = scalar_result(mock_payment)

        with pytest.raises(BusinessValidationError):
            await service.delete(mock_db, mock_payment.id)

        mock_db.delete.assert_not_awaited()
