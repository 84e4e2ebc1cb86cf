"""
Unit tests for PaymentService.

Transizioni di stato, paid_at, aggiornamento ed eliminazione.
"""

import datetime
import uuid
from decimal import Decimal

import pytest

from quickpay.core.config import settings
from quickpay.core.exceptions import BusinessValidationError, NotFoundError
from quickpay.models import PaymentMethod, PaymentStatus
from quickpay.schemas.payment import PaymentStatusFilter, PaymentUpdate
from quickpay.services import payment_service as payment_service_module
from quickpay.services.payment_service import PaymentService

from conftest import MockPayment, scalar_result, scalars_result


@pytest.fixture
def service():
    return PaymentService()


class TestChangeStatus:
    """Matrice delle transizioni e gestione di paid_at."""

    @pytest.mark.parametrize(
        "current, new",
        [
            ("pending", "processing"),
            ("pending", "completed"),
            ("pending", "failed"),
            ("pending", "cancelled"),
            ("processing", "completed"),
            ("processing", "failed"),
            ("processing", "cancelled"),
            ("failed", "pending"),
        ],
    )
    def test_allowed_transitions(self, service, current, new):
        payment = MockPayment(status=current)

        service.change_status(payment, PaymentStatus(new))

        assert payment.status == new

    @pytest.mark.parametrize(
        "current, new",
        [
            ("completed", "pending"),
            ("completed", "cancelled"),
            ("cancelled", "pending"),
            ("failed", "completed"),
            ("processing", "pending"),
        ],
    )
    def test_forbidden_transitions(self, service, current, new):
        payment = MockPayment(status=current)

        with pytest.raises(BusinessValidationError) as exc_info:
            service.change_status(payment, PaymentStatus(new))

        assert exc_info.value.error_code == "INVALID_STATUS_TRANSITION"
        assert payment.status == current

    def test_same_status_is_noop(self, service):
        payment = MockPayment(status="completed", paid_at=None)

        service.change_status(payment, PaymentStatus.COMPLETED)

        assert payment.status == "completed"
        assert payment.paid_at is None

    def test_completed_sets_paid_at(self, service):
        payment = MockPayment(status="processing")

        service.change_status(payment, PaymentStatus.COMPLETED)

        assert payment.paid_at is not None
        assert payment.paid_at.tzinfo is not None

    def test_leaving_completed_clears_paid_at(self, service, monkeypatch):
        relaxed = settings.model_copy(update={"enforce_status_transitions": False})
        monkeypatch.setattr(payment_service_module, "settings", relaxed)
        payment = MockPayment(status="completed", paid_at=datetime.datetime.now(datetime.timezone.utc))

        service.change_status(payment, PaymentStatus.PENDING)

        assert payment.status == "pending"
        assert payment.paid_at is None

    def test_matrix_can_be_disabled(self, service, monkeypatch):
        relaxed = settings.model_copy(update={"enforce_status_transitions": False})
        monkeypatch.setattr(payment_service_module, "settings", relaxed)
        payment = MockPayment(status="cancelled")

        service.change_status(payment, PaymentStatus.PENDING)

        assert payment.status == "pending"


class TestUpdatePayment:

    async def test_update_fields_and_status(self, service, mock_db):
        payment = MockPayment(status="pending")
        mock_db.execute.return_value = scalar_result(payment)
        data = PaymentUpdate(
            status=PaymentStatus.COMPLETED,
            notes="Paid by wire",
            payment_method=PaymentMethod.BANK_TRANSFER,
            transaction_id="TX-42",
        )

        result = await service.update(mock_db, payment.id, data)

        assert result.status == "completed"
        assert result.paid_at is not None
        assert result.notes == "Paid by wire"
        assert result.payment_method == "bank_transfer"
        assert result.transaction_id == "TX-42"
        mock_db.flush.assert_awaited_once()

    async def test_unset_fields_are_untouched(self, service, mock_db):
        payment = MockPayment(status="pending", notes="keep me")
        mock_db.execute.return_value = scalar_result(payment)

        await service.update(mock_db, payment.id, PaymentUpdate(description="New"))

        assert payment.notes == "keep me"
        assert payment.description == "New"
        assert payment.status == "pending"

    def test_amounts_are_not_updatable(self):
        with pytest.raises(ValueError):
            PaymentUpdate.model_validate({"amount": "1.00"})

    async def test_invalid_transition_does_not_flush(self, service, mock_db):
        payment = MockPayment(status="completed")
        mock_db.execute.return_value = scalar_result(payment)

        with pytest.raises(BusinessValidationError):
            await service.update(mock_db, payment.id, PaymentUpdate(status=PaymentStatus.PENDING))

        mock_db.flush.assert_not_awaited()

    async def test_not_found(self, service, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError) as exc_info:
            await service.update(mock_db, uuid.uuid4(), PaymentUpdate(notes="x"))

        assert exc_info.value.detail == "Payment not found"


class TestDeletePayment:

    async def test_delete_pending(self, service, mock_db):
        payment = MockPayment(status="pending")
        mock_db.execute.return_value = scalar_result(payment)

        await service.delete(mock_db, payment.id)

        mock_db.delete.assert_awaited_once_with(payment)

    async def test_delete_completed_is_rejected(self, service, mock_db):
        payment = MockPayment(status="completed")
        mock_db.execute.return_value = scalar_result(payment)

        with pytest.raises(BusinessValidationError) as exc_info:
            await service.delete(mock_db, payment.id)

        assert exc_info.value.detail == "Only pending payments can be deleted"


class TestListPayments:

    async def test_returns_page_total_and_amount(self, service, mock_db):
        payments = [MockPayment(), MockPayment(amount=Decimal("100.00"))]
        totals = scalar_result(None)
        totals.one.return_value = (7, Decimal("1234.50"))
        mock_db.execute.side_effect = [scalars_result(payments), totals]

        page, total, total_amount = await service.get_all(
            mock_db, page=1, per_page=2, status=PaymentStatusFilter.PENDING, search="acme"
        )

        assert page == payments
        assert total == 7
        assert total_amount == Decimal("1234.50")
