"""
Unit tests per l'adattatore degli errori dello store.
"""

from sqlalchemy.exc import (
    DataError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    ProgrammingError,
)

from quickpay.core.exceptions import (
    AppException,
    ConflictError,
    DuplicateError,
    NotFoundError,
    StoreUnavailableError,
    ValidationFailedError,
)
from quickpay.core.store_errors import get_sqlstate, is_unique_violation, translate_store_error


class DriverError(Exception):
    def __init__(self, message, sqlstate=None, constraint_name=None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.constraint_name = constraint_name


def integrity(message, sqlstate=None, constraint_name=None):
    return IntegrityError("stmt", {}, DriverError(message, sqlstate, constraint_name))


class TestSqlstate:

    def test_reads_sqlstate_from_driver_error(self):
        assert get_sqlstate(integrity("dup", "23505")) == "23505"

    def test_missing_sqlstate(self):
        assert get_sqlstate(integrity("dup")) is None


class TestIsUniqueViolation:

    def test_by_sqlstate_and_constraint(self):
        exc = integrity("dup", "23505", "ix_payments_invoice_number")

        assert is_unique_violation(exc)
        assert is_unique_violation(exc, "invoice_number")
        assert not is_unique_violation(exc, "email")

    def test_by_message_when_sqlstate_missing(self):
        exc = integrity('UNIQUE constraint failed: clients.email')

        assert is_unique_violation(exc, "email")

    def test_foreign_key_is_not_unique(self):
        assert not is_unique_violation(integrity("fk", "23503"))

    def test_non_integrity_error(self):
        assert not is_unique_violation(OperationalError("stmt", {}, DriverError("down")))


class TestTranslateStoreError:

    def test_unique_email_is_duplicate(self):
        exc = integrity("dup", "23505", "clients_email_key")

        translated = translate_store_error(exc, "test")

        assert isinstance(translated, DuplicateError)
        assert translated.status_code == 409

    def test_other_unique_is_conflict(self):
        translated = translate_store_error(integrity("dup", "23505", "ix_payments_invoice_number"), "test")

        assert isinstance(translated, ConflictError)

    def test_foreign_key_is_not_found(self):
        translated = translate_store_error(integrity("fk", "23503", "payments_client_id_fkey"), "test")

        assert isinstance(translated, NotFoundError)
        assert translated.detail == "Referenced resource not found"

    def test_check_violation_is_integrity_error(self):
        translated = translate_store_error(integrity("check", "23514", "ck_payments_amount"), "test")

        assert type(translated) is AppException
        assert translated.error_code == "INTEGRITY_ERROR"

    def test_numeric_overflow_is_validation_failed(self):
        exc = DataError("stmt", {}, DriverError("numeric field overflow", "22003"))

        translated = translate_store_error(exc, "test")

        assert isinstance(translated, ValidationFailedError)
        assert translated.status_code == 400
        assert translated.details[0]["message"] == "Numeric value out of range"

    def test_connection_errors_are_unavailable(self):
        for exc in (
            OperationalError("stmt", {}, DriverError("server closed the connection")),
            InterfaceError("stmt", {}, DriverError("connection is closed")),
            ConnectionRefusedError("refused"),
        ):
            translated = translate_store_error(exc, "test")
            assert isinstance(translated, StoreUnavailableError)
            assert translated.status_code == 503

    def test_unknown_error_is_generic(self):
        translated = translate_store_error(
            ProgrammingError("stmt", {}, DriverError("syntax error", "42601")), "test"
        )

        assert type(translated) is AppException
        assert translated.error_code == "STORE_ERROR"
        assert translated.status_code == 500

    def test_debug_text_outside_production(self):
        translated = translate_store_error(integrity("raw driver text", "23505", "x"), "test")

        assert translated.extra == {"debug": "raw driver text"}
