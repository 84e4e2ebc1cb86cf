"""
Adattatore errori dello store
Progetto: QuickPay (Fatturazione e Pagamenti)

Converte le eccezioni native del driver (wrappate da SQLAlchemy in DBAPIError)
nella tassonomia di quickpay.core.exceptions. È l'unico punto in cui
si leggono codici SQLSTATE o messaggi specifici del driver.
"""

import logging
from typing import Optional

from sqlalchemy.exc import (
    DataError,
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)

from quickpay.core.config import settings
from quickpay.core.exceptions import (
    AppException,
    ConflictError,
    DuplicateError,
    NotFoundError,
    StoreUnavailableError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

# Codici SQLSTATE PostgreSQL rilevanti
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NUMERIC_OUT_OF_RANGE = "22003"

# Classi SQLSTATE di guasto transitorio (connessione, risorse, shutdown)
_TRANSIENT_CLASSES = ("08", "53", "57")


def get_sqlstate(exc: BaseException) -> Optional[str]:
    """
    Estrae il codice SQLSTATE dall'eccezione del driver, se disponibile.

    asyncpg espone `sqlstate`, psycopg `pgcode` (l'adapter async di SQLAlchemy
    li valorizza entrambi).
    """
    orig = getattr(exc, "orig", None) or exc
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    cause = getattr(orig, "__cause__", None)
    if cause is not None:
        code = getattr(cause, "sqlstate", None)
        if code:
            return str(code)
    return None


def get_constraint_name(exc: BaseException) -> str:
    """Nome del vincolo violato, oppure il testo dell'errore in minuscolo."""
    orig = getattr(exc, "orig", None) or exc
    for candidate in (orig, getattr(orig, "__cause__", None)):
        name = getattr(candidate, "constraint_name", None)
        if name:
            return str(name).lower()
    return str(orig).lower()


def is_unique_violation(exc: BaseException, hint: Optional[str] = None) -> bool:
    """
    Verifica se l'errore è una violazione di unicità.

    Args:
        exc: Eccezione sollevata dallo store
        hint: Frammento del nome colonna/vincolo da cercare (es. "invoice_number")
    """
    if not isinstance(exc, IntegrityError):
        return False
    sqlstate = get_sqlstate(exc)
    text = get_constraint_name(exc)
    unique = sqlstate == UNIQUE_VIOLATION or (
        sqlstate is None and ("unique" in text or "duplicate" in text)
    )
    if not unique:
        return False
    return hint is None or hint.lower() in text


def is_foreign_key_violation(exc: BaseException) -> bool:
    """Verifica se l'errore è una violazione di chiave esterna."""
    if not isinstance(exc, IntegrityError):
        return False
    return get_sqlstate(exc) == FOREIGN_KEY_VIOLATION or "foreign key" in get_constraint_name(exc)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError)):
        return True
    if isinstance(exc, (ConnectionError, OSError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    sqlstate = get_sqlstate(exc)
    return bool(sqlstate) and sqlstate[:2] in _TRANSIENT_CLASSES


def translate_store_error(exc: BaseException, operation: str) -> AppException:
    """
    Traduce un errore dello store nella tassonomia applicativa.

    Il testo grezzo del driver è allegato in `extra["debug"]` solo
    fuori dalla produzione.

    Args:
        exc: Eccezione originale (SQLAlchemyError o errore di rete)
        operation: Descrizione breve dell'operazione, usata nei log

    Returns:
        AppException: Eccezione da sollevare verso il chiamante
    """
    extra = None if settings.is_production else {"debug": str(getattr(exc, "orig", exc))}
    sqlstate = get_sqlstate(exc)

    if isinstance(exc, IntegrityError):
        text = get_constraint_name(exc)
        if is_unique_violation(exc):
            logger.warning("Violazione di unicità durante %s: %s", operation, text)
            if "email" in text:
                return DuplicateError("Email already exists", extra=extra)
            return ConflictError("Resource conflicts with an existing record", extra=extra)
        if is_foreign_key_violation(exc):
            logger.warning("Violazione di chiave esterna durante %s: %s", operation, text)
            return NotFoundError("Referenced resource not found", extra=extra)
        logger.error("Violazione di vincolo durante %s: %s", operation, text)
        return AppException("Data integrity violation", error_code="INTEGRITY_ERROR", extra=extra)

    if isinstance(exc, DataError) and sqlstate == NUMERIC_OUT_OF_RANGE:
        logger.warning("Valore numerico fuori intervallo durante %s: %s", operation, exc)
        return ValidationFailedError(
            details=[
                {
                    "field": "amount",
                    "message": "Numeric value out of range",
                    "type": "value_error",
                }
            ],
            extra=extra,
        )

    if _is_transient(exc):
        logger.error("Store non disponibile durante %s: %s", operation, exc)
        return StoreUnavailableError(extra=extra)

    if isinstance(exc, SQLAlchemyError):
        logger.error(
            "Errore SQLAlchemy durante %s: %s - %s", operation, exc.__class__.__name__, exc
        )
    else:
        logger.error("Errore imprevisto durante %s: %s", operation, exc)
    return AppException("Unexpected data store error", error_code="STORE_ERROR", extra=extra)
