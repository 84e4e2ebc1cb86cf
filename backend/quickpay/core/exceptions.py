"""
Eccezioni Custom per l'applicazione.
Progetto: QuickPay (Fatturazione e Pagamenti)

Definisce la tassonomia degli errori di dominio per una gestione
centralizzata delle risposte HTTP.

NOTA: ValidationFailedError raccoglie TUTTE le violazioni di campo in `details`.
- pydantic.ValidationError / RequestValidationError: convertite dal nostro handler
  in ValidationFailedError (400) con l'elenco completo dei campi
- BusinessValidationError: violazioni delle regole di business (400)
"""

from typing import Any, Dict, List, Optional

__all__ = [
    "AppException",
    "ValidationFailedError",
    "BusinessValidationError",
    "NotFoundError",
    "DuplicateError",
    "ConflictError",
    "PartialFailureError",
    "StoreUnavailableError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Tutte le eccezioni custom ereditano da questa classe base.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo stabile dell'errore per il frontend
        title: Categoria leggibile riportata nel campo "error" della risposta
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    title: str = "Internal server error"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inizializza l'eccezione.

        Args:
            detail: Messaggio di errore dettagliato
            error_code: Identificativo univoco (default: quello di classe)
            extra: Dati aggiuntivi da passare al frontend (default: None)
        """
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(detail)


class ValidationFailedError(AppException):
    """
    Input malformato o mancante.

    Riporta in un'unica risposta tutte le violazioni di campo,
    mai una alla volta.
    """

    status_code: int = 400
    error_code: str = "VALIDATION_FAILED"
    title: str = "Validation failed"

    def __init__(
        self,
        detail: str = "Validation failed",
        details: Optional[List[Dict[str, Any]]] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Args:
            detail: Messaggio riassuntivo
            details: Elenco delle violazioni ({field, message, type})
            error_code: Identificativo univoco (default: "VALIDATION_FAILED")
            extra: Dati aggiuntivi
        """
        super().__init__(detail, error_code, extra)
        self.details = list(details or [])


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    Esempi di utilizzo:
        - "Only pending invoices can be deleted"
        - "Client has existing invoices/payments and cannot be deleted"
        - "Status transition not allowed"
    """

    status_code: int = 400
    error_code: str = "BUSINESS_RULE_VIOLATION"
    title: str = "Operation not allowed"

    def __init__(
        self,
        detail: str = "Operation not allowed",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.

    Utilizzata quando il cliente o il pagamento referenziato non esiste.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"
    title: str = "Resource not found"

    def __init__(
        self,
        detail: str = "Resource not found",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class DuplicateError(AppException):
    """
    Eccezione sollevata quando si tenta di creare una risorsa duplicata.

    Utilizzata per violazioni di vincoli unique (es. email cliente già esistente).
    """

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"
    title: str = "Resource already exists"

    def __init__(
        self,
        detail: str = "Resource already exists",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class ConflictError(AppException):
    """
    Eccezione sollevata per conflitti di unicità o di stato.

    Es. numero fattura ancora in collisione dopo l'esaurimento dei tentativi.
    """

    status_code: int = 409
    error_code: str = "CONFLICT"
    title: str = "Conflict"

    def __init__(
        self,
        detail: str = "Conflict",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class PartialFailureError(AppException):
    """
    Scrittura parziale non annullata.

    La testata fattura è stata scritta, le righe no, e anche il rollback
    compensativo è fallito. Richiede riconciliazione manuale: non va mai
    ritentata automaticamente. `extra` contiene payment_id e invoice_number.
    """

    status_code: int = 500
    error_code: str = "PARTIAL_FAILURE"
    title: str = "Partial failure"

    def __init__(
        self,
        detail: str = "Partial write could not be rolled back",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class StoreUnavailableError(AppException):
    """
    Guasto transitorio dello store: la richiesta può essere ritentata per intero.
    """

    status_code: int = 503
    error_code: str = "STORE_UNAVAILABLE"
    title: str = "Store unavailable"

    def __init__(
        self,
        detail: str = "The data store is temporarily unavailable",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)
