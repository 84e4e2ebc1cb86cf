"""
Schemas Pydantic comuni
Progetto: QuickPay (Fatturazione e Pagamenti)

Contiene:
- Money: Decimal serializzato come numero JSON
- ApiResponse: envelope di successo {success, data, message}
- ErrorResponse: envelope di errore {success, error, code, message, details, debug}
- Pagination: metadati di paginazione
- Funzioni per raccogliere tutte le violazioni di validazione
"""

from decimal import Decimal
from typing import Annotated, Any, Generic, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic import ValidationError as PydanticValidationError

from quickpay.core.exceptions import ValidationFailedError

T = TypeVar("T")
ModelT = TypeVar("ModelT", bound=BaseModel)

# Decimal in memoria, numero in JSON
JsonDecimal = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

Money = JsonDecimal


# -------------------------------------------------------------------
# Envelope di risposta
# -------------------------------------------------------------------

class ApiResponse(BaseModel, Generic[T]):
    """Envelope standard per le risposte di successo."""

    success: bool = Field(True, description="Esito dell'operazione")
    data: T = Field(..., description="Payload della risposta")
    message: Optional[str] = Field(None, description="Messaggio leggibile")


class ValidationDetail(BaseModel):
    """Singola violazione di validazione."""

    field: str = Field(..., description="Percorso del campo (es. items.0.quantity)")
    message: str = Field(..., description="Messaggio leggibile")
    type: str = Field(..., description="Tipo di errore")


class ErrorResponse(BaseModel):
    """Envelope standard per le risposte di errore."""

    success: bool = Field(False, description="Sempre False")
    error: str = Field(..., description="Categoria dell'errore")
    code: str = Field(..., description="Codice macchina stabile")
    message: str = Field(..., description="Messaggio leggibile")
    details: Optional[list[ValidationDetail]] = Field(None, description="Violazioni di campo")
    debug: Optional[str] = Field(None, description="Dettaglio tecnico (solo fuori produzione)")


class Pagination(BaseModel):
    """Metadati di paginazione (chiavi camelCase in uscita)."""

    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(..., ge=1, serialization_alias="currentPage")
    total_pages: int = Field(..., ge=0, serialization_alias="totalPages")
    total_items: int = Field(..., ge=0, serialization_alias="totalItems")
    items_per_page: int = Field(..., ge=1, serialization_alias="itemsPerPage")
    has_next: bool = Field(..., serialization_alias="hasNext")
    has_prev: bool = Field(..., serialization_alias="hasPrev")

    @classmethod
    def build(cls, page: int, per_page: int, total: int) -> "Pagination":
        total_pages = (total + per_page - 1) // per_page if per_page > 0 else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=per_page,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


# -------------------------------------------------------------------
# Raccolta violazioni
# -------------------------------------------------------------------

_VALUE_ERROR_PREFIXES = ("Value error, ", "Assertion failed, ")


def _format_location(loc: Iterable[Any]) -> str:
    parts = [str(p) for p in loc]
    # Il primo elemento indica la sorgente (body, query, path)
    if parts and parts[0] in ("body", "query", "path", "header"):
        parts = parts[1:]
    return ".".join(parts) or "body"


def _clean_message(msg: str) -> str:
    for prefix in _VALUE_ERROR_PREFIXES:
        if msg.startswith(prefix):
            return msg[len(prefix):]
    return msg


def format_validation_errors(errors: Iterable[dict[str, Any]]) -> list[dict[str, str]]:
    """
    Converte gli errori pydantic nel formato {field, message, type}.

    Args:
        errors: Lista restituita da ValidationError.errors()

    Returns:
        list: Una voce per ogni violazione, nell'ordine originale
    """
    return [
        {
            "field": _format_location(err.get("loc", ())),
            "message": _clean_message(str(err.get("msg", "Invalid value"))),
            "type": str(err.get("type", "value_error")),
        }
        for err in errors
    ]


def collect_violations(model: Type[BaseModel], payload: Any) -> list[dict[str, str]]:
    """
    Valida il payload e restituisce TUTTE le violazioni senza sollevare.

    Returns:
        list: Violazioni trovate (vuota se il payload è valido)
    """
    try:
        model.model_validate(payload)
    except PydanticValidationError as e:
        return format_validation_errors(e.errors())
    return []


def validate_payload(model: Type[ModelT], payload: Any) -> ModelT:
    """
    Valida il payload e restituisce l'istanza del modello.

    Raises:
        ValidationFailedError: Con l'elenco completo delle violazioni
    """
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationFailedError(details=format_validation_errors(e.errors())) from e
