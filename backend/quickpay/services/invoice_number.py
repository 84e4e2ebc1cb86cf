"""
Generatore numero fattura
Progetto: QuickPay (Fatturazione e Pagamenti)

Formato: {PREFISSO}-YYYYMM-XXXXXXXX, dove XXXXXXXX sono 8 cifre esadecimali
casuali (32 bit da `secrets`). L'unicità definitiva è garantita dall'indice
unique su payments.invoice_number: in caso di collisione il workflow
di creazione ritenta con un nuovo candidato.
"""

import datetime
import re
import secrets
from typing import Optional

from quickpay.core.config import settings

SUFFIX_BYTES = 4

INVOICE_NUMBER_PATTERN = re.compile(r"^[A-Z0-9]{1,8}-\d{6}-[0-9A-F]{8}$")


def generate_invoice_number(
    prefix: Optional[str] = None,
    today: Optional[datetime.date] = None,
) -> str:
    """
    Genera un nuovo candidato numero fattura.

    Args:
        prefix: Prefisso (default: settings.invoice_number_prefix)
        today: Data di riferimento per YYYYMM (default: oggi UTC)

    Returns:
        str: Numero fattura, es. "INV-202501-9F3A0C1B"
    """
    prefix = prefix or settings.invoice_number_prefix
    today = today or datetime.datetime.now(datetime.timezone.utc).date()
    suffix = secrets.token_hex(SUFFIX_BYTES).upper()
    return f"{prefix}-{today:%Y%m}-{suffix}"


def is_valid_invoice_number(value: str) -> bool:
    """Verifica che la stringa rispetti il formato del numero fattura."""
    return bool(INVOICE_NUMBER_PATTERN.match(value))
