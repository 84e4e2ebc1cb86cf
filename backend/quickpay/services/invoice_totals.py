"""
Calcolo totali fattura
Progetto: QuickPay (Fatturazione e Pagamenti)

Funzioni pure, senza accesso al database: dalle righe richieste,
dall'aliquota percentuale e dallo sconto fisso ricavano
subtotale, imposta e totale.

Formule:
- line_amount = quantity * rate
- subtotal = somma dei line_amount
- tax_amount = (subtotal - discount) * tax_rate / 100
- total = subtotal - discount + tax_amount
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol, Union

from quickpay.core.exceptions import ValidationFailedError
from quickpay.schemas.invoice import MAX_MONEY

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, str]


class LineRequest(Protocol):
    """Qualsiasi oggetto con quantity e rate (es. InvoiceItemCreate)."""

    quantity: Decimal
    rate: Decimal


def to_decimal(value: Number) -> Decimal:
    """Converte in Decimal passando da str, mai da float binario."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    """Arrotonda al centesimo (ROUND_HALF_UP)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_amount(quantity: Number, rate: Number) -> Decimal:
    """Totale di una riga: quantity * rate esatto, senza arrotondamento."""
    return to_decimal(quantity) * to_decimal(rate)


def _violation(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message, "type": "value_error"}


@dataclass(frozen=True, slots=True)
class InvoiceTotals:
    """
    Totali calcolati di una fattura.

    Gli importi sono Decimal a 2 decimali; tax_rate è la frazione
    (tax_rate_percent / 100) persistita sulla testata.
    """

    line_amounts: tuple[Decimal, ...]
    subtotal: Decimal
    discount_amount: Decimal
    tax_rate_percent: Decimal
    tax_amount: Decimal
    total: Decimal

    @property
    def tax_rate(self) -> Decimal:
        return (self.tax_rate_percent / HUNDRED).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)

    @property
    def taxable_base(self) -> Decimal:
        return self.subtotal - self.discount_amount


def calculate_totals(
    items: Iterable[LineRequest],
    tax_rate_percent: Number = 0,
    discount: Number = 0,
) -> InvoiceTotals:
    """
    Calcola subtotale, imposta e totale della fattura.

    Ogni totale riga deve essere esatto al centesimo: la somma è quindi
    esatta e l'ordine delle righe non cambia il risultato. Solo
    l'imposta viene arrotondata.

    Args:
        items: Righe con quantity > 0 e rate > 0 (già validate dallo schema)
        tax_rate_percent: Aliquota percentuale (0-100)
        discount: Sconto fisso (>= 0)

    Returns:
        InvoiceTotals: Totali calcolati

    Raises:
        ValidationFailedError: Se un totale riga non è esatto al centesimo,
            se sconto o importi escono dai limiti
    """
    amounts = tuple(line_amount(item.quantity, item.rate) for item in items)
    violations = []
    for index, amount in enumerate(amounts):
        if amount > MAX_MONEY:
            violations.append(_violation(
                f"items.{index}",
                f"Line total (quantity x rate) cannot exceed {MAX_MONEY}",
            ))
        elif amount != quantize_money(amount):
            violations.append(_violation(
                f"items.{index}",
                "Line total (quantity x rate) cannot have more than 2 decimal places",
            ))
    if violations:
        raise ValidationFailedError(details=violations)

    subtotal = quantize_money(sum(amounts, ZERO))
    discount_amount = quantize_money(to_decimal(discount))
    rate_percent = to_decimal(tax_rate_percent)

    if subtotal > MAX_MONEY:
        violations.append(_violation("items", f"Invoice subtotal cannot exceed {MAX_MONEY}"))
    if discount_amount > subtotal:
        violations.append(_violation("discount", "Discount cannot exceed the invoice subtotal"))
    if violations:
        raise ValidationFailedError(details=violations)

    tax_amount = quantize_money((subtotal - discount_amount) * rate_percent / HUNDRED)
    total = subtotal - discount_amount + tax_amount
    if total > MAX_MONEY:
        raise ValidationFailedError(
            details=[_violation("tax_rate", f"Invoice total cannot exceed {MAX_MONEY}")]
        )

    return InvoiceTotals(
        line_amounts=amounts,
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_rate_percent=rate_percent,
        tax_amount=tax_amount,
        total=total,
    )
