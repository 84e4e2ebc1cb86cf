"""
Unit tests per il calcolo dei totali fattura.

Funzioni pure: nessuna fixture di database.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from quickpay.core.exceptions import ValidationFailedError
from quickpay.services.invoice_totals import (
    calculate_totals,
    line_amount,
    quantize_money,
)


def item(quantity, rate):
    return SimpleNamespace(quantity=Decimal(str(quantity)), rate=Decimal(str(rate)))


class TestLineAmount:
    """Totale riga = quantity * rate."""

    def test_simple_product(self):
        assert line_amount(Decimal("10"), Decimal("50")) == Decimal("500.00")

    def test_fractional_quantity(self):
        assert line_amount(Decimal("1.5"), Decimal("19.98")) == Decimal("29.97")

    def test_product_is_not_rounded(self):
        assert line_amount(Decimal("1.50"), Decimal("0.33")) == Decimal("0.4950")

    def test_half_up_rounding(self):
        # 0.25 * 0.10 = 0.025 -> 0.03
        assert quantize_money(Decimal("0.025")) == Decimal("0.03")


class TestCalculateTotals:
    """Subtotale, imposta, sconto e totale."""

    def test_single_item_with_tax(self):
        totals = calculate_totals([item(10, 50)], tax_rate_percent=Decimal("10"))

        assert totals.subtotal == Decimal("500.00")
        assert totals.tax_amount == Decimal("50.00")
        assert totals.total == Decimal("550.00")
        assert totals.tax_rate == Decimal("0.1000")

    def test_multiple_items_with_discount_no_tax(self):
        totals = calculate_totals(
            [item(2, 100), item(1, 50)], discount=Decimal("20")
        )

        assert totals.subtotal == Decimal("250.00")
        assert totals.tax_amount == Decimal("0.00")
        assert totals.discount_amount == Decimal("20.00")
        assert totals.total == Decimal("230.00")

    def test_tax_is_applied_after_discount(self):
        totals = calculate_totals(
            [item(1, 200)], tax_rate_percent=Decimal("22"), discount=Decimal("50")
        )

        assert totals.taxable_base == Decimal("150.00")
        assert totals.tax_amount == Decimal("33.00")
        assert totals.total == Decimal("183.00")

    def test_total_identity_holds(self):
        totals = calculate_totals(
            [item("3.5", "7.78"), item("0.5", "1999.98"), item(12, "0.01")],
            tax_rate_percent=Decimal("17.5"),
            discount=Decimal("13.37"),
        )

        assert totals.total == totals.subtotal - totals.discount_amount + totals.tax_amount
        assert totals.subtotal == sum(totals.line_amounts, Decimal("0"))

    def test_item_order_does_not_change_subtotal(self):
        items = [item("3.5", "7.78"), item("0.5", "1999.98"), item(12, "0.01")]

        forward = calculate_totals(items, tax_rate_percent=Decimal("8.25"))
        backward = calculate_totals(list(reversed(items)), tax_rate_percent=Decimal("8.25"))

        assert forward.subtotal == backward.subtotal
        assert forward.total == backward.total

    def test_discount_equal_to_subtotal(self):
        totals = calculate_totals(
            [item(2, 100), item(1, 50)],
            tax_rate_percent=Decimal("10"),
            discount=Decimal("250"),
        )

        assert totals.tax_amount == Decimal("0.00")
        assert totals.total == Decimal("0.00")

    def test_discount_above_subtotal_is_rejected(self):
        with pytest.raises(ValidationFailedError) as exc_info:
            calculate_totals([item(1, 10)], discount=Decimal("10.01"))

        assert exc_info.value.details == [
            {
                "field": "discount",
                "message": "Discount cannot exceed the invoice subtotal",
                "type": "value_error",
            }
        ]

    def test_defaults_are_zero(self):
        totals = calculate_totals([item(1, "9.99")])

        assert totals.tax_amount == Decimal("0.00")
        assert totals.discount_amount == Decimal("0.00")
        assert totals.total == Decimal("9.99")

    def test_full_tax_rate(self):
        totals = calculate_totals([item(1, 40)], tax_rate_percent=Decimal("100"))

        assert totals.tax_amount == Decimal("40.00")
        assert totals.total == Decimal("80.00")
        assert totals.tax_rate == Decimal("1.0000")

    def test_line_totals_equal_quantity_times_rate(self):
        lines = [item("3.5", "7.78"), item("0.25", "0.40"), item("2.20", "19.90")]

        totals = calculate_totals(lines)

        for line, amount in zip(lines, totals.line_amounts):
            assert amount == line.quantity * line.rate
        assert totals.subtotal == Decimal("71.11")

    def test_line_total_below_cent_is_rejected(self):
        with pytest.raises(ValidationFailedError) as exc_info:
            calculate_totals([item(1, 10), item("1.5", "0.33")])

        assert exc_info.value.details == [
            {
                "field": "items.1",
                "message": "Line total (quantity x rate) cannot have more than 2 decimal places",
                "type": "value_error",
            }
        ]


class TestAmountLimits:
    """Importi oltre la precisione delle colonne Numeric(12, 2)."""

    def test_line_total_above_limit(self):
        with pytest.raises(ValidationFailedError) as exc_info:
            calculate_totals([item("99999999.99", "1000")])

        assert exc_info.value.details[0]["field"] == "items.0"
        assert "cannot exceed 9999999999.99" in exc_info.value.details[0]["message"]

    def test_subtotal_above_limit(self):
        with pytest.raises(ValidationFailedError) as exc_info:
            calculate_totals([item(1, "9999999999.99"), item(1, "0.01")])

        assert exc_info.value.details == [
            {
                "field": "items",
                "message": "Invoice subtotal cannot exceed 9999999999.99",
                "type": "value_error",
            }
        ]

    def test_total_with_tax_above_limit(self):
        with pytest.raises(ValidationFailedError) as exc_info:
            calculate_totals([item(1, "9000000000.00")], tax_rate_percent=Decimal("20"))

        assert exc_info.value.details[0]["field"] == "tax_rate"

    def test_largest_total_is_accepted(self):
        totals = calculate_totals([item(1, "9999999999.99")])

        assert totals.total == Decimal("9999999999.99")
