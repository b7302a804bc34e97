from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

CENT = Decimal("0.01")


def calculate_tax(subtotal: Decimal, tax_rate: Decimal) -> Decimal:
    """Сумма налога, округленная до центов. tax_rate в долях (0.13 = 13%)"""
    return (subtotal * tax_rate).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_subtotal(lines: Iterable) -> Decimal:
    return sum((line.item.unit_price * line.quantity for line in lines), Decimal("0"))


def apply_discount(subtotal: Decimal, tax_amount: Optional[Decimal], discount: Decimal) -> Decimal:
    """Итог при одобрении со скидкой, не меньше нуля"""
    return max(Decimal("0"), subtotal + (tax_amount or Decimal("0")) - discount)


def calculate_invoice_totals(
    subtotal: Decimal, tax_rate: Optional[Decimal], discount: Decimal, shipping: Decimal
) -> tuple[Decimal, Decimal]:
    """Налог начисляется на (subtotal - discount + shipping). Возвращает (tax_amount, total)"""
    result = subtotal - discount + shipping
    tax_amount = calculate_tax(result, tax_rate or Decimal("0"))
    return tax_amount, max(Decimal("0"), result + tax_amount)
