import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel

from stoq.application.changes import record_change
from stoq.application.state import ORDERS
from stoq.domain.exceptions import OrderNotFoundError
from stoq.domain.models import DiscountType, Order
from stoq.domain.pricing import calculate_invoice_totals

logger = logging.getLogger(__name__)

PaymentMethod = Literal["EMT", "WIRE", "CHQ"]


class InvoiceDTO(BaseModel):
    invoice_number: str
    invoice_date: str
    po_number: str = ""
    payment_terms: PaymentMethod = "CHQ"
    due_date: str
    hst_number: str = ""
    invoice_notes: Optional[str] = None
    invoice_terms: Optional[str] = None
    discount_amount: Decimal = Decimal("0")
    discount_type: DiscountType = DiscountType.CAD
    shipping_amount: Decimal = Decimal("0")


class UpdateInvoiceUseCase:
    """Метаданные счета можно менять в любом статусе. Подтверждение сбрасывается"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, invoice: InvoiceDTO) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")

            tax_amount, total = calculate_invoice_totals(
                order.subtotal, order.tax_rate, invoice.discount_amount, invoice.shipping_amount
            )
            values = {
                **invoice.model_dump(),
                "tax_amount": tax_amount,
                "total_price": total,
                "invoice_confirmed": False,
                "invoice_confirmed_at": None,
                "updated_at": datetime.now(timezone.utc),
            }
            await uow.orders.update(order_id, values)
            await record_change(uow, ORDERS, "UPDATE", order_id)
            await uow.commit()

        logger.info(f"Счет {invoice.invoice_number} сохранен для заказа {order_id}")
        return order.model_copy(update=values)


class ConfirmInvoiceUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")

            now = datetime.now(timezone.utc)
            values = {"invoice_confirmed": True, "invoice_confirmed_at": now, "updated_at": now}
            await uow.orders.update(order_id, values)
            await record_change(uow, ORDERS, "UPDATE", order_id)
            await uow.commit()

        logger.info(f"Счет по заказу {order_id} подтвержден")
        return order.model_copy(update=values)
