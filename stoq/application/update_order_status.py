import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel

from stoq.application.changes import record_change
from stoq.application.state import INVENTORY, ORDERS
from stoq.domain.availability import find_insufficient_stock
from stoq.domain.exceptions import InvalidStatusTransitionError, OrderNotFoundError, StockWarningError
from stoq.domain.models import Order, OrderStatus
from stoq.domain.pricing import apply_discount

logger = logging.getLogger(__name__)


class UpdateOrderStatusDTO(BaseModel):
    order_id: str
    status: OrderStatus
    rejection_reason: Optional[str] = None
    rejection_comment: Optional[str] = None
    discount_amount: Optional[Decimal] = None
    force: bool = False


class UpdateOrderStatusUseCase:
    """Решение администратора по заказу.

    При одобрении остаток сверяется с текущим складом. Если товара не хватает и
    force не задан, поднимается StockWarningError: администратор может одобрить
    все равно, отклонить или отменить действие. После одобрения остатки
    уменьшаются (не ниже нуля). Списание и смена статуса идут отдельными
    запросами, гонка между сессиями не исключена.
    """

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: UpdateOrderStatusDTO) -> Order:
        logger.info(f"Смена статуса заказа {dto.order_id} -> {dto.status.value}")

        async with self._uow() as uow:
            order = await uow.orders.get_by_id(dto.order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {dto.order_id} не найден")

            if not order.can_transition_to(dto.status):
                raise InvalidStatusTransitionError(order.status.value, dto.status.value)

            values = {"status": dto.status, "updated_at": datetime.now(timezone.utc)}

            if dto.status == OrderStatus.APPROVED:
                live = await uow.inventory.get_by_ids([line.item.id for line in order.items])
                short = find_insufficient_stock(order, live)
                if short and not dto.force:
                    logger.warning(f"Заказ {order.id}: недостаточно товара для {len(short)} позиций")
                    raise StockWarningError(short)

                stock = {item.id: item for item in live}
                for line in order.items:
                    item = stock.get(line.item.id)
                    if not item:
                        logger.warning(f"Товар {line.item.id} из заказа {order.id} отсутствует на складе")
                        continue
                    await uow.inventory.set_quantity(item.id, max(0, item.quantity - line.quantity))
                    await record_change(uow, INVENTORY, "UPDATE", item.id)

                if dto.discount_amount is not None:
                    values["discount_amount"] = dto.discount_amount
                    values["total_price"] = apply_discount(order.subtotal, order.tax_amount, dto.discount_amount)

            if dto.status == OrderStatus.REJECTED:
                values["rejection_reason"] = dto.rejection_reason or None
                values["rejection_comment"] = dto.rejection_comment or None
                values["discount_amount"] = Decimal("0")
            else:
                values["rejection_reason"] = None
                values["rejection_comment"] = None

            await uow.orders.update(order.id, values)
            await record_change(uow, ORDERS, "UPDATE", order.id)
            await uow.commit()

            logger.info(f"Заказ {order.id} отмечен {dto.status.value}")
            return order.model_copy(update=values)
