import logging
from pydantic import BaseModel
from datetime import datetime, timezone
from typing import Optional
import uuid

from stoq.application.changes import record_change
from stoq.application.state import CartStore, ORDERS
from stoq.application.tax import get_tax_info
from stoq.domain.models import Order, OrderItem, OrderStatus
from stoq.domain.exceptions import (
    EmptyOrderError, InsufficientStockError, MissingAddressError, OutOfStockError, ProfileNotApprovedError
)
from stoq.domain.pricing import calculate_subtotal, calculate_tax


logger = logging.getLogger(__name__)


class CreateOrderDTO(BaseModel):
    user_id: str
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None


class CreateOrderUseCase:
    """Оформление заказа из корзины пользователя"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_data: CreateOrderDTO) -> Order:
        logger.info(f"Оформление заказа для пользователя {order_data.user_id}")

        async with self._uow() as uow:
            stored = await uow.carts.load(order_data.user_id)
            if not stored:
                raise EmptyOrderError("Корзина пуста")

            # 1. Профиль должен быть одобрен
            profile = await uow.profiles.get_by_user_id(order_data.user_id)
            if not profile or not profile.can_place_orders():
                raise ProfileNotApprovedError("Профиль должен быть одобрен перед оформлением заказа")

            # 2. Адреса доставки и оплаты
            if not order_data.shipping_address or not order_data.billing_address:
                raise MissingAddressError("Укажите адреса доставки и оплаты")

            # 3. Актуальные остатки
            live = await uow.inventory.get_by_ids([s.item_id for s in stored])
            stock = {item.id: item for item in live}
            out_of_stock = [s.item_id for s in stored if s.item_id not in stock or stock[s.item_id].quantity == 0]
            if out_of_stock:
                names = [stock[i].device_name if i in stock else i for i in out_of_stock]
                raise OutOfStockError(names)
            for s in stored:
                item = stock[s.item_id]
                if item.quantity < s.quantity:
                    raise InsufficientStockError(item.quantity, s.quantity, item.device_name)

            cart = CartStore.from_stored(stored, live)
            lines = [OrderItem(item=e.item, quantity=e.quantity) for e in cart.entries]

            # 4. Расчет суммы
            tax_info = await get_tax_info(uow.tax_rates, profile)
            subtotal = calculate_subtotal(lines)
            tax_amount = calculate_tax(subtotal, tax_info.tax_rate)

            # 5. Создание заказа
            now = datetime.now(timezone.utc)
            order = Order(
                id=str(uuid.uuid4()),
                user_id=order_data.user_id,
                items=lines,
                subtotal=subtotal,
                tax_rate=tax_info.tax_rate or None,
                tax_amount=tax_amount if tax_amount > 0 else None,
                total_price=subtotal + tax_amount,
                status=OrderStatus.PENDING,
                shipping_address=order_data.shipping_address,
                billing_address=order_data.billing_address,
                created_at=now,
                updated_at=now
            )
            await uow.orders.create(order)
            await uow.carts.save(order_data.user_id, [])
            await record_change(uow, ORDERS, "INSERT", order.id)
            await uow.commit()

        logger.info(f"Заказ создан: {order.id}, сумма {order.total_price}")
        return order
