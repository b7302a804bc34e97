from typing import Optional

from stoq.domain.models import Order, OrderStatus, Page
from stoq.domain.exceptions import OrderNotFoundError


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            return order


class ListOrdersUseCase:
    """Постраничный список заказов, новые сверху. user_id=None - все заказы (админ)"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(
        self,
        user_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        search: str = "",
        offset: int = 0,
        limit: int = 25,
    ) -> Page:
        async with self._uow() as uow:
            orders, count = await uow.orders.fetch_page(user_id, status, search.strip(), offset, limit)
            return Page(data=orders, count=count)
