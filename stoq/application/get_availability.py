from typing import Optional, Sequence

from stoq.application.state import CartStore
from stoq.domain.availability import get_available_quantity_for_user
from stoq.domain.exceptions import ItemNotFoundError
from stoq.domain.models import StoredCartItem


class GetAvailabilityUseCase:
    """Сколько единиц товара пользователь еще может добавить в корзину.

    Склад и заказы берутся из общих кэшей, которые обновляются по ленте
    изменений. Корзина гостя приходит от клиента.
    """

    def __init__(self, unit_of_work, inventory_store, orders_store):
        self._uow = unit_of_work
        self._inventory = inventory_store
        self._orders = orders_store

    async def __call__(
        self, item_id: str, user_id: Optional[str] = None, guest_cart: Sequence[StoredCartItem] = ()
    ) -> int:
        await self._inventory.ensure_loaded()
        item = self._inventory.get(item_id)
        if not item:
            raise ItemNotFoundError(f"Товар {item_id} не найден")

        if not user_id:
            cart = CartStore.from_stored(list(guest_cart), self._inventory.items)
            return get_available_quantity_for_user(item, None, [], cart.entries)

        await self._orders.ensure_loaded()
        async with self._uow() as uow:
            stored = await uow.carts.load(user_id)
        cart = CartStore.from_stored(stored, self._inventory.items)
        return get_available_quantity_for_user(item, user_id, self._orders.for_user(user_id), cart.entries)
