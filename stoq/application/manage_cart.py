import logging
from functools import partial
from typing import Optional

from stoq.application.interfaces import ListStore
from stoq.application.reconcile import reconcile_lists
from stoq.application.state import CartStore
from stoq.domain.availability import get_available_quantity_for_user
from stoq.domain.exceptions import ItemNotFoundError
from stoq.domain.reconciliation import merge_carts

logger = logging.getLogger(__name__)


class _CartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def _load(self, uow, user_id: str):
        stored = await uow.carts.load(user_id)
        items = await uow.inventory.get_by_ids([s.item_id for s in stored])
        orders = await uow.orders.list_for_user(user_id)
        return CartStore.from_stored(stored, items), orders


class GetCartUseCase(_CartUseCase):
    async def __call__(self, user_id: str) -> CartStore:
        async with self._uow() as uow:
            cart, _ = await self._load(uow, user_id)
            return cart


class AddToCartUseCase(_CartUseCase):
    async def __call__(self, user_id: str, item_id: str, quantity: int) -> CartStore:
        async with self._uow() as uow:
            item = await uow.inventory.get_by_id(item_id)
            if not item:
                raise ItemNotFoundError(f"Товар {item_id} не найден")

            cart, orders = await self._load(uow, user_id)
            cart.add(item, quantity, user_id, orders)
            await uow.carts.save(user_id, cart.to_stored())
            await uow.commit()

        logger.info(f"В корзину {user_id} добавлено {quantity} x {item_id}")
        return cart


class UpdateCartItemUseCase(_CartUseCase):
    async def __call__(self, user_id: str, item_id: str, quantity: int) -> CartStore:
        async with self._uow() as uow:
            cart, orders = await self._load(uow, user_id)
            cart.update_quantity(item_id, quantity, user_id, orders)
            await uow.carts.save(user_id, cart.to_stored())
            await uow.commit()
            return cart


class RemoveFromCartUseCase(_CartUseCase):
    async def __call__(self, user_id: str, item_id: str) -> CartStore:
        async with self._uow() as uow:
            cart, _ = await self._load(uow, user_id)
            cart.remove(item_id)
            await uow.carts.save(user_id, cart.to_stored())
            await uow.commit()
            return cart


class ClearCartUseCase(_CartUseCase):
    async def __call__(self, user_id: str) -> None:
        async with self._uow() as uow:
            await uow.carts.save(user_id, [])
            await uow.commit()


class ReconcileCartUseCase:
    """Слияние гостевой корзины с сохраненной. Сумма по товару не больше остатка за вычетом резерва"""

    def __init__(self, local_store: ListStore, remote_store: ListStore, unit_of_work=None, user_id: Optional[str] = None):
        self._local = local_store
        self._remote = remote_store
        self._uow = unit_of_work
        self._user_id = user_id

    async def __call__(self) -> list:
        limits = await self._load_limits()
        return await reconcile_lists(self._local, self._remote, partial(merge_carts, limits=limits))

    async def _load_limits(self) -> Optional[dict[str, int]]:
        if self._uow is None or not self._user_id:
            return None
        try:
            local = await self._local.load()
            async with self._uow() as uow:
                items = await uow.inventory.get_by_ids([entry.item_id for entry in local])
                orders = await uow.orders.list_for_user(self._user_id)
        except Exception as e:
            logger.warning(f"Не удалось получить остатки для слияния корзины {self._user_id}: {e}")
            return None
        # Корзина еще не собрана, поэтому учитываем только резерв в pending заказах
        return {item.id: get_available_quantity_for_user(item, self._user_id, orders, []) for item in items}
