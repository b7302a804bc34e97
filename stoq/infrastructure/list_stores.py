from typing import Optional

from stoq.application.interfaces import ListStore
from stoq.domain.models import StoredCartItem, StoredWishlistItem


class InMemoryListStore(ListStore):
    """Список, присланный клиентом из localStorage. После слияния держит итог для ответа"""

    def __init__(self, items: Optional[list] = None):
        self.items = list(items or [])

    async def load(self) -> list:
        return list(self.items)

    async def save(self, items: list) -> None:
        self.items = list(items)


class DatabaseWishlistStore(ListStore):
    def __init__(self, unit_of_work, user_id: str):
        self._uow = unit_of_work
        self._user_id = user_id

    async def load(self) -> list[StoredWishlistItem]:
        async with self._uow() as uow:
            return await uow.wishlists.load(self._user_id)

    async def save(self, items: list[StoredWishlistItem]) -> None:
        async with self._uow() as uow:
            await uow.wishlists.save(self._user_id, items)
            await uow.commit()


class DatabaseCartStore(ListStore):
    def __init__(self, unit_of_work, user_id: str):
        self._uow = unit_of_work
        self._user_id = user_id

    async def load(self) -> list[StoredCartItem]:
        async with self._uow() as uow:
            return await uow.carts.load(self._user_id)

    async def save(self, items: list[StoredCartItem]) -> None:
        async with self._uow() as uow:
            await uow.carts.save(self._user_id, items)
            await uow.commit()
