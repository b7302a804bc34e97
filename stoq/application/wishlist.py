import logging
from datetime import datetime, timezone

from stoq.application.interfaces import ListStore
from stoq.application.reconcile import reconcile_lists
from stoq.domain.models import InventoryItem, StoredWishlistItem
from stoq.domain.reconciliation import filter_wishlist_to_inventory, merge_wishlists

logger = logging.getLogger(__name__)


class ReconcileWishlistUseCase:
    def __init__(self, local_store: ListStore, remote_store: ListStore):
        self._local = local_store
        self._remote = remote_store

    async def __call__(self) -> list[StoredWishlistItem]:
        return await reconcile_lists(self._local, self._remote, merge_wishlists)


class GetWishlistUseCase:
    """Список желаний с актуальными данными склада. Отфильтрованный список не сохраняется"""

    def __init__(self, unit_of_work, inventory_store):
        self._uow = unit_of_work
        self._inventory = inventory_store

    async def __call__(self, user_id: str) -> list[InventoryItem]:
        async with self._uow() as uow:
            entries = await uow.wishlists.load(user_id)
        await self._inventory.ensure_loaded()
        return filter_wishlist_to_inventory(entries, self._inventory.items)


class AddToWishlistUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, item_id: str) -> list[StoredWishlistItem]:
        async with self._uow() as uow:
            entries = await uow.wishlists.load(user_id)
            if any(e.item_id == item_id for e in entries):
                return entries
            entries = [*entries, StoredWishlistItem(item_id=item_id, added_at=datetime.now(timezone.utc))]
            await uow.wishlists.save(user_id, entries)
            await uow.commit()

        logger.info(f"Товар {item_id} добавлен в список желаний {user_id}")
        return entries


class RemoveFromWishlistUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, item_id: str) -> list[StoredWishlistItem]:
        async with self._uow() as uow:
            entries = [e for e in await uow.wishlists.load(user_id) if e.item_id != item_id]
            await uow.wishlists.save(user_id, entries)
            await uow.commit()
            return entries
