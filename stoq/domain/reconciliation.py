from itertools import chain
from typing import Iterable, Mapping, Optional

from stoq.domain.models import InventoryItem, StoredCartItem, StoredWishlistItem


def _first_occurrence(entries: Iterable) -> dict:
    # Повторный id пропускается, остается первая запись
    merged: dict = {}
    for entry in entries:
        if entry.item_id not in merged:
            merged[entry.item_id] = entry
    return merged


def merge_wishlists(local: Iterable[StoredWishlistItem], remote: Iterable[StoredWishlistItem]) -> list[StoredWishlistItem]:
    """Объединение по item_id: локальные записи первыми, при повторе побеждает первое появление"""
    return list(_first_occurrence(chain(local, remote)).values())


def merge_carts(
    local: Iterable[StoredCartItem],
    remote: Iterable[StoredCartItem],
    limits: Optional[Mapping[str, int]] = None,
) -> list[StoredCartItem]:
    """Количества одного товара из двух корзин складываются.

    limits - сколько единиц товара пользователь может держать в корзине;
    сумма обрезается до него, товар с нулевым лимитом выпадает.
    """
    quantities = {item_id: entry.quantity for item_id, entry in _first_occurrence(local).items()}
    for item_id, entry in _first_occurrence(remote).items():
        quantities[item_id] = quantities.get(item_id, 0) + entry.quantity

    merged = []
    for item_id, quantity in quantities.items():
        if limits is not None and item_id in limits:
            quantity = min(quantity, limits[item_id])
        if quantity > 0:
            merged.append(StoredCartItem(item_id=item_id, quantity=quantity))
    return merged


def filter_wishlist_to_inventory(
    entries: Iterable[StoredWishlistItem], inventory: Iterable[InventoryItem]
) -> list[InventoryItem]:
    """Актуальные позиции склада для списка желаний; исчезнувшие товары скрываются"""
    stock = {item.id: item for item in inventory}
    return [stock[entry.item_id] for entry in entries if entry.item_id in stock]
