"""Расчет доступного количества товара для пользователя.

Резерв держат только pending заказы пользователя: approved уже списан со
склада, rejected и completed ничего не держат. Проверка выполняется при
чтении, атомарной блокировки на запись нет.
"""
from typing import Iterable, Optional, Sequence

from stoq.domain.models import InventoryItem, InsufficientStockItem, Order, OrderStatus


def _item_id(line) -> Optional[str]:
    item = getattr(line, "item", None)
    return getattr(item, "id", None)


def get_reserved_quantity_in_pending_orders(item_id: str, user_id: str, orders: Iterable[Order]) -> int:
    reserved = 0
    for order in orders:
        if order.user_id != user_id or order.status != OrderStatus.PENDING:
            continue
        if not isinstance(order.items, list):
            continue
        for line in order.items:
            if _item_id(line) == item_id:
                reserved += getattr(line, "quantity", None) or 0
    return reserved


def get_quantity_in_cart(item_id: str, cart_items: Sequence) -> int:
    for entry in cart_items:
        if _item_id(entry) == item_id:
            return getattr(entry, "quantity", None) or 0
    return 0


def get_available_quantity_for_user(
    item: InventoryItem,
    user_id: Optional[str],
    orders: Iterable[Order],
    cart_items: Sequence,
) -> int:
    total = item.quantity or 0
    in_cart = get_quantity_in_cart(item.id, cart_items)

    # Анонимная сессия ограничена только своей корзиной
    if not user_id:
        return max(0, total - in_cart)

    reserved = get_reserved_quantity_in_pending_orders(item.id, user_id, orders)
    return max(0, total - reserved - in_cart)


def find_insufficient_stock(order: Order, inventory: Iterable[InventoryItem]) -> list[InsufficientStockItem]:
    """Позиции заказа, которых не хватает на складе прямо сейчас"""
    stock = {item.id: item for item in inventory}
    short = []
    for line in order.items:
        live = stock.get(line.item.id)
        available = (live.quantity or 0) if live else 0
        if line.quantity > available:
            short.append(
                InsufficientStockItem(
                    item_id=line.item.id,
                    device_name=line.item.device_name,
                    requested_qty=line.quantity,
                    available_qty=available,
                )
            )
    return short
