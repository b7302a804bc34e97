"""Состояние приложения: кэши склада и заказов, корзина, уведомления об изменениях.

Хранилища общие для всех обработчиков в процессе. Событие из ленты изменений
только инвалидирует кэш, данные перечитываются целиком.
"""
import inspect
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from stoq.application.debounce import Debouncer
from stoq.domain.availability import get_available_quantity_for_user
from stoq.domain.exceptions import InsufficientStockError, ItemNotFoundError
from stoq.domain.models import CartEntry, InventoryItem, Order, StoredCartItem
from stoq.domain.pricing import calculate_subtotal

logger = logging.getLogger(__name__)

INVENTORY = "inventory"
ORDERS = "orders"
USER_PROFILES = "user_profiles"
TABLES = (INVENTORY, ORDERS, USER_PROFILES)


class ChangeNotifier:
    """Observer для событий изменения таблиц"""

    def __init__(self):
        self._subscribers: dict[str, list[Callable]] = defaultdict(list)
        self.versions: dict[str, int] = {table: 0 for table in TABLES}

    def subscribe(self, table: str, callback: Callable) -> Callable[[], None]:
        self._subscribers[table].append(callback)

        def unsubscribe():
            if callback in self._subscribers[table]:
                self._subscribers[table].remove(callback)

        return unsubscribe

    async def notify(self, table: str) -> None:
        self.versions[table] = self.versions.get(table, 0) + 1
        for callback in list(self._subscribers[table]):
            result = callback()
            if inspect.isawaitable(result):
                await result


class _CachedStore:
    table: str = ""

    def __init__(
        self,
        loader: Callable[[], Awaitable[list]],
        notifier: Optional[ChangeNotifier] = None,
        debounce_seconds: float = 0.3,
    ):
        self._loader = loader
        self._items: list = []
        self.loaded = False
        self._debouncer = Debouncer(debounce_seconds, self.refresh)
        self._unsubscribe = notifier.subscribe(self.table, self.invalidate) if notifier else None

    async def refresh(self) -> None:
        try:
            self._items = await self._loader()
        except Exception as e:
            # Как и в клиенте: при ошибке чтения кэш пустой, а не исключение
            logger.error(f"Не удалось загрузить {self.table}: {e}")
            self._items = []
        self.loaded = True
        logger.info(f"Кэш {self.table} обновлен: {len(self._items)} записей")

    def invalidate(self) -> None:
        self._debouncer.trigger()

    async def ensure_loaded(self) -> None:
        if not self.loaded:
            await self.refresh()

    async def close(self) -> None:
        self._debouncer.cancel()
        if self._unsubscribe:
            self._unsubscribe()


class InventoryStore(_CachedStore):
    table = INVENTORY

    @property
    def items(self) -> list[InventoryItem]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[InventoryItem]:
        return next((item for item in self._items if item.id == item_id), None)


class OrdersStore(_CachedStore):
    table = ORDERS

    @property
    def orders(self) -> list[Order]:
        return sorted(self._items, key=lambda o: o.created_at, reverse=True)

    def for_user(self, user_id: str) -> list[Order]:
        return [order for order in self.orders if order.user_id == user_id]

    def get(self, order_id: str) -> Optional[Order]:
        return next((order for order in self._items if order.id == order_id), None)


class CartStore:
    """Корзина одного пользователя. Одна запись на товар, повторное добавление увеличивает количество"""

    def __init__(self, entries: Optional[list[CartEntry]] = None):
        self._entries: list[CartEntry] = list(entries or [])

    @classmethod
    def from_stored(cls, stored: list[StoredCartItem], inventory: list[InventoryItem]) -> "CartStore":
        # Товары, которых больше нет на складе, выпадают из корзины
        stock = {item.id: item for item in inventory}
        return cls([
            CartEntry(item=stock[s.item_id], quantity=s.quantity) for s in stored if s.item_id in stock
        ])

    @property
    def entries(self) -> list[CartEntry]:
        return list(self._entries)

    def to_stored(self) -> list[StoredCartItem]:
        return [StoredCartItem(item_id=e.item.id, quantity=e.quantity) for e in self._entries]

    def get(self, item_id: str) -> Optional[CartEntry]:
        return next((e for e in self._entries if e.item.id == item_id), None)

    def available_for(self, item: InventoryItem, user_id: Optional[str], orders: list[Order]) -> int:
        return get_available_quantity_for_user(item, user_id, orders, self._entries)

    def add(self, item: InventoryItem, quantity: int, user_id: Optional[str], orders: list[Order]) -> CartEntry:
        if quantity <= 0:
            raise ValueError("Количество должно быть больше нуля")
        available = self.available_for(item, user_id, orders)
        if quantity > available:
            raise InsufficientStockError(available, quantity, item.device_name)

        existing = self.get(item.id)
        if existing:
            updated = CartEntry(item=item, quantity=existing.quantity + quantity)
            self._entries = [updated if e.item.id == item.id else e for e in self._entries]
            return updated
        entry = CartEntry(item=item, quantity=quantity)
        self._entries.append(entry)
        return entry

    def update_quantity(self, item_id: str, quantity: int, user_id: Optional[str], orders: list[Order]) -> None:
        if quantity <= 0:
            self.remove(item_id)
            return
        entry = self.get(item_id)
        if not entry:
            raise ItemNotFoundError(f"Товар {item_id} не найден в корзине")
        # available уже учитывает текущее количество в корзине
        max_allowed = entry.quantity + self.available_for(entry.item, user_id, orders)
        if quantity > max_allowed:
            raise InsufficientStockError(max_allowed, quantity, entry.item.device_name)
        self._entries = [
            CartEntry(item=e.item, quantity=quantity) if e.item.id == item_id else e for e in self._entries
        ]

    def remove(self, item_id: str) -> None:
        self._entries = [e for e in self._entries if e.item.id != item_id]

    def clear(self) -> None:
        self._entries = []

    def total_items(self) -> int:
        return sum(e.quantity for e in self._entries)

    def unique_items(self) -> int:
        return len(self._entries)

    def subtotal(self) -> Decimal:
        return calculate_subtotal(self._entries)
