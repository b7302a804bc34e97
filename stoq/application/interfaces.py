from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, List

from stoq.domain.models import (
    InventoryItem, Order, OrderStatus, UserProfile, StoredCartItem, StoredWishlistItem
)


class InventoryRepository(ABC):
    @abstractmethod
    async def get_by_id(self, item_id: str) -> Optional[InventoryItem]:
        pass

    @abstractmethod
    async def get_by_ids(self, item_ids: List[str]) -> List[InventoryItem]:
        pass

    @abstractmethod
    async def list_all(self) -> List[InventoryItem]:
        pass

    @abstractmethod
    async def fetch_page(self, filters: dict, offset: int, limit: int) -> tuple[List[InventoryItem], int]:
        pass

    @abstractmethod
    async def list_filtered(self, filters: dict) -> List[InventoryItem]:
        pass

    @abstractmethod
    async def create_many(self, items: List[dict]) -> int:
        pass

    @abstractmethod
    async def update(self, item_id: str, values: dict) -> None:
        pass

    @abstractmethod
    async def set_quantity(self, item_id: str, quantity: int) -> None:
        pass


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def list_all(self) -> List[Order]:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Order]:
        pass

    @abstractmethod
    async def fetch_page(
        self, user_id: Optional[str], status: Optional[OrderStatus], search: str, offset: int, limit: int
    ) -> tuple[List[Order], int]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def update(self, order_id: str, values: dict) -> None:
        pass


class UserProfileRepository(ABC):
    @abstractmethod
    async def get_by_user_id(self, user_id: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    async def create(self, profile: UserProfile) -> None:
        pass

    @abstractmethod
    async def update(self, user_id: str, values: dict) -> Optional[UserProfile]:
        pass


class CartRepository(ABC):
    @abstractmethod
    async def load(self, user_id: str) -> List[StoredCartItem]:
        pass

    @abstractmethod
    async def save(self, user_id: str, items: List[StoredCartItem]) -> None:
        pass


class WishlistRepository(ABC):
    @abstractmethod
    async def load(self, user_id: str) -> List[StoredWishlistItem]:
        pass

    @abstractmethod
    async def save(self, user_id: str, items: List[StoredWishlistItem]) -> None:
        pass


class TaxRateRepository(ABC):
    @abstractmethod
    async def get_rate(self, country: str, state: str, city: Optional[str] = None) -> Optional[Decimal]:
        """Ставка в процентах или None"""
        pass

    @abstractmethod
    async def get_type(self, country: str, state: str) -> Optional[str]:
        pass


class OutboxRepository(ABC):
    @abstractmethod
    async def create(self, event_type: str, event_data: dict, record_id: str) -> str:
        pass

    @abstractmethod
    async def get_pending(self, limit: int = 10) -> List[dict]:
        pass

    @abstractmethod
    async def mark_as_published(self, event_id: str) -> None:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def inventory(self) -> InventoryRepository:
        pass

    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @property
    @abstractmethod
    def profiles(self) -> UserProfileRepository:
        pass

    @property
    @abstractmethod
    def carts(self) -> CartRepository:
        pass

    @property
    @abstractmethod
    def wishlists(self) -> WishlistRepository:
        pass

    @property
    @abstractmethod
    def tax_rates(self) -> TaxRateRepository:
        pass

    @property
    @abstractmethod
    def outbox(self) -> OutboxRepository:
        pass

    @abstractmethod
    async def __call__(self):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class ListStore(ABC):
    """Хранилище списка (localStorage клиента или таблица в БД)"""

    @abstractmethod
    async def load(self) -> list:
        pass

    @abstractmethod
    async def save(self, items: list) -> None:
        pass


class AuthAdminService(ABC):
    @abstractmethod
    async def get_user_email(self, user_id: str) -> Optional[str]:
        pass


class ChangePublisher(ABC):
    @abstractmethod
    async def publish_change(self, table: str, event: str, record_id: str) -> bool:
        pass
