import uuid
from decimal import Decimal
from typing import Optional, List
from sqlalchemy import select, insert, update, delete, func, or_, cast, String
from sqlalchemy.ext.asyncio import AsyncSession

from stoq.domain.models import (
    InventoryItem, Order, OrderStatus, UserProfile, StoredCartItem, StoredWishlistItem
)
from stoq.infrastructure.db_schema import (
    inventory_tbl, orders_tbl, user_profiles_tbl, carts_tbl, wishlists_tbl, tax_rates_tbl, outbox_events_tbl
)
from stoq.application.interfaces import (
    InventoryRepository, OrderRepository, UserProfileRepository, CartRepository,
    WishlistRepository, TaxRateRepository, OutboxRepository
)

# Пороги статуса остатка, как в фильтре витрины
STOCK_STATUS_CONDITIONS = {
    "in-stock": lambda q: q > 10,
    "low-stock": lambda q: q.between(5, 10),
    "critical": lambda q: q.between(1, 4),
    "out-of-stock": lambda q: q == 0,
}


class SQLAlchemyInventoryRepository(InventoryRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, item_id: str) -> Optional[InventoryItem]:
        result = await self._session.execute(
            select(inventory_tbl).where(inventory_tbl.c.id == item_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_ids(self, item_ids: List[str]) -> List[InventoryItem]:
        if not item_ids:
            return []
        result = await self._session.execute(
            self._ordered(select(inventory_tbl).where(inventory_tbl.c.id.in_(item_ids)))
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def list_all(self) -> List[InventoryItem]:
        result = await self._session.execute(self._ordered(select(inventory_tbl)))
        return [self._to_domain(row) for row in result.fetchall()]

    async def fetch_page(self, filters: dict, offset: int, limit: int) -> tuple[List[InventoryItem], int]:
        conditions = self._conditions(filters)
        total = await self._session.execute(
            select(func.count()).select_from(inventory_tbl).where(*conditions)
        )
        result = await self._session.execute(
            self._ordered(select(inventory_tbl).where(*conditions)).offset(offset).limit(limit)
        )
        return [self._to_domain(row) for row in result.fetchall()], total.scalar_one()

    async def list_filtered(self, filters: dict) -> List[InventoryItem]:
        result = await self._session.execute(
            self._ordered(select(inventory_tbl).where(*self._conditions(filters)))
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def create_many(self, items: List[dict]) -> int:
        rows = [
            {"id": str(uuid.uuid4()), "last_updated": "Just now", "brand": "", **item}
            for item in items
        ]
        await self._session.execute(insert(inventory_tbl), rows)
        return len(rows)

    async def update(self, item_id: str, values: dict) -> None:
        stmt = update(inventory_tbl).where(inventory_tbl.c.id == item_id).values(**values)
        await self._session.execute(stmt)

    async def set_quantity(self, item_id: str, quantity: int) -> None:
        stmt = (
            update(inventory_tbl)
            .where(inventory_tbl.c.id == item_id)
            .values(quantity=quantity, last_updated="Just now")
        )
        await self._session.execute(stmt)

    @staticmethod
    def _ordered(stmt):
        # created_at совпадает у пачки загрузки, id держит порядок стабильным
        return stmt.order_by(inventory_tbl.c.created_at.asc(), inventory_tbl.c.id.asc())

    @staticmethod
    def _conditions(filters: dict) -> list:
        conditions = []
        if filters.get("search"):
            conditions.append(inventory_tbl.c.device_name.ilike(f"%{filters['search']}%"))
        for column in ("brand", "grade", "storage"):
            if filters.get(column):
                conditions.append(inventory_tbl.c[column] == filters[column])
        stock_status = filters.get("stock_status")
        if stock_status in STOCK_STATUS_CONDITIONS:
            conditions.append(STOCK_STATUS_CONDITIONS[stock_status](inventory_tbl.c.quantity))
        return conditions

    def _to_domain(self, row) -> InventoryItem:
        """Трансформация DB → Domain"""
        return InventoryItem(
            id=row.id,
            device_name=row.device_name,
            brand=row.brand or "",
            grade=row.grade,
            storage=row.storage,
            quantity=row.quantity or 0,
            price_per_unit=row.price_per_unit or Decimal("0"),
            selling_price=row.selling_price,
            price_change=row.price_change,
            last_updated=row.last_updated,
            created_at=row.created_at,
            updated_at=row.updated_at
        )


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def list_all(self) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl).order_by(orders_tbl.c.created_at.desc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def list_for_user(self, user_id: str) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl)
            .where(orders_tbl.c.user_id == user_id)
            .order_by(orders_tbl.c.created_at.desc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def fetch_page(
        self, user_id: Optional[str], status: Optional[OrderStatus], search: str, offset: int, limit: int
    ) -> tuple[List[Order], int]:
        conditions = []
        if user_id:
            conditions.append(orders_tbl.c.user_id == user_id)
        if status:
            conditions.append(orders_tbl.c.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(orders_tbl.c.id.ilike(pattern), cast(orders_tbl.c.status, String).ilike(pattern)))

        total = await self._session.execute(
            select(func.count()).select_from(orders_tbl).where(*conditions)
        )
        result = await self._session.execute(
            select(orders_tbl)
            .where(*conditions)
            .order_by(orders_tbl.c.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return [self._to_domain(row) for row in result.fetchall()], total.scalar_one()

    async def create(self, order: Order) -> None:
        values = order.model_dump(exclude={"items"})
        # items хранятся как JSON-снимок позиций склада на момент заказа
        values["items"] = [line.model_dump(mode="json") for line in order.items]
        await self._session.execute(insert(orders_tbl).values(**values))

    async def update(self, order_id: str, values: dict) -> None:
        stmt = update(orders_tbl).where(orders_tbl.c.id == order_id).values(**values)
        await self._session.execute(stmt)

    def _to_domain(self, row) -> Order:
        """Трансформация DB → Domain"""
        data = dict(row._mapping)
        data["items"] = data["items"] if isinstance(data["items"], list) else []
        data["status"] = OrderStatus(row.status)
        for key in ("subtotal", "discount_amount", "shipping_amount"):
            if data.get(key) is None:
                data[key] = Decimal("0")
        if data.get("discount_type") is None:
            data.pop("discount_type", None)
        data["invoice_confirmed"] = bool(data.get("invoice_confirmed"))
        return Order(**data)


class SQLAlchemyUserProfileRepository(UserProfileRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_user_id(self, user_id: str) -> Optional[UserProfile]:
        result = await self._session.execute(
            select(user_profiles_tbl).where(user_profiles_tbl.c.user_id == user_id)
        )
        row = result.fetchone()
        return UserProfile(**row._mapping) if row else None

    async def create(self, profile: UserProfile) -> None:
        await self._session.execute(insert(user_profiles_tbl).values(**profile.model_dump()))

    async def update(self, user_id: str, values: dict) -> Optional[UserProfile]:
        stmt = update(user_profiles_tbl).where(user_profiles_tbl.c.user_id == user_id).values(**values)
        await self._session.execute(stmt)
        return await self.get_by_user_id(user_id)


class SQLAlchemyCartRepository(CartRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def load(self, user_id: str) -> List[StoredCartItem]:
        result = await self._session.execute(
            select(carts_tbl).where(carts_tbl.c.user_id == user_id).order_by(carts_tbl.c.id.asc())
        )
        return [StoredCartItem(item_id=row.item_id, quantity=row.quantity) for row in result.fetchall()]

    async def save(self, user_id: str, items: List[StoredCartItem]) -> None:
        # Корзина перезаписывается целиком
        await self._session.execute(delete(carts_tbl).where(carts_tbl.c.user_id == user_id))
        if not items:
            return
        await self._session.execute(
            insert(carts_tbl),
            [{"user_id": user_id, "item_id": i.item_id, "quantity": i.quantity} for i in items]
        )


class SQLAlchemyWishlistRepository(WishlistRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def load(self, user_id: str) -> List[StoredWishlistItem]:
        result = await self._session.execute(
            select(wishlists_tbl)
            .where(wishlists_tbl.c.user_id == user_id)
            .order_by(wishlists_tbl.c.created_at.desc(), wishlists_tbl.c.id.desc())
        )
        return [StoredWishlistItem(item_id=row.item_id, added_at=row.created_at) for row in result.fetchall()]

    async def save(self, user_id: str, items: List[StoredWishlistItem]) -> None:
        await self._session.execute(delete(wishlists_tbl).where(wishlists_tbl.c.user_id == user_id))
        if not items:
            return
        rows = []
        for i in items:
            row = {"user_id": user_id, "item_id": i.item_id}
            if i.added_at is not None:
                row["created_at"] = i.added_at
            rows.append(row)
        for row in rows:
            await self._session.execute(insert(wishlists_tbl).values(**row))


class SQLAlchemyTaxRateRepository(TaxRateRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_rate(self, country: str, state: str, city: Optional[str] = None) -> Optional[Decimal]:
        city_condition = tax_rates_tbl.c.city == city if city else tax_rates_tbl.c.city.is_(None)
        result = await self._session.execute(
            select(tax_rates_tbl.c.tax_rate)
            .where(
                tax_rates_tbl.c.country == country,
                tax_rates_tbl.c.state_province == state,
                city_condition
            )
            .order_by(tax_rates_tbl.c.effective_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_type(self, country: str, state: str) -> Optional[str]:
        result = await self._session.execute(
            select(tax_rates_tbl.c.tax_type)
            .where(
                tax_rates_tbl.c.country == country,
                tax_rates_tbl.c.state_province == state,
                tax_rates_tbl.c.city.is_(None)
            )
            .order_by(tax_rates_tbl.c.effective_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


class SQLAlchemyOutboxRepository(OutboxRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, event_type: str, event_data: dict, record_id: str) -> str:
        event_id = str(uuid.uuid4())
        stmt = insert(outbox_events_tbl).values(
            id=event_id,
            event_type=event_type,
            event_data=event_data,  # SQLAlchemy JSON column сериализует автоматически
            record_id=record_id,
            status="pending"
        )
        await self._session.execute(stmt)
        return event_id

    async def get_pending(self, limit: int = 10) -> List[dict]:
        result = await self._session.execute(
            select(outbox_events_tbl)
            .where(outbox_events_tbl.c.status == "pending")
            .order_by(outbox_events_tbl.c.created_at.asc())
            .limit(limit)
        )
        rows = result.fetchall()

        return [
            {
                "id": row.id,
                "event_type": row.event_type,
                "event_data": row.event_data,
                "record_id": row.record_id
            }
            for row in rows
        ]

    async def mark_as_published(self, event_id: str) -> None:
        stmt = (
            update(outbox_events_tbl)
            .where(outbox_events_tbl.c.id == event_id)
            .values(status="published")
        )
        await self._session.execute(stmt)
