import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from stoq.domain.models import (
    ApprovalStatus, Grade, InventoryItem, Order, OrderItem, OrderStatus, UserProfile
)

NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


def make_item(item_id="item-1", quantity=5, price="100.00", selling_price=None, name=None):
    return InventoryItem(
        id=item_id,
        device_name=name or f"iPhone 13 {item_id}",
        brand="Apple",
        grade=Grade.A,
        storage="128GB",
        quantity=quantity,
        price_per_unit=Decimal(price),
        selling_price=Decimal(selling_price) if selling_price is not None else None,
        created_at=NOW
    )


def make_order(user_id="user-1", lines=(), status=OrderStatus.PENDING, order_id=None, minutes_ago=0, **extra):
    created = NOW - timedelta(minutes=minutes_ago)
    items = [OrderItem(item=item, quantity=qty) for item, qty in lines]
    subtotal = sum((item.unit_price * qty for item, qty in lines), Decimal("0"))
    data = {
        "id": order_id or str(uuid.uuid4()),
        "user_id": user_id,
        "items": items,
        "subtotal": subtotal,
        "total_price": subtotal,
        "status": status,
        "created_at": created,
        "updated_at": created,
    }
    data.update(extra)
    return Order(**data)


def make_profile(user_id="user-1", status=ApprovalStatus.APPROVED, **extra):
    return UserProfile(
        id=f"profile-{user_id}",
        user_id=user_id,
        approval_status=status,
        created_at=NOW,
        updated_at=NOW,
        **extra
    )


# In-memory репозитории с тем же интерфейсом, что и SQLAlchemy-реализации

class FakeInventoryRepository:
    def __init__(self):
        self.items = {}

    async def get_by_id(self, item_id):
        return self.items.get(item_id)

    async def get_by_ids(self, item_ids):
        return [self.items[i] for i in item_ids if i in self.items]

    async def list_all(self):
        return list(self.items.values())

    async def fetch_page(self, filters, offset, limit):
        items = await self.list_filtered(filters)
        return items[offset:offset + limit], len(items)

    async def list_filtered(self, filters):
        items = list(self.items.values())
        if filters.get("search"):
            items = [i for i in items if filters["search"].lower() in i.device_name.lower()]
        if filters.get("brand"):
            items = [i for i in items if i.brand == filters["brand"]]
        return items

    async def create_many(self, items):
        for data in items:
            item = InventoryItem(id=data.get("id", str(uuid.uuid4())), **{k: v for k, v in data.items() if k != "id"})
            self.items[item.id] = item
        return len(items)

    async def update(self, item_id, values):
        self.items[item_id] = self.items[item_id].model_copy(update=values)

    async def set_quantity(self, item_id, quantity):
        await self.update(item_id, {"quantity": quantity})


class FakeOrderRepository:
    def __init__(self):
        self.orders = {}

    async def get_by_id(self, order_id):
        return self.orders.get(order_id)

    async def list_all(self):
        return sorted(self.orders.values(), key=lambda o: o.created_at, reverse=True)

    async def list_for_user(self, user_id):
        return [o for o in await self.list_all() if o.user_id == user_id]

    async def fetch_page(self, user_id, status, search, offset, limit):
        orders = await self.list_all()
        if user_id:
            orders = [o for o in orders if o.user_id == user_id]
        if status:
            orders = [o for o in orders if o.status == status]
        return orders[offset:offset + limit], len(orders)

    async def create(self, order):
        self.orders[order.id] = order

    async def update(self, order_id, values):
        self.orders[order_id] = self.orders[order_id].model_copy(update=values)


class FakeProfileRepository:
    def __init__(self):
        self.profiles = {}

    async def get_by_user_id(self, user_id):
        return self.profiles.get(user_id)

    async def create(self, profile):
        self.profiles[profile.user_id] = profile

    async def update(self, user_id, values):
        if user_id not in self.profiles:
            return None
        self.profiles[user_id] = self.profiles[user_id].model_copy(update=values)
        return self.profiles[user_id]


class FakeListRepository:
    def __init__(self):
        self.lists = {}

    async def load(self, user_id):
        return list(self.lists.get(user_id, []))

    async def save(self, user_id, items):
        self.lists[user_id] = list(items)


class FakeTaxRateRepository:
    def __init__(self):
        self.rates = {}
        self.types = {}

    async def get_rate(self, country, state, city=None):
        return self.rates.get((country, state, city))

    async def get_type(self, country, state):
        return self.types.get((country, state))


class FakeOutboxRepository:
    def __init__(self):
        self.events = []

    async def create(self, event_type, event_data, record_id):
        event_id = str(uuid.uuid4())
        self.events.append({
            "id": event_id, "event_type": event_type, "event_data": event_data,
            "record_id": record_id, "status": "pending"
        })
        return event_id

    async def get_pending(self, limit=10):
        return [e for e in self.events if e["status"] == "pending"][:limit]

    async def mark_as_published(self, event_id):
        for e in self.events:
            if e["id"] == event_id:
                e["status"] = "published"


class FakeUnitOfWork:
    def __init__(self):
        self.inventory = FakeInventoryRepository()
        self.orders = FakeOrderRepository()
        self.profiles = FakeProfileRepository()
        self.carts = FakeListRepository()
        self.wishlists = FakeListRepository()
        self.tax_rates = FakeTaxRateRepository()
        self.outbox = FakeOutboxRepository()
        self.commits = 0

    @asynccontextmanager
    async def __call__(self):
        yield self

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        pass

    def changes(self, table=None):
        return [
            e["event_data"] for e in self.outbox.events
            if table is None or e["event_data"]["table"] == table
        ]


@pytest.fixture
def uow():
    return FakeUnitOfWork()
