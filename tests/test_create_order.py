from decimal import Decimal

import pytest

from stoq.application.create_order import CreateOrderDTO, CreateOrderUseCase
from stoq.domain.exceptions import (
    EmptyOrderError, InsufficientStockError, MissingAddressError, OutOfStockError, ProfileNotApprovedError
)
from stoq.domain.models import ApprovalStatus, OrderStatus, StoredCartItem
from tests.conftest import make_item, make_profile

DTO = CreateOrderDTO(user_id="u1", shipping_address="1 King St", billing_address="1 King St")


@pytest.fixture
def ready_uow(uow):
    uow.inventory.items["A"] = make_item("A", quantity=5, price="100.00")
    uow.inventory.items["B"] = make_item("B", quantity=2, price="49.99")
    uow.carts.lists["u1"] = [StoredCartItem(item_id="A", quantity=2), StoredCartItem(item_id="B", quantity=1)]
    uow.profiles.profiles["u1"] = make_profile(
        "u1", business_country="Canada", business_state="Ontario", business_city="Toronto"
    )
    uow.tax_rates.rates[("Canada", "Ontario", None)] = Decimal("13")
    return uow


@pytest.mark.asyncio
async def test_checkout_creates_pending_order_and_clears_cart(ready_uow):
    order = await CreateOrderUseCase(ready_uow)(DTO)

    assert order.status == OrderStatus.PENDING
    assert order.subtotal == Decimal("249.99")
    assert order.tax_amount == Decimal("32.50")
    assert order.total_price == Decimal("282.49")
    assert ready_uow.orders.orders[order.id] == order
    assert ready_uow.carts.lists["u1"] == []
    assert ready_uow.changes("orders") == [{"table": "orders", "event": "INSERT", "record_id": order.id}]
    assert ready_uow.commits == 1


@pytest.mark.asyncio
async def test_city_rate_preferred_over_state_rate(ready_uow):
    ready_uow.tax_rates.rates[("Canada", "Ontario", "Toronto")] = Decimal("10")

    order = await CreateOrderUseCase(ready_uow)(DTO)

    assert order.tax_rate == Decimal("0.1")


@pytest.mark.asyncio
async def test_no_tax_without_business_location(ready_uow):
    ready_uow.profiles.profiles["u1"] = make_profile("u1")

    order = await CreateOrderUseCase(ready_uow)(DTO)

    assert order.tax_amount is None
    assert order.total_price == order.subtotal


@pytest.mark.asyncio
async def test_empty_cart_rejected(ready_uow):
    ready_uow.carts.lists["u1"] = []

    with pytest.raises(EmptyOrderError):
        await CreateOrderUseCase(ready_uow)(DTO)


@pytest.mark.asyncio
async def test_unapproved_profile_rejected(ready_uow):
    ready_uow.profiles.profiles["u1"] = make_profile("u1", status=ApprovalStatus.PENDING)

    with pytest.raises(ProfileNotApprovedError):
        await CreateOrderUseCase(ready_uow)(DTO)

    assert ready_uow.orders.orders == {}


@pytest.mark.asyncio
async def test_missing_address_rejected(ready_uow):
    with pytest.raises(MissingAddressError):
        await CreateOrderUseCase(ready_uow)(CreateOrderDTO(user_id="u1", shipping_address="1 King St"))


@pytest.mark.asyncio
async def test_out_of_stock_item_rejected(ready_uow):
    ready_uow.inventory.items["B"] = make_item("B", quantity=0, name="Pixel 7")

    with pytest.raises(OutOfStockError) as exc:
        await CreateOrderUseCase(ready_uow)(DTO)

    assert exc.value.item_names == ["Pixel 7"]
    assert ready_uow.carts.lists["u1"] != []
    assert ready_uow.commits == 0


@pytest.mark.asyncio
async def test_insufficient_live_stock_rejected(ready_uow):
    ready_uow.inventory.items["A"] = make_item("A", quantity=1)

    with pytest.raises(InsufficientStockError):
        await CreateOrderUseCase(ready_uow)(DTO)

    assert ready_uow.orders.orders == {}
