from decimal import Decimal

import pytest

from stoq.application.get_order import GetOrderUseCase, ListOrdersUseCase
from stoq.application.invoice import ConfirmInvoiceUseCase, InvoiceDTO, UpdateInvoiceUseCase
from stoq.application.update_order_status import UpdateOrderStatusDTO, UpdateOrderStatusUseCase
from stoq.domain.exceptions import InvalidStatusTransitionError, OrderNotFoundError, StockWarningError
from stoq.domain.models import OrderStatus
from tests.conftest import make_item, make_order


@pytest.fixture
def order_uow(uow):
    a = make_item("A", quantity=5, price="100.00")
    b = make_item("B", quantity=1, price="50.00")
    uow.inventory.items.update({"A": a, "B": b})
    order = make_order(
        "u1", [(a, 2), (b, 1)], order_id="o1",
        tax_rate=Decimal("0.13"), tax_amount=Decimal("32.50"), total_price=Decimal("282.50")
    )
    uow.orders.orders["o1"] = order
    return uow


@pytest.mark.asyncio
async def test_approve_decrements_inventory(order_uow):
    order = await UpdateOrderStatusUseCase(order_uow)(UpdateOrderStatusDTO(order_id="o1", status=OrderStatus.APPROVED))

    assert order.status == OrderStatus.APPROVED
    assert order_uow.inventory.items["A"].quantity == 3
    assert order_uow.inventory.items["B"].quantity == 0
    assert {c["record_id"] for c in order_uow.changes("inventory")} == {"A", "B"}
    assert order_uow.orders.orders["o1"].status == OrderStatus.APPROVED


@pytest.mark.asyncio
async def test_approve_with_short_stock_raises_warning(order_uow):
    order_uow.inventory.items["A"] = make_item("A", quantity=1)

    with pytest.raises(StockWarningError) as exc:
        await UpdateOrderStatusUseCase(order_uow)(UpdateOrderStatusDTO(order_id="o1", status=OrderStatus.APPROVED))

    assert [(i.item_id, i.requested_qty, i.available_qty) for i in exc.value.items] == [("A", 2, 1)]
    assert order_uow.orders.orders["o1"].status == OrderStatus.PENDING
    assert order_uow.commits == 0


@pytest.mark.asyncio
async def test_forced_approval_floors_stock_at_zero(order_uow):
    order_uow.inventory.items["A"] = make_item("A", quantity=1)

    await UpdateOrderStatusUseCase(order_uow)(
        UpdateOrderStatusDTO(order_id="o1", status=OrderStatus.APPROVED, force=True)
    )

    assert order_uow.inventory.items["A"].quantity == 0


@pytest.mark.asyncio
async def test_approve_with_discount_recalculates_total(order_uow):
    order = await UpdateOrderStatusUseCase(order_uow)(
        UpdateOrderStatusDTO(order_id="o1", status=OrderStatus.APPROVED, discount_amount=Decimal("82.50"))
    )

    assert order.discount_amount == Decimal("82.50")
    assert order.total_price == Decimal("200.00")


@pytest.mark.asyncio
async def test_reject_stores_reason_and_keeps_stock(order_uow):
    order = await UpdateOrderStatusUseCase(order_uow)(UpdateOrderStatusDTO(
        order_id="o1", status=OrderStatus.REJECTED, rejection_reason="out_of_stock", rejection_comment="sorry"
    ))

    assert order.rejection_reason == "out_of_stock"
    assert order.rejection_comment == "sorry"
    assert order.discount_amount == Decimal("0")
    assert order_uow.inventory.items["A"].quantity == 5


@pytest.mark.asyncio
@pytest.mark.parametrize("start, target", [
    (OrderStatus.PENDING, OrderStatus.COMPLETED),
    (OrderStatus.REJECTED, OrderStatus.APPROVED),
    (OrderStatus.COMPLETED, OrderStatus.PENDING),
    (OrderStatus.APPROVED, OrderStatus.REJECTED),
])
async def test_invalid_transitions_rejected(order_uow, start, target):
    await order_uow.orders.update("o1", {"status": start})

    with pytest.raises(InvalidStatusTransitionError):
        await UpdateOrderStatusUseCase(order_uow)(UpdateOrderStatusDTO(order_id="o1", status=target))


@pytest.mark.asyncio
async def test_complete_approved_order(order_uow):
    await order_uow.orders.update("o1", {"status": OrderStatus.APPROVED})

    order = await UpdateOrderStatusUseCase(order_uow)(UpdateOrderStatusDTO(order_id="o1", status=OrderStatus.COMPLETED))

    assert order.status == OrderStatus.COMPLETED
    assert order_uow.inventory.items["A"].quantity == 5


@pytest.mark.asyncio
async def test_unknown_order_raises(uow):
    with pytest.raises(OrderNotFoundError):
        await UpdateOrderStatusUseCase(uow)(UpdateOrderStatusDTO(order_id="nope", status=OrderStatus.APPROVED))
    with pytest.raises(OrderNotFoundError):
        await GetOrderUseCase(uow)("nope")


@pytest.mark.asyncio
async def test_invoice_totals_and_confirmation(order_uow):
    invoice = InvoiceDTO(
        invoice_number="INV-001", invoice_date="2025-01-10", due_date="2025-02-10", payment_terms="EMT",
        discount_amount=Decimal("50.00"), shipping_amount=Decimal("25.00")
    )

    order = await UpdateInvoiceUseCase(order_uow)("o1", invoice)

    # (250 - 50 + 25) * 0.13 = 29.25
    assert order.tax_amount == Decimal("29.25")
    assert order.total_price == Decimal("254.25")
    assert order.invoice_confirmed is False

    confirmed = await ConfirmInvoiceUseCase(order_uow)("o1")
    assert confirmed.invoice_confirmed is True
    assert confirmed.invoice_confirmed_at is not None


@pytest.mark.asyncio
async def test_list_orders_newest_first_with_status_filter(uow):
    item = make_item("A")
    old = make_order("u1", [(item, 1)], order_id="old", minutes_ago=10)
    new = make_order("u1", [(item, 1)], order_id="new")
    done = make_order("u2", [(item, 1)], order_id="done", status=OrderStatus.COMPLETED)
    for o in (old, new, done):
        await uow.orders.create(o)

    page = await ListOrdersUseCase(uow)(status=OrderStatus.PENDING)

    assert [o.id for o in page.data] == ["new", "old"]
    assert page.count == 2
