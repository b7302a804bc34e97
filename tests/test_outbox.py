from unittest.mock import AsyncMock

import pytest

from stoq.application.changes import CHANGE_EVENT, record_change
from stoq.application.process_outbox import ProcessOutboxEventsUseCase


@pytest.mark.asyncio
async def test_record_change_validates_table_and_event(uow):
    with pytest.raises(ValueError):
        await record_change(uow, "payments", "INSERT", "1")
    with pytest.raises(ValueError):
        await record_change(uow, "orders", "UPSERT", "1")

    await record_change(uow, "orders", "INSERT", "o1")

    assert uow.outbox.events[0]["event_type"] == CHANGE_EVENT


@pytest.mark.asyncio
async def test_outbox_publishes_and_marks_events(uow):
    await record_change(uow, "inventory", "UPDATE", "A")
    await record_change(uow, "orders", "INSERT", "o1")
    publisher = AsyncMock()
    publisher.publish_change.return_value = True

    published = await ProcessOutboxEventsUseCase(uow, publisher)(limit=10)

    assert published == 2
    publisher.publish_change.assert_any_await(table="inventory", event="UPDATE", record_id="A")
    assert await uow.outbox.get_pending() == []


@pytest.mark.asyncio
async def test_failed_publish_stays_pending(uow):
    await record_change(uow, "orders", "INSERT", "o1")
    publisher = AsyncMock()
    publisher.publish_change.return_value = False

    published = await ProcessOutboxEventsUseCase(uow, publisher)()

    assert published == 0
    assert len(await uow.outbox.get_pending()) == 1


@pytest.mark.asyncio
async def test_unknown_event_type_skipped(uow):
    await uow.outbox.create("order.paid", {"order_id": "o1"}, "o1")
    publisher = AsyncMock()

    published = await ProcessOutboxEventsUseCase(uow, publisher)()

    assert published == 0
    publisher.publish_change.assert_not_awaited()
