from stoq.application.state import TABLES

CHANGE_EVENT = "table.changed"
CHANGE_KINDS = ("INSERT", "UPDATE", "DELETE")


async def record_change(uow, table: str, event: str, record_id: str) -> str:
    """Кладет событие изменения строки в outbox той же транзакцией"""
    if table not in TABLES:
        raise ValueError(f"Неизвестная таблица: {table}")
    if event not in CHANGE_KINDS:
        raise ValueError(f"Неизвестный тип изменения: {event}")
    return await uow.outbox.create(
        event_type=CHANGE_EVENT,
        event_data={"table": table, "event": event, "record_id": record_id},
        record_id=record_id,
    )
