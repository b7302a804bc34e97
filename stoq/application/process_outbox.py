import logging
import json

from stoq.application.changes import CHANGE_EVENT

logger = logging.getLogger(__name__)


class ProcessOutboxEventsUseCase:
    def __init__(self, unit_of_work, change_publisher):
        self._uow = unit_of_work
        self._publisher = change_publisher

    async def __call__(self, limit: int = 20) -> int:
        """Публикует pending события из outbox. Возвращает количество опубликованных."""

        published = 0
        async with self._uow() as uow:
            pending = await uow.outbox.get_pending(limit=limit)

            for event in pending:
                try:
                    event_data = event["event_data"]
                    if isinstance(event_data, str):
                        event_data = json.loads(event_data)

                    if event["event_type"] != CHANGE_EVENT:
                        logger.warning(f"Неизвестный тип события {event['event_type']} ({event['id']})")
                        continue

                    success = await self._publisher.publish_change(
                        table=event_data["table"],
                        event=event_data["event"],
                        record_id=event_data["record_id"]
                    )
                    if success:
                        await uow.outbox.mark_as_published(event["id"])
                        published += 1
                    else:
                        logger.info(f"Событие {event['id']} не опубликовано, повтор в следующем цикле")
                except Exception as e:
                    logger.error(f"Ошибка обработки outbox event {event['id']}: {e}")

            await uow.commit()

        return published
