import logging

from stoq.application.state import TABLES, ChangeNotifier

logger = logging.getLogger(__name__)


class HandleChangeEventUseCase:
    """Событие ленты изменений - только сигнал перечитать таблицу, не diff"""

    def __init__(self, notifier: ChangeNotifier):
        self._notifier = notifier

    async def __call__(self, event_data: dict) -> bool:
        table = event_data.get("table")
        if table not in TABLES:
            logger.warning(f"Пропущено событие для неизвестной таблицы: {table}")
            return False

        logger.info(f"Изменение {table}: {event_data.get('event')} {event_data.get('record_id')}")
        await self._notifier.notify(table)
        return True
