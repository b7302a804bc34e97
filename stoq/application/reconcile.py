import logging
from typing import Callable

from stoq.application.interfaces import ListStore

logger = logging.getLogger(__name__)


async def reconcile_lists(local_store: ListStore, remote_store: ListStore, merge: Callable) -> list:
    """Слияние локального и удаленного списков при входе.

    Результат пишется в оба хранилища, поэтому повторное слияние ничего не
    меняет. Любая ошибка хранилища возвращает локальный список: чтение не
    должно падать.
    """
    try:
        local = await local_store.load()
    except Exception as e:
        logger.warning(f"Не удалось прочитать локальный список: {e}")
        local = []

    try:
        remote = await remote_store.load()
        merged = merge(local, remote)
        await local_store.save(merged)
        await remote_store.save(merged)
    except Exception as e:
        logger.warning(f"Ошибка слияния, используется локальный список: {e}")
        return local

    logger.info(f"Слияние выполнено: локально {len(local)}, в БД {len(remote)}, итого {len(merged)}")
    return merged
