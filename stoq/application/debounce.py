import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Одноразовый таймер: каждый trigger() сбрасывает ожидание, action выполняется один раз после паузы"""

    def __init__(self, delay: float, action: Callable[[], Awaitable[None]]):
        self._delay = delay
        self._action = action
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._run())

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()
        self._task = None

    async def flush(self) -> None:
        """Дождаться запланированного действия (для остановки и тестов)"""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        await asyncio.sleep(self._delay)
        try:
            await self._action()
        except Exception as e:
            logger.error(f"Ошибка отложенного действия: {e}", exc_info=True)
