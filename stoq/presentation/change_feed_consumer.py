import asyncio
import logging
import os
import socket

from stoq.application.process_changes import HandleChangeEventUseCase
from stoq.application.state import ChangeNotifier
from stoq.infrastructure.kafka_consumer import KafkaConsumerClient
from stoq.config import settings

logger = logging.getLogger(__name__)


def instance_group_id() -> str:
    # Каждый процесс API должен получить все события, поэтому своя группа
    return f"stoq-changes-{socket.gethostname()}-{os.getpid()}"


async def change_feed_consumer(notifier: ChangeNotifier, retry_delay: float = 10.0):
    """Слушает ленту изменений и инвалидирует кэши процесса"""
    handle_change = HandleChangeEventUseCase(notifier)

    while True:
        consumer = KafkaConsumerClient(settings.KAFKA_BOOTSTRAP_SERVERS, group_id=instance_group_id())
        try:
            await consumer.start()
            logger.info("Change feed consumer запущен")
            await consumer.consume(handle_change)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Ошибка в change feed consumer: {e}", exc_info=True)
        finally:
            await consumer.stop()

        await asyncio.sleep(retry_delay)
