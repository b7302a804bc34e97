import asyncio
import logging

from stoq.database import AsyncSessionLocal
from stoq.infrastructure.unit_of_work import UnitOfWork
from stoq.infrastructure.kafka_producer import KafkaProducerClient
from stoq.application.process_outbox import ProcessOutboxEventsUseCase
from stoq.config import settings

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

kafka_producer = KafkaProducerClient(settings.KAFKA_BOOTSTRAP_SERVERS)


async def outbox_worker():
    """Worker публикует события изменений из outbox в ленту"""
    logger.info("Outbox worker запущен")

    await kafka_producer.start()

    try:
        while True:
            try:
                uow = UnitOfWork(AsyncSessionLocal)
                use_case = ProcessOutboxEventsUseCase(unit_of_work=uow, change_publisher=kafka_producer)

                published = await use_case(limit=20)
                if published:
                    logger.info(f"Опубликовано {published} outbox events")

                await asyncio.sleep(1)

            except Exception as e:
                logger.error(f"Ошибка в outbox worker: {e}", exc_info=True)
                await asyncio.sleep(10)
    finally:
        await kafka_producer.stop()


async def main():
    await outbox_worker()


if __name__ == "__main__":
    asyncio.run(main())
