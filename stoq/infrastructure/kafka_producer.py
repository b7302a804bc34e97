import json
import logging
from aiokafka import AIOKafkaProducer

from stoq.application.interfaces import ChangePublisher

logger = logging.getLogger(__name__)

CHANGES_TOPIC = "stoq.changes"


class KafkaProducerClient(ChangePublisher):
    def __init__(self, bootstrap_servers: str, topic: str = CHANGES_TOPIC):
        self._bootstrap_servers = bootstrap_servers
        self._producer: AIOKafkaProducer | None = None
        self._topic = topic

    async def start(self):
        if not self._producer:
            self._producer = AIOKafkaProducer(
                bootstrap_servers=self._bootstrap_servers
            )
            await self._producer.start()
            logger.info("Kafka producer started")

    async def stop(self):
        if self._producer:
            await self._producer.stop()
            self._producer = None
            logger.info("Kafka producer stopped")

    async def publish_change(self, table: str, event: str, record_id: str) -> bool:
        if not self._producer:
            logger.error("Kafka producer not started")
            return False

        try:
            message = {"table": table, "event": event, "record_id": record_id}

            await self._producer.send_and_wait(
                topic=self._topic,
                key=table.encode(),
                value=json.dumps(message).encode()
            )
            logger.info(f"Published {event} {table}/{record_id}")
            return True

        except Exception as e:
            logger.error(f"Failed to publish change {table}/{record_id}: {e}")
            return False
