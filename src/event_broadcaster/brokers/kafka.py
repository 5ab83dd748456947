"""Kafka broker built on ``aiokafka``.

The producer is asynchronous while watch callbacks run on plain threads, so
the broker owns a private event loop running on a daemon thread.  Callbacks
submit sends to that loop and wait for the acknowledgement with a bounded
timeout.  The producer is only ever touched from its own loop, which makes
the broker safe to share across watchers.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from threading import Thread
from typing import Any, Coroutine, Dict, List, Tuple

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError
from aiokafka.helpers import create_ssl_context

from ..envelope import Envelope
from ..exceptions import DeliveryError
from .base import EVENT_TYPE_HEADER, Broker
from .config import KafkaConfig

LOG = logging.getLogger(__name__)


class KafkaBroker(Broker):
    """Publish envelopes to one Kafka topic per event type."""

    def __init__(self, config: KafkaConfig) -> None:
        self._config = config
        self._closed = False
        self._loop = asyncio.new_event_loop()
        self._thread = Thread(
            target=self._loop.run_forever, name="kafka-broker-loop", daemon=True
        )
        self._thread.start()
        try:
            self._producer = self._run(self._start_producer(), config.send_timeout)
        except (KafkaError, concurrent.futures.TimeoutError) as exc:
            self._stop_loop()
            raise DeliveryError(
                f"could not connect to kafka at {config.bootstrap_servers}: {exc}"
            ) from exc
        LOG.info("Kafka broker connected to %s", config.bootstrap_servers)

    def _producer_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "bootstrap_servers": self._config.bootstrap_servers,
            "acks": "all",
        }
        if self._config.api_key:
            options.update(
                security_protocol="SASL_SSL",
                sasl_mechanism="PLAIN",
                sasl_plain_username=self._config.api_key,
                sasl_plain_password=self._config.api_secret,
                ssl_context=create_ssl_context(),
            )
        return options

    async def _start_producer(self) -> AIOKafkaProducer:
        producer = AIOKafkaProducer(**self._producer_options())
        await producer.start()
        return producer

    def _run(self, coro: Coroutine[Any, Any, Any], timeout: float) -> Any:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise

    def send_message(self, envelope: Envelope) -> None:
        if self._closed:
            raise DeliveryError("kafka broker is closed")

        topic = self._config.routing.topic_for(envelope.header(EVENT_TYPE_HEADER))
        payload = envelope.encode()
        headers: List[Tuple[str, bytes]] = [
            (key, value.encode("utf-8")) for key, value in (envelope.headers or {}).items()
        ]

        try:
            metadata = self._run(
                self._producer.send_and_wait(topic, value=payload, headers=headers),
                self._config.send_timeout,
            )
        except concurrent.futures.TimeoutError as exc:
            raise DeliveryError(
                f"timed out after {self._config.send_timeout}s publishing to {topic}"
            ) from exc
        except KafkaError as exc:
            raise DeliveryError(f"kafka rejected message for {topic}: {exc}") from exc

        LOG.debug(
            "Published envelope to %s (partition=%s offset=%s)",
            topic,
            getattr(metadata, "partition", None),
            getattr(metadata, "offset", None),
        )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._run(self._producer.stop(), self._config.send_timeout)
        except (KafkaError, concurrent.futures.TimeoutError):
            LOG.warning("Kafka producer did not stop cleanly", exc_info=True)
        finally:
            self._stop_loop()

    def _stop_loop(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()
