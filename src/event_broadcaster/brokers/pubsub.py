"""Google Cloud Pub/Sub broker."""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Dict

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import pubsub_v1
from google.oauth2 import service_account

from ..envelope import Envelope
from ..exceptions import ConfigurationError, DeliveryError
from .base import EVENT_TYPE_HEADER, Broker
from .config import PubSubConfig

LOG = logging.getLogger(__name__)


class PubSubBroker(Broker):
    """Publish envelopes to one Pub/Sub topic per event type.

    Envelope headers are copied to message attributes so subscribers can
    filter on ``event_type`` without decoding the payload.  The publisher
    client is thread-safe and batches internally.
    """

    def __init__(self, config: PubSubConfig) -> None:
        self._config = config
        credentials = None
        try:
            if config.credentials_file:
                credentials = service_account.Credentials.from_service_account_file(
                    config.credentials_file
                )
            self._client = pubsub_v1.PublisherClient(credentials=credentials)
        except (OSError, ValueError, auth_exceptions.GoogleAuthError) as exc:
            raise ConfigurationError(f"cannot create Pub/Sub publisher: {exc}") from exc
        self._topic_paths: Dict[str, str] = {}
        LOG.info("Pub/Sub broker configured for project %s", config.project_id)

    def _topic_path(self, topic: str) -> str:
        path = self._topic_paths.get(topic)
        if path is None:
            path = self._client.topic_path(self._config.project_id, topic)
            self._topic_paths[topic] = path
        return path

    def send_message(self, envelope: Envelope) -> None:
        topic = self._config.routing.topic_for(envelope.header(EVENT_TYPE_HEADER))
        payload = envelope.encode()
        topic_path = self._topic_path(topic)

        try:
            future = self._client.publish(topic_path, payload, **(envelope.headers or {}))
            message_id = future.result(timeout=self._config.publish_timeout)
        except concurrent.futures.TimeoutError as exc:
            raise DeliveryError(
                f"timed out after {self._config.publish_timeout}s publishing to {topic_path}"
            ) from exc
        except api_exceptions.GoogleAPIError as exc:
            raise DeliveryError(f"pubsub rejected message for {topic_path}: {exc}") from exc

        LOG.debug("Published envelope to %s (message_id=%s)", topic_path, message_id)

    def close(self) -> None:
        self._client.stop()
