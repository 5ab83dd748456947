"""Broker backends that publish envelopes built from resource events."""

from .base import EVENT_TYPE_HEADER, RESOURCE_KIND_HEADER, Broker  # noqa: F401
from .config import KafkaConfig, PubSubConfig, TopicRouting  # noqa: F401
from .registry import BrokerRegistry, build_broker, default_registry  # noqa: F401
from .stdout import StdoutBroker  # noqa: F401

__all__ = [
    "EVENT_TYPE_HEADER",
    "RESOURCE_KIND_HEADER",
    "Broker",
    "BrokerRegistry",
    "KafkaConfig",
    "PubSubConfig",
    "StdoutBroker",
    "TopicRouting",
    "build_broker",
    "default_registry",
]
