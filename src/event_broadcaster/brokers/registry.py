"""Broker selection resolved once at startup."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..exceptions import ConfigurationError
from .base import Broker
from .config import KafkaConfig, PubSubConfig
from .stdout import StdoutBroker

LOG = logging.getLogger(__name__)

DEFAULT_BROKER = "stdout"

BrokerBuilder = Callable[[Mapping[str, Any]], Broker]


class BrokerRegistry:
    """Map broker selection tokens to builders."""

    def __init__(self) -> None:
        self._builders: Dict[str, BrokerBuilder] = {}

    def register(self, name: str, builder: BrokerBuilder) -> None:
        if name in self._builders:
            raise ValueError(f"broker '{name}' already registered")
        self._builders[name] = builder

    def names(self) -> List[str]:
        return sorted(self._builders)

    def build(self, name: Optional[str], options: Optional[Mapping[str, Any]] = None) -> Broker:
        name = name or DEFAULT_BROKER
        builder = self._builders.get(name)
        if builder is None:
            raise ConfigurationError(
                f"unsupported broker '{name}', expected one of {self.names()}"
            )
        broker = builder(options or {})
        LOG.info("Using %s broker", name)
        return broker


def _build_stdout(options: Mapping[str, Any]) -> Broker:
    return StdoutBroker()


# Backend modules import their SDKs, so they are loaded only when selected.
def _build_kafka(options: Mapping[str, Any]) -> Broker:
    from .kafka import KafkaBroker

    return KafkaBroker(KafkaConfig.from_mapping(options))


def _build_pubsub(options: Mapping[str, Any]) -> Broker:
    from .pubsub import PubSubBroker

    return PubSubBroker(PubSubConfig.from_mapping(options))


def default_registry() -> BrokerRegistry:
    registry = BrokerRegistry()
    registry.register("stdout", _build_stdout)
    registry.register("debug", _build_stdout)
    registry.register("kafka", _build_kafka)
    registry.register("pubsub", _build_pubsub)
    return registry


def build_broker(name: Optional[str], options: Optional[Mapping[str, Any]] = None) -> Broker:
    return default_registry().build(name, options)
