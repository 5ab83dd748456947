"""Configuration records for the external broker backends.

Each backend receives one of these records at construction time.  They are
built once from the ``broker.options`` section of the agent configuration and
never consult the process environment afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..events import EventType
from ..exceptions import ConfigurationError, DeliveryError

DEFAULT_TOPIC_PREFIX = "agones.events"


def _default_topics() -> Dict[EventType, str]:
    return {etype: f"{DEFAULT_TOPIC_PREFIX}.{etype.value}" for etype in EventType}


def _seconds(options: Mapping[str, Any], key: str, default: float = 10.0) -> float:
    value = options.get(key, default)
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"broker '{key}' must be a number of seconds, got {value!r}") from None
    if seconds <= 0:
        raise ConfigurationError(f"broker '{key}' must be positive, got {value!r}")
    return seconds


@dataclass(frozen=True)
class TopicRouting:
    """Map each event type to the topic it is published on."""

    topics: Mapping[EventType, str] = field(default_factory=_default_topics)

    def topic_for(self, event_type: Optional[str]) -> str:
        if event_type is None:
            raise DeliveryError("envelope has no event_type header, cannot route it")
        try:
            return self.topics[EventType(event_type)]
        except (KeyError, ValueError):
            raise DeliveryError(
                f"no topic configured for event type '{event_type}'"
            ) from None

    @classmethod
    def from_mapping(cls, entries: Optional[Mapping[str, Any]]) -> "TopicRouting":
        topics = _default_topics()
        if not entries:
            return cls(topics)
        if not isinstance(entries, Mapping):
            raise ConfigurationError("broker 'topics' must be a mapping")
        for name, topic in entries.items():
            try:
                etype = EventType(str(name).lower())
            except ValueError:
                raise ConfigurationError(
                    f"unknown event type '{name}' in broker topics"
                ) from None
            topics[etype] = str(topic)
        return cls(topics)


@dataclass(frozen=True)
class KafkaConfig:
    bootstrap_servers: str
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    routing: TopicRouting = field(default_factory=TopicRouting)
    send_timeout: float = 10.0

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "KafkaConfig":
        servers = options.get("bootstrap_servers")
        if not servers:
            raise ConfigurationError("kafka broker requires 'bootstrap_servers'")
        if isinstance(servers, (list, tuple)):
            servers = ",".join(str(s) for s in servers)
        return cls(
            bootstrap_servers=str(servers),
            api_key=options.get("api_key") or None,
            api_secret=options.get("api_secret") or None,
            routing=TopicRouting.from_mapping(options.get("topics")),
            send_timeout=_seconds(options, "send_timeout"),
        )


@dataclass(frozen=True)
class PubSubConfig:
    project_id: str
    credentials_file: Optional[str] = None
    routing: TopicRouting = field(default_factory=TopicRouting)
    publish_timeout: float = 10.0

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "PubSubConfig":
        project_id = options.get("project_id")
        if not project_id:
            raise ConfigurationError("pubsub broker requires 'project_id'")
        return cls(
            project_id=str(project_id),
            # Without a credentials file the client uses the service account
            # attached to the node.
            credentials_file=options.get("credentials_file") or None,
            routing=TopicRouting.from_mapping(options.get("topics")),
            publish_timeout=_seconds(options, "publish_timeout"),
        )
