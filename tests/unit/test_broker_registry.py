from unittest.mock import patch

import pytest

from event_broadcaster import ConfigurationError, DeliveryError, EventType
from event_broadcaster.brokers import (
    BrokerRegistry,
    KafkaConfig,
    PubSubConfig,
    StdoutBroker,
    TopicRouting,
    build_broker,
    default_registry,
)


def test_default_broker_is_stdout():
    assert isinstance(build_broker(None), StdoutBroker)
    assert isinstance(build_broker(""), StdoutBroker)
    assert isinstance(build_broker("debug"), StdoutBroker)


def test_default_registry_names():
    assert default_registry().names() == ["debug", "kafka", "pubsub", "stdout"]


def test_unknown_broker_is_a_configuration_error():
    with pytest.raises(ConfigurationError) as excinfo:
        build_broker("carrier-pigeon")

    assert "carrier-pigeon" in str(excinfo.value)


def test_registry_rejects_duplicate_registration():
    registry = BrokerRegistry()
    registry.register("stdout", lambda options: StdoutBroker())

    with pytest.raises(ValueError):
        registry.register("stdout", lambda options: StdoutBroker())


def test_registry_passes_options_to_builder():
    seen = {}

    def builder(options):
        seen.update(options)
        return StdoutBroker()

    registry = BrokerRegistry()
    registry.register("custom", builder)
    registry.build("custom", {"endpoint": "localhost"})

    assert seen == {"endpoint": "localhost"}


def test_kafka_builder_uses_config_from_options():
    with patch("event_broadcaster.brokers.kafka.KafkaBroker") as broker_cls:
        build_broker("kafka", {"bootstrap_servers": ["k1:9092", "k2:9092"]})

    config = broker_cls.call_args.args[0]
    assert config == KafkaConfig(bootstrap_servers="k1:9092,k2:9092")


def test_kafka_config_requires_servers():
    with pytest.raises(ConfigurationError):
        build_broker("kafka", {})


def test_pubsub_builder_uses_config_from_options():
    with patch("event_broadcaster.brokers.pubsub.PubSubBroker") as broker_cls:
        build_broker("pubsub", {"project_id": "games", "publish_timeout": "2.5"})

    config = broker_cls.call_args.args[0]
    assert config.project_id == "games"
    assert config.credentials_file is None
    assert config.publish_timeout == pytest.approx(2.5)


def test_pubsub_config_requires_project():
    with pytest.raises(ConfigurationError):
        PubSubConfig.from_mapping({"credentials_file": "/secrets/sa.json"})


def test_topic_routing_defaults():
    routing = TopicRouting()

    assert routing.topic_for("added") == "agones.events.added"
    assert routing.topic_for("updated") == "agones.events.updated"
    assert routing.topic_for("deleted") == "agones.events.deleted"


def test_topic_routing_overrides_and_errors():
    routing = TopicRouting.from_mapping({"Deleted": "gone"})

    assert routing.topics[EventType.DELETED] == "gone"
    assert routing.topic_for("added") == "agones.events.added"
    with pytest.raises(DeliveryError):
        routing.topic_for(None)
    with pytest.raises(DeliveryError):
        routing.topic_for("renamed")
    with pytest.raises(ConfigurationError):
        TopicRouting.from_mapping({"renamed": "topic"})


@pytest.mark.parametrize(
    "name, options",
    [
        ("kafka", {"bootstrap_servers": "kafka:9092", "send_timeout": "soon"}),
        ("kafka", {"bootstrap_servers": "kafka:9092", "send_timeout": 0}),
        ("pubsub", {"project_id": "games", "publish_timeout": [1]}),
    ],
)
def test_invalid_timeouts_are_configuration_errors(name, options):
    with pytest.raises(ConfigurationError) as excinfo:
        build_broker(name, options)

    assert "timeout" in str(excinfo.value)
