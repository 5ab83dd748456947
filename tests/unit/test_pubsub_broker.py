import json
from concurrent.futures import TimeoutError as FutureTimeoutError
from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as api_exceptions

from google.auth import exceptions as auth_exceptions

from event_broadcaster import ConfigurationError, DeliveryError, on_added, on_updated
from event_broadcaster.brokers import PubSubConfig
from event_broadcaster.brokers.pubsub import PubSubBroker


@pytest.fixture
def publisher():
    with patch("event_broadcaster.brokers.pubsub.pubsub_v1.PublisherClient") as client_cls:
        client = client_cls.return_value
        client.topic_path.side_effect = lambda project, topic: f"projects/{project}/topics/{topic}"
        client.publish.return_value.result.return_value = "msg-1"
        yield client_cls


def test_publish_sends_payload_and_attributes(publisher):
    broker = PubSubBroker(PubSubConfig(project_id="games"))
    event = on_updated({"id": 1, "state": "Ready"}, {"id": 1, "state": "Allocated"})

    broker.send_message(broker.build_envelope(event))

    publisher.assert_called_once_with(credentials=None)
    client = publisher.return_value
    args, kwargs = client.publish.call_args
    assert args[0] == "projects/games/topics/agones.events.updated"
    assert json.loads(args[1])["message"]["NewObj"] == {"id": 1, "state": "Allocated"}
    assert kwargs == {"event_type": "updated"}


def test_credentials_file_is_loaded(publisher):
    with patch(
        "event_broadcaster.brokers.pubsub.service_account.Credentials.from_service_account_file"
    ) as load:
        PubSubBroker(PubSubConfig(project_id="games", credentials_file="/secrets/sa.json"))

    load.assert_called_once_with("/secrets/sa.json")
    publisher.assert_called_once_with(credentials=load.return_value)


def test_api_errors_become_delivery_errors(publisher):
    broker = PubSubBroker(PubSubConfig(project_id="games"))
    publisher.return_value.publish.return_value.result.side_effect = api_exceptions.NotFound(
        "topic not found"
    )

    with pytest.raises(DeliveryError):
        broker.send_message(broker.build_envelope(on_added({"id": 1})))


def test_publish_timeout(publisher):
    broker = PubSubBroker(PubSubConfig(project_id="games", publish_timeout=0.5))
    future = MagicMock()
    future.result.side_effect = FutureTimeoutError()
    publisher.return_value.publish.return_value = future

    with pytest.raises(DeliveryError) as excinfo:
        broker.send_message(broker.build_envelope(on_added({"id": 1})))

    future.result.assert_called_once_with(timeout=0.5)
    assert "timed out" in str(excinfo.value)


def test_close_stops_the_client(publisher):
    broker = PubSubBroker(PubSubConfig(project_id="games"))

    broker.close()

    publisher.return_value.stop.assert_called_once_with()


def test_missing_credentials_file_is_a_configuration_error(tmp_path, publisher):
    config = PubSubConfig(project_id="games", credentials_file=str(tmp_path / "missing-sa.json"))

    with pytest.raises(ConfigurationError) as excinfo:
        PubSubBroker(config)

    assert "missing-sa.json" in str(excinfo.value)
    publisher.assert_not_called()


def test_missing_default_credentials_is_a_configuration_error(publisher):
    publisher.side_effect = auth_exceptions.DefaultCredentialsError("no credentials found")

    with pytest.raises(ConfigurationError) as excinfo:
        PubSubBroker(PubSubConfig(project_id="games"))

    assert "no credentials found" in str(excinfo.value)
