import json

import pytest

from event_broadcaster import EncodingError, Envelope


def test_headers_are_allocated_on_first_write():
    envelope = Envelope()
    assert envelope.headers is None

    envelope.add_header("event_type", "added")

    assert envelope.headers == {"event_type": "added"}


def test_add_header_last_value_wins():
    envelope = Envelope()

    envelope.add_header("event_type", "added")
    envelope.add_header("event_type", "deleted")

    assert envelope.headers == {"event_type": "deleted"}
    assert envelope.header("event_type") == "deleted"


def test_add_header_rejects_non_strings():
    envelope = Envelope()

    with pytest.raises(TypeError):
        envelope.add_header("retries", 3)


def test_header_lookup_without_headers():
    assert Envelope().header("event_type") is None
    assert Envelope().header("event_type", "unknown") == "unknown"


def test_encode_wire_shape():
    envelope = Envelope(message={"metadata": {"name": "fleet-a"}})
    envelope.add_header("event_type", "added")

    document = json.loads(envelope.encode())

    assert document == {
        "header": {"headers": {"event_type": "added"}},
        "message": {"metadata": {"name": "fleet-a"}},
    }


def test_encode_without_headers_emits_null_header():
    document = json.loads(Envelope(message="payload").encode())

    assert document == {"header": None, "message": "payload"}


def test_encode_decode_round_trip():
    envelope = Envelope(message={"OldObj": {"id": 1}, "NewObj": {"id": 1, "ready": True}})
    envelope.add_header("event_type", "updated")
    envelope.add_header("resource_kind", "GameServer")

    decoded = Envelope.decode(envelope.encode())

    assert decoded.headers == envelope.headers
    assert decoded.message == envelope.message


def test_encode_rejects_unserializable_message():
    envelope = Envelope(message={"handle": object()})

    with pytest.raises(EncodingError):
        envelope.encode()


@pytest.mark.parametrize(
    "data",
    [
        b"not json",
        b"[1, 2]",
        b'{"header": "oops", "message": null}',
        b'{"header": {"headers": {"event_type": 1}}, "message": null}',
    ],
)
def test_decode_rejects_malformed_documents(data):
    with pytest.raises(EncodingError):
        Envelope.decode(data)
