"""Abstract interface implemented by every broker backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping

from ..envelope import Envelope
from ..events import Event
from ..exceptions import EnvelopeBuildError

EVENT_TYPE_HEADER = "event_type"
RESOURCE_KIND_HEADER = "resource_kind"


class Broker(ABC):
    """Turns events into envelopes and transmits them to a backend.

    A single broker instance is shared by every watcher, so
    :meth:`send_message` may be called from several threads at once.
    Backends whose clients are not thread-safe must serialize internally.
    """

    def build_envelope(self, event: Event) -> Envelope:
        """Map ``event`` to an envelope without touching the backend."""

        if not isinstance(event, Event):
            raise EnvelopeBuildError(
                f"cannot build an envelope from {type(event).__name__}"
            )
        try:
            message = event.content()
            snapshot = event.resource()
        except NotImplementedError:
            raise EnvelopeBuildError(
                f"event {type(event).__name__} does not expose its content"
            ) from None

        envelope = Envelope()
        envelope.add_header(EVENT_TYPE_HEADER, event.event_type())
        if isinstance(snapshot, Mapping) and isinstance(snapshot.get("kind"), str):
            envelope.add_header(RESOURCE_KIND_HEADER, snapshot["kind"])
        envelope.message = message
        return envelope

    @abstractmethod
    def send_message(self, envelope: Envelope) -> None:
        """Transmit ``envelope``.

        Raises :class:`~event_broadcaster.exceptions.DeliveryError` on
        transport failure and
        :class:`~event_broadcaster.exceptions.EncodingError` when the
        envelope cannot be serialized.
        """

    def close(self) -> None:
        """Release any connection held by the backend."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
