"""Debug broker that writes encoded envelopes to the log."""

from __future__ import annotations

import logging

from ..envelope import Envelope
from .base import Broker

LOG = logging.getLogger(__name__)


class StdoutBroker(Broker):
    """Serialize each envelope and log it at INFO level.

    There is no transport, so the only failure mode is an
    :class:`~event_broadcaster.exceptions.EncodingError`.
    """

    def send_message(self, envelope: Envelope) -> None:
        output = envelope.encode()
        LOG.info("%s", output.decode("utf-8"))
