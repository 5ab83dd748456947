"""Relay Agones resource lifecycle events to message brokers.

Watchers observe resource kinds in the cluster and call back into a
:class:`~event_broadcaster.broadcaster.Broadcaster`.  The broadcaster turns
each notification into an :class:`~event_broadcaster.events.Event`, asks the
configured broker for an :class:`~event_broadcaster.envelope.Envelope` and
sends it.  Everything in this package is independent of the Kubernetes client
so it can be exercised with in-memory fakes.
"""

from .broadcaster import Broadcaster, BroadcasterState  # noqa: F401
from .envelope import Envelope  # noqa: F401
from .events import (  # noqa: F401
    Added,
    Deleted,
    Event,
    EventType,
    Updated,
    on_added,
    on_deleted,
    on_updated,
)
from .exceptions import (  # noqa: F401
    ConfigurationError,
    DeliveryError,
    EncodingError,
    EnvelopeBuildError,
    RelayError,
    WatchError,
)
from .resources import FLEET, GAME_SERVER, ResourceKind, resolve_kind  # noqa: F401
from .watch import EventHandler, WatchManager  # noqa: F401

__all__ = [
    "Added",
    "Broadcaster",
    "BroadcasterState",
    "ConfigurationError",
    "Deleted",
    "DeliveryError",
    "EncodingError",
    "Envelope",
    "EnvelopeBuildError",
    "Event",
    "EventHandler",
    "EventType",
    "FLEET",
    "GAME_SERVER",
    "RelayError",
    "ResourceKind",
    "Updated",
    "WatchError",
    "WatchManager",
    "on_added",
    "on_deleted",
    "on_updated",
    "resolve_kind",
]
