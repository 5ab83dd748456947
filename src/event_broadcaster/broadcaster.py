"""Broadcaster wiring watch callbacks to broker publication.

The broadcaster receives Add, Update and Delete notifications from the
watchers registered on its :class:`~event_broadcaster.watch.WatchManager`,
turns them into events and publishes them through a single
:class:`~event_broadcaster.brokers.Broker`.  Delivery is best effort: a
failed publish is logged and reported back to the watcher, which moves on to
the next notification.
"""

from __future__ import annotations

import logging
from enum import Enum
from threading import Event
from typing import Any, Callable, List, Optional

from .brokers import Broker
from .events import Event as ResourceEvent
from .events import on_added, on_deleted, on_updated
from .exceptions import ConfigurationError, RelayError, WatchError
from .resources import ResourceKind
from .watch import EventHandler, WatchManager

LOG = logging.getLogger(__name__)


class BroadcasterState(Enum):
    UNCONFIGURED = "unconfigured"
    BUILDING = "building"
    READY = "ready"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


_BUILD_STATES = (BroadcasterState.UNCONFIGURED, BroadcasterState.BUILDING)


class Broadcaster(EventHandler):
    """Publish resource events coming from the watch framework."""

    def __init__(
        self,
        manager: Optional[WatchManager],
        broker: Optional[Broker],
    ) -> None:
        self._manager = manager
        self._broker = broker
        self._watchers: List[Any] = []
        self._errors: List[str] = []
        # Without a manager there is nothing to build on.
        self._state = (
            BroadcasterState.BUILDING if manager is not None else BroadcasterState.UNCONFIGURED
        )

    @classmethod
    def create(
        cls,
        manager_factory: Callable[[], WatchManager],
        broker: Optional[Broker],
    ) -> "Broadcaster":
        """Create the watch manager and a broadcaster around it.

        A manager that cannot be created leaves the broadcaster without one;
        the failure is reported by :meth:`build` along with any other
        violation.
        """

        try:
            manager = manager_factory()
        except Exception as exc:
            LOG.error("error creating watch manager: %s", exc)
            broadcaster = cls(None, broker)
            broadcaster._errors.append(f"error creating watch manager: {exc}")
            return broadcaster
        return cls(manager, broker)

    @property
    def state(self) -> BroadcasterState:
        return self._state

    @property
    def broker(self) -> Optional[Broker]:
        return self._broker

    @property
    def watchers(self) -> List[Any]:
        return list(self._watchers)

    # ------------------------------------------------------------------
    # Build phase
    # ------------------------------------------------------------------
    def with_watcher_for(self, kind: ResourceKind) -> "Broadcaster":
        """Register a watcher reporting ``kind`` events to this broadcaster.

        Every call adds an independent watcher, even for a kind that is
        already registered.
        """

        if self._state not in _BUILD_STATES:
            raise RuntimeError(
                f"cannot add watchers to a broadcaster in state '{self._state.value}'"
            )
        if self._manager is None:
            self._errors.append(f"can't watch {kind} without a manager")
            return self

        try:
            watcher = self._manager.add_watcher(kind, self)
        except (RelayError, ValueError) as exc:
            LOG.error("error creating watcher for %s: %s", kind, exc)
            self._errors.append(f"error creating watcher for {kind}: {exc}")
            return self

        self._watchers.append(watcher)
        LOG.debug("Registered watcher for %s", kind)
        return self

    def build(self) -> "Broadcaster":
        """Check the broadcaster can run, reporting every violation at once."""

        if self._state not in _BUILD_STATES:
            raise RuntimeError(f"broadcaster already built (state '{self._state.value}')")

        errors = list(self._errors)
        if self._manager is None:
            errors.append("broadcaster requires a manager to operate")
        if not self._watchers:
            errors.append(
                "can't build a broadcaster without watchers, "
                "use with_watcher_for to add one"
            )
        if errors:
            raise ConfigurationError(errors)

        if self._broker is None:
            LOG.warning("broadcaster built without a broker, events will not be published")
        self._state = BroadcasterState.READY
        return self

    # ------------------------------------------------------------------
    # Run phase
    # ------------------------------------------------------------------
    def start(self, stop_event: Event) -> None:
        """Run the watchers until ``stop_event`` is set.

        Blocks the calling thread.  Raises
        :class:`~event_broadcaster.exceptions.WatchError` when the watch
        framework fails.
        """

        if self._state is not BroadcasterState.READY:
            raise ConfigurationError(
                f"broadcaster must be built before starting (state '{self._state.value}')"
            )

        LOG.info("starting broadcaster with %d watcher(s)", len(self._watchers))
        self._state = BroadcasterState.RUNNING
        try:
            self._manager.start(stop_event)
        except WatchError:
            self._state = BroadcasterState.FAILED
            LOG.error("broadcaster stopped after a fatal watch error")
            raise
        self._state = BroadcasterState.STOPPED
        LOG.info("broadcaster stopped")

    # ------------------------------------------------------------------
    # Watch callbacks
    # ------------------------------------------------------------------
    def on_add(self, obj: Any) -> None:
        self.publish(on_added(obj))

    def on_update(self, old: Any, new: Any) -> None:
        self.publish(on_updated(old, new))

    def on_delete(self, obj: Any) -> None:
        self.publish(on_deleted(obj))

    def publish(self, event: ResourceEvent) -> None:
        """Wrap ``event`` in an envelope and send it through the broker."""

        if self._broker is None:
            LOG.warning("broker is not available for the broadcaster, message will not be published")
            return
        try:
            envelope = self._broker.build_envelope(event)
        except RelayError as exc:
            LOG.error("error building envelope: %s", exc)
            raise

        try:
            self._broker.send_message(envelope)
        except RelayError as exc:
            LOG.error("error sending %s envelope: %s", event.event_type(), exc)
            raise
