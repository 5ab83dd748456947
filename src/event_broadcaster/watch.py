"""Contract between the broadcaster and the watch framework driving it."""

from __future__ import annotations

from abc import ABC, abstractmethod
from threading import Event
from typing import Any

from .resources import ResourceKind


class EventHandler(ABC):
    """Receives resource notifications from a watcher.

    Implementations must tolerate concurrent calls: watchers for different
    kinds dispatch from their own threads.
    """

    @abstractmethod
    def on_add(self, obj: Any) -> None:
        """React to ``obj`` appearing in the cluster."""

    @abstractmethod
    def on_update(self, old: Any, new: Any) -> None:
        """React to a change from ``old`` to ``new``."""

    @abstractmethod
    def on_delete(self, obj: Any) -> None:
        """React to ``obj`` being removed from the cluster."""


class WatchManager(ABC):
    """Owns the watchers and runs their event loops."""

    @abstractmethod
    def add_watcher(self, kind: ResourceKind, handler: EventHandler) -> Any:
        """Register an independent watcher for ``kind`` reporting to ``handler``."""

    @abstractmethod
    def start(self, stop_event: Event) -> None:
        """Run every watcher until ``stop_event`` is set.

        Raises :class:`~event_broadcaster.exceptions.WatchError` when a watcher
        fails in a way that cannot be recovered from.
        """
