"""Event primitives produced by the broadcaster for each watch callback.

Every callback maps to exactly one of three frozen payload variants.  The
variant decides the event type token, which travels on the wire as the
``event_type`` header and must stay stable across releases.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict


class EventType(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class Event(ABC):
    """Base class for the closed set of resource notifications."""

    TYPE: ClassVar[EventType]

    @property
    def kind(self) -> EventType:
        return self.TYPE

    def event_type(self) -> str:
        return self.TYPE.value

    @abstractmethod
    def content(self) -> Any:
        """Return the payload that ends up as the envelope message."""

    @abstractmethod
    def resource(self) -> Any:
        """Return the most recent snapshot of the affected resource."""


@dataclass(frozen=True)
class Added(Event):
    TYPE: ClassVar[EventType] = EventType.ADDED

    obj: Any

    def __post_init__(self) -> None:
        if self.obj is None:
            raise ValueError("added event requires a resource")

    def content(self) -> Any:
        return self.obj

    def resource(self) -> Any:
        return self.obj


@dataclass(frozen=True)
class Updated(Event):
    TYPE: ClassVar[EventType] = EventType.UPDATED

    old: Any
    new: Any

    def __post_init__(self) -> None:
        if self.old is None or self.new is None:
            raise ValueError("updated event requires both old and new resources")

    def content(self) -> Dict[str, Any]:
        # Key names are part of the published wire format.
        return {"OldObj": self.old, "NewObj": self.new}

    def resource(self) -> Any:
        return self.new


@dataclass(frozen=True)
class Deleted(Event):
    TYPE: ClassVar[EventType] = EventType.DELETED

    obj: Any

    def __post_init__(self) -> None:
        if self.obj is None:
            raise ValueError("deleted event requires a resource")

    def content(self) -> Any:
        return self.obj

    def resource(self) -> Any:
        return self.obj


def on_added(obj: Any) -> Added:
    return Added(obj)


def on_updated(old: Any, new: Any) -> Updated:
    return Updated(old, new)


def on_deleted(obj: Any) -> Deleted:
    return Deleted(obj)
