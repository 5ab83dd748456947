"""Resource kinds the broadcaster knows how to watch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class ResourceKind:
    """A cluster-scoped custom resource type addressed by group/version/plural."""

    name: str
    group: str
    version: str
    plural: str

    def __str__(self) -> str:
        return f"{self.plural}.{self.group}/{self.version}"


FLEET = ResourceKind(name="Fleet", group="agones.dev", version="v1", plural="fleets")
GAME_SERVER = ResourceKind(
    name="GameServer", group="agones.dev", version="v1", plural="gameservers"
)

KNOWN_KINDS: Dict[str, ResourceKind] = {
    kind.name.lower(): kind for kind in (FLEET, GAME_SERVER)
}


def resolve_kind(name: str) -> ResourceKind:
    try:
        return KNOWN_KINDS[name.lower()]
    except KeyError:
        raise ValueError(
            f"unknown resource kind '{name}', expected one of {sorted(KNOWN_KINDS)}"
        ) from None
