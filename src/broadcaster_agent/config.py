"""YAML configuration loader for the broadcaster agent."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import yaml

from event_broadcaster import FLEET, GAME_SERVER, ResourceKind, resolve_kind

DEFAULT_SYNC_PERIOD = 15.0
DEFAULT_MAX_CONCURRENCY = 5

# Environment variables honoured for options missing from the file.  They are
# read once here so brokers never look at the environment themselves.
BROKER_ENV_FALLBACKS: Dict[str, Dict[str, str]] = {
    "pubsub": {
        "project_id": "PUBSUB_PROJECT_ID",
        "credentials_file": "PUBSUB_CREDENTIALS",
    },
    "kafka": {
        "bootstrap_servers": "KAFKA_SERVERS",
        "api_key": "KAFKA_APIKEY",
        "api_secret": "KAFKA_APISECRET",
    },
}

_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass
class BrokerSettings:
    type: str = "stdout"
    options: Dict[str, Any] = field(default_factory=dict)


def _default_watchers() -> List[ResourceKind]:
    return [FLEET, GAME_SERVER]


@dataclass
class AgentConfig:
    kubeconfig: Optional[str] = None
    sync_period: float = DEFAULT_SYNC_PERIOD
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    broker: BrokerSettings = field(default_factory=BrokerSettings)
    watchers: Sequence[ResourceKind] = field(default_factory=_default_watchers)


def parse_duration(value: Any) -> float:
    """Return ``value`` in seconds; accepts numbers or strings like ``15s``."""

    if isinstance(value, bool):
        raise ValueError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        match = _DURATION.match(str(value))
        if match is None:
            raise ValueError(f"invalid duration {value!r}")
        seconds = float(match.group(1)) * _UNITS[match.group(2) or "s"]
    if seconds <= 0:
        raise ValueError(f"duration must be positive, got {value!r}")
    return seconds


def _parse_broker(
    section: Any, environ: Mapping[str, str], broker_type: Optional[str]
) -> BrokerSettings:
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ValueError("'broker' section must be a mapping")

    options = section.get("options", {}) or {}
    if not isinstance(options, dict):
        raise ValueError("broker 'options' must be a mapping if provided")

    settings = BrokerSettings(
        type=str(broker_type or section.get("type") or "stdout"),
        options=dict(options),
    )
    for option, variable in BROKER_ENV_FALLBACKS.get(settings.type, {}).items():
        if not settings.options.get(option) and environ.get(variable):
            settings.options[option] = environ[variable]
    return settings


def _parse_watchers(entries: Iterable[Any]) -> List[ResourceKind]:
    watchers: List[ResourceKind] = []
    for entry in entries:
        if isinstance(entry, str):
            watchers.append(resolve_kind(entry))
            continue
        if not isinstance(entry, dict) or "kind" not in entry:
            raise ValueError("each watcher must be a kind name or a mapping with 'kind'")
        custom = [key for key in ("group", "version", "plural") if key in entry]
        if not custom:
            watchers.append(resolve_kind(str(entry["kind"])))
        elif len(custom) == 3:
            watchers.append(
                ResourceKind(
                    name=str(entry["kind"]),
                    group=str(entry["group"]),
                    version=str(entry["version"]),
                    plural=str(entry["plural"]),
                )
            )
        else:
            raise ValueError(
                f"watcher '{entry['kind']}' must set all of group, version and plural"
            )
    return watchers


def load_config(
    path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    broker_type: Optional[str] = None,
) -> AgentConfig:
    """Load the agent configuration, falling back to defaults.

    ``broker_type`` overrides the broker selected in the file before the
    environment fallbacks for that broker are applied.
    """

    if environ is None:
        environ = os.environ

    data: Any = {}
    if path is not None and Path(path).exists():
        try:
            data = yaml.safe_load(Path(path).read_text()) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Agent configuration must be a mapping")

    watchers_section = data.get("watchers")
    if watchers_section is None:
        watchers = _default_watchers()
    elif not isinstance(watchers_section, list):
        raise ValueError("'watchers' section must be a list")
    else:
        watchers = _parse_watchers(watchers_section)

    max_concurrency = int(data.get("max_concurrency", DEFAULT_MAX_CONCURRENCY))
    if max_concurrency < 1:
        raise ValueError("'max_concurrency' must be at least 1")

    return AgentConfig(
        kubeconfig=data.get("kubeconfig") or None,
        sync_period=parse_duration(data.get("sync_period", DEFAULT_SYNC_PERIOD)),
        max_concurrency=max_concurrency,
        broker=_parse_broker(data.get("broker"), environ, broker_type),
        watchers=watchers,
    )
