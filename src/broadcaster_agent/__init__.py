"""Broadcaster agent runtime helpers."""

from .config import AgentConfig, BrokerSettings, load_config  # noqa: F401

__all__ = [
    "AgentConfig",
    "BrokerSettings",
    "load_config",
]
