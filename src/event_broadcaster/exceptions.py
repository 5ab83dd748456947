"""Error taxonomy for the relay core."""

from __future__ import annotations

from typing import Iterable, List


class RelayError(Exception):
    """Base class for every error raised by the broadcaster."""


class ConfigurationError(RelayError):
    """One or more startup requirements are not satisfied.

    All violations are collected so operators can fix them in a single pass
    instead of discovering them one restart at a time.
    """

    def __init__(self, errors: Iterable[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors))


class EnvelopeBuildError(RelayError):
    """An event could not be mapped to an envelope."""


class EncodingError(RelayError):
    """An envelope could not be serialized or deserialized."""


class DeliveryError(RelayError):
    """The broker backend failed to transmit an envelope."""


class WatchError(RelayError):
    """The watch framework hit an unrecoverable error."""
