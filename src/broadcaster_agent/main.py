"""Entry point for the Agones event broadcaster."""

from __future__ import annotations

import argparse
import dataclasses
import functools
import logging
import signal
import sys
from pathlib import Path
from threading import Event

from event_broadcaster import Broadcaster, RelayError
from event_broadcaster.brokers import build_broker

from .config import load_config, parse_duration
from .watchers import KubernetesWatchManager

LOG = logging.getLogger(__name__)

DEFAULT_CONFIG = Path.home() / ".agones-event-broadcaster.yaml"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agones-event-broadcaster",
        description="Broadcast events from Agones resources to a message broker",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to the broadcaster configuration file",
    )
    parser.add_argument("--kubeconfig", help="Path to a kubeconfig file")
    parser.add_argument(
        "--broker",
        help="The type of the broker to be used by the broadcaster (stdout, kafka, pubsub)",
    )
    parser.add_argument(
        "--sync-period",
        type=parse_duration,
        help="Minimum frequency at which watched resources are relisted, e.g. 15s",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        help="Maximum number of callbacks dispatched concurrently",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    try:
        config = load_config(args.config, broker_type=args.broker)
    except ValueError as exc:
        LOG.error("invalid configuration in %s: %s", args.config, exc)
        return 1

    overrides = {
        "kubeconfig": args.kubeconfig,
        "sync_period": args.sync_period,
        "max_concurrency": args.max_concurrency,
    }
    config = dataclasses.replace(
        config, **{key: value for key, value in overrides.items() if value is not None}
    )

    try:
        broker = build_broker(config.broker.type, config.broker.options)
    except RelayError as exc:
        LOG.error("error creating broker: %s", exc)
        return 1

    stop_event = Event()

    def _shutdown(signum, frame):  # pragma: no cover - signal handler
        LOG.info("received signal %s, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    manager_factory = functools.partial(
        KubernetesWatchManager.from_kubeconfig,
        config.kubeconfig,
        sync_period=config.sync_period,
        max_concurrency=config.max_concurrency,
    )

    try:
        broadcaster = Broadcaster.create(manager_factory, broker)
        for kind in config.watchers:
            broadcaster.with_watcher_for(kind)
        broadcaster.build()
        broadcaster.start(stop_event)
    except RelayError as exc:
        LOG.error("broadcaster failed: %s", exc)
        return 1
    finally:
        broker.close()

    LOG.info("agones event broadcaster stopped")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
