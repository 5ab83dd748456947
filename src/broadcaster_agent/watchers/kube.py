"""Kubernetes watch manager driving the broadcaster callbacks.

Each registered resource kind gets a :class:`ResourceWatcher` thread that
alternates between a full list (the resync) and a watch stream bounded by the
sync period.  The list is diffed against the watcher's cache so changes missed
while the stream was down still surface as Add, Update or Delete callbacks.
"""

from __future__ import annotations

import logging
from threading import BoundedSemaphore, Event, Lock, Thread
from typing import Any, Callable, Dict, List, Mapping, Optional

from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from event_broadcaster import EventHandler, ResourceKind, WatchError, WatchManager
from event_broadcaster.exceptions import RelayError

from .utils import resource_key, resource_version

LOG = logging.getLogger(__name__)

# Statuses that will not fix themselves by retrying.
FATAL_STATUS_CODES = frozenset({401, 403, 404})
GONE = 410


def load_kube_client(kubeconfig: Optional[str] = None) -> client.CustomObjectsApi:
    """Return a custom objects client for the configured cluster."""

    if kubeconfig:
        config.load_kube_config(config_file=kubeconfig)
    else:
        try:
            config.load_incluster_config()
        except ConfigException:
            config.load_kube_config()
    return client.CustomObjectsApi()


class ResourceWatcher(Thread):
    """List and watch one resource kind, reporting changes to a handler."""

    def __init__(
        self,
        api: client.CustomObjectsApi,
        kind: ResourceKind,
        handler: EventHandler,
        *,
        stop_event: Event,
        gate: BoundedSemaphore,
        sync_period: float = 15.0,
        retry_interval: float = 5.0,
        on_fatal: Optional[Callable[[WatchError], None]] = None,
    ) -> None:
        super().__init__(name=f"watch-{kind.plural}", daemon=True)
        self.kind = kind
        self._api = api
        self._handler = handler
        self._stop_event = stop_event
        self._gate = gate
        self._sync_period = sync_period
        self._retry_interval = retry_interval
        self._on_fatal = on_fatal
        self._cache: Dict[str, Mapping[str, Any]] = {}
        self._watch: Optional[watch.Watch] = None

    def run(self) -> None:
        LOG.info("Starting watcher for %s (sync period %ss)", self.kind, self._sync_period)
        while not self._stop_event.is_set():
            try:
                self.watch(self.sync())
            except ApiException as exc:
                if exc.status in FATAL_STATUS_CODES:
                    LOG.error("watcher for %s cannot continue: %s %s", self.kind, exc.status, exc.reason)
                    if self._on_fatal is not None:
                        self._on_fatal(
                            WatchError(f"watch for {self.kind} failed: {exc.status} {exc.reason}")
                        )
                    return
                if exc.status == GONE:
                    LOG.info("resource version for %s expired, relisting", self.kind)
                    continue
                LOG.warning("watch for %s failed with status %s: %s", self.kind, exc.status, exc.reason)
                self._stop_event.wait(self._retry_interval)
            except Exception:  # pragma: no cover - logged
                LOG.exception("watcher for %s encountered an error", self.kind)
                self._stop_event.wait(self._retry_interval)
        LOG.info("Stopping watcher for %s", self.kind)

    def stop(self) -> None:
        if self._watch is not None:
            self._watch.stop()

    def sync(self) -> Optional[str]:
        """Reconcile the cache with a full listing and return its resourceVersion."""

        listing = self._api.list_cluster_custom_object(
            self.kind.group, self.kind.version, self.kind.plural
        )
        desired = {resource_key(obj): obj for obj in listing.get("items", [])}

        for key, obj in desired.items():
            old = self._cache.get(key)
            if old is None:
                self._dispatch(self._handler.on_add, obj)
            elif resource_version(old) != resource_version(obj):
                self._dispatch(self._handler.on_update, old, obj)

        for key in set(self._cache) - set(desired):
            self._dispatch(self._handler.on_delete, self._cache[key])

        self._cache = desired
        return (listing.get("metadata") or {}).get("resourceVersion")

    def watch(self, version: Optional[str]) -> None:
        kwargs: Dict[str, Any] = {"timeout_seconds": max(1, int(self._sync_period))}
        if version:
            kwargs["resource_version"] = version

        self._watch = watch.Watch()
        try:
            for event in self._watch.stream(
                self._api.list_cluster_custom_object,
                self.kind.group,
                self.kind.version,
                self.kind.plural,
                **kwargs,
            ):
                if self._stop_event.is_set():
                    break
                self.handle_event(event)
        finally:
            self._watch.stop()

    def handle_event(self, event: Mapping[str, Any]) -> None:
        event_type = event.get("type")
        obj = event.get("object")

        if event_type == "ERROR":
            status = obj if isinstance(obj, Mapping) else {}
            raise ApiException(status=status.get("code"), reason=status.get("message"))
        if event_type == "BOOKMARK" or not isinstance(obj, Mapping):
            return

        key = resource_key(obj)
        if event_type in ("ADDED", "MODIFIED"):
            old = self._cache.get(key)
            self._cache[key] = obj
            if old is None:
                self._dispatch(self._handler.on_add, obj)
            elif resource_version(old) != resource_version(obj):
                self._dispatch(self._handler.on_update, old, obj)
        elif event_type == "DELETED":
            self._cache.pop(key, None)
            self._dispatch(self._handler.on_delete, obj)
        else:
            LOG.debug("ignoring %s event for %s", event_type, self.kind)

    def _dispatch(self, callback: Callable[..., None], *args: Any) -> None:
        with self._gate:
            try:
                callback(*args)
            except RelayError as exc:
                # Already logged by the broadcaster; the event is dropped.
                LOG.debug("%s event dropped for %s: %s", callback.__name__, self.kind, exc)
            except Exception:
                LOG.exception("%s handler failed for %s", callback.__name__, self.kind)


class KubernetesWatchManager(WatchManager):
    """Run one :class:`ResourceWatcher` per registration."""

    def __init__(
        self,
        api: client.CustomObjectsApi,
        *,
        sync_period: float = 15.0,
        max_concurrency: int = 5,
        retry_interval: float = 5.0,
        poll_interval: float = 1.0,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._api = api
        self._sync_period = sync_period
        self._retry_interval = retry_interval
        self._poll_interval = poll_interval
        self._gate = BoundedSemaphore(max_concurrency)
        self._halt = Event()
        self._lock = Lock()
        self._watchers: List[ResourceWatcher] = []
        self._fatal: Optional[WatchError] = None
        self._started = False

    @classmethod
    def from_kubeconfig(cls, kubeconfig: Optional[str] = None, **options: Any) -> "KubernetesWatchManager":
        return cls(load_kube_client(kubeconfig), **options)

    @property
    def watchers(self) -> List[ResourceWatcher]:
        return list(self._watchers)

    def add_watcher(self, kind: ResourceKind, handler: EventHandler) -> ResourceWatcher:
        if self._started:
            raise RuntimeError("cannot add watchers after the manager started")
        watcher = ResourceWatcher(
            self._api,
            kind,
            handler,
            stop_event=self._halt,
            gate=self._gate,
            sync_period=self._sync_period,
            retry_interval=self._retry_interval,
            on_fatal=self._report_fatal,
        )
        self._watchers.append(watcher)
        return watcher

    def _report_fatal(self, error: WatchError) -> None:
        with self._lock:
            if self._fatal is None:
                self._fatal = error
        self._halt.set()

    def start(self, stop_event: Event) -> None:
        if self._started:
            raise RuntimeError("watch manager can only be started once")
        self._started = True

        if not self._watchers:
            LOG.warning("no watchers registered; manager will idle")
        for watcher in self._watchers:
            watcher.start()

        try:
            while not stop_event.is_set() and not self._halt.is_set():
                stop_event.wait(self._poll_interval)
        finally:
            self._halt.set()
            for watcher in self._watchers:
                watcher.stop()
            # In-flight callbacks finish before the watchers exit.
            for watcher in self._watchers:
                watcher.join(timeout=self._sync_period + self._retry_interval)

        if self._fatal is not None:
            raise self._fatal
        LOG.info("watch manager stopped")
