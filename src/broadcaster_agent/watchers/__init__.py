"""Watcher implementations used by the broadcaster agent."""

from .kube import KubernetesWatchManager, ResourceWatcher, load_kube_client  # noqa: F401

__all__ = ["KubernetesWatchManager", "ResourceWatcher", "load_kube_client"]
