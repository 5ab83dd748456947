from __future__ import annotations

from typing import Any, Mapping, Optional


def resource_key(obj: Mapping[str, Any]) -> str:
    metadata = obj.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise ValueError("resource is missing metadata.name")
    namespace = metadata.get("namespace")
    if namespace:
        return f"{namespace}/{name}"
    return name


def resource_version(obj: Mapping[str, Any]) -> Optional[str]:
    return (obj.get("metadata") or {}).get("resourceVersion")
