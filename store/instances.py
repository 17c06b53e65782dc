"""
store/instances.py
In-memory registry of honeypot container instances and their port mappings.

The store is created once by the caller and passed explicitly to the API
factory; there is no module-level instance.

Layering: api reads through this. store does NOT import core or api.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

from utils.constants import DEFAULT_TARGET
from utils.logger import get_logger

log = get_logger("probegate.store")


class InstanceNotFoundError(KeyError):
    """Raised when an instance id is not registered."""


@dataclass(frozen=True)
class ContainerInstance:
    id:             int
    name:           str
    container_name: str = ""
    honeypot_ip:    str = ""
    port_mappings:  Dict[str, str] = field(default_factory=dict)  # container → host

    @property
    def target(self) -> str:
        """Address to scan: the recorded honeypot IP, else the local host."""
        return self.honeypot_ip or DEFAULT_TARGET

    def port_spec(self) -> str:
        """Comma-joined host ports, e.g. ``"2222,8080"``."""
        return ",".join(str(p).strip() for p in self.port_mappings.values())


class InstanceStore:
    """Thread-safe in-memory instance store."""

    def __init__(self, instances: Optional[Iterable[Mapping[str, Any]]] = None):
        self._lock = threading.Lock()
        self._items: Dict[int, ContainerInstance] = {}
        self._next_id = 1
        for record in instances or ():
            self.add(
                name=record.get("name", ""),
                container_name=record.get("container_name", ""),
                honeypot_ip=record.get("honeypot_ip", ""),
                port_mappings=record.get("port_mappings") or {},
            )

    # ── Registry ──────────────────────────────────────────────────────────────

    def add(self, name: str, container_name: str = "", honeypot_ip: str = "",
            port_mappings: Optional[Mapping[Any, Any]] = None) -> ContainerInstance:
        mappings = {str(k): str(v) for k, v in (port_mappings or {}).items()}
        with self._lock:
            inst = ContainerInstance(
                id=self._next_id,
                name=name,
                container_name=container_name or name,
                honeypot_ip=honeypot_ip or "",
                port_mappings=mappings,
            )
            self._items[inst.id] = inst
            self._next_id += 1
        log.debug(f"Registered instance #{inst.id} {inst.container_name} {mappings}")
        return inst

    def get(self, instance_id: int) -> ContainerInstance:
        with self._lock:
            try:
                return self._items[instance_id]
            except KeyError:
                raise InstanceNotFoundError(instance_id) from None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
