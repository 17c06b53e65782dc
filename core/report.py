"""
core/report.py
Per-port results and the final scan report.

PortResult objects are produced by the prober, one per scheduled port.
aggregate() turns the collected results into a ScanReport once the
dispatcher's barrier has returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Sequence, Tuple

from utils.constants import PortState, Protocol


class ScanInvariantError(RuntimeError):
    """A scan produced a different number of results than ports scheduled."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def rfc3339(ts: datetime) -> str:
    return ts.isoformat()


# ─── Data Classes ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PortResult:
    host:        str
    port:        int
    protocol:    Protocol
    status:      PortState
    service:     str = ""
    banner:      str = ""
    started_at:  datetime = field(default_factory=utc_now)
    duration_ms: int = 0

    @property
    def is_open(self) -> bool:
        return self.status == PortState.OPEN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip":          self.host,
            "port":        self.port,
            "protocol":    self.protocol.value,
            "status":      self.status.value,
            "service":     self.service,
            "banner":      self.banner,
            "scan_time":   rfc3339(self.started_at),
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class ScanReport:
    target:     str
    protocol:   Protocol
    total_ports: int
    open_ports: int
    scan_time:  datetime
    results:    Tuple[PortResult, ...]

    @property
    def open_results(self) -> Tuple[PortResult, ...]:
        return tuple(r for r in self.results if r.is_open)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target":      self.target,
            "protocol":    self.protocol.value,
            "total_ports": self.total_ports,
            "open_ports":  self.open_ports,
            "scan_time":   rfc3339(self.scan_time),
            "results":     [r.to_dict() for r in self.results],
        }


# ─── Aggregation ──────────────────────────────────────────────────────────────

def aggregate(
    target: str,
    protocol: Protocol,
    ports: Sequence[int],
    results: Sequence[PortResult],
) -> ScanReport:
    """
    Build the report for a finished scan.

    Raises ScanInvariantError when the result count does not match the
    number of ports scheduled; that is a bug in the dispatcher, not a
    network condition.
    """
    if len(results) != len(ports):
        raise ScanInvariantError(
            f"Scan of {target}: {len(ports)} ports scheduled "
            f"but {len(results)} results collected"
        )

    ordered = tuple(sorted(results, key=lambda r: r.port))
    return ScanReport(
        target=target,
        protocol=protocol,
        total_ports=len(ports),
        open_ports=sum(1 for r in ordered if r.is_open),
        scan_time=utc_now(),
        results=ordered,
    )
