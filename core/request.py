"""
core/request.py
Validation of incoming scan requests.

build_request() is the single gate between untrusted input (HTTP JSON body,
CLI arguments) and the engine. It either returns an immutable ScanRequest
whose port list is already parsed and capped, or raises ScanRequestError.
No network activity happens here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from core.port_parser import PortParser, PortParseError, ScanRequestError
from utils.constants import (
    DEFAULT_PORTS, DEFAULT_TIMEOUT_S, MAX_PORTS_PER_SCAN, Protocol,
)
from utils.validators import validate_target


@dataclass(frozen=True)
class ScanRequest:
    target:    str
    port_spec: str
    ports:     Tuple[int, ...]
    protocol:  Protocol = Protocol.TCP
    timeout_s: int = DEFAULT_TIMEOUT_S


def check_port_count(ports, limit: int = MAX_PORTS_PER_SCAN) -> None:
    """Reject a parsed port list larger than ``limit``."""
    if len(ports) > limit:
        raise ScanRequestError(
            f"Too many ports: {len(ports)} requested, at most {limit} per scan"
        )


def port_limit(scan_cfg: Optional[Mapping[str, Any]] = None) -> int:
    """Configured port cap, never above MAX_PORTS_PER_SCAN."""
    configured = int((scan_cfg or {}).get("max_ports", MAX_PORTS_PER_SCAN))
    return max(1, min(configured, MAX_PORTS_PER_SCAN))


def build_request(
    payload: Mapping[str, Any],
    scan_cfg: Optional[Mapping[str, Any]] = None,
    parser: Optional[PortParser] = None,
) -> ScanRequest:
    """
    Validate a ``{"target", "ports", "protocol", "timeout"}`` mapping.

    ``scan_cfg`` is the ``scan`` section of the config and supplies the
    defaults (ports, timeout) and may lower the port cap; it can never
    raise it above MAX_PORTS_PER_SCAN.
    """
    if not isinstance(payload, Mapping):
        raise ScanRequestError("Request body must be a JSON object")

    cfg = scan_cfg or {}
    parser = parser or PortParser()

    # ── target ────────────────────────────────────────────────────────────────
    target = payload.get("target")
    if target is None or (isinstance(target, str) and not target.strip()):
        raise ScanRequestError("target is required")
    if not isinstance(target, str):
        raise ScanRequestError("target must be a string")
    target = target.strip()
    ok, msg = validate_target(target)
    if not ok:
        raise ScanRequestError(msg)

    # ── protocol ──────────────────────────────────────────────────────────────
    raw_proto = payload.get("protocol") or Protocol.TCP.value
    if not isinstance(raw_proto, str):
        raise ScanRequestError("protocol must be a string")
    try:
        protocol = Protocol(raw_proto.strip().lower())
    except ValueError:
        raise ScanRequestError(
            f"Unsupported protocol {raw_proto!r} (expected 'tcp' or 'udp')"
        ) from None

    # ── timeout ───────────────────────────────────────────────────────────────
    timeout = payload.get("timeout")
    if timeout is None:
        timeout = 0
    if isinstance(timeout, bool) or not isinstance(timeout, int):
        raise ScanRequestError("timeout must be an integer number of seconds")
    if timeout <= 0:
        timeout = int(cfg.get("default_timeout", DEFAULT_TIMEOUT_S))

    # ── ports ─────────────────────────────────────────────────────────────────
    port_spec = payload.get("ports")
    if port_spec is None or port_spec == "":
        port_spec = cfg.get("default_ports", DEFAULT_PORTS)
    if not isinstance(port_spec, str):
        raise PortParseError("ports must be a string such as \"22,80,1000-2000\"")
    ports = parser.parse(port_spec)
    check_port_count(ports, port_limit(cfg))

    return ScanRequest(
        target=target,
        port_spec=port_spec,
        ports=tuple(ports),
        protocol=protocol,
        timeout_s=timeout,
    )
