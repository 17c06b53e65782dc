"""
core/scanner_engine.py
Async port-scan engine with:
  • asyncio.open_connection — TCP connect probes, no raw sockets needed
  • asyncio datagram endpoints — UDP send-and-listen probes
  • Semaphore admission gate (≤ 50 probes in flight per scan)
  • gather() completion barrier, lock-guarded result collection
  • Error classification by exception type / errno (no message matching)
  • Passive banner grabbing (single bounded read, nothing is sent)
  • No imports of api/store (clean layering)
"""

from __future__ import annotations

import asyncio
import errno
import ipaddress
import socket
import time
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from core.report import PortResult, ScanReport, aggregate, utc_now
from core.request import ScanRequest
from core.service_classifier import classify
from utils.constants import (
    BANNER_READ_BYTES, DEFAULT_TIMEOUT_S, MAX_CONCURRENT_PROBES, PortState, Protocol,
)
from utils.logger import get_logger
from utils.validators import sanitize_banner

log = get_logger("probegate.engine")

# A UDP probe has to carry at least one byte for asyncio to send it.
UDP_PROBE_PAYLOAD = b"\r\n"


def classify_error(exc: BaseException) -> PortState:
    """
    Map a failed connection attempt to a port state.

    Best effort: an explicit refusal (TCP RST, ICMP port unreachable on a
    connected UDP socket) means the host answered and nothing listens, so
    the port is CLOSED. Anything else (timeout, no route, reset, DNS
    failure) is indistinguishable from a dropping firewall: FILTERED.
    """
    if isinstance(exc, ConnectionRefusedError):
        return PortState.CLOSED
    if isinstance(exc, OSError) and exc.errno == errno.ECONNREFUSED:
        return PortState.CLOSED
    return PortState.FILTERED


class _DatagramProbe(asyncio.DatagramProtocol):
    """Resolves ``reply`` with the first datagram or the first socket error."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.reply: asyncio.Future = loop.create_future()

    def datagram_received(self, data: bytes, addr) -> None:
        if not self.reply.done():
            self.reply.set_result(data)

    def error_received(self, exc: Exception) -> None:
        if not self.reply.done():
            self.reply.set_exception(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if not self.reply.done():
            self.reply.cancel()


# ─── Core Engine ─────────────────────────────────────────────────────────────

class ScanEngine:
    """
    Bounded concurrent port scanner.

    Layering contract:
      Imports only: core/*, utils/*
      Does NOT import: api, store
    """

    def __init__(
        self,
        max_concurrent: int = MAX_CONCURRENT_PROBES,
        grab_banners: bool = True,
        progress_cb: Optional[Callable[[str], None]] = None,
    ):
        if not 1 <= max_concurrent <= MAX_CONCURRENT_PROBES:
            raise ValueError(
                f"max_concurrent must be in [1, {MAX_CONCURRENT_PROBES}], "
                f"got {max_concurrent}"
            )
        self._max_concurrent = max_concurrent
        self._grab_banners = grab_banners
        self._cb = progress_cb or (lambda _: None)

    @classmethod
    def from_config(
        cls,
        scan_cfg: Optional[Mapping[str, Any]] = None,
        grab_banners: bool = True,
        progress_cb: Optional[Callable[[str], None]] = None,
    ) -> "ScanEngine":
        """Build an engine from the ``scan`` config section, clamping the gate to 50."""
        cfg = scan_cfg or {}
        configured = int(cfg.get("max_concurrent", MAX_CONCURRENT_PROBES))
        if configured > MAX_CONCURRENT_PROBES:
            log.warning(
                f"scan.max_concurrent={configured} exceeds the limit, "
                f"using {MAX_CONCURRENT_PROBES}"
            )
        return cls(
            max_concurrent=max(1, min(configured, MAX_CONCURRENT_PROBES)),
            grab_banners=grab_banners and bool(cfg.get("grab_banners", True)),
            progress_cb=progress_cb,
        )

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    # ── Public scan API ───────────────────────────────────────────────────────

    async def scan(self, request: ScanRequest) -> ScanReport:
        """Probe every port of a validated request and build the report."""
        log.info(
            f"Scanning {request.target}: {len(request.ports)} "
            f"{request.protocol.value} ports, timeout {request.timeout_s}s"
        )
        t0 = time.monotonic()
        results = await self.dispatch(
            request.target, request.ports, request.protocol, request.timeout_s,
        )
        report = aggregate(request.target, request.protocol, request.ports, results)
        log.info(
            f"Scan of {request.target} done: {report.open_ports} open / "
            f"{report.total_ports} scanned in {time.monotonic() - t0:.2f}s"
        )
        return report

    async def dispatch(
        self,
        target: str,
        ports: Sequence[int],
        protocol: Protocol = Protocol.TCP,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> List[PortResult]:
        """
        Fan ``ports`` out to probes, at most ``max_concurrent`` at a time.

        Returns only after every probe has finished; exactly one result per
        entry of ``ports``, in completion order. Cancelling the caller
        cancels all in-flight probes.
        """
        protocol = Protocol(protocol)
        gate = asyncio.Semaphore(self._max_concurrent)
        lock = asyncio.Lock()
        results: List[PortResult] = []

        address = await self._resolve(target, timeout_s)

        async def _run(port: int) -> None:
            async with gate:
                result = await self.probe(target, port, protocol, timeout_s,
                                          address=address)
            async with lock:
                results.append(result)

        await asyncio.gather(*(_run(p) for p in ports))
        return results

    async def probe(
        self,
        target: str,
        port: int,
        protocol: Protocol = Protocol.TCP,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        address: Optional[str] = None,
    ) -> PortResult:
        """
        Probe one port once. Network failures are encoded in the status,
        never raised. ``address`` is the pre-resolved form of ``target``.
        """
        protocol = Protocol(protocol)
        started_at = utc_now()
        t0 = time.monotonic()

        if protocol is Protocol.UDP:
            status, banner = await self._probe_udp(address or target, port, timeout_s)
        else:
            status, banner = await self._probe_tcp(address or target, port, timeout_s)

        result = PortResult(
            host=target,
            port=port,
            protocol=protocol,
            status=status,
            service=classify(port) if status == PortState.OPEN else "",
            banner=banner,
            started_at=started_at,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        log.debug(f"{target}:{port}/{protocol.value} {status.value} ({result.duration_ms}ms)")
        if result.is_open:
            self._cb(f"[+] {port}/{protocol.value} open  {result.service}")
        return result

    # ── Port-level probes ─────────────────────────────────────────────────────

    async def _probe_tcp(
        self, address: str, port: int, timeout_s: float
    ) -> Tuple[PortState, str]:
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(address, port),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError:
            return PortState.FILTERED, ""
        except OSError as exc:
            return classify_error(exc), ""

        banner = ""
        try:
            if self._grab_banners:
                banner = await self._grab_banner(reader, timeout_s)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
        return PortState.OPEN, banner

    async def _probe_udp(
        self, address: str, port: int, timeout_s: float
    ) -> Tuple[PortState, str]:
        loop = asyncio.get_running_loop()
        try:
            transport, proto = await asyncio.wait_for(
                loop.create_datagram_endpoint(
                    lambda: _DatagramProbe(loop), remote_addr=(address, port),
                ),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError:
            return PortState.FILTERED, ""
        except OSError as exc:
            return classify_error(exc), ""

        try:
            transport.sendto(UDP_PROBE_PAYLOAD)
            data = await asyncio.wait_for(proto.reply, timeout=timeout_s)
        except asyncio.TimeoutError:
            # open|filtered: silence cannot be told apart from a drop
            return PortState.FILTERED, ""
        except OSError as exc:
            return classify_error(exc), ""
        finally:
            transport.close()

        banner = sanitize_banner(data) if self._grab_banners else ""
        return PortState.OPEN, banner

    async def _grab_banner(
        self, reader: asyncio.StreamReader, timeout_s: float
    ) -> str:
        """Single read of up to 1 KB of unsolicited greeting. Never raises."""
        try:
            data = await asyncio.wait_for(
                reader.read(BANNER_READ_BYTES), timeout=timeout_s,
            )
        except (asyncio.TimeoutError, OSError):
            return ""
        return sanitize_banner(data)

    # ── DNS ───────────────────────────────────────────────────────────────────

    async def _resolve(self, target: str, timeout_s: float) -> str:
        """
        Resolve ``target`` once per scan, preferring IPv4. On failure the
        raw target is returned and each probe reports FILTERED.
        """
        try:
            ipaddress.ip_address(target)
            return target
        except ValueError:
            pass

        loop = asyncio.get_running_loop()
        try:
            infos = await asyncio.wait_for(
                loop.getaddrinfo(target, None, type=socket.SOCK_STREAM),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError:
            log.warning(f"Resolving {target} timed out")
            return target
        except OSError as exc:
            log.warning(f"Cannot resolve {target}: {exc}")
            return target

        if not infos:
            return target
        infos = sorted(infos, key=lambda info: info[0] != socket.AF_INET)
        return infos[0][4][0]
