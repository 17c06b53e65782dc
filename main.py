#!/usr/bin/env python3
"""
ProbeGate v1.0 — Bounded Concurrent Port Scanner
main.py — CLI entry point

Usage:
  python3 main.py --scan 192.168.1.1
  python3 main.py --scan 10.0.0.5 --ports 1-1000 --timeout 2
  python3 main.py --scan 10.0.0.5 --ports 53,161 --protocol udp
  python3 main.py --scan db.local --ports 5432 --json
  python3 main.py --serve --host 0.0.0.0 --api-port 5000
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from core.port_parser import ScanRequestError
from core.report import ScanReport
from core.request import build_request
from core.scanner_engine import ScanEngine
from store.instances import InstanceStore
from utils.config import ConfigError, load_config
from utils.constants import PortState
from utils.logger import get_logger, set_level

log = get_logger("probegate")

VERSION = "1.0.0"


# ─── Core scan runner ─────────────────────────────────────────────────────────

async def _run_scan(args: argparse.Namespace, scan_cfg: dict) -> ScanReport:
    """Validate CLI input, run the scan, return the report."""
    scan_request = build_request({
        "target":   args.scan,
        "ports":    args.ports,
        "protocol": args.protocol,
        "timeout":  args.timeout,
    }, scan_cfg)

    def cb(msg: str):
        if not args.quiet:
            log.info(msg)

    engine = ScanEngine.from_config(
        scan_cfg, grab_banners=not args.no_banner, progress_cb=cb,
    )
    return await engine.scan(scan_request)


def print_report(report: ScanReport) -> None:
    closed   = sum(1 for r in report.results if r.status == PortState.CLOSED)
    filtered = report.total_ports - report.open_ports - closed

    print(f"\n{'═'*60}")
    print(f"  SCAN OF {report.target} ({report.protocol.value}) COMPLETE")
    print(f"{'─'*60}")
    print(f"  Ports scanned : {report.total_ports}")
    print(f"  Open          : {report.open_ports}")
    print(f"  Closed        : {closed}")
    print(f"  Filtered      : {filtered}")
    print(f"  Finished      : {report.scan_time.isoformat(timespec='seconds')}")
    print(f"{'═'*60}\n")

    if not report.open_results:
        print("  No open ports found")
        return

    print(f"  {'PORT':<12} {'SERVICE':<14} {'RESP':>7}  BANNER")
    print(f"  {'─'*58}")
    for r in report.open_results:
        port = f"{r.port}/{r.protocol.value}"
        banner = r.banner.splitlines()[0] if r.banner else ""
        print(f"  {port:<12} {r.service:<14} {r.duration_ms:>5}ms  {banner[:40]}")
    print()


# ─── CLI ─────────────────────────────────────────────────────────────────────

def build_cli() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="probegate",
        description="ProbeGate — bounded concurrent TCP/UDP port scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Port specs:   80  |  80,443  |  1-1000  |  22,80-90,443   (max 1000 ports)
Statuses:     open  closed (refused)  filtered (no answer / unreachable)

Examples:
  %(prog)s --scan 192.168.1.1
  %(prog)s --scan 192.168.1.1 --ports 1-1000 --timeout 1
  %(prog)s --scan 192.168.1.1 --ports 53 --protocol udp
  %(prog)s --serve --host 127.0.0.1 --api-port 5000
""",
    )
    g = ap.add_argument_group
    s = g("Scan")
    s.add_argument("--scan",       metavar="TARGET",  help="IP address or hostname")
    s.add_argument("--ports",      metavar="SPEC",    default=None,
                   help="Port spec (default from config: 22,80,443,3306,3389,8080)")
    s.add_argument("--protocol",   choices=["tcp", "udp"], default="tcp")
    s.add_argument("--timeout",    metavar="SECONDS", type=int, default=None,
                   help="Per-probe timeout in seconds (default from config: 3)")
    s.add_argument("--no-banner",  action="store_true", help="Skip banner grabbing")
    s.add_argument("--json",       action="store_true", help="Print the report as JSON")

    a = g("API")
    a.add_argument("--serve",      action="store_true", help="Start the HTTP API")
    a.add_argument("--host",       default=None)
    a.add_argument("--api-port",   type=int, default=None, metavar="PORT")

    ap.add_argument("--config",    default="config.yaml", metavar="FILE")
    ap.add_argument("--quiet",     action="store_true", help="Suppress progress output")
    ap.add_argument("--verbose",   action="store_true", help="Log every probe")
    ap.add_argument("--version",   action="version",   version=f"ProbeGate {VERSION}")
    return ap


def main() -> None:
    ap   = build_cli()
    if len(sys.argv) == 1:
        ap.print_help(); sys.exit(0)
    args = ap.parse_args()

    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        log.error(str(exc)); sys.exit(1)

    if args.verbose:
        set_level("DEBUG")
    elif args.quiet:
        set_level("WARNING")
    else:
        set_level(cfg["logging"].get("level", "INFO"))

    try:
        if args.scan:
            try:
                report = asyncio.run(_run_scan(args, cfg["scan"]))
            except ScanRequestError as exc:
                log.error(f"Invalid request: {exc}"); sys.exit(1)
            if args.json:
                print(json.dumps(report.to_dict(), indent=2))
            else:
                print_report(report)

        elif args.serve:
            if args.host:
                cfg["api"]["host"] = args.host
            if args.api_port:
                cfg["api"]["port"] = args.api_port
            from api.app import run_api
            run_api(cfg, InstanceStore(cfg.get("instances") or []))

        else:
            ap.print_help()

    except KeyboardInterrupt:
        print("\n  [!] Interrupted by user")
        sys.exit(0)
    except Exception as exc:
        log.exception(f"Fatal error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
