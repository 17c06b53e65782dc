"""
ProbeGate Core — Public API

from core import ScanEngine, build_request, parse_ports
"""
from core.port_parser   import PortParser, parse_ports, PortParseError, ScanRequestError
from core.request       import ScanRequest, build_request, check_port_count, port_limit
from core.service_classifier import classify, WELL_KNOWN_SERVICES
from core.report        import PortResult, ScanReport, ScanInvariantError, aggregate
from core.scanner_engine import ScanEngine, classify_error

__all__ = [
    "ScanEngine", "classify_error",
    "PortParser", "parse_ports", "PortParseError", "ScanRequestError",
    "ScanRequest", "build_request", "check_port_count", "port_limit",
    "classify", "WELL_KNOWN_SERVICES",
    "PortResult", "ScanReport", "ScanInvariantError", "aggregate",
]
