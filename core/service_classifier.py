"""
core/service_classifier.py
Well-known port → service name lookup, used for display only.
"""

from __future__ import annotations

from typing import Dict

UNKNOWN_SERVICE = "unknown"

WELL_KNOWN_SERVICES: Dict[int, str] = {
    21:    "ftp",
    22:    "ssh",
    23:    "telnet",
    25:    "smtp",
    53:    "dns",
    80:    "http",
    110:   "pop3",
    143:   "imap",
    443:   "https",
    993:   "imaps",
    995:   "pop3s",
    1433:  "mssql",
    3306:  "mysql",
    3389:  "rdp",
    5432:  "postgresql",
    6379:  "redis",
    8080:  "http-alt",
    8443:  "https-alt",
    27017: "mongodb",
}


def classify(port: int) -> str:
    """Return the service name for ``port``, or ``"unknown"``."""
    return WELL_KNOWN_SERVICES.get(port, UNKNOWN_SERVICE)
