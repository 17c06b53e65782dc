"""
ProbeGate Constants & Enums
Port states, protocols and the hard limits of the scan engine.
"""

from enum import Enum


# ─── Port States ─────────────────────────────────────────────────────────────
class PortState(str, Enum):
    OPEN      = "open"       # connection accepted / datagram answered
    CLOSED    = "closed"     # peer actively refused (RST / ICMP unreachable)
    FILTERED  = "filtered"   # no answer, timeout, unreachable, reset


# ─── Protocols ───────────────────────────────────────────────────────────────
class Protocol(str, Enum):
    TCP = "tcp"
    UDP = "udp"


# ─── Port Parser Limits ───────────────────────────────────────────────────────
PORT_MIN            = 1
PORT_MAX            = 65535
MAX_PORTS_PER_SCAN  = 1000     # hard ceiling, checked after parsing, before any I/O

DEFAULT_PORTS       = "22,80,443,3306,3389,8080"

# ─── Engine Limits ────────────────────────────────────────────────────────────
MAX_CONCURRENT_PROBES = 50       # hard ceiling; config may only lower it
DEFAULT_TIMEOUT_S     = 3

BANNER_READ_BYTES   = 1024
BANNER_MAX_CHARS    = 200
BANNER_ELLIPSIS     = "..."

DEFAULT_TARGET      = "127.0.0.1"

# ─── Layering Contract (hard import rules - enforced by tests) ───────────────
# core  → may import: utils
# store → may import: utils
# api   → may import: core, store, utils
# utils → imports nothing from the other packages
