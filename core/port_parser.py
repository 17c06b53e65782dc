"""
core/port_parser.py
Port specification parser.

Accepts:
  "80"                 → [80]
  "80,443"             → [80, 443]
  "1-3"                → [1, 2, 3]
  "1-3,22"             → [1, 2, 3, 22]
  "80,80"              → [80, 80]     (order kept, duplicates kept)

Rejects (the whole spec, never a partial list):
  "abc", "0", "70000", "5-2", "1-2-3", "80,", "", None
"""

from __future__ import annotations

import re
from typing import List

from utils.validators import validate_port


# ─── Custom Exceptions ────────────────────────────────────────────────────────

class ScanRequestError(ValueError):
    """Raised when a scan request is invalid. Nothing has touched the network."""


class PortParseError(ScanRequestError):
    """Raised when port specification is invalid."""


# ─── Parser ───────────────────────────────────────────────────────────────────

class PortParser:
    """
    Parse a comma-separated list of ports and ``start-end`` ranges.

    Parsing is all-or-nothing: the first bad token raises PortParseError
    naming that token.
    """

    _NUMBER_RE = re.compile(r"^\d+$")

    # ── Public API ────────────────────────────────────────────────────────────

    def parse(self, spec: str) -> List[int]:
        """
        Parse port spec → list of ports in spec order.

        Raises PortParseError on any invalid input.
        """
        if not isinstance(spec, str):
            raise PortParseError(f"Expected string, got {type(spec).__name__}")

        if not spec.strip():
            raise PortParseError("Port specification is empty")

        ports: List[int] = []
        for part in spec.split(","):
            ports.extend(self._parse_token(part.strip()))
        return ports

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _parse_token(self, token: str) -> List[int]:
        if "-" in token:
            bounds = token.split("-")
            if len(bounds) != 2:
                raise PortParseError(f"Invalid port range: {token!r}")
            start = self._number(bounds[0].strip(), token, "range start")
            end   = self._number(bounds[1].strip(), token, "range end")
            self._validated(start, token)
            self._validated(end, token)
            if start > end:
                raise PortParseError(
                    f"Invalid port range {token!r}: start {start} > end {end}"
                )
            return list(range(start, end + 1))

        return [self._validated(self._number(token, token, "port"), token)]

    def _number(self, text: str, token: str, what: str) -> int:
        if not self._NUMBER_RE.match(text):
            raise PortParseError(
                f"Invalid {what} {text!r} in token {token!r}  "
                f"(expected integer or start-end range)"
            )
        return int(text)

    @staticmethod
    def _validated(port: int, token: str) -> int:
        ok, msg = validate_port(port)
        if not ok:
            raise PortParseError(f"{msg} in token {token!r}")
        return port


# ── Module-level convenience ──────────────────────────────────────────────────

_default_parser = PortParser()


def parse_ports(spec: str) -> List[int]:
    return _default_parser.parse(spec)
