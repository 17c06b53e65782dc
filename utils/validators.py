"""
utils/validators.py
Input validation and sanitization functions
"""

from typing import Tuple

from utils.constants import BANNER_ELLIPSIS, BANNER_MAX_CHARS, PORT_MIN, PORT_MAX


def validate_target(target: str) -> Tuple[bool, str]:
    """
    Validate that target is usable as a scan destination.

    Any non-empty string without whitespace is accepted: IP literals, DNS
    names and container names such as ``cowrie_ssh_1``. Names that do not
    resolve are not rejected here; their ports report ``filtered``.

    Returns:
        (is_valid, error_message) tuple
    """
    if not target or not isinstance(target, str):
        return (False, "Target must be a non-empty string")

    target = target.strip()
    if not target:
        return (False, "Target must be a non-empty string")

    if any(ch.isspace() for ch in target):
        return (False, f"Invalid target {target!r}: contains whitespace")

    return (True, "")


def validate_port(port: int) -> Tuple[bool, str]:
    """
    Validate that port number is in valid range [1-65535].

    Args:
        port: Port number to validate

    Returns:
        (is_valid, error_message) tuple
    """
    if not isinstance(port, int) or isinstance(port, bool):
        return (False, "Port must be an integer")

    if port < PORT_MIN or port > PORT_MAX:
        return (False, f"Port {port} out of valid range [{PORT_MIN}-{PORT_MAX}]")

    return (True, "")


def sanitize_banner(raw: bytes, max_length: int = BANNER_MAX_CHARS) -> str:
    """
    Turn the bytes read from a service into a display banner:
    - decode as UTF-8 (undecodable bytes are replaced)
    - strip leading/trailing whitespace
    - truncate to max_length and append "..."

    The result is never longer than max_length + 3 characters.
    """
    if not raw:
        return ""

    banner = raw.decode("utf-8", errors="replace").strip()

    if len(banner) > max_length:
        banner = banner[:max_length] + BANNER_ELLIPSIS

    return banner


__all__ = ["validate_target", "validate_port", "sanitize_banner"]
