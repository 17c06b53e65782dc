"""ProbeGate API — Public API

Flask application exposing the port-scan engine over HTTP.

Usage:
    from api.app import create_app, run_api
"""
from api.app import create_app, run_api

__all__ = [
    "create_app",
    "run_api",
]
