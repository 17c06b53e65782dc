"""
api/app.py
Flask HTTP API for the port-scan engine.

Routes:
  POST /port-scan                   scan a target
  POST /port-scan/instances/<id>    scan the host ports mapped by an instance
  GET  /port-scan/history           always [] (scans are not persisted)
  GET  /health

Security properties:
  - debug=False enforced programmatically (cannot be overridden by env)
  - SECRET_KEY auto-generated if not set
  - Stacktraces never exposed to client

Layering: api -> core, store, utils
"""

from __future__ import annotations

import asyncio
import secrets
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from core.port_parser import PortParseError, ScanRequestError
from core.request import ScanRequest, build_request
from core.scanner_engine import ScanEngine
from store.instances import InstanceNotFoundError, InstanceStore
from utils.constants import DEFAULT_TIMEOUT_S, Protocol
from utils.logger import get_logger

log = get_logger("probegate.api")


def _error(status: int, message: str):
    return jsonify({"message": message}), status


# -- Factory ------------------------------------------------------------------

def create_app(cfg: Dict[str, Any], store: InstanceStore,
               engine: Optional[ScanEngine] = None) -> Flask:
    """
    Application factory.

    cfg is the full config mapping (see utils.config); the ``api`` and
    ``scan`` sections are read here. ``engine`` may be injected (tests use
    a spy); otherwise one is built from the ``scan`` section.
    """
    app = Flask(__name__)

    api_cfg  = cfg.get("api", {})
    scan_cfg = cfg.get("scan", {})

    # Security
    secret = api_cfg.get("secret_key", "")
    if not secret or secret == "CHANGE_THIS_IN_PRODUCTION":
        secret = secrets.token_hex(32)

    app.config["SECRET_KEY"]           = secret
    app.config["DEBUG"]                = False   # HARD -- no env override
    app.config["PROPAGATE_EXCEPTIONS"] = False
    app.config["TRAP_HTTP_EXCEPTIONS"] = False

    if engine is None:
        engine = ScanEngine.from_config(scan_cfg)

    def _run(scan_request: ScanRequest):
        return asyncio.run(engine.scan(scan_request))

    # Error handlers (no stacktrace leakage)
    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        return _error(e.code or 500, e.description or e.name)

    @app.errorhandler(Exception)
    def _unhandled(e):
        log.exception("Unhandled exception")
        return _error(500, "internal server error")

    # Routes
    @app.route("/port-scan", methods=["POST"])
    def port_scan():
        payload = request.get_json(silent=True)
        if payload is None:
            return _error(400, "Invalid request: expected a JSON object body")
        try:
            scan_request = build_request(payload, scan_cfg)
        except ScanRequestError as exc:
            log.warning(f"Rejected scan request: {exc}")
            return _error(400, f"Invalid request: {exc}")

        report = _run(scan_request)
        return jsonify(report.to_dict())

    @app.route("/port-scan/instances/<int:instance_id>", methods=["POST"])
    def port_scan_instance(instance_id: int):
        try:
            inst = store.get(instance_id)
        except InstanceNotFoundError:
            return _error(404, f"Instance {instance_id} not found")

        spec = inst.port_spec()
        if not spec:
            return _error(400, f"Instance {instance_id} has no mapped ports")

        try:
            scan_request = build_request({
                "target":   inst.target,
                "ports":    spec,
                "protocol": Protocol.TCP.value,
                "timeout":  int(scan_cfg.get("default_timeout", DEFAULT_TIMEOUT_S)),
            }, scan_cfg)
        except PortParseError as exc:
            log.error(f"Instance {instance_id} has unusable port mappings: {exc}")
            return _error(500, f"Cannot parse mapped ports: {exc}")
        except ScanRequestError as exc:
            log.warning(f"Rejected scan of instance {instance_id}: {exc}")
            return _error(400, f"Invalid request: {exc}")

        report = _run(scan_request)
        body = report.to_dict()
        return jsonify({
            "container_id":   inst.id,
            "container_name": inst.container_name,
            "target":         body["target"],
            "total_ports":    body["total_ports"],
            "open_ports":     body["open_ports"],
            "scan_time":      body["scan_time"],
            "results":        body["results"],
        })

    @app.route("/port-scan/history", methods=["GET"])
    def port_scan_history():
        return jsonify([])

    @app.route("/health")
    def health():
        return jsonify({
            "status": "ok",
            "instances": len(store),
        })

    return app


# -- Server runner ------------------------------------------------------------

def run_api(cfg: Dict[str, Any], store: InstanceStore) -> None:
    app = create_app(cfg, store)
    api_cfg = cfg.get("api", {})
    host = api_cfg.get("host", "127.0.0.1")
    port = api_cfg.get("port", 5000)
    print(f"[*] Port-scan API at http://{host}:{port}/port-scan")
    print(f"[*] Instances registered: {len(store)}")
    app.run(host=host, port=port, debug=False, use_reloader=False)
