"""
tests/test_api.py
Tests for the Flask API (api/app.py) using Flask's test client.
A spy engine stands in for the network unless a test says otherwise.
Run: pytest tests/test_api.py -v
"""

import sys
import os
import socket
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, MagicMock

from api.app import create_app
from core.report import PortResult, aggregate
from core.scanner_engine import ScanEngine
from store.instances import InstanceStore
from utils.config import load_config
from utils.constants import PortState


def _fake_report(req):
    results = [
        PortResult(host=req.target, port=p, protocol=req.protocol,
                   status=PortState.OPEN if p == 22 else PortState.CLOSED,
                   service="ssh" if p == 22 else "")
        for p in req.ports
    ]
    return aggregate(req.target, req.protocol, req.ports, results)


@pytest.fixture
def cfg():
    return load_config(None)


@pytest.fixture
def engine():
    spy = MagicMock()
    spy.scan = AsyncMock(side_effect=_fake_report)
    return spy


@pytest.fixture
def store():
    return InstanceStore([
        {"name": "ssh-pot", "container_name": "cowrie-1",
         "honeypot_ip": "172.17.0.2", "port_mappings": {"22": "2222", "23": "2223"}},
        {"name": "empty", "port_mappings": {}},
        {"name": "broken", "port_mappings": {"80": "eighty"}},
        {"name": "local", "port_mappings": {"80": "22"}},
    ])


@pytest.fixture
def client(cfg, store, engine):
    return create_app(cfg, store, engine=engine).test_client()


class TestPortScan:

    def test_defaults(self, client, engine):
        r = client.post("/port-scan", json={"target": "10.0.0.5"})
        assert r.status_code == 200
        body = r.get_json()
        assert body["target"] == "10.0.0.5"
        assert body["protocol"] == "tcp"
        assert body["total_ports"] == 6
        assert body["open_ports"] == 1
        assert len(body["results"]) == body["total_ports"]
        assert "scan_time" in body
        req = engine.scan.await_args.args[0]
        assert req.ports == (22, 80, 443, 3306, 3389, 8080)
        assert req.timeout_s == 3

    def test_explicit_fields_forwarded(self, client, engine):
        r = client.post("/port-scan", json={
            "target": "10.0.0.5", "ports": "1-3,22", "protocol": "udp", "timeout": 5,
        })
        assert r.status_code == 200
        req = engine.scan.await_args.args[0]
        assert req.ports == (1, 2, 3, 22)
        assert req.protocol.value == "udp"
        assert req.timeout_s == 5
        assert r.get_json()["protocol"] == "udp"

    def test_result_row_shape(self, client):
        body = client.post("/port-scan", json={"target": "10.0.0.5", "ports": "22"}).get_json()
        row = body["results"][0]
        assert row == {
            "ip": "10.0.0.5", "port": 22, "protocol": "tcp", "status": "open",
            "service": "ssh", "banner": "", "scan_time": row["scan_time"],
            "duration_ms": 0,
        }

    @pytest.mark.parametrize("payload", [
        {"target": "10.0.0.5", "ports": "0"},
        {"target": "10.0.0.5", "ports": "70000"},
        {"target": "10.0.0.5", "ports": "5-2"},
        {"target": "10.0.0.5", "ports": "abc"},
        {"target": ""},
        {"ports": "22"},
        {"target": "10.0.0.5", "protocol": "sctp"},
        {"target": "10.0.0.5", "timeout": "3"},
        {"target": "bad host"},
    ])
    def test_validation_errors_are_400(self, client, engine, payload):
        r = client.post("/port-scan", json=payload)
        assert r.status_code == 400
        assert r.get_json()["message"]
        engine.scan.assert_not_awaited()

    def test_more_than_1000_ports_rejected_before_any_scan(self, client, engine):
        r = client.post("/port-scan", json={"target": "10.0.0.5", "ports": "1-1001"})
        assert r.status_code == 400
        assert "1000" in r.get_json()["message"]
        engine.scan.assert_not_awaited()

    def test_configured_port_cap_cannot_exceed_1000(self, cfg, store, engine):
        cfg["scan"]["max_ports"] = 5000
        c = create_app(cfg, store, engine=engine).test_client()
        r = c.post("/port-scan", json={"target": "10.0.0.5", "ports": "1-5000"})
        assert r.status_code == 400
        assert "at most 1000" in r.get_json()["message"]
        engine.scan.assert_not_awaited()

    @pytest.mark.parametrize("payload", [
        {"target": "10.0.0.5", "timeout": 60},
        {"target": "cowrie_ssh_1", "ports": "22"},
    ])
    def test_long_timeout_and_container_names_accepted(self, client, engine, payload):
        r = client.post("/port-scan", json=payload)
        assert r.status_code == 200
        req = engine.scan.await_args.args[0]
        assert req.target == payload["target"]
        assert req.timeout_s == payload.get("timeout", 3)

    def test_not_json_is_400(self, client, engine):
        r = client.post("/port-scan", data="target=10.0.0.5",
                        content_type="application/x-www-form-urlencoded")
        assert r.status_code == 400
        engine.scan.assert_not_awaited()

    def test_json_array_is_400(self, client):
        r = client.post("/port-scan", json=["10.0.0.5"])
        assert r.status_code == 400

    def test_get_not_allowed(self, client):
        r = client.get("/port-scan")
        assert r.status_code == 405
        assert "message" in r.get_json()

    def test_engine_crash_is_json_500(self, cfg, store):
        broken = MagicMock()
        broken.scan = AsyncMock(side_effect=RuntimeError("boom"))
        c = create_app(cfg, store, engine=broken).test_client()
        r = c.post("/port-scan", json={"target": "10.0.0.5"})
        assert r.status_code == 500
        assert r.get_json() == {"message": "internal server error"}


class TestInstanceScan:

    def test_scans_mapped_host_ports(self, client, engine):
        r = client.post("/port-scan/instances/1")
        assert r.status_code == 200
        body = r.get_json()
        assert body["container_id"] == 1
        assert body["container_name"] == "cowrie-1"
        assert body["target"] == "172.17.0.2"
        assert body["total_ports"] == 2
        req = engine.scan.await_args.args[0]
        assert req.ports == (2222, 2223)
        assert req.protocol.value == "tcp"
        assert req.timeout_s == 3

    def test_instance_timeout_follows_configured_default(self, cfg, store, engine):
        cfg["scan"]["default_timeout"] = 7
        c = create_app(cfg, store, engine=engine).test_client()
        assert c.post("/port-scan/instances/1").status_code == 200
        assert engine.scan.await_args.args[0].timeout_s == 7

    def test_no_ip_targets_loopback(self, client, engine):
        r = client.post("/port-scan/instances/4")
        assert r.status_code == 200
        assert r.get_json()["target"] == "127.0.0.1"

    def test_unknown_instance_404(self, client, engine):
        r = client.post("/port-scan/instances/99")
        assert r.status_code == 404
        engine.scan.assert_not_awaited()

    def test_no_mappings_400(self, client, engine):
        r = client.post("/port-scan/instances/2")
        assert r.status_code == 400
        engine.scan.assert_not_awaited()

    def test_unparseable_mappings_500(self, client, engine):
        r = client.post("/port-scan/instances/3")
        assert r.status_code == 500
        assert "eighty" in r.get_json()["message"]
        engine.scan.assert_not_awaited()


class TestMisc:

    def test_history_is_empty(self, client):
        r = client.get("/port-scan/history")
        assert r.status_code == 200
        assert r.get_json() == []

    def test_health(self, client):
        r = client.get("/health")
        assert r.get_json() == {"status": "ok", "instances": 4}

    def test_unknown_route_is_json_404(self, client):
        r = client.get("/nope")
        assert r.status_code == 404
        assert "message" in r.get_json()

    def test_debug_forced_off(self, cfg, store, engine):
        app = create_app(cfg, store, engine=engine)
        assert app.config["DEBUG"] is False

    def test_configured_gate_is_clamped_to_50(self, cfg, store, monkeypatch):
        built = []
        real = ScanEngine.from_config.__func__

        def spy(cls, scan_cfg=None, **kwargs):
            engine = real(cls, scan_cfg, **kwargs)
            built.append(engine)
            return engine

        monkeypatch.setattr(ScanEngine, "from_config", classmethod(spy))
        cfg["scan"]["max_concurrent"] = 200
        create_app(cfg, store)
        assert built[0].max_concurrent == 50


class TestRealEngine:

    def test_closed_local_port_through_http(self, cfg, store):
        with socket.socket() as s:
            s.bind(("127.0.0.1", 0))
            port = s.getsockname()[1]
        c = create_app(cfg, store).test_client()
        r = c.post("/port-scan", json={"target": "127.0.0.1", "ports": str(port), "timeout": 2})
        assert r.status_code == 200
        body = r.get_json()
        assert body["total_ports"] == 1
        assert body["open_ports"] == 0
        assert body["results"][0]["status"] == "closed"


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
