"""ProbeGate Test Suite

Test modules:
    test_port_parser  — Unit tests for core/port_parser.py (all edge cases)
    test_request      — Scan request validation, target/port validators,
                        banner sanitising
    test_scanner      — Service classifier, error classification, TCP/UDP
                        prober against loopback listeners, dispatcher
                        concurrency cap and cancellation, aggregation
    test_api          — Flask API contract (spy engine + one real scan)
    test_store        — Instance store and YAML config loading
    test_cli          — main.py entry point and log formatting
    test_layering     — Static import analysis enforcing architectural
                        layering rules (core / store / api / utils)

Run all tests:
    pytest tests/ -v
"""
