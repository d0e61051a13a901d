"""Tests for brand detection."""

from __future__ import annotations

import pytest

from smarttv.classifier import UNKNOWN, classify, match_body, match_headers


def test_header_takes_priority_over_body() -> None:
    """Test a Tizen server header wins over a webOS body."""
    detected = classify(
        "192.168.1.50", 8080, 200, {"Server": "Tizen/4.0 UPnP/1.0"}, "<html>webOS portal</html>"
    )

    assert detected.manufacturer == "Samsung"
    assert detected.model == "Samsung Tizen Smart TV"
    assert detected.is_known


def test_server_header_case_insensitive() -> None:
    """Test the Server header is found regardless of key case."""
    assert match_headers({"server": "Linux/3.10 UPnP/1.0 Sony-BRAVIA/1.0"}) == "Sony"


def test_headers_without_server_use_all_values() -> None:
    """Test other header values are searched when Server is absent."""
    assert match_headers({"X-Powered-By": "Hisense VIDAA"}) == "Hisense"


def test_body_lg_word_boundary() -> None:
    """Test 'lg' inside another word never classifies as LG."""
    assert match_body("Catalog Entry") is None
    detected = classify("192.168.1.60", 12345, 200, {}, "Catalog Entry")
    assert detected.manufacturer == UNKNOWN


def test_body_lg_smart() -> None:
    """Test a standalone LG next to 'smart' classifies as LG."""
    detected = classify("192.168.1.60", 12345, 200, {}, "LG smart tv portal")

    assert detected.manufacturer == "LG"
    assert detected.model == "LG webOS Smart TV"


def test_body_lg_without_smart() -> None:
    """Test a bare LG word alone is not enough."""
    assert match_body("LG router admin") is None


@pytest.mark.parametrize(
    ("body", "manufacturer"),
    [
        ("Samsung SmartThings", "Samsung"),
        ("tizen runtime", "Samsung"),
        ("webOS TV", "LG"),
        ("BRAVIA", "Sony"),
        ("Philips TV", "Philips"),
        ("TCL Android TV", "TCL"),
        ("Roku ECP", "TCL"),
        ("Hisense VIDAA", "Hisense"),
    ],
)
def test_body_tokens(body: str, manufacturer: str) -> None:
    """Test vendor body tokens."""
    assert classify("192.168.1.60", 12345, 200, {}, body).manufacturer == manufacturer


@pytest.mark.parametrize(
    ("port", "manufacturer"),
    [
        (8001, "Samsung"),
        (8002, "Samsung"),
        (7001, "Samsung"),
        (3000, "LG"),
        (3001, "LG"),
        (1925, "Philips"),
        (9080, "Hisense"),
    ],
)
def test_port_fallback(port: int, manufacturer: str) -> None:
    """Test the port decides only when the response is inconclusive."""
    detected = classify("192.168.1.70", port, 404, {"Server": "nginx"}, "Not Found")

    assert detected.manufacturer == manufacturer
    assert detected.name == "Smart TV"


def test_response_beats_port() -> None:
    """Test a body match overrides the port heuristic."""
    assert classify("192.168.1.70", 3000, 200, {}, "Samsung").manufacturer == "Samsung"


def test_unknown() -> None:
    """Test nothing matched."""
    detected = classify("192.168.1.80", 5000, 200, None, None)

    assert detected.manufacturer == UNKNOWN
    assert detected.name == "TV Device"
    assert detected.ip == "192.168.1.80"
    assert detected.port == 5000
    assert not detected.is_known
