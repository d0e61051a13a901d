"""Brand detection for unauthenticated HTTP responders.

Scores a captured HTTP response against known vendor fingerprints:
- Server header tokens
- Body text tokens
- Port heuristics (only when the response itself is inconclusive)

The classifier does no I/O; callers perform the request and pass the
response in.
"""

import re
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

UNKNOWN = "Unknown"

# (token, manufacturer) in priority order
BRAND_TOKENS: Tuple[Tuple[str, str], ...] = (
    ("samsung", "Samsung"),
    ("tizen", "Samsung"),
    ("webos", "LG"),
    ("sony", "Sony"),
    ("bravia", "Sony"),
    ("philips", "Philips"),
    ("tcl", "TCL"),
    ("roku", "TCL"),
    ("hisense", "Hisense"),
)

PORT_BRANDS: Dict[int, str] = {
    8001: "Samsung",
    8002: "Samsung",
    7001: "Samsung",
    80: "Samsung",
    3000: "LG",
    3001: "LG",
    1925: "Philips",
    9080: "Hisense",
}

MODEL_NAMES: Dict[str, str] = {
    "Samsung": "Samsung Tizen Smart TV",
    "LG": "LG webOS Smart TV",
    "Sony": "Sony Bravia Smart TV",
    "Philips": "Philips Smart TV",
    "TCL": "TCL Smart TV",
    "Hisense": "Hisense Smart TV",
}

_LG_WORD = re.compile(r"\blg\b")
_SMART_WORD = re.compile(r"\bsmart")


@dataclass
class DetectedTV:
    """Result of one classification attempt."""

    manufacturer: str
    name: str
    model: str
    ip: str
    port: int

    @property
    def is_known(self) -> bool:
        return self.manufacturer != UNKNOWN


def _match_tokens(text: str) -> Optional[str]:
    for token, manufacturer in BRAND_TOKENS:
        if token in text:
            return manufacturer
    return None


def _server_text(headers: Optional[Mapping[str, str]]) -> str:
    """Get the lowercased Server header, or all header values if absent."""
    if not headers:
        return ""
    for key, value in headers.items():
        if str(key).lower() == "server":
            return str(value).lower()
    return " ".join(str(value) for value in headers.values()).lower()


def match_headers(headers: Optional[Mapping[str, str]]) -> Optional[str]:
    """Match vendor tokens in the response headers."""
    return _match_tokens(_server_text(headers))


def match_body(body: Optional[str]) -> Optional[str]:
    """Match vendor tokens in the response body.

    A bare "lg" only counts as a standalone word next to "smart", so
    words like "catalog" never classify as LG.
    """
    if not body:
        return None
    text = body.lower()
    manufacturer = _match_tokens(text)
    if manufacturer:
        return manufacturer
    if _LG_WORD.search(text) and _SMART_WORD.search(text):
        return "LG"
    return None


def classify(
    host: str,
    port: int,
    http_status: Optional[int] = None,
    headers: Optional[Mapping[str, str]] = None,
    body: Optional[str] = None,
) -> DetectedTV:
    """Guess the manufacturer of an HTTP responder.

    Args:
        host: Responder IP address
        port: Port the response came from
        http_status: HTTP status code (informational)
        headers: Response headers
        body: Sample of the response body

    Returns:
        DetectedTV; manufacturer is "Unknown" when nothing matched
    """
    manufacturer = match_headers(headers) or match_body(body) or PORT_BRANDS.get(port)

    if manufacturer is None:
        return DetectedTV(
            manufacturer=UNKNOWN,
            name="TV Device",
            model="TV Device",
            ip=host,
            port=port,
        )

    return DetectedTV(
        manufacturer=manufacturer,
        name="Smart TV",
        model=MODEL_NAMES.get(manufacturer, f"{manufacturer} Smart TV"),
        ip=host,
        port=port,
    )
