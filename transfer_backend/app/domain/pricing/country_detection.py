"""
Best-effort country detection from free-text addresses.

Matches country names and postal prefixes against the formatted address.
Anything unrecognized is reported as unknown (None), which means no
cross-border surcharge is applied.
"""

import re
from typing import Optional, Pattern, Tuple


def _hint(*patterns: str) -> Pattern:
    return re.compile("|".join(patterns), re.IGNORECASE)


# Checked in order; first match wins
COUNTRY_HINTS: Tuple[Tuple[str, Pattern], ...] = (
    ("LV", _hint(r"\blatvia\b", r"\blatvija\b", r"\bLV-\d{4}\b")),
    ("EE", _hint(r"\bestonia\b", r"\beesti\b")),
    ("LT", _hint(r"\blithuania\b", r"\blietuva\b", r"\bLT-\d{5}\b")),
)


def detect_country(address: Optional[str]) -> Optional[str]:
    """
    Detect the country code for a formatted address.

    Args:
        address: Formatted address, e.g. "Brivibas iela 1, Riga, LV-1010, Latvia"

    Returns:
        "LV", "EE", "LT" or None when no hint matches
    """
    if not address:
        return None

    for code, pattern in COUNTRY_HINTS:
        if pattern.search(address):
            return code
    return None


def detect_route_countries(pickup_address: Optional[str],
                           destination_address: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    return detect_country(pickup_address), detect_country(destination_address)
