# sellerscore/domain/address.py
from __future__ import annotations

import re

# Two-letter USPS state codes (50 states + DC + territories that show up in owner mailings)
US_STATE_CODES: frozenset[str] = frozenset(
    {
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA", "HI", "ID", "IL", "IN",
        "IA", "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV",
        "NH", "NJ", "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC", "SD", "TN",
        "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY", "DC", "PR", "VI", "GU",
    }
)

# "..., Tampa, FL 33601" / "..., FL 33601-1234" / "... FL"
_STATE_ZIP_TAIL = re.compile(r"(?:^|[\s,])([A-Za-z]{2})(?:\s+(\d{5})(?:-\d{4})?)?\s*$")
_ZIP = re.compile(r"\b(\d{5})(?:-\d{4})?\s*$")


def normalize_state(raw: str | None) -> str | None:
    if not raw:
        return None
    s = raw.strip().upper()
    return s if s in US_STATE_CODES else None


def extract_state(address: str | None) -> str | None:
    """
    Pull the state code off the tail of a one-line address.
    Returns None rather than guessing when the tail is not a known code.
    """
    if not address:
        return None
    m = _STATE_ZIP_TAIL.search(address.strip())
    if not m:
        return None
    return normalize_state(m.group(1))


def extract_zipcode(address: str | None) -> str | None:
    if not address:
        return None
    m = _ZIP.search(address.strip())
    return m.group(1) if m else None


def address_key(address: str) -> str:
    """
    Stable cache/lookup key for a free-text address:
    upper-case, punctuation stripped, whitespace collapsed.
    """
    s = re.sub(r"[^\w\s]", " ", address.upper())
    s = re.sub(r"\s+", " ", s).strip()
    return f"addr:{s}"


def street_line(address: str | None) -> str | None:
    """First comma-separated segment, e.g. "123 Main St" out of "123 Main St, Tampa, FL 33601"."""
    if not address:
        return None
    s = address.split(",", 1)[0].strip()
    return s or None


def owner_name_key(name: str | None) -> str | None:
    if not name:
        return None
    s = re.sub(r"\s+", " ", name.strip().upper())
    return s or None
