"""
Scan codes printed on location QR codes.

Format: ``<business>-<location>-<random6>``, e.g. ``coderno-coffee-centrum-a3f9k2``.
"""

import re
import secrets
import string

from unidecode import unidecode

SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
SUFFIX_LENGTH = 6
PART_MAX_LENGTH = 20

SCAN_CODE_MIN_LENGTH = 10
SCAN_CODE_MAX_LENGTH = 100

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASH_RUNS = re.compile(r"-+")
_SCAN_CODE = re.compile(r"^[a-z0-9-]+$")


def _slug_part(text: str, fallback: str) -> str:
    # Transliterate first so "Kawiarnia Żółw" keeps its letters
    part = _DISALLOWED.sub("", unidecode(text).lower())
    part = _WHITESPACE.sub("-", part.strip())[:PART_MAX_LENGTH]
    return part or fallback


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(length))


def generate_scan_code(business_name: str, location_name: str) -> str:
    business = _slug_part(business_name, "business")
    location = _slug_part(location_name, "location")
    return f"{business}-{location}-{random_suffix()}"


def is_valid_scan_code_format(scan_code: str) -> bool:
    return bool(_SCAN_CODE.match(scan_code)) and SCAN_CODE_MIN_LENGTH <= len(scan_code) <= SCAN_CODE_MAX_LENGTH


def clean_for_scan_code(text: str) -> str:
    """Lowercase, dash-separated, no repeated or edge dashes."""
    cleaned = _DISALLOWED.sub("", unidecode(text).lower())
    cleaned = _WHITESPACE.sub("-", cleaned)
    cleaned = _DASH_RUNS.sub("-", cleaned)
    return cleaned.strip("-")
