"""
Polish NIP (tax identification number) helpers.

A NIP is ten digits; the last one is a checksum of the first nine using
fixed weights, modulo 11. A checksum of 10 can never be written as a single
digit, so any number producing it is invalid.
"""

import re

NIP_WEIGHTS = (6, 5, 7, 2, 3, 4, 5, 6, 7)

_SEPARATORS = re.compile(r"[\s-]")
_TEN_DIGITS = re.compile(r"^\d{10}$")


def clean_nip(nip: str) -> str:
    return _SEPARATORS.sub("", nip)


def nip_checksum(digits: str) -> int:
    """Weighted sum of the first nine digits, modulo 11."""
    return sum(int(d) * w for d, w in zip(digits[:9], NIP_WEIGHTS)) % 11


def validate_nip_checksum(nip: str) -> bool:
    cleaned = clean_nip(nip)
    if not _TEN_DIGITS.match(cleaned):
        return False

    checksum = nip_checksum(cleaned)
    if checksum == 10:
        return False
    return checksum == int(cleaned[9])


def format_nip(nip: str) -> str:
    """XXX-XXX-XX-XX; anything that isn't ten characters is returned unchanged."""
    cleaned = clean_nip(nip)
    if len(cleaned) != 10:
        return nip
    return f"{cleaned[:3]}-{cleaned[3:6]}-{cleaned[6:8]}-{cleaned[8:]}"
