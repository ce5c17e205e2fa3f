"""
Voucher code generation.

A code is ``PREFIX-XXX`` where PREFIX is the first six characters of the
owning series id, upper-cased, and XXX is the voucher index written in base
``len(ALPHABET)`` and left-padded to three characters. Codes are purely
positional so the index can always be recovered from the code.
"""
from typing import Iterator
from uuid import UUID

# Digits and upper-case letters without I, O and Q (read as 1, 0 and 0)
ALPHABET = '0123456789ABCDEFGHJKLMNPRSTUVWXYZ'
BASE = len(ALPHABET)
PREFIX_LENGTH = 6
INDEX_WIDTH = 3
SEPARATOR = '-'

_VALUES = {char: value for value, char in enumerate(ALPHABET)}


class InvalidCodeError(ValueError):
    """Raised for a malformed voucher code or an unencodable index."""


def code_prefix(series_id) -> str:
    return str(series_id)[:PREFIX_LENGTH].upper()


def encode(series_id, index: int) -> str:
    """Build the voucher code for ``index`` in the series ``series_id``."""
    if index < 0:
        raise InvalidCodeError(f"Voucher index must be non-negative, got {index}")

    digits = []
    value = index
    while True:
        value, remainder = divmod(value, BASE)
        digits.append(ALPHABET[remainder])
        if value == 0:
            break

    suffix = ''.join(reversed(digits)).rjust(INDEX_WIDTH, ALPHABET[0])
    return f"{code_prefix(series_id)}{SEPARATOR}{suffix}"


def decode(code: str) -> int:
    """Recover the voucher index from a code."""
    parts = code.split(SEPARATOR) if isinstance(code, str) else []
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidCodeError(f"Invalid voucher code format: {code!r}")

    index = 0
    for char in parts[1]:
        if char not in _VALUES:
            raise InvalidCodeError(f"Invalid character {char!r} in voucher code {code!r}")
        index = index * BASE + _VALUES[char]
    return index


def generate_codes(series_id: UUID, count: int) -> Iterator[str]:
    """Yield the codes for indexes 1..count. Index 0 is never issued."""
    for index in range(1, count + 1):
        yield encode(series_id, index)
