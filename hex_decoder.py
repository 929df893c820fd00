"""
File: hex_decoder.py

Description:
    Hex string -> bit sequence (MSB first, 4 bits per digit), plus small
    helpers to read bit slices back as integers or strings.

Python Version: >3.10
Dependencies: numpy

License: MIT License
"""

from typing import Iterable

import numpy as np

from bits_errors import MalformedHex

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

# Shift amounts that spread one nibble over 4 bits, MSB first
_NIBBLE_SHIFTS = np.array([3, 2, 1, 0], dtype=np.uint8)


def hex_to_bits(text: str) -> np.ndarray:
    """Expand ``text`` into a read-only uint8 array of 0/1 values.

    Raises MalformedHex for the first character outside ``0-9A-Fa-f``.
    """
    for index, char in enumerate(text):
        if char not in HEX_DIGITS:
            raise MalformedHex(char, index)

    digits = np.array([int(c, 16) for c in text], dtype=np.uint8)
    bits = ((digits[:, None] >> _NIBBLE_SHIFTS) & 1).reshape(-1).astype(np.uint8)
    bits.setflags(write=False)
    return bits


def bits_to_int(bits: Iterable[int]) -> int:
    """Read ``bits`` as an unsigned big-endian integer: [1, 0, 1] -> 5."""
    value = 0
    for b in bits:
        value = (value << 1) | int(b)
    return value


def bits_to_str(bits: Iterable[int]) -> str:
    return "".join(str(int(b)) for b in bits)
