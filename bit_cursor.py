"""
File: bit_cursor.py

Description:
    Sequential MSB-first reader over a decoded bit sequence.
    The cursor is the only mutable state of a parse; it is handed down
    the recursive descent by reference and never copied.

Python Version: >3.10
Dependencies: numpy

License: MIT License
"""

import numpy as np

from bits_errors import UnexpectedEof
from hex_decoder import bits_to_int, hex_to_bits


class BitCursor:
    """Read fixed-width unsigned fields from a bit sequence."""

    __slots__ = ("_bits", "_pos")

    def __init__(self, bits: np.ndarray) -> None:
        self._bits = bits
        self._pos = 0

    @classmethod
    def from_hex(cls, text: str) -> "BitCursor":
        return cls(hex_to_bits(text))

    @property
    def position(self) -> int:
        return self._pos

    def __len__(self) -> int:
        return len(self._bits)

    def remaining(self) -> int:
        return len(self._bits) - self._pos

    def read_bits(self, n: int) -> int:
        """Consume ``n`` bits and return them as an unsigned big-endian integer.

        Raises UnexpectedEof without moving when fewer than ``n`` bits remain.
        """
        if n < 0:
            raise ValueError(f"cannot read a negative number of bits: {n}")
        if self.remaining() < n:
            raise UnexpectedEof(n, self.remaining(), self._pos)
        value = bits_to_int(self._bits[self._pos : self._pos + n])
        self._pos += n
        return value

    def read_flag(self) -> bool:
        return self.read_bits(1) == 1

    def mark(self) -> int:
        return self._pos

    def consumed_since(self, mark: int) -> int:
        if mark > self._pos:
            raise ValueError(f"mark {mark} is ahead of cursor position {self._pos}")
        return self._pos - mark

    def __repr__(self) -> str:
        return f"BitCursor(position={self._pos}, remaining={self.remaining()})"
