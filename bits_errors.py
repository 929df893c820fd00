"""
File: bits_errors.py

Description:
    Exceptions raised while decoding and evaluating BITS packets.
    Every error carries the values needed to locate the broken packet
    (bit offsets, expected vs. actual counts). While an error travels up
    the packet tree each enclosing operator prepends its step
    ("2/3 @ bit 40" = second of three subpackets of the operator at bit 40)
    to ``path``.

Python Version: >3.10
Dependencies: none

License: MIT License
"""

from typing import List, Optional


def _at(offset: Optional[int]) -> str:
    return "" if offset is None else f" at bit {offset}"


class BitsError(ValueError):
    """Base class for all decode/evaluate failures of a single input line."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.path: List[str] = []

    def add_step(self, index: int, count: Optional[int], offset: Optional[int]) -> "BitsError":
        """Record that the error happened inside subpacket ``index`` (1-based)."""
        total = "?" if count is None else str(count)
        where = "" if offset is None else f" @ bit {offset}"
        self.path.insert(0, f"{index}/{total}{where}")
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if not self.path:
            return message
        return f"{message} [subpacket {' > '.join(self.path)}]"


class MalformedHex(BitsError):
    def __init__(self, char: str, index: int) -> None:
        self.char = char
        self.index = index
        super().__init__(f"invalid hex character {char!r} at index {index}")


class UnexpectedEof(BitsError):
    def __init__(self, requested: int, remaining: int, offset: int) -> None:
        self.requested = requested
        self.remaining = remaining
        self.offset = offset
        super().__init__(
            f"requested {requested} bit(s) at bit {offset}, only {remaining} remaining"
        )


class OverconsumedSubpackets(BitsError):
    def __init__(self, expected: int, actual: int, offset: int) -> None:
        self.expected = expected
        self.actual = actual
        self.offset = offset
        super().__init__(
            f"overconsumed: expected to consume {expected} bits, got {actual} (bit {offset})"
        )


class NestingTooDeep(BitsError):
    def __init__(self, max_depth: int, offset: int) -> None:
        self.max_depth = max_depth
        self.offset = offset
        super().__init__(f"packet nesting exceeds {max_depth} levels at bit {offset}")


class InvalidTypeId(BitsError):
    def __init__(self, type_id: int, offset: Optional[int] = None) -> None:
        self.type_id = type_id
        self.offset = offset
        super().__init__(f"type id {type_id} does not match the packet body{_at(offset)}")


class EmptySubpackets(BitsError):
    def __init__(self, type_id: int, offset: Optional[int] = None) -> None:
        self.type_id = type_id
        self.offset = offset
        super().__init__(f"operator with type id {type_id}{_at(offset)} has zero subpackets")


class WrongArity(BitsError):
    def __init__(self, type_id: int, count: int, offset: Optional[int] = None) -> None:
        self.type_id = type_id
        self.count = count
        self.offset = offset
        super().__init__(
            f"comparison with type id {type_id}{_at(offset)} expects 2 subpackets, got {count}"
        )
