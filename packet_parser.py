"""
File: packet_parser.py

Description:
    Packet tree model and the recursive-descent parser for BITS messages.

    Packet layout (all fields unsigned, MSB first):

        version (3) | type id (3) | body

    type id 4 -> literal body: groups of 5 bits (continue flag + 4 payload bits)
    otherwise -> operator body: length type (1), then either
                 total length in bits (15) when length type == 0, or
                 number of subpackets (11) when length type == 1,
                 followed by the subpackets themselves.

Python Version: >3.10
Dependencies: numpy (via bit_cursor)

License: MIT License
"""

import logging
import sys
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

from bit_cursor import BitCursor
from bits_errors import BitsError, InvalidTypeId, NestingTooDeep, OverconsumedSubpackets

logger = logging.getLogger(__name__)

# === Field widths ===
VERSION_BITS = 3
TYPE_ID_BITS = 3
LITERAL_GROUP_BITS = 4
LENGTH_TYPE_BITS = 1
TOTAL_LENGTH_BITS = 15
SUBPACKET_COUNT_BITS = 11

LENGTH_TYPE_TOTAL_BITS = 0

DEFAULT_MAX_DEPTH = 200

# Python stack frames spent per nesting level (parser and evaluator)
FRAMES_PER_LEVEL = 4


def depth_limit() -> int:
    """Deepest nesting the interpreter's recursion limit can parse and evaluate."""
    return sys.getrecursionlimit() // FRAMES_PER_LEVEL


def effective_max_depth(max_depth: Optional[int]) -> int:
    """Clamp ``max_depth`` to ``depth_limit()``; ``None`` means as deep as possible."""
    limit = depth_limit()
    if max_depth is None or max_depth > limit:
        return limit
    return max_depth


class OperatorType(IntEnum):
    SUM = 0
    PRODUCT = 1
    MINIMUM = 2
    MAXIMUM = 3
    LITERAL = 4
    GREATER_THAN = 5
    LESS_THAN = 6
    EQUAL_TO = 7


LITERAL_TYPE_ID = int(OperatorType.LITERAL)


@dataclass(frozen=True)
class Literal:
    value: int


@dataclass(frozen=True)
class Operator:
    subpackets: tuple["Packet", ...]


@dataclass(frozen=True)
class Packet:
    version: int
    type_id: int
    body: Literal | Operator
    # bit position of the header, None for packets built by hand
    offset: Optional[int] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if (self.type_id == LITERAL_TYPE_ID) != isinstance(self.body, Literal):
            raise InvalidTypeId(self.type_id, self.offset)

    @property
    def is_literal(self) -> bool:
        return self.type_id == LITERAL_TYPE_ID

    @property
    def children(self) -> tuple["Packet", ...]:
        if isinstance(self.body, Literal):
            return ()
        return self.body.subpackets


class PacketParser:
    """Recursive-descent parser producing one Packet per call.

    ``max_depth`` bounds the nesting of operator packets (the root is at
    depth 0). It is clamped to ``depth_limit()``; ``None`` selects that limit.
    """

    def __init__(self, max_depth: Optional[int] = DEFAULT_MAX_DEPTH) -> None:
        self.max_depth = effective_max_depth(max_depth)

    def parse_packet(self, cursor: BitCursor) -> Packet:
        try:
            return self._parse(cursor, 0)
        except RecursionError:
            # the caller's own stack was already deep
            raise NestingTooDeep(self.max_depth, cursor.position) from None

    def _parse(self, cursor: BitCursor, depth: int) -> Packet:
        if depth > self.max_depth:
            raise NestingTooDeep(self.max_depth, cursor.position)

        start = cursor.position
        version = cursor.read_bits(VERSION_BITS)
        type_id = cursor.read_bits(TYPE_ID_BITS)
        logger.debug("packet at bit %d: version=%d type_id=%d depth=%d", start, version, type_id, depth)

        if type_id == LITERAL_TYPE_ID:
            return Packet(version, type_id, Literal(self._read_literal(cursor)), start)

        length_type = cursor.read_bits(LENGTH_TYPE_BITS)
        if length_type == LENGTH_TYPE_TOTAL_BITS:
            subpackets = self._parse_by_length(cursor, depth, start)
        else:
            subpackets = self._parse_by_count(cursor, depth, start)
        return Packet(version, type_id, Operator(tuple(subpackets)), start)

    @staticmethod
    def _read_literal(cursor: BitCursor) -> int:
        value = 0
        while True:
            more = cursor.read_flag()
            value = (value << LITERAL_GROUP_BITS) | cursor.read_bits(LITERAL_GROUP_BITS)
            if not more:
                return value

    def _parse_child(self, cursor: BitCursor, depth: int, index: int, count: Optional[int], start: int) -> Packet:
        try:
            return self._parse(cursor, depth + 1)
        except NestingTooDeep:
            raise
        except BitsError as e:
            raise e.add_step(index, count, start)

    def _parse_by_length(self, cursor: BitCursor, depth: int, start: int) -> list[Packet]:
        total = cursor.read_bits(TOTAL_LENGTH_BITS)
        mark = cursor.mark()
        subpackets: list[Packet] = []
        while cursor.consumed_since(mark) < total:
            subpackets.append(self._parse_child(cursor, depth, len(subpackets) + 1, None, start))
            consumed = cursor.consumed_since(mark)
            if consumed > total:
                raise OverconsumedSubpackets(total, consumed, cursor.position)
        return subpackets

    def _parse_by_count(self, cursor: BitCursor, depth: int, start: int) -> list[Packet]:
        count = cursor.read_bits(SUBPACKET_COUNT_BITS)
        subpackets: list[Packet] = []
        for index in range(1, count + 1):
            subpackets.append(self._parse_child(cursor, depth, index, count, start))
        return subpackets


def parse(text: str, max_depth: Optional[int] = DEFAULT_MAX_DEPTH) -> Packet:
    """Decode a hex message and parse its single root packet.

    Bits left over after the root packet are padding and are ignored.
    """
    cursor = BitCursor.from_hex(text)
    packet = PacketParser(max_depth).parse_packet(cursor)
    if cursor.remaining():
        logger.debug("discarding %d trailing padding bit(s)", cursor.remaining())
    return packet
