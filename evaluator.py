"""
File: evaluator.py

Description:
    Evaluation and statistics over an immutable Packet tree.
    A failure inside a subpacket carries the offset of the failing packet
    and the subpacket path leading to it.

Python Version: >3.10
Dependencies: none

License: MIT License
"""

import math

from bits_errors import BitsError, EmptySubpackets, InvalidTypeId, WrongArity
from packet_parser import Literal, OperatorType, Packet

_COMPARISONS = {
    OperatorType.GREATER_THAN: lambda a, b: a > b,
    OperatorType.LESS_THAN: lambda a, b: a < b,
    OperatorType.EQUAL_TO: lambda a, b: a == b,
}


def _child_values(packet: Packet) -> list[int]:
    subs = packet.children
    values = []
    for index, sub in enumerate(subs, start=1):
        try:
            values.append(value(sub))
        except BitsError as e:
            raise e.add_step(index, len(subs), packet.offset)
    return values


def value(packet: Packet) -> int:
    """Evaluate ``packet`` as an expression.

    Literals evaluate to themselves; operators combine the values of their
    subpackets according to the type id (sum, product, min, max, >, <, ==).
    """
    if isinstance(packet.body, Literal):
        return packet.body.value

    subs = packet.body.subpackets
    try:
        op = OperatorType(packet.type_id)
    except ValueError:
        raise InvalidTypeId(packet.type_id, packet.offset) from None

    if op is OperatorType.LITERAL:
        raise InvalidTypeId(packet.type_id, packet.offset)

    if op in _COMPARISONS:
        if len(subs) != 2:
            raise WrongArity(packet.type_id, len(subs), packet.offset)
        first, second = _child_values(packet)
        return int(_COMPARISONS[op](first, second))

    if op is OperatorType.SUM:
        return sum(_child_values(packet))

    # product, min and max are undefined over zero operands
    if not subs:
        raise EmptySubpackets(packet.type_id, packet.offset)
    values = _child_values(packet)
    if op is OperatorType.PRODUCT:
        return math.prod(values)
    if op is OperatorType.MINIMUM:
        return min(values)
    return max(values)


def version_sum(packet: Packet) -> int:
    return packet.version + sum(version_sum(child) for child in packet.children)


def count_packets(packet: Packet) -> int:
    return 1 + sum(count_packets(child) for child in packet.children)


def depth(packet: Packet) -> int:
    """Nesting depth of the tree; a packet without children has depth 0."""
    if not packet.children:
        return 0
    return 1 + max(depth(child) for child in packet.children)
