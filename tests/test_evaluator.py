# tests/test_evaluator.py
import sys
from pathlib import Path

import pytest

# Damit pytest unsere Module findet
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from bits_errors import EmptySubpackets, InvalidTypeId, WrongArity
from evaluator import count_packets, depth, value, version_sum
from packet_parser import Literal, Operator, OperatorType, Packet, parse


def lit(v, version=0):
    return Packet(version, OperatorType.LITERAL, Literal(v))


def op(type_id, *subs, version=0):
    return Packet(version, type_id, Operator(tuple(subs)))


@pytest.mark.parametrize(
    "type_id, operands, expected",
    [
        (OperatorType.SUM, [1, 2, 3], 6),
        (OperatorType.SUM, [], 0),
        (OperatorType.PRODUCT, [6, 9], 54),
        (OperatorType.PRODUCT, [7], 7),
        (OperatorType.MINIMUM, [7, 8, 9], 7),
        (OperatorType.MAXIMUM, [7, 8, 9], 9),
        (OperatorType.GREATER_THAN, [5, 15], 0),
        (OperatorType.GREATER_THAN, [15, 5], 1),
        (OperatorType.LESS_THAN, [5, 15], 1),
        (OperatorType.EQUAL_TO, [5, 5], 1),
        (OperatorType.EQUAL_TO, [5, 15], 0),
    ],
)
def test_operators(type_id, operands, expected):
    assert value(op(type_id, *[lit(v) for v in operands])) == expected


def test_nested_expression():
    # (1 + 3) == (2 * 2)
    tree = op(
        OperatorType.EQUAL_TO,
        op(OperatorType.SUM, lit(1), lit(3)),
        op(OperatorType.PRODUCT, lit(2), lit(2)),
    )
    assert value(tree) == 1


def test_values_are_unbounded():
    big = 2**80
    assert value(op(OperatorType.PRODUCT, lit(big), lit(big))) == 2**160


@pytest.mark.parametrize("type_id", [OperatorType.PRODUCT, OperatorType.MINIMUM, OperatorType.MAXIMUM])
def test_empty_operands_fail(type_id):
    with pytest.raises(EmptySubpackets) as exc:
        value(op(type_id))
    assert exc.value.type_id == type_id


@pytest.mark.parametrize("count", [0, 1, 3])
@pytest.mark.parametrize("type_id", [OperatorType.GREATER_THAN, OperatorType.LESS_THAN, OperatorType.EQUAL_TO])
def test_comparisons_need_two_operands(type_id, count):
    with pytest.raises(WrongArity) as exc:
        value(op(type_id, *[lit(1)] * count))
    assert exc.value.type_id == type_id
    assert exc.value.count == count


def test_unknown_type_id():
    with pytest.raises(InvalidTypeId) as exc:
        value(op(9, lit(1)))
    assert exc.value.type_id == 9


def test_errors_from_nested_packets_propagate():
    with pytest.raises(EmptySubpackets) as exc:
        value(op(OperatorType.SUM, lit(1), op(OperatorType.MINIMUM)))
    assert exc.value.path == ["2/2"]
    assert exc.value.offset is None


def test_nested_evaluation_error_reports_position():
    # sum(1, min()) with the empty minimum operator at bit 29
    bits = "000" + "000" + "1" + "00000000010" + "000" + "100" + "00001" + "000" + "010" + "1" + "0" * 11
    bits += "0" * (-len(bits) % 4)
    packet = parse(f"{int(bits, 2):0{len(bits) // 4}X}")
    with pytest.raises(EmptySubpackets) as exc:
        value(packet)
    assert exc.value.offset == 29
    assert str(exc.value) == "operator with type id 2 at bit 29 has zero subpackets [subpacket 2/2 @ bit 0]"


def test_wrong_arity_reports_position():
    # less-than with a single literal operand
    bits = "000" + "110" + "1" + "00000000001" + "000" + "100" + "00001"
    bits += "0" * (-len(bits) % 4)
    with pytest.raises(WrongArity) as exc:
        value(parse(f"{int(bits, 2):0{len(bits) // 4}X}"))
    assert exc.value.offset == 0
    assert "at bit 0" in str(exc.value)


def test_version_sum_is_structural():
    tree = op(OperatorType.SUM, lit(1, version=3), op(OperatorType.MAXIMUM, lit(2, version=7), version=1), version=5)
    assert version_sum(tree) == 5 + 3 + 1 + 7
    assert version_sum(tree) == tree.version + sum(version_sum(c) for c in tree.children)


@pytest.mark.parametrize(
    "text",
    ["D2FE28", "38006F45291200", "EE00D40C823060", "A0016C880162017C3686B18A3D4780"],
)
def test_version_sum_bounds(text):
    packet = parse(text)
    assert 0 <= version_sum(packet) <= 7 * count_packets(packet)


def test_tree_statistics():
    packet = parse("A0016C880162017C3686B18A3D4780")
    # operator -> operator -> operator -> 5 literals
    assert count_packets(packet) == 8
    assert depth(packet) == 3
    assert depth(lit(1)) == 0
    assert count_packets(lit(1)) == 1
