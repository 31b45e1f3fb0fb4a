"""Tests for the DotMachine facade and observables."""

import asyncio
from fractions import Fraction

import pytest

from src.dotmachine.explosion import PhaseTiming
from src.dotmachine.machine import DotMachine, add_marker, build_sequence, machine_from_dict
from src.dotmachine.observables import (
    digits,
    inconsistent_positions,
    marker_count,
    numeric_base,
    place_label,
    represented_value,
)
from src.dotmachine.types import DEFAULT_RULE, Cell, MachineConfig, MarkerKind, Rule
from src.dotmachine.validation import ConfigurationError


class TestBuildSequence:
    def test_integer_digits(self):
        seq = build_sequence("013", DEFAULT_RULE)
        assert seq.positions == [2, 1, 0]
        assert seq.values == [0, 1, 3]
        assert all(c.markers.negative == 0 for c in seq)

    def test_fraction_and_ellipses(self):
        seq = build_sequence("…12.5…", DEFAULT_RULE)
        assert seq.positions == [1, 0, -1]
        assert seq.values == [1, 2, 5]
        assert seq.continues_left
        assert seq.continues_right

    def test_invalid_digits(self):
        with pytest.raises(ConfigurationError):
            build_sequence("1.2.3", DEFAULT_RULE)

    def test_rule_wider_than_sequence_warns(self, caplog):
        build_sequence("1", DEFAULT_RULE)
        assert "can never fire" in caplog.text


class TestAddMarker:
    def test_dot_and_antidot(self):
        cell = Cell(position=0)
        add_marker(cell, MarkerKind.DOT)
        add_marker(cell, "antidot")
        add_marker(cell, "antidot")
        assert cell.markers.positive == 1
        assert cell.markers.negative == 2
        assert cell.value == -1

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError):
            add_marker(Cell(position=0), "sparkle")


class TestDotMachine:
    def test_defaults(self):
        machine = DotMachine()
        assert machine.base == "2"
        assert machine.sequence.values == [0, 0, 0]
        assert not machine.busy

    def test_explode_all(self):
        machine = DotMachine(MachineConfig(digits="013"))
        result = asyncio.run(machine.explode_all())
        assert machine.sequence.values == [1, 0, 1]
        assert len(result.firings) == 2
        assert machine.represented_value() == 5

    def test_decimal_machine(self):
        rule = Rule(from_=(0, 10), to=(1, 0))
        machine = DotMachine(MachineConfig(digits="0", rule=rule))
        for _ in range(12):
            asyncio.run(machine.add_marker(0, "dot"))
        assert not machine.can_fire(0)

        machine = DotMachine(MachineConfig(digits="0.0", rule=rule))
        for _ in range(12):
            asyncio.run(machine.add_marker(1, "dot"))
        asyncio.run(machine.explode(1))
        assert machine.sequence.values == [1, 2]
        assert machine.represented_value() == Fraction(12, 10)

    def test_add_pair_keeps_value(self):
        machine = DotMachine(MachineConfig(digits="3"))
        asyncio.run(machine.add_pair(0))
        cell = machine.cell(0)
        assert cell.value == 3
        assert (cell.markers.positive, cell.markers.negative) == (4, 1)

    def test_annihilate(self):
        machine = DotMachine(MachineConfig(digits="3"), timing=PhaseTiming(pair=0.001))
        asyncio.run(machine.add_marker(0, "antidot"))
        asyncio.run(machine.add_marker(0, "antidot"))
        result = asyncio.run(machine.annihilate(0))
        assert result.pairs == 2
        assert machine.cell(0).value == 1
        assert machine.cell(0).markers.negative == 0

    def test_annihilate_one_pair_at_a_time(self):
        seen = []

        def on_pair(event):
            cell = machine.cell(0)
            seen.append((event.pair_index, cell.markers.positive, cell.markers.negative))

        machine = DotMachine(MachineConfig(digits="3"), timing=PhaseTiming(pair=0.001), on_pair=on_pair)
        asyncio.run(machine.add_marker(0, "antidot"))
        asyncio.run(machine.add_marker(0, "antidot"))
        result = asyncio.run(machine.annihilate(0))

        assert seen == [(0, 2, 1), (1, 1, 0)]
        assert [e.pair_index for e in result.events] == [0, 1]
        assert machine.cell(0).value == 1

    def test_annihilate_without_pairs(self):
        calls = []
        machine = DotMachine(MachineConfig(digits="3"), on_pair=calls.append)
        result = asyncio.run(machine.annihilate(0))
        assert not result.changed
        assert calls == []

    def test_out_of_range(self):
        machine = DotMachine()
        with pytest.raises(IndexError):
            asyncio.run(machine.explode(3))
        with pytest.raises(IndexError):
            asyncio.run(machine.add_marker(-1, "dot"))
        with pytest.raises(IndexError):
            asyncio.run(machine.annihilate(9))

    def test_operations_are_serialized(self):
        events = []

        async def scenario():
            machine = DotMachine(
                MachineConfig(digits="013"),
                timing=PhaseTiming(mark=0.01),
                on_phase=lambda phase, position, records: events.append(phase.value),
            )
            task = asyncio.create_task(machine.explode_all())
            await asyncio.sleep(0)
            assert machine.busy

            await machine.add_marker(2, "dot")
            events.append("marker")
            await task
            return machine

        machine = asyncio.run(scenario())
        assert events[-1] == "marker"
        assert events.count("settled") == 3
        assert machine.sequence.values == [1, 0, 2]

    def test_snapshot(self):
        machine = DotMachine(MachineConfig(digits="013"))
        snapshot = machine.snapshot()

        assert snapshot["config"] == {
            "cells": "013",
            "rule": {"from": [0, 2], "to": [1, 0]},
            "base": "2",
        }
        assert [c["label"] for c in snapshot["cells"]] == ["2^2", "2^1", "2^0"]
        assert [c["canFire"] for c in snapshot["cells"]] == [False, False, True]
        assert snapshot["cells"][2]["dots"] == 3

    def test_machine_from_dict(self):
        machine = machine_from_dict({"cells": "21", "rule": {"from": [0, 3], "to": [1, 0]}})
        assert machine.base == "3"
        assert machine.sequence.values == [2, 1]

        with pytest.raises(ConfigurationError):
            machine_from_dict(["21"])
        with pytest.raises(ConfigurationError):
            machine_from_dict({"rule": {"from": [0, 3], "to": [1]}})

    def test_non_numeric_base(self):
        machine = DotMachine(MachineConfig(digits="12", base="x"))
        assert machine.snapshot()["cells"][0]["label"] == "x^1"
        with pytest.raises(ConfigurationError):
            machine.represented_value()


class TestObservables:
    def test_digits(self):
        assert digits(build_sequence("101", DEFAULT_RULE)) == "1|0|1"
        assert digits(build_sequence("1.25", DEFAULT_RULE)) == "1.2|5"

    def test_place_label(self):
        assert place_label("10", 2) == "10^2"
        assert place_label(10, -1) == "10^-1"

    def test_represented_value_fractional(self):
        seq = build_sequence("1.5", DEFAULT_RULE)
        assert represented_value(seq, 10) == Fraction(3, 2)

    def test_numeric_base(self):
        assert numeric_base("1/2") == Fraction(1, 2)
        with pytest.raises(ConfigurationError):
            numeric_base("x")
        with pytest.raises(ConfigurationError):
            numeric_base(0)

    def test_marker_count_and_consistency(self):
        seq = build_sequence("23", DEFAULT_RULE)
        add_marker(seq[0], "antidot")
        assert marker_count(seq, MarkerKind.DOT) == 5
        assert marker_count(seq, MarkerKind.ANTIDOT) == 1
        assert inconsistent_positions(seq) == []

        seq[1].value = 9
        assert inconsistent_positions(seq) == [0]
