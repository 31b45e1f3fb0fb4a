"""Tests for dot/antidot annihilation."""

import random

import pytest

from src.dotmachine.annihilation import PairRemoval, pair_count, reduce, remove_pair
from src.dotmachine.types import Cell, MarkerSet


class TestReduce:
    def test_partial_cancel(self):
        cell = Cell(position=0, markers=MarkerSet(positive=3, negative=2), value=1)
        result = reduce(cell)

        assert cell.markers.positive == 1
        assert cell.markers.negative == 0
        assert cell.value == 1
        assert result.pairs == 2
        assert result.changed

    def test_events(self):
        cell = Cell(position=-1, markers=MarkerSet(positive=2, negative=5), value=-3)
        result = reduce(cell)

        assert result.events == [PairRemoval(position=-1, pair_index=0), PairRemoval(position=-1, pair_index=1)]
        assert result.to_dict() == {
            "cellPosition": -1,
            "pairs": 2,
            "events": [
                {"cellPosition": -1, "pairIndex": 0},
                {"cellPosition": -1, "pairIndex": 1},
            ],
        }

    def test_nothing_to_cancel(self):
        cell = Cell.from_digit(position=0, digit=4)
        result = reduce(cell)

        assert not result.changed
        assert result.pairs == 0
        assert result.events == []
        assert cell.markers.positive == 4

    def test_empty_cell(self):
        cell = Cell(position=0)
        assert reduce(cell).pairs == 0

    def test_second_reduce_is_noop(self):
        cell = Cell(position=0, markers=MarkerSet(positive=4, negative=4), value=0)
        assert reduce(cell).pairs == 4
        assert reduce(cell).pairs == 0
        assert cell.markers.total == 0

    def test_remove_single_pair(self):
        cell = Cell(position=2, markers=MarkerSet(positive=1, negative=3), value=-2)
        assert remove_pair(cell, 0) == PairRemoval(position=2, pair_index=0)
        assert (cell.markers.positive, cell.markers.negative) == (0, 2)
        assert cell.value == -2

        with pytest.raises(ValueError):
            remove_pair(cell)


class TestAnnihilationInvariants:
    def test_random_cells(self):
        rng = random.Random(3)
        for _ in range(200):
            positive = rng.randint(0, 12)
            negative = rng.randint(0, 12)
            cell = Cell(
                position=rng.randint(-3, 3),
                markers=MarkerSet(positive=positive, negative=negative),
                value=positive - negative,
            )
            expected = pair_count(cell)

            result = reduce(cell)

            assert result.pairs == expected == min(positive, negative)
            assert cell.markers.positive <= positive
            assert cell.markers.negative <= negative
            assert min(cell.markers.positive, cell.markers.negative) == 0
            assert cell.value == positive - negative
            assert cell.is_consistent
