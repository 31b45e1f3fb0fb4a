"""Annihilation: cancelling dot/antidot pairs within one cell.

A dot and an antidot together are worth zero, so removing matched pairs
never changes a cell's value. Same-kind markers are interchangeable and
pairs are independent of one another.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from src.dotmachine.types import Cell, MarkerKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairRemoval:
    """Removal of one dot/antidot pair.

    Attributes:
        position: Position of the cell the pair was in
        pair_index: 0-based index of the pair within the annihilation
    """

    position: int
    pair_index: int

    def to_dict(self) -> dict[str, int]:
        return {"cellPosition": self.position, "pairIndex": self.pair_index}


@dataclass
class AnnihilationResult:
    """Outcome of reducing one cell."""

    position: int
    pairs: int = 0
    events: list[PairRemoval] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.pairs > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cellPosition": self.position,
            "pairs": self.pairs,
            "events": [e.to_dict() for e in self.events],
        }


def pair_count(cell: Cell) -> int:
    """Number of dot/antidot pairs that could be cancelled in a cell."""
    return min(cell.markers.positive, cell.markers.negative)


def remove_pair(cell: Cell, pair_index: int = 0) -> PairRemoval:
    """Remove one dot and one antidot from a cell.

    Raises:
        ValueError: If the cell holds no matched pair
    """
    if pair_count(cell) == 0:
        raise ValueError(f"No dot/antidot pair at position {cell.position}")
    cell.markers.remove(MarkerKind.DOT)
    cell.markers.remove(MarkerKind.ANTIDOT)
    return PairRemoval(position=cell.position, pair_index=pair_index)


def reduce(cell: Cell) -> AnnihilationResult:
    """Cancel every matched dot/antidot pair in a cell.

    The value is left untouched. Afterwards the cell holds markers of
    at most one kind.

    Args:
        cell: Cell to reduce (mutated)

    Returns:
        AnnihilationResult with one PairRemoval event per pair
    """
    result = AnnihilationResult(position=cell.position)
    for i in range(pair_count(cell)):
        result.events.append(remove_pair(cell, i))
        result.pairs += 1

    if result.changed:
        logger.debug(f"Annihilated {result.pairs} pair(s) at position {cell.position}")
    return result
