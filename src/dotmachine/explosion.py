"""Cascading explosions.

One explosion walks through these phases:

    IDLE -> CHECKING -> MARKING -> REMOVING -> ADDING -> SETTLED

CHECKING goes straight to SETTLED when the rule does not match. Every
phase change is a suspension point, so a presentation layer can animate
between them; markers are only added once removal has completed, and
a recheck only happens once both are done.

In recursive mode a settled explosion is followed by another check:
- at the same cell while the rule still matches there
- otherwise at the neighbour one place more significant, which is the
  cell that just received the carried markers

The cascade ends at the first check that fails or at the left edge.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from src.dotmachine.engine import (
    ChangeRecord,
    apply_addition,
    apply_removal,
    can_fire,
    plan_firing,
)
from src.dotmachine.types import Rule, Sequence
from src.dotmachine.validation import CascadeLimitError, validate_index

logger = logging.getLogger(__name__)


class ExplosionPhase(str, Enum):
    """Phases of a single explosion."""

    IDLE = "idle"
    CHECKING = "checking"
    MARKING = "marking"
    REMOVING = "removing"
    ADDING = "adding"
    SETTLED = "settled"


@dataclass(frozen=True)
class PhaseTiming:
    """Seconds to wait after entering each phase.

    Attributes:
        mark: Pause after the markers to move are highlighted
        remove: Pause after they leave their cells
        add: Pause after new markers appear
        settle: Pause before a recursive recheck
        pair: Pause between successive annihilated pairs
    """

    mark: float = 0.0
    remove: float = 0.0
    add: float = 0.0
    settle: float = 0.0
    pair: float = 0.0

    def __post_init__(self) -> None:
        for name in ("mark", "remove", "add", "settle", "pair"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} delay must be >= 0, got {getattr(self, name)}")

    @classmethod
    def animated(cls) -> PhaseTiming:
        """Pacing that leaves room for on-screen animation."""
        return cls(mark=0.4, remove=0.4, add=0.4, settle=0.0, pair=0.6)

    def delay_for(self, phase: ExplosionPhase) -> float:
        return {
            ExplosionPhase.MARKING: self.mark,
            ExplosionPhase.REMOVING: self.remove,
            ExplosionPhase.ADDING: self.add,
            ExplosionPhase.SETTLED: self.settle,
        }.get(phase, 0.0)


# Called on every phase change with (phase, trigger position, records).
# May be a plain function or a coroutine function.
PhaseCallback = Callable[
    [ExplosionPhase, int, list[ChangeRecord]], Union[Awaitable[None], None]
]


@dataclass
class Firing:
    """One successful firing within a cascade."""

    trigger_position: int
    records: list[ChangeRecord]

    def to_dict(self) -> dict[str, Any]:
        return {
            "triggerPosition": self.trigger_position,
            "records": [r.to_dict() for r in self.records],
        }


@dataclass
class ExplosionResult:
    """Everything a (possibly cascading) explosion did.

    Attributes:
        start_position: Position of the cell the explosion was requested on
        firings: Successful firings, in order
        checked_positions: Every position checked, in order
    """

    start_position: int
    firings: list[Firing] = field(default_factory=list)
    checked_positions: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.firings)

    @property
    def records(self) -> list[ChangeRecord]:
        """Flat change log across all firings."""
        return [r for f in self.firings for r in f.records]

    def to_dict(self) -> dict[str, Any]:
        return {
            "startPosition": self.start_position,
            "changed": self.changed,
            "firings": [f.to_dict() for f in self.firings],
            "checkedPositions": list(self.checked_positions),
        }


class ExplosionController:
    """Runs explosions of one rule on one sequence."""

    def __init__(
        self,
        sequence: Sequence,
        rule: Rule,
        timing: PhaseTiming | None = None,
        on_phase: PhaseCallback | None = None,
        max_firings: int | None = None,
    ):
        """
        Args:
            sequence: Cells to explode (mutated)
            rule: Rule to fire
            timing: Delays between phases (defaults to no delay)
            on_phase: Optional hook called on every phase change
            max_firings: Optional cap on firings per cascade; exceeding
                it raises CascadeLimitError
        """
        if max_firings is not None and max_firings < 1:
            raise ValueError(f"max_firings must be >= 1, got {max_firings}")

        self.sequence = sequence
        self.rule = rule
        self.timing = timing or PhaseTiming()
        self.on_phase = on_phase
        self.max_firings = max_firings
        self.phase = ExplosionPhase.IDLE

    async def _enter(
        self, phase: ExplosionPhase, position: int, records: list[ChangeRecord]
    ) -> None:
        self.phase = phase
        logger.debug(f"Explosion at position {position}: {phase.value}")

        if self.on_phase is not None:
            outcome = self.on_phase(phase, position, records)
            if inspect.isawaitable(outcome):
                await outcome

        # Always yield so phases are distinct suspension points
        await asyncio.sleep(self.timing.delay_for(phase))

    async def _fire_once(self, index: int) -> Firing | None:
        position = self.sequence[index].position
        await self._enter(ExplosionPhase.CHECKING, position, [])

        records = plan_firing(self.sequence, self.rule, index)
        if not records:
            await self._enter(ExplosionPhase.SETTLED, position, [])
            return None

        await self._enter(ExplosionPhase.MARKING, position, records)

        cells = [self.sequence.cell_at(r.position) for r in records]
        for cell, record in zip(cells, records):
            apply_removal(cell, record)
        try:
            await self._enter(ExplosionPhase.REMOVING, position, records)
        finally:
            # Removal and addition belong together; never leave a window half-done
            for cell, record in zip(cells, records):
                apply_addition(cell, record)

        await self._enter(ExplosionPhase.ADDING, position, records)

        for cell in cells:
            if not cell.is_consistent:
                logger.warning(
                    f"Cell at position {cell.position} shows value {cell.value} "
                    f"but holds net {cell.markers.net}"
                )

        await self._enter(ExplosionPhase.SETTLED, position, records)
        return Firing(trigger_position=position, records=records)

    async def explode(self, index: int, recursive: bool = False) -> ExplosionResult:
        """Explode at `index`, optionally cascading.

        Args:
            index: List index of the trigger cell
            recursive: Keep exploding at the same cell, then carry leftward

        Returns:
            ExplosionResult describing every firing

        Raises:
            IndexError: If index is out of range (nothing is mutated)
            CascadeLimitError: If max_firings is exceeded
        """
        validate_index(len(self.sequence), index)
        result = ExplosionResult(start_position=self.sequence[index].position)

        current = index
        try:
            while True:
                result.checked_positions.append(self.sequence[current].position)
                firing = await self._fire_once(current)
                if firing is None:
                    break

                result.firings.append(firing)
                if not recursive:
                    break

                if self.max_firings is not None and len(result.firings) >= self.max_firings:
                    if self._can_continue(current):
                        raise CascadeLimitError(
                            f"Cascade from position {result.start_position} exceeded "
                            f"{self.max_firings} firings"
                        )
                    break

                if can_fire(self.sequence, self.rule, current):
                    continue

                neighbour = self.sequence.more_significant(current)
                if neighbour is None:
                    break
                current = neighbour
        finally:
            self.phase = ExplosionPhase.IDLE

        logger.info(
            f"Explosion from position {result.start_position} settled after "
            f"{len(result.firings)} firing(s)"
        )
        return result

    def _can_continue(self, index: int) -> bool:
        if can_fire(self.sequence, self.rule, index):
            return True
        neighbour = self.sequence.more_significant(index)
        return neighbour is not None and can_fire(self.sequence, self.rule, neighbour)


async def explode(
    sequence: Sequence,
    rule: Rule,
    index: int,
    recursive: bool = False,
    **kwargs: Any,
) -> ExplosionResult:
    """Explode once (or cascade) with a throwaway controller.

    Keyword arguments are passed to ExplosionController.
    """
    return await ExplosionController(sequence, rule, **kwargs).explode(index, recursive=recursive)
