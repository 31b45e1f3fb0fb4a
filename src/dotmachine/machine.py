"""The Dot Machine: a row of cells plus one explosion rule.

DotMachine is the single entry point adapters drive:
- add_marker / add_pair when the user drops markers into a cell
- explode / explode_all / annihilate when the user asks for a rewrite

All mutating operations on one machine are serialized behind a single
asyncio lock, so a second request waits for a running cascade to
settle instead of interleaving with it.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from src.dotmachine import annihilation, engine
from src.dotmachine.annihilation import AnnihilationResult, PairRemoval
from src.dotmachine.explosion import (
    ExplosionController,
    ExplosionResult,
    PhaseCallback,
    PhaseTiming,
)
from src.dotmachine.observables import place_label, represented_value, total_value
from src.dotmachine.schema import parse_machine_config
from src.dotmachine.types import Cell, MachineConfig, MarkerKind, Rule, Sequence
from src.dotmachine.validation import ConfigurationError, parse_digits

logger = logging.getLogger(__name__)

# Called after each annihilated pair; may be a coroutine function
PairCallback = Callable[[PairRemoval], Union[Awaitable[None], None]]


def build_sequence(digits: str, rule: Rule) -> Sequence:
    """Build the cells described by a digit string.

    Args:
        digits: Digit string, e.g. "…120.5"
        rule: The rule the sequence will be used with

    Returns:
        A new Sequence; every cell starts with `digit` dots

    Raises:
        ConfigurationError: If the digit string is malformed
    """
    parsed = parse_digits(digits)
    sequence = Sequence(
        [Cell.from_digit(position, digit) for position, digit in parsed.cells()],
        continues_left=parsed.continues_left,
        continues_right=parsed.continues_right,
    )

    if rule.width > len(sequence):
        logger.warning(
            f"Rule of width {rule.width} can never fire on {len(sequence)} cell(s)"
        )

    return sequence


def add_marker(cell: Cell, kind: MarkerKind | str) -> Cell:
    """Drop one dot or antidot into a cell."""
    if not isinstance(kind, MarkerKind):
        kind = MarkerKind.from_string(kind)
    cell.markers.add(kind)
    cell.value += kind.sign
    return cell


class DotMachine:
    """A configured row of cells with its rule."""

    def __init__(
        self,
        config: MachineConfig | None = None,
        timing: PhaseTiming | None = None,
        on_phase: PhaseCallback | None = None,
        max_firings: int | None = None,
        on_pair: PairCallback | None = None,
    ):
        """
        Args:
            config: Digits, rule and base (defaults to "000" in binary)
            timing: Delays between explosion phases
            on_phase: Optional hook called on every explosion phase
            max_firings: Optional cap on firings per cascade
            on_pair: Optional hook called with each PairRemoval
        """
        self.config = config or MachineConfig()
        self.sequence = build_sequence(self.config.digits, self.config.rule)
        self.timing = timing or PhaseTiming()
        self.on_pair = on_pair
        self.controller = ExplosionController(
            self.sequence,
            self.config.rule,
            timing=self.timing,
            on_phase=on_phase,
            max_firings=max_firings,
        )
        self._lock = asyncio.Lock()

        logger.info(
            f"Built machine with {len(self.sequence)} cell(s), "
            f"rule {self.rule.to_dict()}, base {self.base}"
        )

    @property
    def rule(self) -> Rule:
        return self.config.rule

    @property
    def base(self) -> str:
        return self.config.base

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def cell(self, index: int) -> Cell:
        return self.sequence[index]

    def can_fire(self, index: int) -> bool:
        return engine.can_fire(self.sequence, self.rule, index)

    async def add_marker(self, index: int, kind: MarkerKind | str) -> Cell:
        """Add one dot or antidot to the cell at `index`."""
        cell = self.sequence[index]
        if not isinstance(kind, MarkerKind):
            kind = MarkerKind.from_string(kind)
        async with self._lock:
            return add_marker(cell, kind)

    async def add_pair(self, index: int) -> Cell:
        """Add a dot and an antidot together; the value does not change."""
        cell = self.sequence[index]
        async with self._lock:
            add_marker(cell, MarkerKind.DOT)
            return add_marker(cell, MarkerKind.ANTIDOT)

    async def explode(self, index: int, recursive: bool = False) -> ExplosionResult:
        """Explode at the cell at `index`.

        Raises:
            IndexError: If index is out of range
        """
        async with self._lock:
            return await self.controller.explode(index, recursive=recursive)

    async def explode_all(self) -> ExplosionResult:
        """Run a full cascade starting from the least significant cell."""
        return await self.explode(len(self.sequence) - 1, recursive=True)

    async def annihilate(self, index: int) -> AnnihilationResult:
        """Cancel dot/antidot pairs in the cell at `index`, one pair at a time.

        on_pair is called after each removal; timing.pair is the pause
        before the next one.
        """
        cell = self.sequence[index]
        async with self._lock:
            result = AnnihilationResult(position=cell.position)
            for i in range(annihilation.pair_count(cell)):
                if i:
                    await asyncio.sleep(self.timing.pair)
                event = annihilation.remove_pair(cell, i)
                result.events.append(event)
                result.pairs += 1
                if self.on_pair is not None:
                    outcome = self.on_pair(event)
                    if inspect.isawaitable(outcome):
                        await outcome
            logger.debug(f"Annihilated {result.pairs} pair(s) at position {cell.position}")
            return result

    def value(self) -> int:
        return total_value(self.sequence)

    def represented_value(self):
        """Exact quantity in the machine's base.

        Raises:
            ConfigurationError: If the base is not numeric
        """
        return represented_value(self.sequence, self.base)

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view of the machine for adapters."""
        return {
            "config": self.config.to_dict(),
            "continuesLeft": self.sequence.continues_left,
            "continuesRight": self.sequence.continues_right,
            "cells": [
                {
                    "index": i,
                    "position": cell.position,
                    "label": place_label(self.base, cell.position),
                    "value": cell.value,
                    "dots": cell.markers.positive,
                    "antidots": cell.markers.negative,
                    "canFire": self.can_fire(i),
                }
                for i, cell in enumerate(self.sequence)
            ],
        }


def machine_from_dict(data: dict[str, Any], **kwargs: Any) -> DotMachine:
    """Build a machine from its external description.

    Raises:
        ConfigurationError: If the description is malformed
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Machine description must be an object, got {type(data).__name__}")
    return DotMachine(parse_machine_config(data), **kwargs)
