"""Rule engine for the Dot Machine.

This implements the window rewrite at the heart of the machine:

1. Matching: a rule of width w looks at the w cells ending at the
   trigger cell. Position j is satisfied iff its cell holds at least
   |from[j]| markers of the kind given by the sign of from[j]. A zero
   entry is always satisfied. A window that runs off the left edge of
   the sequence can never be satisfied.

2. Firing: every window position independently
   - loses |from[j]| markers of the required kind
   - gains |to[j]| markers of the kind given by the sign of to[j]
   - has its value changed by to[j] - from[j]

The removed markers are reported as moving to the neighbour one place
more significant than their cell (or out of the sequence at the left
edge). That hint is for animation only; the numeric change is already
fully captured by to[j] - from[j].
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from src.dotmachine.types import Cell, MarkerKind, Rule, Sequence
from src.dotmachine.validation import validate_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerCount:
    """A number of markers of one kind."""

    kind: MarkerKind
    count: int

    @classmethod
    def for_amount(cls, amount: int) -> MarkerCount | None:
        """Build from a signed rule entry (None for zero)."""
        kind = MarkerKind.for_amount(amount)
        if kind is None:
            return None
        return cls(kind=kind, count=abs(amount))

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "count": self.count}


@dataclass(frozen=True)
class ChangeRecord:
    """What one firing does to one window position.

    Attributes:
        position: Place-value position of the cell
        removed: Markers taken out of the cell (None if from[j] == 0)
        added: Markers put into the cell (None if to[j] == 0)
        value_delta: Change of the cell's value (to[j] - from[j])
        relocation_target: Position of the cell the removed markers move
            to, None if nothing was removed or they leave the sequence
        leaves_sequence: True if removed markers carry out past the
            most significant cell
    """

    position: int
    removed: MarkerCount | None
    added: MarkerCount | None
    value_delta: int
    relocation_target: int | None = None
    leaves_sequence: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the shape the presentation layer consumes."""
        return {
            "cellPosition": self.position,
            "markersRemoved": self.removed.to_dict() if self.removed else None,
            "markersAdded": self.added.to_dict() if self.added else None,
            "relocationTarget": self.relocation_target,
            "leavesSequence": self.leaves_sequence,
            "valueDelta": self.value_delta,
        }


def can_fire(sequence: Sequence, rule: Rule, index: int) -> bool:
    """Check whether a rule may fire with `index` as its trigger cell.

    Has no side effects.

    Args:
        sequence: The cells
        rule: Rule to match
        index: List index of the trigger cell

    Returns:
        True if every window position is satisfied

    Raises:
        IndexError: If index is out of range
    """
    window = sequence.window(index, rule.width)
    if window is None:
        return False

    for cell, amount in zip(window, rule.from_):
        kind = MarkerKind.for_amount(amount)
        if kind is not None and cell.markers.count(kind) < abs(amount):
            return False

    return True


def plan_firing(sequence: Sequence, rule: Rule, index: int) -> list[ChangeRecord]:
    """Compute the change records for firing at `index`, without mutating.

    Returns an empty list if the rule does not match there.

    Raises:
        IndexError: If index is out of range
    """
    validate_index(len(sequence), index)
    if not can_fire(sequence, rule, index):
        return []

    start = index - rule.width + 1
    records = []
    for j, (f, t) in enumerate(zip(rule.from_, rule.to)):
        cell_index = start + j
        cell = sequence[cell_index]
        removed = MarkerCount.for_amount(f)

        relocation_target = None
        leaves_sequence = False
        if removed is not None:
            neighbour = sequence.more_significant(cell_index)
            if neighbour is None:
                leaves_sequence = True
            else:
                relocation_target = sequence[neighbour].position

        records.append(
            ChangeRecord(
                position=cell.position,
                removed=removed,
                added=MarkerCount.for_amount(t),
                value_delta=t - f,
                relocation_target=relocation_target,
                leaves_sequence=leaves_sequence,
            )
        )

    return records


def apply_removal(cell: Cell, record: ChangeRecord) -> None:
    """Take a record's removed markers out of its cell."""
    if record.removed is not None:
        cell.markers.remove(record.removed.kind, record.removed.count)


def apply_addition(cell: Cell, record: ChangeRecord) -> None:
    """Put a record's added markers into its cell and settle its value."""
    if record.added is not None:
        cell.markers.add(record.added.kind, record.added.count)
    cell.value += record.value_delta


def apply_record(cell: Cell, record: ChangeRecord) -> None:
    """Apply one window position's removal, addition and value change as a unit."""
    if record.removed is not None and cell.markers.count(record.removed.kind) < record.removed.count:
        raise ValueError(
            f"Cell at position {cell.position} cannot give up "
            f"{record.removed.count} {record.removed.kind.value}(s)"
        )
    apply_removal(cell, record)
    apply_addition(cell, record)


def fire(sequence: Sequence, rule: Rule, index: int) -> list[ChangeRecord]:
    """Fire a rule at `index` and apply it to the sequence.

    Firing where the rule does not match is a no-op returning an empty
    change log.

    Args:
        sequence: The cells (mutated)
        rule: Rule to fire
        index: List index of the trigger cell

    Returns:
        One ChangeRecord per window position, most significant first

    Raises:
        IndexError: If index is out of range (nothing is mutated)
    """
    records = plan_firing(sequence, rule, index)
    if not records:
        return records

    for record in records:
        apply_record(sequence.cell_at(record.position), record)

    logger.debug(
        f"Fired {rule.to_dict()} at position {sequence[index].position}: "
        f"values now {sequence.values}"
    )
    return records
