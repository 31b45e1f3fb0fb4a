"""Type definitions for the Dot Machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from src.dotmachine.validation import (
    ConfigurationError,
    parse_digits,
    validate_index,
    validate_rule_vectors,
)


class MarkerKind(str, Enum):
    """Kinds of marker a cell can hold.

    dot     = one positive unit
    antidot = one negative unit
    """

    DOT = "dot"
    ANTIDOT = "antidot"

    @property
    def sign(self) -> int:
        return 1 if self is MarkerKind.DOT else -1

    @classmethod
    def for_amount(cls, amount: int) -> MarkerKind | None:
        """Kind indicated by the sign of a rule entry (None for zero)."""
        if amount > 0:
            return cls.DOT
        if amount < 0:
            return cls.ANTIDOT
        return None

    @classmethod
    def from_string(cls, value: str) -> MarkerKind:
        """Parse a marker kind from its string value."""
        try:
            return cls(value.lower())
        except (ValueError, AttributeError):
            raise ConfigurationError(f"Unknown marker kind: {value!r}")


@dataclass
class MarkerSet:
    """Counts of dots and antidots held by one cell.

    Attributes:
        positive: Number of dots (>= 0)
        negative: Number of antidots (>= 0)
    """

    positive: int = 0
    negative: int = 0

    def __post_init__(self) -> None:
        if self.positive < 0 or self.negative < 0:
            raise ValueError(
                f"Marker counts must be >= 0, got positive={self.positive}, negative={self.negative}"
            )

    @property
    def net(self) -> int:
        return self.positive - self.negative

    @property
    def total(self) -> int:
        return self.positive + self.negative

    def count(self, kind: MarkerKind) -> int:
        return self.positive if kind is MarkerKind.DOT else self.negative

    def add(self, kind: MarkerKind, n: int = 1) -> None:
        if n < 0:
            raise ValueError(f"Cannot add a negative number of markers: {n}")
        if kind is MarkerKind.DOT:
            self.positive += n
        else:
            self.negative += n

    def remove(self, kind: MarkerKind, n: int = 1) -> None:
        """Remove n markers of a kind.

        Raises:
            ValueError: If fewer than n markers of that kind are present
        """
        available = self.count(kind)
        if n < 0 or n > available:
            raise ValueError(f"Cannot remove {n} {kind.value}(s), only {available} present")
        if kind is MarkerKind.DOT:
            self.positive -= n
        else:
            self.negative -= n


@dataclass
class Cell:
    """One place-value slot.

    Attributes:
        position: Weight exponent (0 = units, >0 integer places, <0 fractional)
        markers: Dots and antidots currently in the cell
        value: Displayed signed value, updated alongside the markers
    """

    position: int
    markers: MarkerSet = field(default_factory=MarkerSet)
    value: int = 0

    @classmethod
    def from_digit(cls, position: int, digit: int) -> Cell:
        """Create a cell holding `digit` dots."""
        return cls(position=position, markers=MarkerSet(positive=digit), value=digit)

    @property
    def is_consistent(self) -> bool:
        """True while the displayed value agrees with the marker net."""
        return self.value == self.markers.net


class Sequence:
    """Ordered row of cells, most significant first.

    Cells are fixed once the sequence is built; only their contents
    change. Positions strictly decrease from left to right.
    """

    def __init__(
        self,
        cells: list[Cell],
        continues_left: bool = False,
        continues_right: bool = False,
    ) -> None:
        if not cells:
            raise ConfigurationError("A sequence needs at least one cell")

        for left, right in zip(cells, cells[1:]):
            if left.position <= right.position:
                raise ConfigurationError(
                    f"Cell positions must strictly decrease, got {left.position} then {right.position}"
                )

        self._cells = list(cells)
        self._index_by_position = {c.position: i for i, c in enumerate(self._cells)}
        self.continues_left = continues_left
        self.continues_right = continues_right

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(self._cells)

    def __getitem__(self, index: int) -> Cell:
        validate_index(len(self._cells), index)
        return self._cells[index]

    @property
    def cells(self) -> tuple[Cell, ...]:
        return tuple(self._cells)

    @property
    def positions(self) -> list[int]:
        return [c.position for c in self._cells]

    @property
    def values(self) -> list[int]:
        return [c.value for c in self._cells]

    def index_of(self, position: int) -> int:
        """List index of the cell at a place-value position.

        Raises:
            IndexError: If no cell has that position
        """
        try:
            return self._index_by_position[position]
        except KeyError:
            raise IndexError(f"No cell at position {position}")

    def cell_at(self, position: int) -> Cell:
        return self._cells[self.index_of(position)]

    def more_significant(self, index: int) -> int | None:
        """Index of the neighbour one place more significant, or None at the left edge."""
        validate_index(len(self._cells), index)
        return index - 1 if index > 0 else None

    def window(self, index: int, width: int) -> list[Cell] | None:
        """The `width` cells ending at `index`, or None if they run off the left edge."""
        validate_index(len(self._cells), index)
        start = index - width + 1
        if start < 0:
            return None
        return self._cells[start : index + 1]


@dataclass(frozen=True)
class Rule:
    """An explosion rule.

    `from_[j]` and `to[j]` pair with the j-th cell of a window, counted
    from the most significant end, so the last entry pairs with the
    cell that triggers the explosion. The sign of an entry gives the
    marker kind and its magnitude the count.

    Example (binary carry): Rule(from_=(0, 2), to=(1, 0)) turns two dots
    in a cell into one dot in its left neighbour.
    """

    from_: tuple[int, ...]
    to: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_", tuple(self.from_))
        object.__setattr__(self, "to", tuple(self.to))
        validate_rule_vectors(self.from_, self.to)

    @property
    def width(self) -> int:
        return len(self.from_)

    @property
    def net_delta(self) -> int:
        """Change in the plain sum of cell values caused by one firing."""
        return sum(self.to) - sum(self.from_)

    def to_dict(self) -> dict[str, list[int]]:
        return {"from": list(self.from_), "to": list(self.to)}

    @classmethod
    def from_dict(cls, data: dict) -> Rule:
        try:
            return cls(from_=tuple(data["from"]), to=tuple(data["to"]))
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"Rule descriptor needs 'from' and 'to' lists: {e}")


DEFAULT_DIGITS = "000"
DEFAULT_RULE = Rule(from_=(0, 2), to=(1, 0))


@dataclass(frozen=True)
class MachineConfig:
    """Machine configuration.

    Attributes:
        digits: Initial digit string (see validation.parse_digits)
        rule: Explosion rule
        base: Radix shown in place labels. Defaults to the magnitude
            the rule requires in the trigger cell, which is only
            meaningful for rules of the form from=[0, n].
    """

    digits: str = DEFAULT_DIGITS
    rule: Rule = DEFAULT_RULE
    base: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.rule, Rule):
            raise ConfigurationError(f"rule must be a Rule, got {type(self.rule).__name__}")
        parse_digits(self.digits)
        if self.base is None:
            object.__setattr__(self, "base", str(self.rule.from_[-1]))
        elif not str(self.base).strip():
            raise ConfigurationError("base must not be empty")
        else:
            object.__setattr__(self, "base", str(self.base))

    def to_dict(self) -> dict:
        return {"cells": self.digits, "rule": self.rule.to_dict(), "base": self.base}
