"""Observable computations for the Dot Machine.

Observables read numbers off a sequence without changing it. Two
notions of "how much" a row holds:

1. total_value: the plain sum of cell values. One firing changes it by
   exactly rule.net_delta.
2. represented_value: sum of value * base**position. A rule that is
   a correct place-value identity for its base leaves it unchanged.
"""

from __future__ import annotations

from fractions import Fraction

from src.dotmachine.types import MarkerKind, Sequence
from src.dotmachine.validation import ConfigurationError


def total_value(sequence: Sequence) -> int:
    """Plain sum of all cell values."""
    return sum(cell.value for cell in sequence)


def total_net(sequence: Sequence) -> int:
    """Plain sum of all cells' marker nets."""
    return sum(cell.markers.net for cell in sequence)


def marker_count(sequence: Sequence, kind: MarkerKind) -> int:
    """Total number of markers of one kind across the sequence."""
    return sum(cell.markers.count(kind) for cell in sequence)


def total_markers(sequence: Sequence) -> int:
    return sum(cell.markers.total for cell in sequence)


def numeric_base(base: str | int | Fraction) -> Fraction:
    """Parse a base label into an exact number.

    Raises:
        ConfigurationError: If the base is not a non-zero number
    """
    try:
        value = Fraction(base)
    except (ValueError, TypeError, ZeroDivisionError):
        raise ConfigurationError(f"Base {base!r} is not numeric")
    if value == 0:
        raise ConfigurationError("Base must not be zero")
    return value


def represented_value(sequence: Sequence, base: str | int | Fraction) -> Fraction:
    """Exact quantity the row stands for in the given base."""
    b = numeric_base(base)
    return sum((Fraction(cell.value) * b**cell.position for cell in sequence), Fraction(0))


def place_label(base: str | int, position: int) -> str:
    """Plain-text place-value label, e.g. "10^2" or "2^-1"."""
    return f"{base}^{position}"


def inconsistent_positions(sequence: Sequence) -> list[int]:
    """Positions of cells whose value disagrees with their marker net."""
    return [cell.position for cell in sequence if not cell.is_consistent]


def digits(sequence: Sequence) -> str:
    """Render cell values as a digit row, e.g. "1|0|-2.3".

    Cells are separated by '|'; the fractional part follows a '.'.
    """
    integer = [str(c.value) for c in sequence if c.position >= 0]
    fractional = [str(c.value) for c in sequence if c.position < 0]
    text = "|".join(integer)
    if fractional:
        text += "." + "|".join(fractional)
    return text
