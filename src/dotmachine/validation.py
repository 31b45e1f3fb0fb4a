"""Input validation for the Dot Machine.

Digit strings describe the initial cells:
- Each character is a digit giving the number of dots in one cell
- A single '.' separates integer places from fractional places
- A leading or trailing '…' marks that the row continues past the edge

Rules are pairs of equal-length, non-empty integer vectors.

All checks here run before any mutation, so a rejected input never
leaves a machine half-built.
"""

from dataclasses import dataclass

ELLIPSIS = "…"
DECIMAL_SEPARATOR = "."
DIGITS = "0123456789"


class DotMachineError(Exception):
    """Base class for Dot Machine errors."""

    pass


class ConfigurationError(DotMachineError, ValueError):
    """Raised when a rule, digit string, base or marker kind is malformed."""

    pass


class CascadeLimitError(DotMachineError):
    """Raised when a cascading explosion exceeds its firing budget.

    Every firing completed before the limit is kept; the cascade simply
    stops at a window boundary.
    """

    pass


@dataclass(frozen=True)
class ParsedDigits:
    """A digit string split into its parts.

    Attributes:
        integer_part: Digits left of the separator (most significant first)
        fractional_part: Digits right of the separator
        continues_left: True if the string started with an ellipsis
        continues_right: True if the string ended with an ellipsis
    """

    integer_part: str
    fractional_part: str = ""
    continues_left: bool = False
    continues_right: bool = False

    def cells(self) -> list[tuple[int, int]]:
        """Return (position, digit) pairs, most significant first."""
        n = len(self.integer_part)
        result = [(n - 1 - i, int(c)) for i, c in enumerate(self.integer_part)]
        result.extend((-1 - i, int(c)) for i, c in enumerate(self.fractional_part))
        return result


def parse_digits(text: str) -> ParsedDigits:
    """Parse a digit string such as "…120.5".

    Args:
        text: Digit string

    Returns:
        ParsedDigits with both parts and the continuation flags

    Raises:
        ConfigurationError: If the string is empty, has more than one
            separator, or contains anything other than digits
    """
    if not isinstance(text, str):
        raise ConfigurationError(f"Digit string must be a str, got {type(text).__name__}")

    body = text
    continues_left = body.startswith(ELLIPSIS)
    if continues_left:
        body = body[len(ELLIPSIS):]
    continues_right = body.endswith(ELLIPSIS)
    if continues_right:
        body = body[: -len(ELLIPSIS)]

    parts = body.split(DECIMAL_SEPARATOR)
    if len(parts) > 2:
        raise ConfigurationError(
            f"Digit string '{text}' has {len(parts) - 1} separators, at most one allowed"
        )

    integer_part = parts[0]
    fractional_part = parts[1] if len(parts) == 2 else ""

    invalid_chars = [c for c in integer_part + fractional_part if c not in DIGITS]
    if invalid_chars:
        raise ConfigurationError(
            f"Invalid characters in digit string '{text}': {invalid_chars}"
        )

    if not integer_part and not fractional_part:
        raise ConfigurationError(f"Digit string '{text}' describes no cells")

    return ParsedDigits(
        integer_part=integer_part,
        fractional_part=fractional_part,
        continues_left=continues_left,
        continues_right=continues_right,
    )


def is_valid_digits(text: str) -> bool:
    """Check whether a digit string can be parsed."""
    try:
        parse_digits(text)
    except ConfigurationError:
        return False
    return True


def validate_rule_vectors(from_: tuple[int, ...], to: tuple[int, ...]) -> None:
    """Validate the two vectors of a rule.

    Raises:
        ConfigurationError: If either vector is empty, the lengths differ,
            or an entry is not an integer
    """
    if len(from_) == 0 or len(to) == 0:
        raise ConfigurationError("Rule vectors must not be empty")

    if len(from_) != len(to):
        raise ConfigurationError(
            f"Rule vectors must have equal length, got from={len(from_)} and to={len(to)}"
        )

    for name, vector in (("from", from_), ("to", to)):
        bad = [v for v in vector if isinstance(v, bool) or not isinstance(v, int)]
        if bad:
            raise ConfigurationError(f"Rule '{name}' entries must be integers, got {bad}")


def validate_index(length: int, index: int) -> None:
    """Validate a cell index against a sequence length.

    Negative indices are rejected rather than counted from the end.

    Raises:
        IndexError: If index is outside [0, length)
    """
    if isinstance(index, bool) or not isinstance(index, int):
        raise IndexError(f"Cell index must be an integer, got {index!r}")
    if index < 0 or index >= length:
        raise IndexError(f"Cell index {index} out of range for {length} cells")
