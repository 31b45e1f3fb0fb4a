"""Schema definitions for externally supplied machine descriptions.

These Pydantic models define the JSON accepted from adapters, CLIs
and environment variables:

    {"cells": "…120.5", "rule": {"from": [0, 2], "to": [1, 0]}, "base": "2"}
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from src.dotmachine.types import DEFAULT_DIGITS, MachineConfig, Rule
from src.dotmachine.validation import ConfigurationError, parse_digits


class RuleDescriptor(BaseModel):
    """The {from, to} rule descriptor."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    from_: list[int] = Field(alias="from", min_length=1, description="Markers required per window cell")
    to: list[int] = Field(min_length=1, description="Markers produced per window cell")

    @model_validator(mode="after")
    def check_lengths(self) -> RuleDescriptor:
        if len(self.from_) != len(self.to):
            raise ValueError(
                f"'from' and 'to' must have equal length, got {len(self.from_)} and {len(self.to)}"
            )
        return self

    def to_rule(self) -> Rule:
        return Rule(from_=tuple(self.from_), to=tuple(self.to))


class MachineConfigModel(BaseModel):
    """External form of a machine configuration."""

    model_config = ConfigDict(extra="forbid")

    cells: str = Field(default=DEFAULT_DIGITS, description="Initial digit string")
    rule: RuleDescriptor = Field(
        default_factory=lambda: RuleDescriptor(**{"from": [0, 2], "to": [1, 0]}),
        description="Explosion rule",
    )
    base: str | None = Field(default=None, description="Radix shown in place labels")

    @field_validator("cells")
    @classmethod
    def check_cells(cls, v: str) -> str:
        try:
            parse_digits(v)
        except ConfigurationError as e:
            raise ValueError(str(e))
        return v

    @field_validator("base", mode="before")
    @classmethod
    def coerce_base(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def to_config(self) -> MachineConfig:
        return MachineConfig(digits=self.cells, rule=self.rule.to_rule(), base=self.base)


def _load(data: dict | str) -> Any:
    if isinstance(data, str):
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON: {e}")
    return data


def parse_rule(data: dict | str) -> Rule:
    """Parse a rule descriptor from a dict or JSON string.

    Raises:
        ConfigurationError: If the descriptor is malformed
    """
    try:
        return RuleDescriptor.model_validate(_load(data)).to_rule()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid rule descriptor: {e}")


def parse_machine_config(data: dict | str) -> MachineConfig:
    """Parse a machine configuration from a dict or JSON string.

    Raises:
        ConfigurationError: If any part is malformed
    """
    try:
        return MachineConfigModel.model_validate(_load(data)).to_config()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid machine config: {e}")


class ExplodeRequest(BaseModel):
    """Body of an explode request from an adapter."""

    model_config = ConfigDict(extra="forbid")

    recursive: bool = Field(default=False, description="Cascade after the first firing")


class MarkerRequest(BaseModel):
    """Body of an add-marker request from an adapter."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["dot", "antidot", "pair"] = Field(default="dot", description="What to drop into the cell")


def parse_explode_request(data: dict | str) -> ExplodeRequest:
    try:
        return ExplodeRequest.model_validate(_load(data))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid explode request: {e}")


def parse_marker_request(data: dict | str) -> MarkerRequest:
    try:
        return MarkerRequest.model_validate(_load(data))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid marker request: {e}")
