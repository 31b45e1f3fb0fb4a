from src.dotmachine.annihilation import AnnihilationResult, PairRemoval, reduce, remove_pair
from src.dotmachine.engine import ChangeRecord, MarkerCount, can_fire, fire, plan_firing
from src.dotmachine.explosion import (
    ExplosionController,
    ExplosionPhase,
    ExplosionResult,
    PhaseTiming,
    explode,
)
from src.dotmachine.machine import DotMachine, add_marker, build_sequence, machine_from_dict
from src.dotmachine.observables import represented_value, total_value
from src.dotmachine.schema import parse_machine_config, parse_rule
from src.dotmachine.types import Cell, MachineConfig, MarkerKind, MarkerSet, Rule, Sequence
from src.dotmachine.validation import CascadeLimitError, ConfigurationError, DotMachineError

__all__ = [
    # Types
    "MarkerKind",
    "MarkerSet",
    "Cell",
    "Sequence",
    "Rule",
    "MachineConfig",
    # Errors
    "DotMachineError",
    "ConfigurationError",
    "CascadeLimitError",
    # Rule engine
    "can_fire",
    "plan_firing",
    "fire",
    "ChangeRecord",
    "MarkerCount",
    # Explosions
    "ExplosionController",
    "ExplosionPhase",
    "ExplosionResult",
    "PhaseTiming",
    "explode",
    # Annihilation
    "reduce",
    "remove_pair",
    "AnnihilationResult",
    "PairRemoval",
    # Machine
    "DotMachine",
    "build_sequence",
    "add_marker",
    "machine_from_dict",
    "parse_rule",
    "parse_machine_config",
    # Observables
    "total_value",
    "represented_value",
]
