#!/usr/bin/env python3
"""Run a Dot Machine from the command line.

Builds a machine from a digit string and rule, applies a list of
actions in order, and prints the cells after each one.

Actions:
    dot:I          add a dot to cell I
    antidot:I      add an antidot to cell I
    pair:I         add a dot/antidot pair to cell I
    explode:I      explode once at cell I
    cascade:I      explode at cell I recursively
    annihilate:I   cancel dot/antidot pairs in cell I
    all            cascade from the least significant cell

Usage:
    python scripts/run_machine.py --cells 0013 --rule '{"from": [0, 2], "to": [1, 0]}' all
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv(project_root / ".env")

from src.dotmachine.machine import DotMachine
from src.dotmachine.observables import digits, place_label
from src.dotmachine.schema import parse_rule
from src.dotmachine.types import DEFAULT_RULE, MachineConfig
from src.dotmachine.validation import ConfigurationError, DotMachineError
from src.verbose import VerboseLogger

ACTIONS = ("dot", "antidot", "pair", "explode", "cascade", "annihilate", "all")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: If True, set DEBUG level; otherwise use
            DOT_MACHINE_LOG_LEVEL (default WARNING)
    """
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.environ.get("DOT_MACHINE_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_action(text: str) -> tuple[str, int | None]:
    """Split "explode:3" into ("explode", 3)."""
    name, _, arg = text.partition(":")
    if name not in ACTIONS:
        raise ConfigurationError(f"Unknown action '{name}'. Valid actions: {', '.join(ACTIONS)}")
    if name == "all":
        return name, None
    try:
        return name, int(arg)
    except ValueError:
        raise ConfigurationError(f"Action '{text}' needs a cell index, e.g. {name}:0")


def print_cells(machine: DotMachine) -> None:
    header = " ".join(f"{place_label(machine.base, c.position):>8}" for c in machine.sequence)
    values = " ".join(f"{c.value:>8}" for c in machine.sequence)
    markers = " ".join(
        f"{f'{c.markers.positive}/{c.markers.negative}':>8}" for c in machine.sequence
    )
    print(header)
    print(values)
    print(markers)
    print(f"digits: {digits(machine.sequence)}")


async def run_actions(machine: DotMachine, actions: list[tuple[str, int | None]], vl: VerboseLogger) -> None:
    for name, index in actions:
        if name == "dot":
            await machine.add_marker(index, "dot")
        elif name == "antidot":
            await machine.add_marker(index, "antidot")
        elif name == "pair":
            await machine.add_pair(index)
        elif name == "explode":
            vl.log_explosion(await machine.explode(index))
        elif name == "cascade":
            vl.log_explosion(await machine.explode(index, recursive=True))
        elif name == "annihilate":
            vl.log_annihilation(await machine.annihilate(index))
        elif name == "all":
            vl.log_explosion(await machine.explode_all())

        vl.log_snapshot(f"{name}" + (f":{index}" if index is not None else ""), machine.snapshot())
        print(f"\n> {name}" + (f":{index}" if index is not None else ""))
        print_cells(machine)


def main():
    parser = argparse.ArgumentParser(
        description="Run a Dot Machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "actions",
        nargs="*",
        help="Actions to apply in order (see above)",
    )
    parser.add_argument(
        "--cells", "-c",
        type=str,
        default=os.environ.get("DOT_MACHINE_CELLS", "000"),
        help="Initial digit string (default: $DOT_MACHINE_CELLS or 000)",
    )
    parser.add_argument(
        "--rule", "-r",
        type=str,
        default=os.environ.get("DOT_MACHINE_RULE"),
        help='Rule as JSON, e.g. \'{"from": [0, 3], "to": [1, 0]}\' (default: binary carry)',
    )
    parser.add_argument(
        "--base", "-b",
        type=str,
        default=None,
        help="Radix for place labels (default: last entry of rule 'from')",
    )
    parser.add_argument(
        "--max-firings",
        type=int,
        default=10000,
        help="Stop a cascade after this many firings (default: 10000)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Append a JSON snapshot after each action to this file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable DEBUG logging",
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    try:
        rule = parse_rule(args.rule) if args.rule else DEFAULT_RULE
        config = MachineConfig(digits=args.cells, rule=rule, base=args.base)
        actions = [parse_action(a) for a in args.actions]
        machine = DotMachine(config, max_firings=args.max_firings)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print_cells(machine)

    vl = VerboseLogger(log_file=args.log_file)
    try:
        asyncio.run(run_actions(machine, actions, vl))
    except (IndexError, DotMachineError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
