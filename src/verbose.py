"""Verbose logging for machine operations.

Two output channels:
- Change records (firings, annihilations) -> console (stderr)
- Full machine snapshots after each operation -> log file
"""

from __future__ import annotations

import datetime
import json
import sys
from pathlib import Path
from typing import Any, TextIO

from src.dotmachine.annihilation import AnnihilationResult
from src.dotmachine.engine import ChangeRecord
from src.dotmachine.explosion import ExplosionResult


def _describe(record: ChangeRecord) -> str:
    parts = []
    if record.removed is not None:
        target = "out" if record.leaves_sequence else f"-> {record.relocation_target}"
        parts.append(f"-{record.removed.count} {record.removed.kind.value} ({target})")
    if record.added is not None:
        parts.append(f"+{record.added.count} {record.added.kind.value}")
    if not parts:
        parts.append("unchanged")
    return f"@{record.position}: " + ", ".join(parts) + f" [value {record.value_delta:+d}]"


class VerboseLogger:
    """Two-channel verbose logger.

    Channel 1, console: One line per change record, grouped by firing.

    Channel 2, log file: JSON snapshot of the machine after every
    operation.
    """

    def __init__(
        self,
        log_file: str | Path | None = None,
        console: TextIO | None = None,
    ) -> None:
        self._log_file = Path(log_file) if log_file else None
        self._console = console if console is not None else sys.stderr

    @staticmethod
    def _timestamp() -> str:
        return datetime.datetime.now().isoformat(timespec="seconds")

    # ------------------------------------------------------------------
    # Change logging (to console)
    # ------------------------------------------------------------------

    def log_explosion(self, result: ExplosionResult) -> None:
        """Print every firing of an explosion to the console."""
        ts = self._timestamp()
        if not result.changed:
            self._console.write(
                f"[{ts}] EXPLODE @{result.start_position}: rule does not apply\n"
            )
        for i, firing in enumerate(result.firings):
            self._console.write(
                f"[{ts}] EXPLODE #{i + 1} @{firing.trigger_position}\n"
            )
            for record in firing.records:
                self._console.write(f"  {_describe(record)}\n")
        self._console.flush()

    def log_annihilation(self, result: AnnihilationResult) -> None:
        """Print an annihilation to the console."""
        ts = self._timestamp()
        self._console.write(
            f"[{ts}] ANNIHILATE @{result.position}: {result.pairs} pair(s)\n"
        )
        self._console.flush()

    # ------------------------------------------------------------------
    # Snapshot logging (to file)
    # ------------------------------------------------------------------

    def log_snapshot(self, operation: str, snapshot: dict[str, Any]) -> None:
        """Append a machine snapshot to the log file."""
        if self._log_file is None:
            return

        sep = "=" * 80
        with open(self._log_file, "a", encoding="utf-8") as f:
            f.write(f"\n{sep}\n")
            f.write(f"[{self._timestamp()}] {operation}\n")
            f.write(f"{sep}\n")
            f.write(json.dumps(snapshot, indent=2))
            f.write("\n")
