"""Tests for the verbose logging module."""

import asyncio
import io
import json

from src.dotmachine.annihilation import reduce
from src.dotmachine.explosion import ExplosionController
from src.dotmachine.machine import DotMachine, build_sequence
from src.dotmachine.types import DEFAULT_RULE, Cell, MachineConfig, MarkerSet, Rule
from src.verbose import VerboseLogger


def run_explosion(digits, index, rule=DEFAULT_RULE, recursive=False):
    seq = build_sequence(digits, rule)
    return asyncio.run(ExplosionController(seq, rule).explode(index, recursive=recursive))


class TestVerboseLoggerConsole:
    """Test that change records are printed to the console."""

    def test_explosion_printed(self):
        console = io.StringIO()
        vl = VerboseLogger(console=console)

        vl.log_explosion(run_explosion("013", 2, recursive=True))

        output = console.getvalue()
        assert "EXPLODE #1 @0" in output
        assert "EXPLODE #2 @1" in output
        assert "-2 dot (-> 1)" in output
        assert "+1 dot" in output

    def test_carry_out_printed(self):
        console = io.StringIO()
        vl = VerboseLogger(console=console)

        vl.log_explosion(run_explosion("2", 0, rule=Rule(from_=(2,), to=(0,))))

        assert "-2 dot (out)" in console.getvalue()

    def test_no_match_printed(self):
        console = io.StringIO()
        vl = VerboseLogger(console=console)

        vl.log_explosion(run_explosion("011", 2))

        assert "rule does not apply" in console.getvalue()

    def test_annihilation_printed(self):
        console = io.StringIO()
        vl = VerboseLogger(console=console)

        cell = Cell(position=3, markers=MarkerSet(positive=2, negative=1), value=1)
        vl.log_annihilation(reduce(cell))

        assert "ANNIHILATE @3: 1 pair(s)" in console.getvalue()


class TestVerboseLoggerFile:
    """Test that snapshots are written to the log file."""

    def test_snapshot_written(self, tmp_path):
        log_file = tmp_path / "verbose.log"
        vl = VerboseLogger(log_file=log_file)

        machine = DotMachine(MachineConfig(digits="013"))
        vl.log_snapshot("explode:2", machine.snapshot())

        content = log_file.read_text()
        assert "explode:2" in content
        body = content.split("=" * 80)[-1]
        assert json.loads(body)["config"]["cells"] == "013"

    def test_snapshots_append(self, tmp_path):
        log_file = tmp_path / "verbose.log"
        vl = VerboseLogger(log_file=log_file)

        vl.log_snapshot("first", {"cells": []})
        vl.log_snapshot("second", {"cells": []})

        content = log_file.read_text()
        assert "first" in content
        assert "second" in content

    def test_no_file_means_no_write(self, tmp_path):
        vl = VerboseLogger(log_file=None, console=io.StringIO())
        vl.log_snapshot("anything", {"cells": []})
        assert list(tmp_path.iterdir()) == []
