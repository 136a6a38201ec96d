"""Tests for the Gradio demo callbacks (skipped without gradio)."""

import importlib.util
from pathlib import Path

import pytest

pytest.importorskip("gradio")

DEMO_PATH = Path(__file__).parent.parent / "demo" / "gradio_app.py"


@pytest.fixture(scope="module")
def demo():
    spec = importlib.util.spec_from_file_location("gradio_app", DEMO_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestRunProgram:

    def test_example_program(self, demo):
        summary, trace, registers = demo.run_program(
            demo.EXAMPLE_PROGRAMS["Jump via ip"], "0", 6, 10000
        )
        assert "Cycles: 5" in summary
        assert "Halted: Yes" in summary
        assert "Instruction: seti 9 0 5" in trace
        assert "x0:          6 *" in registers

    def test_countdown(self, demo):
        _, _, registers = demo.run_program(demo.EXAMPLE_PROGRAMS["Countdown"], "0", 6, 10000)
        assert "x1:         10 *" in registers

    def test_cycle_limit(self, demo):
        summary, _, _ = demo.run_program("#ip 0\nseti 0 0 0\nseti 0 0 0", "0", 6, 100)
        assert "Max cycles (100)" in summary
        assert "Halted: No" in summary

    def test_empty(self, demo):
        assert demo.run_program("   ", "0", 6, 100)[0] == "Error: No program provided"

    def test_parse_error(self, demo):
        summary, trace, registers = demo.run_program("bogus", "0", 6, 100)
        assert summary.startswith("Error: line 1")
        assert trace == registers == ""


class TestHelpers:

    def test_disassembly(self, demo):
        text = demo.show_disassembly(demo.EXAMPLE_PROGRAMS["Jump via ip"])
        assert text.splitlines()[2] == "2: goto 4"

    def test_load_example(self, demo):
        assert demo.load_example("Custom") == ""
        assert demo.load_example("missing") == ""
