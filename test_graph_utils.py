"""
Graph inspection helpers.

Run with: pytest test_graph_utils.py -v
"""

import pytest

from aad_tape import (
    Tape, get_graph_stats, print_graph_summary, print_computation_graph, analyze_graph_complexity,
)


@pytest.fixture
def tape():
    tape = Tape()
    x = tape.leaf(2.0)
    x * x + x  # mul(x, x) at slot 1, add(mul, x) at slot 2
    return tape


def test_graph_stats(tape):
    stats = get_graph_stats(tape)
    assert stats["slots"] == 3
    assert stats["leaves"] == 1
    assert stats["branches"] == 2
    assert stats["edges"] == 4
    assert stats["max_fan_in"] == 2
    assert stats["max_fan_out"] == 3
    assert stats["avg_fan_out"] == pytest.approx(4 / 3)
    assert stats["operations"] == {"mul": 1, "add": 1}


def test_empty_tape_stats():
    stats = get_graph_stats(Tape())
    assert stats["branches"] == 0
    assert stats["operations"] == {}
    assert analyze_graph_complexity(Tape()) == "Empty computation graph"


def test_print_graph_summary(tape, capsys):
    stats = print_graph_summary(tape, detailed=True)
    out = capsys.readouterr().out
    assert "COMPUTATION GRAPH SUMMARY" in out
    assert "Branches:" in out
    assert "Slot   2: add" in out
    assert stats["branches"] == 2


def test_print_computation_graph(tape, capsys):
    print_computation_graph(tape, max_nodes=2)
    out = capsys.readouterr().out
    assert "[leaf/input]" in out
    assert "mul" in out
    assert "1 more slots" in out


def test_analyze_graph_complexity(tape):
    report = analyze_graph_complexity(tape)
    assert "Total operations: 2" in report
    assert "Complexity level: Low" in report
