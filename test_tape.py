"""
Tape, Branch and Node basics: slots, positions, leaves and immutability.

Run with: pytest test_tape.py -v
"""

import dataclasses

import numpy as np
import pytest

from aad_tape import Tape, Node, Branch, leaf, use_tape, mul, add


def test_leaf_occupies_slot_without_branch():
    tape = Tape()
    x = tape.leaf(3.0)
    assert isinstance(x, Node)
    assert x.position == 0
    assert x.tape is tape
    assert x.is_leaf
    assert tape.get(0) is None
    assert len(tape) == 1
    assert tape.branches == []


def test_leaf_converts_to_float64():
    tape = Tape()
    s = tape.leaf(2)
    a = tape.leaf([1, 2, 3])
    assert isinstance(s.value, np.float64)
    assert a.value.dtype == np.float64
    assert a.shape == (3,)
    assert s.shape == ()


@pytest.mark.parametrize("bad", ["3.0", None, True, {"a": 1}])
def test_leaf_rejects_non_numeric(bad):
    with pytest.raises(TypeError):
        Tape().leaf(bad)


def test_append_returns_increasing_positions():
    tape = Tape()
    p0 = tape.push_leaf()
    p1 = tape.append("op", (1.0,), context=("ctx",), output=2.0)
    p2 = tape.append("op", (2.0,))
    assert (p0, p1, p2) == (0, 1, 2)
    b = tape.get(1)
    assert isinstance(b, Branch)
    assert b.operation == "op"
    assert b.args == (1.0,)
    assert b.context == ("ctx",)
    assert b.position == 1
    assert b.output == 2.0
    assert b.kwargs == {}
    assert tape[2].context == ()


def test_get_out_of_range():
    tape = Tape()
    tape.push_leaf()
    with pytest.raises(IndexError):
        tape.get(1)
    with pytest.raises(IndexError):
        tape.get(-1)


def test_branch_is_immutable():
    tape = Tape()
    tape.append("op", (1.0,))
    with pytest.raises(dataclasses.FrozenInstanceError):
        tape.get(0).operation = "other"


def test_operation_result_points_at_its_branch():
    tape = Tape()
    x, y = tape.leaf(2.0), tape.leaf(3.0)
    z = mul(x, y)
    assert z.position == 2
    assert not z.is_leaf
    branch = tape.get(z.position)
    assert branch.operation == "mul"
    assert branch.args[0] is x and branch.args[1] is y
    assert branch.output == 6.0
    assert branch.tracked() == (True, True)
    assert [i for i, _ in branch.parents()] == [0, 1]


def test_leaf_function_uses_active_tape():
    with use_tape() as tape:
        x = leaf(1.0)
        y = leaf(2.0)
        assert x.tape is tape and y.tape is tape
        add(x, y)
        assert len(tape) == 3
    # Outside the block every leaf starts its own tape.
    a, b = leaf(1.0), leaf(2.0)
    assert a.tape is not b.tape


def test_leaf_explicit_tape_and_name():
    tape = Tape()
    x = leaf(5.0, tape, name="x")
    assert x.tape is tape
    assert x.name == "x"
    assert "leaf" in repr(x)
    assert "x" in repr(x)


def test_use_tape_keeps_given_empty_tape():
    tape = Tape()
    with use_tape(tape) as active:
        assert active is tape
        assert leaf(1.0).tape is tape
