"""
Interception registry: eager fallback, recording, variadic tails, keyword
pass-through and registration-time validation.

Run with: pytest test_intercept.py -v
"""

import numpy as np
import pytest

from aad_tape import (
    Tape, Node, Registry, register_operation, differentiable, define_sensitivity,
    per_argument, ConfigurationError, GraphMismatchError,
)
import aad_tape.ops as ops


def _identity_pullbacks(n):
    return per_argument(*[lambda y, ybar, ctx, *args: ybar] * n)


@pytest.fixture
def registry():
    return Registry()


# =============================================================================
# Eager fallback
# =============================================================================

@pytest.mark.parametrize("op, args", [
    (ops.add, (1.5, 2.25)),
    (ops.mul, (np.arange(3.0), 0.1)),
    (ops.div, (1.0, 3.0)),
    (ops.exp, (np.linspace(-1, 1, 5),)),
    (ops.add_n, (1.0, 2.0, 3.0)),
    (ops.matmul, (np.eye(2), np.array([1.0, 2.0]))),
])
def test_untracked_call_is_bit_identical(op, args):
    expected = op.forward(*args)
    got = op(*args)
    assert not isinstance(got, Node)
    np.testing.assert_array_equal(got, expected)
    assert type(got) is type(expected)


def test_untracked_call_touches_no_tape():
    tape = Tape()
    x = tape.leaf(1.0)
    ops.add(2.0, 3.0)
    ops.add_n(1.0, 2.0)
    assert len(tape) == 1
    assert x.position == 0


def test_untracked_keywords_forwarded(registry):
    scale = register_operation(
        "scale", lambda x, factor=2.0: x * factor, _identity_pullbacks(1), registry=registry,
    )
    assert scale(3.0) == 6.0
    assert scale(3.0, factor=10.0) == 30.0


# =============================================================================
# Recording
# =============================================================================

def test_tracked_call_records_branch_with_all_args(registry):
    f = register_operation("f", lambda a, b, c: a * b + c, _identity_pullbacks(3), registry=registry)
    tape = Tape()
    x = tape.leaf(2.0)
    y = f(x, 5.0, 1.0)
    assert isinstance(y, Node)
    assert y.value == 11.0
    branch = tape.get(y.position)
    assert branch.operation == "f"
    assert branch.args == (x, 5.0, 1.0)
    assert branch.tracked() == (True, False, False)


def test_keywords_reach_forward_preprocess_and_branch(registry):
    seen = {}

    def preprocess(x, factor=2.0):
        seen["raw"] = x
        return ("scaled-by", factor)

    scale = register_operation(
        "scale", lambda x, factor=2.0: x * factor,
        per_argument(lambda y, ybar, ctx, x, factor=2.0: ybar * factor),
        preprocess=preprocess, registry=registry,
    )
    tape = Tape()
    x = tape.leaf(3.0)
    y = scale(x, factor=4.0)
    assert y.value == 12.0
    # preprocess sees the unwrapped value, not the Node
    assert seen["raw"] == 3.0 and not isinstance(seen["raw"], Node)
    branch = tape.get(y.position)
    assert branch.context == ("scaled-by", 4.0)
    assert branch.kwargs == {"factor": 4.0}


def test_default_preprocess_gives_empty_context(registry):
    f = register_operation("f", lambda a: a, _identity_pullbacks(1), registry=registry)
    tape = Tape()
    y = f(tape.leaf(1.0))
    assert tape.get(y.position).context == ()


def test_forward_receives_unwrapped_values(registry):
    received = []

    def forward(a, b):
        received.extend([a, b])
        return a + b

    f = register_operation("f", forward, _identity_pullbacks(2), registry=registry)
    tape = Tape()
    f(tape.leaf(1.0), tape.leaf(2.0))
    assert not any(isinstance(r, Node) for r in received)


def test_tape_taken_from_first_tracked_argument():
    tape = Tape()
    x = tape.leaf(1.0)
    y = ops.add(4.0, x)
    assert y.tape is tape


def test_mixed_tapes_fail_fast():
    x = Tape().leaf(1.0)
    y = Tape().leaf(2.0)
    with pytest.raises(GraphMismatchError, match="mismatched computation graph"):
        ops.mul(x, y)


def test_non_differentiable_position_rejects_node():
    tape = Tape()
    x = tape.leaf([1.0, 2.0, 3.0])
    i = tape.leaf(0.0)
    with pytest.raises(TypeError, match="not differentiable"):
        ops.getindex(x, i)
    with pytest.raises(TypeError, match="not differentiable"):
        ops.getindex(np.arange(3.0), i)


def test_extra_positional_on_fixed_arity_op_is_not_tracked(registry):
    f = register_operation(
        "f", lambda x, axis=None: np.sum(x, axis=axis), _identity_pullbacks(1), registry=registry,
    )
    tape = Tape()
    with pytest.raises(TypeError, match="not differentiable"):
        f(np.ones((2, 2)), tape.leaf(0.0))


# =============================================================================
# Variadic tails
# =============================================================================

@pytest.fixture
def total(registry):
    return register_operation(
        "total", lambda *xs: sum(xs),
        per_argument(variadic=lambda i, y, ybar, ctx, *xs: ybar),
        registry=registry,
    )


def test_variadic_inferred_from_signature(total):
    op = total.operation
    assert op.arity == 0
    assert op.variadic
    assert op.mask == (True,)


def test_variadic_tracked_element_anywhere_records(total):
    tape = Tape()
    x = tape.leaf(3.0)
    for args in [(x, 1.0, 2.0), (1.0, x, 2.0), (1.0, 2.0, x)]:
        n_before = len(tape)
        y = total(*args)
        assert isinstance(y, Node)
        assert y.value == 6.0
        assert len(tape) == n_before + 1
        assert tape.get(y.position).args == args


def test_variadic_untracked_tail_does_not_record(total):
    tape = Tape()
    tape.leaf(3.0)
    assert total(1.0, 2.0, 3.0) == 6.0
    assert len(tape) == 1


def test_variadic_tail_tape_lookup_and_mismatch(total):
    tape = Tape()
    x = tape.leaf(1.0)
    assert total(5.0, 6.0, x).tape is tape
    with pytest.raises(GraphMismatchError):
        total(x, Tape().leaf(2.0))


def test_variadic_with_fixed_prefix(registry):
    f = register_operation(
        "weighted", lambda w, *xs: w * sum(xs),
        per_argument(
            lambda y, ybar, ctx, w, *xs: ybar * sum(xs),
            variadic=lambda i, y, ybar, ctx, w, *xs: ybar * w,
        ),
        mask=[False, True], registry=registry,
    )
    tape = Tape()
    x = tape.leaf(2.0)
    y = f(3.0, 1.0, x)
    assert y.value == 9.0
    with pytest.raises(TypeError):
        f(tape.leaf(1.0), 1.0, 2.0)


# =============================================================================
# Registration
# =============================================================================

def test_wrapper_looks_like_forward(registry):
    def my_op(a, b):
        """Docstring of my_op."""
        return a - b

    wrapped = register_operation("my_op", my_op, _identity_pullbacks(2), registry=registry)
    assert wrapped.__name__ == "my_op"
    assert wrapped.__doc__ == "Docstring of my_op."
    assert wrapped.forward is my_op
    assert wrapped.operation.arity == 2
    assert "my_op" in registry


def test_decorator_registration(registry):
    @differentiable(sensitivity=per_argument(lambda y, ybar, ctx, x: 2 * x * ybar), registry=registry)
    def square(x):
        return x * x

    assert square.name == "square"
    assert square(3.0) == 9.0
    assert square(Tape().leaf(3.0)).value == 9.0


def test_ufunc_needs_explicit_arity(registry):
    f = register_operation("np_exp", np.exp, _identity_pullbacks(1), arity=1, registry=registry)
    assert f(0.0) == 1.0
    assert f.operation.variadic is False


@pytest.mark.parametrize("kwargs", [
    dict(mask=[True]),                 # too short
    dict(mask=[True, True, True]),     # too long
    dict(mask=[False, False]),         # nothing differentiable
    dict(mask=[1, 0]),                 # not bool
    dict(arity=-1),
    dict(arity=1.5),
    dict(variadic=True),               # forward takes no *args
])
def test_malformed_declarations(registry, kwargs):
    with pytest.raises(ConfigurationError):
        register_operation("bad", lambda a, b: a + b, registry=registry, **kwargs)


def test_non_callable_forward(registry):
    with pytest.raises(ConfigurationError):
        register_operation("bad", 42, registry=registry)


def test_missing_rule_for_differentiable_position(registry):
    with pytest.raises(ConfigurationError, match="argument 1"):
        register_operation(
            "bad", lambda a, b: a + b,
            per_argument(lambda y, ybar, ctx, a, b: ybar, None),
            registry=registry,
        )
    with pytest.raises(ConfigurationError, match="variadic"):
        register_operation("bad_tail", lambda *xs: sum(xs), per_argument(), registry=registry)


def test_conflicting_registration(registry):
    register_operation("f", lambda a, b: a + b, mask=[True, True], registry=registry)
    with pytest.raises(ConfigurationError, match="conflicting"):
        register_operation("f", lambda a, b: a + b, mask=[True, False], registry=registry)
    with pytest.raises(ConfigurationError, match="conflicting"):
        register_operation("f", lambda a: a, registry=registry)


def test_compatible_reregistration_keeps_sensitivity(registry):
    provider = _identity_pullbacks(1)
    register_operation("f", lambda a: a, provider, registry=registry)
    g = register_operation("f", lambda a: 2 * a, registry=registry)
    assert g(1.0) == 2.0
    assert registry.sensitivity_for("f") is provider


def test_define_sensitivity_after_registration(registry):
    f = register_operation("late", lambda a: 3 * a, registry=registry)
    assert f.operation.sensitivity is None

    @define_sensitivity(f)
    def _late(args, output, cotangent, context, tracked, kwargs):
        return (3 * cotangent,)

    assert registry.sensitivity_for("late") is _late


def test_define_sensitivity_unknown_operation(registry):
    with pytest.raises(KeyError):
        define_sensitivity("nope", registry)(lambda *a: ())


def test_empty_registry_is_not_replaced_by_global(registry):
    from aad_tape import REGISTRY
    op = register_operation("only_local", np.negative, _identity_pullbacks(1), arity=1, registry=registry)
    assert "only_local" in registry
    assert "only_local" not in REGISTRY
    assert op.registry is registry
