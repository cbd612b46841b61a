import math

import numpy as np
import numpy.testing as npt
import pytest

from admat import tape as tp
from admat.errors import InvalidArgumentError


@pytest.fixture
def tape():
    return tp.Tape()


class TestVariable:
    def test_leaf(self, tape):
        x = tape.variable(2.5)
        assert x.value == 2.5
        assert x.parents == ()
        assert float(x) == 2.5
        assert len(tape) == 1

    @pytest.mark.parametrize(
        "func, grad_func",
        (
            (lambda x: x + 2.0, lambda x: 1.0),
            (lambda x: 2.0 + x, lambda x: 1.0),
            (lambda x: x - 3, lambda x: 1.0),
            (lambda x: 3 - x, lambda x: -1.0),
            (lambda x: -2 * x, lambda x: -2.0),
            (lambda x: x * np.float64(1.5), lambda x: 1.5),
            (lambda x: np.float64(1.5) * x, lambda x: 1.5),
            (lambda x: x / 4.0, lambda x: 0.25),
            (lambda x: 4.0 / x, lambda x: -4.0 / x**2),
            (lambda x: x**3, lambda x: 3 * x**2),
            (lambda x: -x, lambda x: -1.0),
            (lambda x: +x, lambda x: 1.0),
            (tp.exp, math.exp),
            (tp.log, lambda x: 1 / x),
        ),
    )
    def test_unary_derivatives(self, tape, func, grad_func):
        x_val = 1.7
        x = tape.variable(x_val)
        y = func(x)
        npt.assert_allclose(y.value, func(x_val))
        npt.assert_allclose(tape.grad(y, x), grad_func(x_val))

    @pytest.mark.parametrize(
        "func, grad_func",
        (
            (lambda x, y: x + y, lambda x, y: (1.0, 1.0)),
            (lambda x, y: x - y, lambda x, y: (1.0, -1.0)),
            (lambda x, y: x * y, lambda x, y: (y, x)),
            (lambda x, y: x / y, lambda x, y: (1 / y, -x / y**2)),
        ),
    )
    def test_binary_derivatives(self, tape, func, grad_func):
        x_val, y_val = 0.8, -2.3
        x, y = tape.variable(x_val), tape.variable(y_val)
        z = func(x, y)
        npt.assert_allclose(z.value, func(x_val, y_val))
        npt.assert_allclose(tape.grad(z, [x, y]), grad_func(x_val, y_val))

    def test_plain_number_functions(self):
        assert tp.exp(0.0) == 1.0
        assert tp.log(1.0) == 0.0


class TestTape:
    def test_variables_shape(self, tape):
        values = np.arange(6.0).reshape((2, 3))
        variables = tape.variables(values)
        assert variables.shape == (2, 3)
        assert variables.dtype == object
        npt.assert_array_equal(tp.value_of_array(variables), values)
        assert len(tape) == 6

    def test_derived(self, tape):
        x, y = tape.variable(1.0), tape.variable(2.0)
        z = tape.derived(5.0, (x, y), (3.0, -1.0))
        assert z.value == 5.0
        npt.assert_allclose(tape.grad(z, [x, y]), [3.0, -1.0])

    def test_derived_mismatched_partials(self, tape):
        x = tape.variable(1.0)
        with pytest.raises(InvalidArgumentError):
            tape.derived(1.0, (x,), (1.0, 2.0))

    def test_chain_rule(self, tape):
        x = tape.variable(0.5)
        y = tp.exp(x * x)
        npt.assert_allclose(tape.grad(y, x), 2 * 0.5 * math.exp(0.25))

    def test_shared_subexpression(self, tape):
        x = tape.variable(3.0)
        y = x * 2.0
        z = y * y + y
        # dz/dx = (2y + 1) * 2
        npt.assert_allclose(tape.grad(z, x), (2 * 6.0 + 1) * 2)

    def test_grad_repeatable(self, tape):
        x = tape.variable(1.2)
        y = x * x
        npt.assert_allclose(tape.grad(y, x), tape.grad(y, x))

    def test_unreachable_input_zero_gradient(self, tape):
        x = tape.variable(1.0)
        y = x * 3.0
        w = tape.variable(4.0)
        npt.assert_array_equal(tape.grad(y, [x, w]), [3.0, 0.0])

    def test_plain_output_zero_gradient(self, tape):
        x = tape.variable(1.0)
        npt.assert_array_equal(tape.grad(2.0, [x]), [0.0])

    def test_grad_of_leaf_wrt_itself(self, tape):
        x = tape.variable(1.0)
        assert tape.grad(x, x) == 1.0

    def test_grad_inputs_must_be_variables(self, tape):
        x = tape.variable(1.0)
        with pytest.raises(InvalidArgumentError):
            tape.grad(x, [1.0])

    def test_mixing_tapes_raises(self, tape):
        other_tape = tp.Tape()
        x, y = tape.variable(1.0), other_tape.variable(2.0)
        with pytest.raises(InvalidArgumentError):
            x + y
        with pytest.raises(InvalidArgumentError):
            other_tape.grad(y, x)

    def test_context_manager_clears(self):
        with tp.Tape() as tape:
            x = tape.variable(1.0)
            x * 2.0
            assert len(tape) == 2
        assert len(tape) == 0
        with pytest.raises(InvalidArgumentError):
            x * 2.0

    def test_clear_then_reuse(self, tape):
        tape.variable(1.0)
        tape.clear()
        x = tape.variable(2.0)
        npt.assert_allclose(tape.grad(x * 5.0, x), 5.0)


class TestHelpers:
    def test_value_of(self, tape):
        assert tp.value_of(tape.variable(3.0)) == 3.0
        assert tp.value_of(np.float32(0.5)) == 0.5
        assert tp.value_of(2) == 2.0

    def test_is_variable(self, tape):
        assert tp.is_variable(tape.variable(1.0))
        assert not tp.is_variable(1.0)

    def test_value_of_array_copies(self):
        values = np.ones((2, 2))
        result = tp.value_of_array(values)
        result[0, 0] = 5.0
        assert values[0, 0] == 1.0

    def test_value_of_array_mixed(self, tape):
        values = np.array([[tape.variable(1.0), 2.0]], dtype=object)
        npt.assert_array_equal(tp.value_of_array(values), [[1.0, 2.0]])

    def test_find_tape(self, tape):
        assert tp.find_tape([1.0, tape.variable(1.0)]) is tape
        assert tp.find_tape([1.0, 2.0]) is None
        with pytest.raises(InvalidArgumentError):
            tp.find_tape([tape.variable(1.0), tp.Tape().variable(1.0)])
