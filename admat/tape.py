"""Differentiable scalar variables recorded on an explicit tape.

A :py:class:`Tape` owns every :py:class:`Variable` created through it. Leaf
variables are created with :py:meth:`Tape.variable` (or :py:meth:`Tape.variables`
for arrays). Arithmetic on variables, the elementary functions in this module and
kernels such as :py:func:`admat.matrix_functions.matrix_exp` create derived variables
through :py:meth:`Tape.derived`, which records the local partial derivatives of the
new variable with respect to each of its parents. :py:meth:`Tape.grad` then
propagates derivatives in reverse from an output variable to a set of inputs.

Plain numbers are accepted wherever variables are, so code can be written once
against both variants using :py:func:`value_of` to read values.
"""

from __future__ import annotations

import math
import numbers
from typing import TYPE_CHECKING

import numpy as np

from admat.errors import InvalidArgumentError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from numpy.typing import ArrayLike, NDArray

    from admat.types import ScalarLike


class Variable:
    """Scalar value participating in a reverse-mode derivative graph.

    Variables are immutable. A variable created as a leaf has no parents; a derived
    variable holds edges to the variables it was computed from, each weighted by
    the local partial derivative of the variable with respect to that parent.
    """

    __slots__ = ("value", "parents", "partials", "tape", "position")

    # Make NumPy scalars defer to the reflected arithmetic operators below
    __array_ufunc__ = None

    def __init__(
        self,
        value: float,
        parents: tuple[Variable, ...],
        partials: tuple[float, ...],
        tape: Tape,
        position: int,
    ) -> None:
        self.value = value
        self.parents = parents
        self.partials = partials
        self.tape = tape
        self.position = position

    def __float__(self) -> float:
        return self.value

    def __repr__(self) -> str:
        return f"Variable(value={self.value})"

    def __add__(self, other: ScalarLike) -> Variable:
        if isinstance(other, Variable):
            return self.tape.derived(self.value + other.value, (self, other), (1.0, 1.0))
        if _is_number(other):
            return self.tape.derived(self.value + other, (self,), (1.0,))
        return NotImplemented

    def __radd__(self, other: ScalarLike) -> Variable:
        return self.__add__(other)

    def __sub__(self, other: ScalarLike) -> Variable:
        if isinstance(other, Variable):
            return self.tape.derived(
                self.value - other.value, (self, other), (1.0, -1.0)
            )
        if _is_number(other):
            return self.tape.derived(self.value - other, (self,), (1.0,))
        return NotImplemented

    def __rsub__(self, other: ScalarLike) -> Variable:
        if _is_number(other):
            return self.tape.derived(other - self.value, (self,), (-1.0,))
        return NotImplemented

    def __mul__(self, other: ScalarLike) -> Variable:
        if isinstance(other, Variable):
            return self.tape.derived(
                self.value * other.value, (self, other), (other.value, self.value)
            )
        if _is_number(other):
            return self.tape.derived(self.value * other, (self,), (float(other),))
        return NotImplemented

    def __rmul__(self, other: ScalarLike) -> Variable:
        return self.__mul__(other)

    def __truediv__(self, other: ScalarLike) -> Variable:
        if isinstance(other, Variable):
            return self.tape.derived(
                self.value / other.value,
                (self, other),
                (1.0 / other.value, -self.value / other.value**2),
            )
        if _is_number(other):
            return self.tape.derived(self.value / other, (self,), (1.0 / other,))
        return NotImplemented

    def __rtruediv__(self, other: ScalarLike) -> Variable:
        if _is_number(other):
            return self.tape.derived(
                other / self.value, (self,), (-other / self.value**2,)
            )
        return NotImplemented

    def __pow__(self, exponent: ScalarLike) -> Variable:
        if not _is_number(exponent):
            return NotImplemented
        return self.tape.derived(
            self.value**exponent,
            (self,),
            (exponent * self.value ** (exponent - 1),),
        )

    def __neg__(self) -> Variable:
        return self.tape.derived(-self.value, (self,), (-1.0,))

    def __pos__(self) -> Variable:
        return self


class Tape:
    """Context owning the variables created during one computation.

    Variables are appended in creation order, which is a topological order of the
    derivative graph. Clearing the tape (explicitly with :py:meth:`clear` or on
    leaving a ``with`` block) ends the computation: variables created before the
    clear can no longer be used with the tape.
    """

    def __init__(self) -> None:
        self._nodes: list[Variable] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def __enter__(self) -> Tape:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.clear()

    def __repr__(self) -> str:
        return f"Tape(num_variables={len(self)})"

    def clear(self) -> None:
        """Remove all variables recorded on the tape."""
        self._nodes = []

    def owns(self, variable: Variable) -> bool:
        """Whether `variable` is recorded on this tape."""
        return (
            variable.tape is self
            and variable.position < len(self._nodes)
            and self._nodes[variable.position] is variable
        )

    def _append(
        self,
        value: float,
        parents: tuple[Variable, ...],
        partials: tuple[float, ...],
    ) -> Variable:
        variable = Variable(float(value), parents, partials, self, len(self._nodes))
        self._nodes.append(variable)
        return variable

    def variable(self, value: ScalarLike) -> Variable:
        """Create a leaf variable.

        Args:
            value: Value of variable.

        Returns:
            New variable with no parents.
        """
        return self._append(value_of(value), (), ())

    def variables(self, values: ArrayLike) -> NDArray:
        """Create an array of leaf variables.

        Args:
            values: Array of values, of any shape.

        Returns:
            Object array of new variables with the same shape as `values`.
        """
        values = value_of_array(values)
        result = np.empty(values.shape, dtype=object)
        for index in np.ndindex(values.shape):
            result[index] = self._append(values[index], (), ())
        return result

    def derived(
        self,
        value: float,
        parents: Sequence[Variable],
        partials: Sequence[float],
    ) -> Variable:
        """Create a variable computed from other variables.

        Args:
            value: Value of new variable.
            parents: Variables the new variable depends on.
            partials: Partial derivative of the new variable with respect to each
                entry of `parents`.

        Returns:
            New variable linked to `parents`.
        """
        parents = tuple(parents)
        partials = tuple(float(p) for p in partials)
        if len(parents) != len(partials):
            msg = (
                f"Number of parents ({len(parents)}) must match number of partial "
                f"derivatives ({len(partials)})."
            )
            raise InvalidArgumentError(msg)
        for parent in parents:
            self._check_owned(parent)
        return self._append(value, parents, partials)

    def _check_owned(self, variable: Variable) -> None:
        if not self.owns(variable):
            msg = (
                f"{variable!r} is not recorded on this tape: variables from different "
                "tapes cannot be combined and variables cannot be used after their "
                "tape is cleared."
            )
            raise InvalidArgumentError(msg)

    def grad(self, output: ScalarLike, inputs: ArrayLike) -> NDArray:
        """Compute derivatives of an output with respect to a set of inputs.

        Derivatives are accumulated in reverse creation order from `output`, with
        the adjoint of `output` seeded to one. Adjoints are held in a buffer local
        to the call so `grad` may be called any number of times on the same tape.

        Args:
            output: Variable to differentiate. A plain number has zero derivative
                with respect to every input.
            inputs: Variable or array of variables to differentiate with respect to.

        Returns:
            Array of partial derivatives of `output` with respect to each entry of
            `inputs`, with the same shape as `inputs`.
        """
        inputs = np.asarray(inputs, dtype=object)
        for variable in inputs.flat:
            if not isinstance(variable, Variable):
                msg = f"Inputs must be variables, got {variable!r}."
                raise InvalidArgumentError(msg)
            self._check_owned(variable)
        gradient = np.zeros(inputs.shape)
        if not isinstance(output, Variable):
            return gradient
        self._check_owned(output)
        adjoints = [0.0] * (output.position + 1)
        adjoints[output.position] = 1.0
        for position in range(output.position, -1, -1):
            adjoint = adjoints[position]
            if adjoint == 0.0:
                continue
            node = self._nodes[position]
            for parent, partial in zip(node.parents, node.partials):
                adjoints[parent.position] += adjoint * partial
        for index in np.ndindex(inputs.shape):
            position = inputs[index].position
            if position <= output.position:
                gradient[index] = adjoints[position]
        return gradient


def _is_number(val: object) -> bool:
    return isinstance(val, numbers.Real) or (
        isinstance(val, np.ndarray) and val.ndim == 0 and val.dtype != object
    )


def is_variable(val: object) -> bool:
    """Whether `val` is a differentiable variable rather than a plain number."""
    return isinstance(val, Variable)


def value_of(val: ScalarLike) -> float:
    """Current value of a variable or plain number."""
    if isinstance(val, Variable):
        return val.value
    return float(val)


def value_of_array(array: ArrayLike) -> NDArray:
    """Array of current values of an array of variables and/or plain numbers.

    Always returns a new float array so callers may not modify `array` through it.
    """
    array = np.asarray(array)
    if array.dtype == object:
        values = np.empty(array.shape)
        for index in np.ndindex(array.shape):
            values[index] = value_of(array[index])
        return values
    return np.array(array, dtype=np.float64)


def find_tape(values: Iterable[ScalarLike]) -> Tape | None:
    """Find the tape shared by the variables among `values`.

    Args:
        values: Collection of variables and/or plain numbers.

    Returns:
        Tape owning the variables, or `None` if there are no variables.

    Raises:
        InvalidArgumentError: If the variables are recorded on different tapes.
    """
    tape = None
    for val in values:
        if isinstance(val, Variable):
            if tape is None:
                tape = val.tape
            elif val.tape is not tape:
                msg = "Variables recorded on different tapes cannot be combined."
                raise InvalidArgumentError(msg)
    return tape


def exp(val: ScalarLike) -> ScalarLike:
    """Exponential of a variable or plain number."""
    if isinstance(val, Variable):
        exp_val = math.exp(val.value)
        return val.tape.derived(exp_val, (val,), (exp_val,))
    return math.exp(val)


def log(val: ScalarLike) -> ScalarLike:
    """Natural logarithm of a variable or plain number."""
    if isinstance(val, Variable):
        return val.tape.derived(math.log(val.value), (val,), (1.0 / val.value,))
    return math.log(val)
