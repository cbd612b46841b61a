"""Matrix exponential as an Autograd primitive and Autograd differential operators.

:py:func:`expm` can be used inside functions defined with the `autograd.numpy` API
and differentiated with any of the Autograd differential operators. Its
vector-Jacobian product uses the identity

    <G, L(A, E)> = <L(Aᵀ, G), E>

for the Fréchet derivative `L` of the (real) matrix exponential.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import autograd.numpy as np
import scipy.linalg as sla
from autograd.core import make_vjp
from autograd.extend import defjvp, defvjp, primitive, vspace

from admat.matrix_functions import check_square_nonempty, expm_frechet_block

if TYPE_CHECKING:
    from admat.types import ArrayFunction, ScalarFunction


@primitive
def expm(a):
    """Matrix exponential of a non-empty square matrix."""
    check_square_nonempty("expm", np.shape(a))
    return sla.expm(a)


defvjp(expm, lambda ans, a: lambda g: expm_frechet_block(np.transpose(a), g))
defjvp(expm, lambda g, ans, a: expm_frechet_block(a, g))


def grad_and_value(func: ScalarFunction):
    """Makes a function that returns both gradient and value of a function."""

    def grad_and_value_func(x):
        vjp, val = make_vjp(func, x)
        if vspace(val).size != 1:
            msg = "grad_and_value only applies to real scalar-output functions."
            raise TypeError(msg)
        return vjp(vspace(val).ones()), val

    return grad_and_value_func


def jacobian_and_value(func: ArrayFunction):
    """Makes a function that returns both the Jacobian and value of a function.

    The Jacobian has shape `val.shape + x.shape` with entry `[*i, *k]` the partial
    derivative of `val[*i]` with respect to `x[*k]`.
    """

    def jacobian_and_value_func(x):
        vjp, val = make_vjp(func, x)
        val_vspace = vspace(val)
        jacobian_shape = val_vspace.shape + vspace(x).shape
        jacobian_rows = [vjp(v) for v in val_vspace.standard_basis()]
        return np.reshape(np.stack(jacobian_rows), jacobian_shape), val

    return jacobian_and_value_func
