"""Matrix exponential of matrices of differentiable variables.

The exponential itself is computed with the scaling and squaring algorithm in
:py:func:`scipy.linalg.expm`. Derivatives are obtained from the Fréchet derivative
of the matrix exponential, evaluated with the block matrix identity

    expm([[A, E], [0, A]]) = [[expm(A), L(A, E)], [0, expm(A)]]

where `L(A, E)` is the Fréchet derivative of `expm` at `A` in direction `E`.
Evaluating `L(A, E_kl)` for each standard basis matrix `E_kl` gives the full
Jacobian of the entries of `expm(A)` with respect to the entries of `A`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import scipy.linalg as sla

from admat.errors import InvalidArgumentError
from admat.tape import Variable, find_tape, value_of_array

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from admat.tape import Tape


logger = logging.getLogger(__name__)


def check_square_nonempty(function: str, shape: tuple[int, ...]) -> None:
    """Raise an error unless `shape` is that of a non-empty square matrix.

    Args:
        function: Name of calling function, used in error message.
        shape: Shape of matrix argument.

    Raises:
        InvalidArgumentError: If `shape` is not of the form `(n, n)` with `n >= 1`.
    """
    if len(shape) != 2 or shape[0] != shape[1] or shape[0] == 0:
        msg = (
            f"{function}: argument must be a non-empty square matrix, got shape "
            f"{shape}."
        )
        raise InvalidArgumentError(msg)


def expm_frechet_block(a: ArrayLike, directions: ArrayLike) -> NDArray:
    """Fréchet derivative of the matrix exponential.

    Args:
        a: Square matrix of shape `(n, n)` to evaluate derivative at.
        directions: Direction matrix of shape `(n, n)` or stack of direction
            matrices of shape `(..., n, n)`.

    Returns:
        Fréchet derivative of `expm` at `a` in each direction, with the same shape
        as `directions`.
    """
    a = np.asarray(a, dtype=np.float64)
    directions = np.asarray(directions, dtype=np.float64)
    size = a.shape[0]
    blocks = np.zeros(directions.shape[:-2] + (2 * size, 2 * size))
    blocks[..., :size, :size] = a
    blocks[..., size:, size:] = a
    blocks[..., :size, size:] = directions
    return sla.expm(blocks)[..., :size, size:]


def expm_and_jacobian(a: ArrayLike) -> tuple[NDArray, NDArray]:
    """Matrix exponential and its Jacobian.

    Args:
        a: Square matrix of shape `(n, n)`.

    Returns:
        Tuple `(expm_a, jacobian)` where `expm_a` is the matrix exponential of `a`
        and `jacobian` is an array of shape `(n, n, n, n)` with
        `jacobian[i, j, k, l]` the partial derivative of `expm_a[i, j]` with
        respect to `a[k, l]`.
    """
    a = np.asarray(a, dtype=np.float64)
    size = a.shape[0]
    logger.debug(
        "Assembling Jacobian of %d x %d matrix exponential from %d directions",
        size,
        size,
        size * size,
    )
    # basis[k, l] is the standard basis matrix E_kl
    basis = np.eye(size * size).reshape((size, size, size, size))
    frechet = expm_frechet_block(a, basis)
    return sla.expm(a), frechet.transpose((2, 3, 0, 1))


def matrix_exp(a: ArrayLike, tape: Tape | None = None) -> NDArray:
    """Matrix exponential of a square matrix of variables and/or plain numbers.

    If `a` contains any :py:class:`admat.tape.Variable` entries (or `tape` is
    given) each entry of the result is a new variable on the tape, linked to every
    variable entry of `a` with the corresponding partial derivative, so that
    derivatives of the result with respect to the entries of `a` can be computed
    with :py:meth:`admat.tape.Tape.grad`. Otherwise the result is a plain float
    array.

    Args:
        a: Non-empty square matrix.
        tape: Tape to record result variables on. Defaults to the tape of the
            variable entries of `a`.

    Returns:
        Matrix exponential of `a`, as an object array of variables or a float array.

    Raises:
        InvalidArgumentError: If `a` is not a non-empty square matrix or its
            variable entries are not all recorded on `tape`.
    """
    a = np.asarray(a)
    check_square_nonempty("matrix_exp", a.shape)
    entry_tape = find_tape(a.flat) if a.dtype == object else None
    if tape is None:
        tape = entry_tape
    elif entry_tape is not None and entry_tape is not tape:
        msg = "matrix_exp: variable entries are not recorded on the given tape."
        raise InvalidArgumentError(msg)
    values = value_of_array(a)
    if tape is None:
        return sla.expm(values)
    expm_a, jacobian = expm_and_jacobian(values)
    parent_indices = [
        index for index, entry in np.ndenumerate(a) if isinstance(entry, Variable)
    ]
    parents = [a[index] for index in parent_indices]
    rows = np.array([index[0] for index in parent_indices], dtype=int)
    cols = np.array([index[1] for index in parent_indices], dtype=int)
    result = np.empty(expm_a.shape, dtype=object)
    for i, j in np.ndindex(expm_a.shape):
        result[i, j] = tape.derived(expm_a[i, j], parents, jacobian[i, j, rows, cols])
    return result
