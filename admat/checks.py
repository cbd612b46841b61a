"""Checks of the structural and numeric preconditions of matrix arguments.

All checks share the signature ``check_*(function, subject, name, policy=None)``
where `function` is the name of the calling function and `name` the name of the
argument being checked, both used in diagnostics. A check returns a
:py:class:`admat.policies.Success` (which is truthy) if its condition holds.
Otherwise the failure is passed to `policy` (by default
:py:data:`admat.policies.DEFAULT_POLICY`, which raises) and the
:py:class:`admat.policies.Failure` it produces (which is falsy) is returned.

Compound checks evaluate their component checks in a fixed order and return the
result of the first to fail unchanged.

Subjects may contain plain numbers or :py:class:`admat.tape.Variable` instances;
only their values are inspected and subjects are never modified.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np
import numpy.linalg as nla
import scipy.linalg as sla

from admat.errors import InvalidArgumentError
from admat.policies import DEFAULT_POLICY, Diagnostic, Success
from admat.tape import value_of, value_of_array

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

    from numpy.typing import NDArray

    from admat.policies import ErrorPolicy
    from admat.types import CheckResult, MatrixLike, ScalarLike


CONSTRAINT_TOLERANCE: float = 1e-8
"""Tolerance below which two values are treated as equal in structural checks.

Used for the symmetry and unit diagonal comparisons and as the threshold the
pivots of the decomposition used to test positive definiteness must exceed.
"""


def _fail(
    policy: ErrorPolicy | None,
    function: str,
    name: str,
    template: str,
    value: Any,  # noqa: ANN401
    index: tuple[int, ...] | None = None,
    error_class: type | None = None,
) -> CheckResult:
    diagnostic = Diagnostic(function, name, template, value, index)
    if error_class is not None:
        diagnostic = diagnostic._replace(error_class=error_class)
    return (DEFAULT_POLICY if policy is None else policy).handle(diagnostic)


def _label(name: str, index: tuple[int, ...]) -> str:
    if len(index) == 0:
        return name
    return f"{name}[{','.join(str(i) for i in index)}]"


def _as_matrix(function: str, y: MatrixLike, name: str) -> NDArray:
    values = value_of_array(y)
    if values.ndim != 2:
        msg = f"{function}: {name} must be a 2D array, got shape {values.shape}."
        raise InvalidArgumentError(msg)
    return values


def _check_entries(
    function: str,
    y: MatrixLike | ScalarLike,
    name: str,
    policy: ErrorPolicy | None,
    is_valid: Callable[[float], bool],
    requirement: str,
) -> CheckResult:
    values = value_of_array(y)
    # np.ndindex visits indices in row-major order
    for index in np.ndindex(values.shape):
        value = values[index]
        if not is_valid(value):
            return _fail(
                policy,
                function,
                name,
                f"{_label(name, index)} is {{value}}, but {requirement}",
                value,
                index if len(index) > 0 else None,
            )
    return Success()


def check_size_match(
    function: str,
    i: ScalarLike,
    j: ScalarLike,
    name_i: str = "i",
    name_j: str = "j",
    policy: ErrorPolicy | None = None,
) -> CheckResult:
    """Check two sizes are equal.

    Sizes of different numeric types are compared by value, so for example a
    Python `int` and a NumPy integer of the same value match. A mismatch is a
    precondition violation, reported with :py:class:`admat.errors.InvalidArgumentError`.

    Args:
        function: Name of calling function.
        i: First size.
        j: Second size.
        name_i: Name of first size.
        name_j: Name of second size.
        policy: Policy for handling failure.

    Returns:
        Result of check.
    """
    if value_of(i) != value_of(j):
        return _fail(
            policy,
            function,
            name_i,
            f"{name_i} and {name_j} must be same. Found {name_i}={{value}}, "
            f"{name_j}={j}",
            i,
            error_class=InvalidArgumentError,
        )
    return Success()


def check_positive(
    function: str,
    y: MatrixLike | ScalarLike,
    name: str,
    policy: ErrorPolicy | None = None,
) -> CheckResult:
    """Check a scalar or every entry of an array is strictly positive.

    NaN values fail the check.
    """
    return _check_entries(
        function, y, name, policy, lambda v: v > 0, "must be > 0!"
    )


def check_not_nan(
    function: str,
    y: MatrixLike | ScalarLike,
    name: str,
    policy: ErrorPolicy | None = None,
) -> CheckResult:
    """Check a scalar, vector or matrix has no NaN entries.

    Entries are visited in row-major order and the first NaN entry found is
    reported.

    Args:
        function: Name of calling function.
        y: Scalar or array to check.
        name: Name of argument being checked.
        policy: Policy for handling failure.

    Returns:
        Result of check.
    """
    return _check_entries(
        function, y, name, policy, lambda v: not math.isnan(v), "must not be nan!"
    )


def check_finite(
    function: str,
    y: MatrixLike | ScalarLike,
    name: str,
    policy: ErrorPolicy | None = None,
) -> CheckResult:
    """Check a scalar, vector or matrix has no infinite or NaN entries.

    Entries are visited in row-major order and the first non-finite entry found
    is reported.

    Args:
        function: Name of calling function.
        y: Scalar or array to check.
        name: Name of argument being checked.
        policy: Policy for handling failure.

    Returns:
        Result of check.
    """
    return _check_entries(function, y, name, policy, math.isfinite, "must be finite!")


def check_symmetric(
    function: str,
    y: MatrixLike,
    name: str,
    policy: ErrorPolicy | None = None,
) -> CheckResult:
    """Check a matrix is symmetric to within :py:data:`CONSTRAINT_TOLERANCE`.

    Squareness is not checked: the caller must ensure `y` is square, for example
    with :py:func:`check_size_match`.

    Args:
        function: Name of calling function.
        y: Matrix to check.
        name: Name of argument being checked.
        policy: Policy for handling failure.

    Returns:
        Result of check. On failure the first pair of entries `(m, n)`, `(n, m)`
        with `n > m` in row-major order differing by more than the tolerance is
        reported.
    """
    values = _as_matrix(function, y, name)
    size = values.shape[0]
    if size == 1:
        return Success()
    for m in range(size):
        for n in range(m + 1, size):
            if not abs(values[m, n] - values[n, m]) <= CONSTRAINT_TOLERANCE:
                return _fail(
                    policy,
                    function,
                    name,
                    f"{name} is not symmetric. {name}[{m},{n}] is {{value}}, but "
                    f"{name}[{n},{m}] element is {values[n, m]}",
                    values[m, n],
                    (m, n),
                )
    return Success()


def _ldl_pivots(values: NDArray) -> list[float]:
    # Bunch-Kaufman pivoting gives a block diagonal factor with 1x1 and 2x2 blocks;
    # by Sylvester's law of inertia the matrix is positive definite iff all
    # eigenvalues of the blocks are positive
    _, d, _ = sla.ldl(values, lower=True, hermitian=True, check_finite=False)
    pivots = []
    k = 0
    while k < d.shape[0]:
        if k + 1 < d.shape[0] and d[k + 1, k] != 0:
            pivots.extend(nla.eigvalsh(d[k : k + 2, k : k + 2]))
            k += 2
        else:
            pivots.append(d[k, k])
            k += 1
    return pivots


def check_pos_definite(
    function: str,
    y: MatrixLike,
    name: str,
    policy: ErrorPolicy | None = None,
) -> CheckResult:
    """Check a matrix is positive definite.

    A 1×1 matrix is positive definite if its only entry exceeds
    :py:data:`CONSTRAINT_TOLERANCE`. Larger matrices are factorized with a
    symmetric-indefinite (LDLᵀ) decomposition, which unlike a Cholesky
    decomposition does not itself require positive definiteness, and are positive
    definite if every pivot of the diagonal factor exceeds the tolerance.

    Neither symmetry nor squareness is checked; only the lower triangle of `y` is
    used in the decomposition.

    Args:
        function: Name of calling function.
        y: Matrix to check.
        name: Name of argument being checked.
        policy: Policy for handling failure.

    Returns:
        Result of check.
    """
    values = _as_matrix(function, y, name)
    size = values.shape[0]
    if size == 0:
        return Success()
    if size == 1:
        if not values[0, 0] > CONSTRAINT_TOLERANCE:
            return _fail(
                policy,
                function,
                name,
                f"{name} is not positive definite. {name}[0,0] is {{value}}.",
                values[0, 0],
                (0, 0),
            )
        return Success()
    for index in np.ndindex(values.shape):
        if not math.isfinite(values[index]):
            return _fail(
                policy,
                function,
                name,
                f"{name} is not positive definite. {_label(name, index)} is {{value}}.",
                values[index],
                index,
            )
    for k, pivot in enumerate(_ldl_pivots(values)):
        if not pivot > CONSTRAINT_TOLERANCE:
            return _fail(
                policy,
                function,
                name,
                f"{name} is not positive definite. D[{k},{k}] of its LDL^T "
                f"decomposition is {{value}}, but must be > {CONSTRAINT_TOLERANCE}.",
                pivot,
                (k, k),
            )
    return Success()


def _check_square(
    function: str,
    values: NDArray,
    name: str,
    policy: ErrorPolicy | None,
) -> CheckResult:
    rows, cols = values.shape
    result = check_size_match(
        function, rows, cols, f"rows({name})", f"cols({name})", policy
    )
    if not result:
        return result
    return check_positive(function, rows, f"rows({name})", policy)


def check_cov_matrix(
    function: str,
    y: MatrixLike,
    name: str | None = None,
    policy: ErrorPolicy | None = None,
) -> CheckResult:
    """Check a matrix is a valid covariance matrix.

    With `name` given, `y` must be square with at least one row, symmetric and
    positive definite. Without `name`, `y` is referred to as ``Sigma`` in
    diagnostics and only squareness and symmetry are checked: positive
    definiteness is *not* checked in this case.

    Checks are made in the order listed and the first failure is returned.

    Args:
        function: Name of calling function.
        y: Matrix to check.
        name: Name of argument being checked.
        policy: Policy for handling failure.

    Returns:
        Result of check.
    """
    check_definite = name is not None
    if name is None:
        name = "Sigma"
    values = _as_matrix(function, y, name)
    result = _check_square(function, values, name, policy)
    if not result:
        return result
    result = check_symmetric(function, values, name, policy)
    if not result or not check_definite:
        return result
    return check_pos_definite(function, values, name, policy)


def check_corr_matrix(
    function: str,
    y: MatrixLike,
    name: str,
    policy: ErrorPolicy | None = None,
) -> CheckResult:
    """Check a matrix is a valid correlation matrix.

    `y` must be square with at least one row, symmetric, have a unit diagonal
    (to within :py:data:`CONSTRAINT_TOLERANCE`) and be positive definite. Checks
    are made in that order and the first failure is returned.

    Args:
        function: Name of calling function.
        y: Matrix to check.
        name: Name of argument being checked.
        policy: Policy for handling failure.

    Returns:
        Result of check.
    """
    values = _as_matrix(function, y, name)
    result = _check_square(function, values, name, policy)
    if not result:
        return result
    result = check_symmetric(function, values, name, policy)
    if not result:
        return result
    for k in range(values.shape[0]):
        if not abs(values[k, k] - 1.0) <= CONSTRAINT_TOLERANCE:
            return _fail(
                policy,
                function,
                name,
                f"{name} is not a valid correlation matrix. {name}[{k},{k}] is "
                "{value}, but should be near 1.0",
                values[k, k],
                (k, k),
            )
    return check_pos_definite(function, values, name, policy)
