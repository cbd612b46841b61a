"""Type aliases."""

from __future__ import annotations

from typing import Callable, Union

from numpy import number
from numpy.typing import ArrayLike

from admat.policies import Failure, Success
from admat.tape import Variable

ScalarLike = Union[bool, int, float, number, Variable]
MatrixLike = ArrayLike

CheckResult = Union[Success, Failure]

ScalarFunction = Callable[[ArrayLike], ScalarLike]
ArrayFunction = Callable[[ArrayLike], ArrayLike]
