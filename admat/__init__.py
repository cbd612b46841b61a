"""Validated matrix checks and a differentiable matrix exponential."""

__license__ = "MIT"

import admat.autograd_wrapper
import admat.checks
import admat.errors
import admat.matrix_functions
import admat.policies
import admat.tape
from admat.checks import (
    CONSTRAINT_TOLERANCE,
    check_corr_matrix,
    check_cov_matrix,
    check_finite,
    check_not_nan,
    check_pos_definite,
    check_positive,
    check_size_match,
    check_symmetric,
)
from admat.matrix_functions import matrix_exp
from admat.tape import Tape, Variable, value_of
