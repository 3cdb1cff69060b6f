"""
regls package
-------------

Regularized least squares: lasso, ridge and elastic-net paths from three
interchangeable solvers (ADMM, coordinate descent, SVD), with optional
k-fold cross-validation spread over worker processes.
"""

from __future__ import annotations

from ._version import __version__
from .config import ReglsConfig, SolverControl
from .errors import (
    AllocationError,
    ErrorCode,
    InvalidArgumentError,
    LinAlgFailure,
    NonConvergenceError,
    ReglsError,
)
from .lambdas import BIG_LAMBDA, LambdaScale
from .linear_model import regls, regls_bundle, regls_xv_spmd
from .model import ReglsRegressor
from .preprocessing import StandardScaler
from .results import ReglsResult

__all__ = [
    "__version__",
    "AllocationError",
    "BIG_LAMBDA",
    "ErrorCode",
    "InvalidArgumentError",
    "LambdaScale",
    "LinAlgFailure",
    "NonConvergenceError",
    "ReglsConfig",
    "ReglsError",
    "ReglsRegressor",
    "ReglsResult",
    "SolverControl",
    "StandardScaler",
    "regls",
    "regls_bundle",
    "regls_xv_spmd",
]
