"""
Lambda-path construction.

Penalties are specified as fractions of a data-dependent maximum
("lambda-max"); how a fraction maps to the absolute penalty each solver
works with depends on the solver's units and on the scale mode:

  * ADMM works on the raw data and minimises 0.5*||y - Xb||^2 + lam*||b||_1.
  * CCD works on data scaled by sqrt(1/n) (glmnet units), so its lambdas are
    per-observation values.
  * The SVD ridge solver minimises ||y - Xb||^2 + lam*||b||^2 on the raw data.

The three scale modes of :class:`LambdaScale` are kept distinct rather than
folded into one formula; they only apply to ridge, lasso always uses
``GLMNET``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

import numpy as np

from ._math import VectorOps, _infnorm, get_backend

__all__ = [
    "BIG_LAMBDA",
    "LambdaScale",
    "LambdaPath",
    "lambda_max",
    "admm_lambda",
    "ccd_lambda",
    "svd_lambda",
    "xv_lambda_max",
    "xv_lambda",
    "lambda_fraction_grid",
]

BIG_LAMBDA = 9.9e35
ALPHA_FLOOR = 1.0e-3


class LambdaScale(IntEnum):
    NONE = 0
    GLMNET = 1
    FROB = 2


@dataclass
class LambdaPath:
    """
    Lambdas in solver units.

    ``raw_mult`` converts solver units to the penalty on the unscaled
    least-squares problem (``n`` for the glmnet-scaled solvers, 1 otherwise).
    """

    lam: np.ndarray
    lmax: float
    raw_mult: float = 1.0

    @property
    def raw(self) -> np.ndarray:
        return self.lam * self.raw_mult

    @property
    def raw_lmax(self) -> float:
        return float(self.lmax * self.raw_mult)

    def __len__(self) -> int:
        return int(self.lam.size)


def lambda_max(X: np.ndarray, y: np.ndarray, ops: Optional[VectorOps] = None) -> float:
    """Infinity norm of X'y."""
    ops = get_backend("numpy") if ops is None else ops
    return _infnorm(ops.xt_dot(X, y))


def _fractions(lfrac) -> np.ndarray:
    return np.array(lfrac, dtype=np.float64, copy=True).ravel()


def admm_lambda(lfrac, lmax: float) -> LambdaPath:
    lam = _fractions(lfrac) * lmax
    return LambdaPath(lam=lam, lmax=float(lmax), raw_mult=1.0)


def ccd_lambda(
    lfrac,
    lmax: float,
    n: int,
    alpha: float = 1.0,
    scale: LambdaScale = LambdaScale.GLMNET,
) -> LambdaPath:
    """
    CCD lambdas for data scaled by sqrt(1/n); ``lmax`` is the infinity norm
    of the scaled X'y.

    With ``scale == NONE`` the fractions are read as absolute (raw) lambdas.
    Otherwise, for alpha < 1 lambda-max is inflated by 1/max(alpha, 1e-3),
    and the head of a multi-value path is pinned to :data:`BIG_LAMBDA` so
    the path starts at the null model.
    """
    lam = _fractions(lfrac)
    if scale == LambdaScale.NONE:
        return LambdaPath(lam=lam / n, lmax=float(lmax), raw_mult=float(n))
    if alpha < 1.0:
        lmax /= max(alpha, ALPHA_FLOOR)
    lam *= lmax
    if alpha < 1.0 and lam.size > 1:
        lam[0] = BIG_LAMBDA
    return LambdaPath(lam=lam, lmax=float(lmax), raw_mult=float(n))


def svd_lambda(
    lfrac,
    infnorm: float,
    n: int,
    k: int,
    scale: LambdaScale = LambdaScale.GLMNET,
) -> LambdaPath:
    """
    Ridge lambdas for the SVD solver, on the full data.

    ``GLMNET``: lambda-max is 1000 times the scaled infinity norm (glmnet's
    ridge convention, alpha floored at 1e-3), in per-observation units.
    ``FROB``: lambda-max is the squared Frobenius norm of standardized data,
    i.e. the number of predictors. ``NONE``: fractions are raw lambdas.
    """
    lam = _fractions(lfrac)
    if scale == LambdaScale.GLMNET:
        lmax = (infnorm / n) / ALPHA_FLOOR
        lam *= lmax
        if lam.size > 1:
            lam[0] = BIG_LAMBDA
        return LambdaPath(lam=lam, lmax=float(lmax), raw_mult=float(n))
    if scale == LambdaScale.FROB:
        lam *= k
        return LambdaPath(lam=lam, lmax=float(k), raw_mult=1.0)
    return LambdaPath(lam=lam, lmax=1.0, raw_mult=1.0)


def xv_lambda_max(
    method: str,
    infnorm: float,
    esize: int,
    k: int,
    alpha: float = 1.0,
    scale: LambdaScale = LambdaScale.GLMNET,
) -> float:
    """
    Lambda-max shared by every fold, computed once from the full data.

    For the glmnet-scaled solvers it is expressed per observation of the
    estimation sample, so fold lambdas line up with the full-data refit.
    """
    if method == "admm":
        return float(infnorm)
    if method == "ccd":
        lmax = infnorm / esize
        if alpha < 1.0:
            lmax /= max(alpha, ALPHA_FLOOR)
        return float(lmax)
    if scale == LambdaScale.GLMNET:
        return float(infnorm / esize / ALPHA_FLOOR)
    if scale == LambdaScale.FROB:
        return float(k)
    return 1.0


def xv_lambda(
    method: str,
    lfrac,
    lmax: float,
    esize: int,
    alpha: float = 1.0,
    scale: LambdaScale = LambdaScale.GLMNET,
) -> LambdaPath:
    """Fold lambdas given the broadcast lambda-max."""
    if method == "admm":
        return admm_lambda(lfrac, lmax)
    lam = _fractions(lfrac)
    if method == "ccd":
        if scale == LambdaScale.NONE:
            return LambdaPath(lam=lam / esize, lmax=float(lmax), raw_mult=float(esize))
        lam *= lmax
        if alpha < 1.0 and lam.size > 1:
            lam[0] = BIG_LAMBDA
        return LambdaPath(lam=lam, lmax=float(lmax), raw_mult=float(esize))
    if scale == LambdaScale.GLMNET:
        lam *= lmax
        if lam.size > 1:
            lam[0] = BIG_LAMBDA
        return LambdaPath(lam=lam, lmax=float(lmax), raw_mult=float(esize))
    if scale == LambdaScale.FROB:
        lam *= lmax
    return LambdaPath(lam=lam, lmax=float(lmax), raw_mult=1.0)


def lambda_fraction_grid(nlam: int = 25, min_frac: float = 0.01) -> np.ndarray:
    """Geometric grid of fractions from 1 down to ``min_frac``."""
    if nlam == 1:
        return np.array([1.0])
    return np.geomspace(1.0, float(min_frac), int(nlam))
