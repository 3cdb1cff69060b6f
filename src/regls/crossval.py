"""
K-fold cross-validation over a lambda path.

Folds are contiguous blocks of ``fsize = n // nfolds`` rows taken from the
first ``nfolds * fsize`` rows of the (optionally permuted) data; the
trailing ``n % nfolds`` rows never enter cross-validation. Each fold runs
the configured solver across the whole grid on its estimation sample and
scores the held-out block.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np

from ._math import get_backend
from ._solvers import _ADMMLasso, _CCDPath, _SVDRidge, _ccd_scale
from ._workspace import AdmmContext, CcdContext, SvdContext
from .config import ReglsConfig, SolverControl
from .errors import InvalidArgumentError
from .lambdas import LambdaPath, xv_lambda
from .metrics import xv_score

__all__ = ["FoldPlan", "FoldRunner", "draw_seed", "permute_rows"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FoldPlan:
    n: int
    nfolds: int

    def __post_init__(self) -> None:
        if self.nfolds < 2:
            raise InvalidArgumentError(f"nfolds must be at least 2, got {self.nfolds}.")
        if self.fsize < 1:
            raise InvalidArgumentError(
                f"{self.nfolds} folds need at least {self.nfolds} observations, got {self.n}."
            )

    @property
    def fsize(self) -> int:
        return self.n // self.nfolds

    @property
    def esize(self) -> int:
        return (self.nfolds - 1) * self.fsize

    @property
    def used(self) -> int:
        return self.nfolds * self.fsize

    def split(
        self, X: np.ndarray, y: np.ndarray, f: int
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """(X_est, y_est, X_fold, y_fold) for fold ``f``."""
        lo, hi = f * self.fsize, (f + 1) * self.fsize
        est = np.r_[0:lo, hi:self.used]
        return X[est], y[est], X[lo:hi], y[lo:hi]

    def folds_for_rank(self, rank: int, size: int) -> range:
        return range(rank, self.nfolds, size)

    def rank_order(self, size: int) -> np.ndarray:
        """Fold numbers in the order a rank-wise concatenation delivers them."""
        return np.concatenate(
            [np.arange(r, self.nfolds, size) for r in range(size)]
        ).astype(np.intp)


def draw_seed() -> int:
    """A fresh unsigned 32-bit seed."""
    return int(np.random.default_rng().integers(0, 2**32, dtype=np.uint64))


def permute_rows(X: np.ndarray, y: np.ndarray, seed: int) -> Tuple[np.ndarray, np.ndarray]:
    """Shuffle the rows of copies of X and y; identical for identical seeds."""
    perm = np.random.default_rng(int(seed)).permutation(X.shape[0])
    return X[perm], y[perm]


class FoldRunner:
    """
    Runs the configured solver on successive folds.

    Owns one solver workspace for the whole run; the workspace is
    re-prepared for every fold, so nothing but buffer capacity carries over
    from one fold to the next.
    """

    def __init__(
        self,
        config: ReglsConfig,
        control: SolverControl,
        lmax: float,
        esize: int,
    ) -> None:
        self.method = config.method
        self.criterion = config.criterion
        self.alpha = config.mixing
        self.control = control
        self.ops = get_backend(control.backend)
        self.path: LambdaPath = xv_lambda(
            self.method, config.lfrac, lmax, esize, self.alpha, config.scale
        )
        if self.method == "admm":
            self.ctx = AdmmContext()
        elif self.method == "ccd":
            self.ctx = CcdContext()
        else:
            self.ctx = SvdContext()

    def __enter__(self) -> "FoldRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.ctx.close()

    def coefficients(self, Xe: np.ndarray, ye: np.ndarray) -> np.ndarray:
        """(k, nlam) coefficient path on one estimation sample."""
        if self.method == "admm":
            self.ctx.prepare(*Xe.shape)
            solver = _ADMMLasso(self.control, self.ops)
            return solver.fit_path(Xe, ye, self.path.lam, ctx=self.ctx).coef_
        if self.method == "ccd":
            Xs, ys, xty, xv = _ccd_scale(Xe, ye, self.ops)
            solver = _CCDPath(self.alpha, self.control, self.ops)
            return solver.fit_path(Xs, ys, self.path.lam, ctx=self.ctx, xty=xty, xv=xv).coef_
        solver = _SVDRidge(self.control, self.ops)
        return solver.fit_path(Xe, ye, self.path.raw, ctx=self.ctx).coef_

    def run(self, Xe, ye, Xf, yf) -> np.ndarray:
        """Held-out criterion for every lambda on the grid."""
        B = self.coefficients(Xe, ye)
        return np.array(
            [xv_score(Xf, yf, B[:, j], self.criterion) for j in range(B.shape[1])]
        )


def iter_local_folds(
    plan: FoldPlan, X: np.ndarray, y: np.ndarray, rank: int = 0, size: int = 1
) -> Iterator[Tuple[int, Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]]]:
    for f in plan.folds_for_rank(rank, size):
        yield f, plan.split(X, y, f)


def run_folds(
    plan: FoldPlan,
    X: np.ndarray,
    y: np.ndarray,
    config: ReglsConfig,
    control: SolverControl,
    lmax: float,
    rank: int = 0,
    size: int = 1,
    seed: Optional[int] = None,
) -> np.ndarray:
    """
    Criterion matrix (nlam, local folds) for the folds assigned to ``rank``.

    Fold f goes to rank f mod size. With ``seed`` the rows are permuted
    first (every rank applies the same permutation).
    """
    if seed is not None:
        X, y = permute_rows(X, y, seed)
    my_folds = plan.folds_for_rank(rank, size)
    local = np.zeros((config.nlam, len(my_folds)), dtype=np.float64)
    if config.verbosity > 1:
        logger.debug("rank %d: folds %s", rank, list(my_folds))
    with FoldRunner(config, control, lmax, plan.esize) as runner:
        for col, (f, (Xe, ye, Xf, yf)) in enumerate(iter_local_folds(plan, X, y, rank, size)):
            local[:, col] = runner.run(Xe, ye, Xf, yf)
            if config.verbosity > 1:
                logger.debug("rank %d: fold %d done", rank, f + 1)
    return local
