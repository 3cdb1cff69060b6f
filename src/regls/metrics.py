"""
Out-of-sample criteria and their aggregation across folds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from .errors import InvalidArgumentError

__all__ = [
    "mean_squared_error",
    "mean_absolute_error",
    "xv_score",
    "XVSelection",
    "process_xv_criterion",
]


def mean_squared_error(
    y_true: Iterable[float] | np.ndarray,
    y_pred: Iterable[float] | np.ndarray,
) -> float:
    e = np.asarray(y_true, dtype=np.float64) - np.asarray(y_pred, dtype=np.float64)
    return float(np.dot(e, e) / e.size)


def mean_absolute_error(
    y_true: Iterable[float] | np.ndarray,
    y_pred: Iterable[float] | np.ndarray,
) -> float:
    e = np.asarray(y_true, dtype=np.float64) - np.asarray(y_pred, dtype=np.float64)
    return float(np.sum(np.abs(e)) / e.size)


_SCORERS = {
    "mse": mean_squared_error,
    "mae": mean_absolute_error,
}


def xv_score(X: np.ndarray, y: np.ndarray, b: np.ndarray, crit: str = "mse") -> float:
    """
    Score the coefficient vector ``b`` on held-out rows.

    Parameters
    ----------
    X, y :
        Validation sample.
    b :
        Coefficients (no intercept; the data are already centred).
    crit :
        ``"mse"`` or ``"mae"`` (case-insensitive).
    """
    try:
        scorer = _SCORERS[str(crit).lower()]
    except KeyError:
        raise InvalidArgumentError(f"'{crit}' invalid criterion") from None
    return scorer(y, X @ b)


@dataclass
class XVSelection:
    """Per-lambda summary of a cross-validation run (indices are 0-based)."""

    mean: np.ndarray
    se: np.ndarray
    imin: int
    i1se: int

    @property
    def XVC(self) -> np.ndarray:
        """(nlam, 2) matrix of mean and standard error."""
        return np.column_stack([self.mean, self.se])


def process_xv_criterion(scores: np.ndarray) -> XVSelection:
    """
    Aggregate an (nlam, nfolds) criterion matrix.

    The minimising index is the first minimum of the per-lambda mean. The
    one-standard-error index walks from there toward larger penalties
    (smaller indices) while the mean stays within one standard error of the
    minimum, stopping at the first lambda that does not.
    """
    scores = np.asarray(scores, dtype=np.float64)
    if scores.ndim != 2 or scores.shape[1] < 2:
        raise InvalidArgumentError("criterion matrix must be (nlam, nfolds) with nfolds >= 2")
    nf = scores.shape[1]
    avg = scores.mean(axis=1)
    se = np.sqrt(scores.var(axis=1, ddof=1) / nf)

    imin = int(np.argmin(avg))
    avgmin = avg[imin]
    i1se = imin
    for i in range(imin - 1, -1, -1):
        if avg[i] - avgmin < se[imin]:
            i1se = i
        else:
            break

    return XVSelection(mean=avg, se=se, imin=imin, i1se=i1se)
