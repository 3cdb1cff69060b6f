"""
Preprocessing utilities for the regls package.

This module contains
  • a minimalist ``StandardScaler`` compatible with scikit-learn style APIs, and
  • the helpers that standardize a regression problem and map coefficients
    (and their covariance) back to the caller's original scale.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

__all__ = [
    "StandardScaler",
    "StandardizedProblem",
    "standardize",
    "unscale_coefficients",
    "unscale_vcv",
]


class StandardScaler:
    """Minimal replacement for :class:`sklearn.preprocessing.StandardScaler`."""

    def __init__(self, with_mean: bool = True, with_std: bool = True) -> None:
        self.with_mean = bool(with_mean)
        self.with_std = bool(with_std)
        self.mean_: Optional[np.ndarray] = None
        self.scale_: Optional[np.ndarray] = None

    def fit(self, X: np.ndarray, y: Optional[np.ndarray] = None) -> "StandardScaler":
        X = np.asarray(X, dtype=np.float64)
        if self.with_mean:
            self.mean_ = X.mean(axis=0)
        else:
            self.mean_ = np.zeros(X.shape[1], dtype=np.float64)

        if self.with_std:
            # population standard deviation; constant columns stay unscaled
            scale = np.sqrt(X.var(axis=0))
            scale[scale == 0.0] = 1.0
            self.scale_ = scale
        else:
            self.scale_ = np.ones(X.shape[1], dtype=np.float64)
        return self

    def transform(self, X: np.ndarray) -> np.ndarray:
        if self.mean_ is None or self.scale_ is None:
            raise RuntimeError("StandardScaler must be fitted before calling transform().")
        X = np.asarray(X, dtype=np.float64)
        return (X - self.mean_) / self.scale_

    def fit_transform(self, X: np.ndarray, y: Optional[np.ndarray] = None) -> np.ndarray:
        return self.fit(X, y).transform(X)


@dataclass
class StandardizedProblem:
    """Private working copies of (X, y) plus what is needed to undo the scaling."""

    X: np.ndarray
    y: np.ndarray
    scaler: Optional[StandardScaler] = None
    ybar: float = 0.0

    @property
    def stdize(self) -> bool:
        return self.scaler is not None


def standardize(X: np.ndarray, y: np.ndarray, stdize: bool = True) -> StandardizedProblem:
    """
    Copy the data and, when ``stdize``, centre and scale the columns of X
    and centre y. The caller's arrays are never modified.
    """
    X = np.array(X, dtype=np.float64, copy=True)
    y = np.array(y, dtype=np.float64, copy=True).ravel()
    if not stdize:
        return StandardizedProblem(X=X, y=y)
    scaler = StandardScaler()
    Xs = scaler.fit_transform(X)
    ybar = float(y.mean())
    return StandardizedProblem(X=Xs, y=y - ybar, scaler=scaler, ybar=ybar)


def unscale_coefficients(B: np.ndarray, problem: StandardizedProblem) -> np.ndarray:
    """
    Map a (k, m) block of standardized slopes to the original scale.

    With standardization the result is (k + 1, m) with the intercept in
    the first row; otherwise B is returned unchanged.
    """
    B = np.asarray(B, dtype=np.float64)
    if not problem.stdize:
        return B
    sc = problem.scaler
    slopes = B / sc.scale_[:, None]
    intercept = problem.ybar - sc.mean_ @ slopes
    return np.vstack([intercept[None, :], slopes])


def unscale_vcv(vcv: np.ndarray, problem: StandardizedProblem) -> np.ndarray:
    """Covariance of the unscaled slopes, D^-1 V D^-1 with D = diag(sd)."""
    if not problem.stdize:
        return vcv
    inv = 1.0 / problem.scaler.scale_
    return vcv * np.outer(inv, inv)
