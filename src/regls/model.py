"""
High-level estimator that exposes the regls engine with a
scikit-learn-inspired API.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import r2_score
from sklearn.utils import check_array, check_X_y

from .config import ReglsConfig
from .lambdas import LambdaScale, lambda_fraction_grid
from .linear_model import regls
from .results import ReglsResult

__all__ = ["ReglsRegressor"]


def _split_features(
    X: pd.DataFrame | np.ndarray,
    feature_names: Optional[Sequence[str]],
) -> Tuple[np.ndarray, Optional[List[str]]]:
    if isinstance(X, pd.DataFrame):
        return X.to_numpy(dtype=np.float64), [str(c) for c in X.columns]
    names = None if feature_names is None else [str(f) for f in feature_names]
    return np.asarray(X), names


@dataclass
class ReglsRegressor:
    """
    Lasso / ridge / elastic-net regression with an optional cross-validated
    choice of penalty.

    ``lfrac`` is either an explicit nonincreasing grid of lambda fractions
    or the number of points of a geometric grid from 1 down to
    ``min_frac``. With ``cv >= 2`` the penalty is chosen by ``cv``-fold
    cross-validation (``rule="1se"`` picks the largest penalty within one
    standard error of the best); otherwise a single-value grid is used as
    is and a multi-value grid is summarized by its in-sample criterion.
    """

    penalty: str = "lasso"
    solver: str = "auto"
    lfrac: int | Sequence[float] = 25
    min_frac: float = 0.01
    alpha: Optional[float] = None
    stdize: bool = True
    cv: int = 0
    randfolds: bool = False
    xvcrit: str = "mse"
    rule: str = "min"
    lambda_scale: int = LambdaScale.GLMNET
    admmctrl: Optional[Sequence[float]] = None
    ccd_toler: Optional[float] = None
    n_jobs: int = 0
    random_state: Optional[int] = None
    backend: str = "numpy"
    verbose: int = 0

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    def _grid(self) -> np.ndarray:
        if isinstance(self.lfrac, (int, np.integer)):
            return lambda_fraction_grid(int(self.lfrac), self.min_frac)
        return np.asarray(self.lfrac, dtype=np.float64)

    def _make_config(self) -> ReglsConfig:
        penalty = self.penalty.lower()
        if penalty not in ("lasso", "ridge", "elasticnet"):
            raise ValueError(f"Unsupported penalty '{self.penalty}'. Use 'lasso', 'ridge' or 'elasticnet'.")
        solver = self.solver.lower()
        if solver not in ("auto", "admm", "ccd", "svd"):
            raise ValueError(f"Unsupported solver '{self.solver}'. Use 'admm', 'ccd' or 'svd'.")
        ridge = penalty == "ridge"
        alpha = self.alpha
        if penalty == "elasticnet":
            if solver not in ("auto", "ccd"):
                raise ValueError("The elastic net is only available with the 'ccd' solver.")
            solver = "ccd"
            alpha = 0.5 if alpha is None else alpha
        if solver == "admm" and ridge:
            raise ValueError("The 'admm' solver only fits the lasso.")
        if solver == "svd" and not ridge:
            raise ValueError("The 'svd' solver only fits ridge regression.")
        if self.rule not in ("min", "1se"):
            raise ValueError(f"Unsupported rule '{self.rule}'. Use 'min' or '1se'.")

        return ReglsConfig(
            lfrac=self._grid(),
            ridge=ridge,
            ccd=solver == "ccd",
            stdize=self.stdize,
            xvalidate=int(self.cv) >= 2,
            admmctrl=self.admmctrl,
            ccd_toler=self.ccd_toler,
            nfolds=max(int(self.cv), 2),
            randfolds=self.randfolds,
            xvcrit=self.xvcrit,
            verbosity=int(self.verbose),
            lambda_scale=self.lambda_scale,
            alpha=alpha,
            nproc=int(self.n_jobs),
            seed=self.random_state,
            backend=self.backend,
        )

    # ------------------------------------------------------------------ #
    # Fitting / prediction API
    # ------------------------------------------------------------------ #

    def fit(
        self,
        X: pd.DataFrame | np.ndarray,
        y: Iterable[float] | np.ndarray,
        *,
        feature_names: Optional[Sequence[str]] = None,
    ) -> "ReglsRegressor":
        X_arr, names = _split_features(X, feature_names)
        X_arr, y_arr = check_X_y(X_arr, np.asarray(y), dtype=np.float64, y_numeric=True)
        if names is not None and len(names) != X_arr.shape[1]:
            raise ValueError(f"Got {len(names)} feature names for {X_arr.shape[1]} columns.")

        config = self._make_config()
        result = regls(X_arr, y_arr, config)

        if result.xvalidated:
            idx = (result.idx1se if self.rule == "1se" else result.idxmin) - 1
        elif result.idxmin is not None:
            idx = result.idxmin - 1
        else:
            idx = 0

        self.result_ = result
        self.index_ = int(idx)
        self.lfrac_ = float(result.lfrac_path[idx])
        self.coef_ = result.coef[:, idx].copy()
        self.intercept_ = float(result.B[0, idx]) if result.stdize else 0.0
        self.feature_names_ = names if names is not None else [f"x{i + 1}" for i in range(X_arr.shape[1])]
        self.n_features_in_ = X_arr.shape[1]
        return self

    def _check_fitted(self) -> ReglsResult:
        if not hasattr(self, "result_"):
            raise RuntimeError("fit must be called before predict.")
        return self.result_

    def predict(
        self,
        X: pd.DataFrame | np.ndarray,
        *,
        feature_names: Optional[Sequence[str]] = None,
    ) -> np.ndarray:
        self._check_fitted()
        if isinstance(X, pd.DataFrame):
            missing = [c for c in self.feature_names_ if c not in X.columns]
            if missing:
                raise ValueError(f"Input is missing features: {missing}")
            X = X[self.feature_names_]
        X_arr, _ = _split_features(X, feature_names)
        X_arr = check_array(X_arr, dtype=np.float64)
        if X_arr.shape[1] != self.n_features_in_:
            raise ValueError(
                f"X has {X_arr.shape[1]} features, but the model was fitted with {self.n_features_in_}."
            )
        return X_arr @ self.coef_ + self.intercept_

    def score(
        self,
        X: pd.DataFrame | np.ndarray,
        y: Iterable[float] | np.ndarray,
        *,
        feature_names: Optional[Sequence[str]] = None,
    ) -> float:
        return float(r2_score(np.asarray(y, dtype=np.float64), self.predict(X, feature_names=feature_names)))

    @property
    def coef_path_(self) -> pd.DataFrame:
        """Coefficient path with lambda, df, criterion and R^2 per row."""
        return self._check_fitted().path_frame(self.feature_names_)

    @property
    def cv_results_(self) -> pd.DataFrame:
        return self._check_fitted().xv_frame()

    # ------------------------------------------------------------------ #
    # Parameter helpers
    # ------------------------------------------------------------------ #

    def get_params(self, deep: bool = True) -> Dict[str, object]:
        return {
            "penalty": self.penalty,
            "solver": self.solver,
            "lfrac": self.lfrac,
            "min_frac": self.min_frac,
            "alpha": self.alpha,
            "stdize": self.stdize,
            "cv": self.cv,
            "randfolds": self.randfolds,
            "xvcrit": self.xvcrit,
            "rule": self.rule,
            "lambda_scale": self.lambda_scale,
            "admmctrl": self.admmctrl,
            "ccd_toler": self.ccd_toler,
            "n_jobs": self.n_jobs,
            "random_state": self.random_state,
            "backend": self.backend,
            "verbose": self.verbose,
        }

    def set_params(self, **params) -> "ReglsRegressor":
        for key, value in params.items():
            if not hasattr(self, key):
                raise ValueError(f"Unknown parameter '{key}'.")
            setattr(self, key, value)
        return self
