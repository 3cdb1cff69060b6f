"""Result container returned by :func:`regls.regls`."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

__all__ = ["ReglsResult"]

# outputs stored as arrays (vs. scalars) when exchanged with worker processes
ARRAY_FIELDS = (
    "B", "lfrac", "lfrac_path", "lam", "crit", "R2", "df", "XVC", "xv_folds", "vcv", "n_active",
)


@dataclass
class ReglsResult:
    """
    Coefficients and diagnostics of one regls call.

    ``B`` is (k, m), or (k + 1, m) with the intercept in the first row when
    the data were standardized. ``lfrac`` is the full fraction grid and
    ``lfrac_path`` the fractions matching the columns of ``B`` (a single
    entry when only the selected coefficient vector was refitted).
    Indices ``idxmin`` / ``idx1se`` are 1-based. ``n_active`` (CCD only)
    counts the predictors that have entered the active set by each lambda.
    """

    B: np.ndarray
    lfrac: np.ndarray
    lfrac_path: np.ndarray
    lam: Optional[np.ndarray] = None
    lmax: Optional[float] = None
    crit: Optional[np.ndarray] = None
    R2: Optional[np.ndarray] = None
    df: Optional[np.ndarray] = None
    idxmin: Optional[int] = None
    idx1se: Optional[int] = None
    lfmin: Optional[float] = None
    lf1se: Optional[float] = None
    XVC: Optional[np.ndarray] = None
    xv_folds: Optional[np.ndarray] = None
    vcv: Optional[np.ndarray] = None
    n_active: Optional[np.ndarray] = None
    seed: Optional[int] = None
    method: str = "admm"
    stdize: bool = True
    criterion: Optional[str] = None

    @property
    def nlam(self) -> int:
        return int(np.asarray(self.lfrac).size)

    @property
    def intercept(self) -> Optional[np.ndarray]:
        return self.B[0] if self.stdize else None

    @property
    def coef(self) -> np.ndarray:
        """Slopes only, (k, m)."""
        return self.B[1:] if self.stdize else self.B

    @property
    def xvalidated(self) -> bool:
        return self.XVC is not None

    def to_bundle(self) -> Dict[str, Any]:
        """
        Outputs keyed as in the bundle interface. ``lambda`` is reported only
        for a single lambda; the in-sample ``crit`` is left out after
        cross-validation and is a scalar when single-valued. Missing outputs
        are omitted.
        """
        out: Dict[str, Any] = {"B": self.B}
        if self.lam is not None and self.lam.size == 1:
            out["lambda"] = float(self.lam[0])
        if self.crit is not None and not self.xvalidated:
            out["crit"] = float(self.crit[0]) if self.crit.size == 1 else self.crit
        for key in ("lmax", "R2", "df", "idxmin", "idx1se", "lfmin", "lf1se",
                    "XVC", "xv_folds", "vcv", "seed"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out

    def path_frame(self, feature_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """
        One row per fitted lambda: fraction, lambda, df, criterion, R^2 and
        the coefficients (named by ``feature_names`` when given).
        """
        frame = pd.DataFrame({"lfrac": np.asarray(self.lfrac_path, dtype=np.float64)})
        for col, values in (("lambda", self.lam), ("df", self.df),
                            ("crit", self.crit), ("R2", self.R2)):
            if values is not None and np.size(values) == len(frame):
                frame[col] = np.asarray(values)
        names: List[str]
        k = self.coef.shape[0]
        if feature_names is None:
            names = [f"x{i + 1}" for i in range(k)]
        else:
            names = [str(f) for f in feature_names]
            if len(names) != k:
                raise ValueError(f"expected {k} feature names, got {len(names)}")
        coefs = pd.DataFrame(self.coef.T, columns=names)
        if self.stdize:
            coefs.insert(0, "const", self.B[0])
        return pd.concat([frame, coefs], axis=1)

    def xv_frame(self) -> pd.DataFrame:
        """Cross-validation summary: fraction, mean, se and per-fold scores."""
        if self.XVC is None:
            raise RuntimeError("No cross-validation results are available.")
        frame = pd.DataFrame({
            "lfrac": np.asarray(self.lfrac, dtype=np.float64),
            "mean": self.XVC[:, 0],
            "se": self.XVC[:, 1],
        })
        if self.xv_folds is not None:
            for f in range(self.xv_folds.shape[1]):
                frame[f"fold{f + 1}"] = self.xv_folds[:, f]
        return frame

    # ------------------------------------------------------------------ #
    # Exchange helpers
    # ------------------------------------------------------------------ #

    def array_items(self) -> Dict[str, np.ndarray]:
        return {
            name: np.asarray(getattr(self, name))
            for name in ARRAY_FIELDS
            if getattr(self, name) is not None
        }

    def scalar_items(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            if f.name in ARRAY_FIELDS:
                continue
            value = getattr(self, f.name)
            if isinstance(value, np.generic):
                value = value.item()
            out[f.name] = value
        return out

    @classmethod
    def from_items(cls, arrays: Dict[str, np.ndarray], scalars: Dict[str, Any]) -> "ReglsResult":
        names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {k: v for k, v in scalars.items() if k in names}
        kwargs.update({k: np.asarray(v) for k, v in arrays.items() if k in names})
        return cls(**kwargs)
