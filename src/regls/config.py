"""
Configuration for a regls call.

:class:`ReglsConfig` carries the user-facing options (named as in the
bundle interface), :class:`SolverControl` the per-call numerical tunables
handed to every solver invocation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional, Sequence

import numpy as np

from .errors import InvalidArgumentError
from .lambdas import LambdaScale

__all__ = ["ReglsConfig", "SolverControl", "XV_CRITERIA"]

ADMM_MAX_ITER = 20000
ADMM_RELTOL_DEFAULT = 1.0e-4
ADMM_ABSTOL_DEFAULT = 1.0e-6
ADMM_RHO_DEFAULT = 8.0

CCD_MAX_ITER = 100000
CCD_TOLER_DEFAULT = 1.0e-7

XV_CRITERIA = ("mse", "mae")


def _as_lfrac(value) -> np.ndarray:
    arr = np.atleast_1d(np.asarray(value, dtype=np.float64)).ravel()
    return arr


@dataclass
class ReglsConfig:
    """
    Options for one call of the engine.

    ``ridge`` and ``ccd`` pick the solver: ridge without ccd uses the SVD
    solver, lasso without ccd uses ADMM, and ``ccd`` selects coordinate
    descent for either penalty. ``alpha`` (CCD only) overrides the
    elastic-net mixing that ``ridge`` otherwise implies (0 for ridge,
    1 for lasso).
    """

    lfrac: Sequence[float] | np.ndarray = (1.0,)
    ridge: bool = False
    ccd: bool = False
    stdize: bool = True
    xvalidate: bool = False
    admmctrl: Optional[Sequence[float]] = None
    ccd_toler: Optional[float] = None
    nfolds: int = 10
    randfolds: bool = False
    xvcrit: str = "mse"
    verbosity: int = 1
    single_b: bool = False
    use_1se: bool = False
    lambda_scale: int = LambdaScale.GLMNET
    alpha: Optional[float] = None
    # distributed cross-validation
    nproc: int = 0
    no_mpi: bool = False
    local_only: bool = True
    seed: Optional[int] = None
    backend: str = "numpy"
    admm_strict: bool = False

    def __post_init__(self) -> None:
        self.lfrac = _as_lfrac(self.lfrac)

    # ------------------------------------------------------------------ #
    # Derived settings
    # ------------------------------------------------------------------ #

    @property
    def method(self) -> str:
        if self.ccd:
            return "ccd"
        return "svd" if self.ridge else "admm"

    @property
    def mixing(self) -> float:
        """Elastic-net mixing parameter used by the CCD solver."""
        if self.alpha is not None:
            return float(self.alpha)
        return 0.0 if self.ridge else 1.0

    @property
    def scale(self) -> LambdaScale:
        """Lambda scale mode; only ridge honours a non-default setting."""
        if self.ridge:
            return LambdaScale(int(self.lambda_scale))
        return LambdaScale.GLMNET

    @property
    def nlam(self) -> int:
        return int(self.lfrac.size)

    @property
    def criterion(self) -> str:
        return str(self.xvcrit).lower()

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate(self) -> "ReglsConfig":
        """Check every option before any numerical work starts."""
        lf = self.lfrac
        if lf.size == 0:
            raise InvalidArgumentError("lfrac must hold at least one value.")
        if not np.all(np.isfinite(lf)) or np.any(lf <= 0):
            raise InvalidArgumentError("lfrac values must be finite and positive.")
        if lf.size > 1 and np.any(np.diff(lf) > 0):
            raise InvalidArgumentError("lfrac must be nonincreasing.")
        try:
            scale = LambdaScale(int(self.lambda_scale))
        except ValueError:
            raise InvalidArgumentError(
                f"lambda_scale must be 0, 1 or 2, got {self.lambda_scale!r}."
            ) from None
        if not (self.ridge and scale == LambdaScale.NONE) and np.any(lf > 1.0):
            raise InvalidArgumentError("lfrac values must lie in (0, 1].")
        if self.alpha is not None:
            if not self.ccd:
                raise InvalidArgumentError("alpha is only supported by the CCD solver.")
            if not (0.0 <= float(self.alpha) <= 1.0):
                raise InvalidArgumentError("alpha must lie in [0, 1].")
        if self.admmctrl is not None and len(self.admmctrl) > 3:
            raise InvalidArgumentError("admmctrl takes at most [rho, reltol, abstol].")
        if self.xvalidate:
            if int(self.nfolds) < 2:
                raise InvalidArgumentError(f"nfolds must be at least 2, got {self.nfolds}.")
            if self.criterion not in XV_CRITERIA:
                raise InvalidArgumentError(f"'{self.xvcrit}' invalid criterion")
        if int(self.nproc) < 0:
            raise InvalidArgumentError("nproc must be non-negative.")
        if self.seed is not None and not (0 <= int(self.seed) < 2**32):
            raise InvalidArgumentError("seed must be an unsigned 32-bit integer.")
        return self

    # ------------------------------------------------------------------ #
    # Bundle interface
    # ------------------------------------------------------------------ #

    @classmethod
    def from_mapping(cls, bundle: Mapping[str, Any]) -> "ReglsConfig":
        """Build a config from a bundle-like mapping, ignoring output keys."""
        names = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in bundle.items() if k in names}
        if "np" in bundle and "nproc" not in kwargs:
            kwargs["nproc"] = int(bundle["np"])
        if "verbosity" in kwargs:
            kwargs["verbosity"] = int(kwargs["verbosity"])
        return cls(**kwargs)

    def to_mapping(self) -> Dict[str, Any]:
        """JSON-friendly representation (used for the worker exchange)."""
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, np.ndarray):
                value = value.tolist()
            elif isinstance(value, LambdaScale):
                value = int(value)
            elif isinstance(value, tuple):
                value = list(value)
            out[f.name] = value
        return out


@dataclass
class SolverControl:
    """Numerical tunables passed explicitly into every solver call."""

    rho: float = ADMM_RHO_DEFAULT
    admm_reltol: float = ADMM_RELTOL_DEFAULT
    admm_abstol: float = ADMM_ABSTOL_DEFAULT
    admm_max_iter: int = ADMM_MAX_ITER
    tune_rho: bool = True
    admm_strict: bool = False
    ccd_toler: float = CCD_TOLER_DEFAULT
    ccd_max_iter: int = CCD_MAX_ITER
    backend: str = "numpy"

    @classmethod
    def from_config(cls, config: ReglsConfig, k: int) -> "SolverControl":
        ctrl = cls(
            backend=config.backend,
            admm_strict=bool(config.admm_strict),
        )
        tol = config.ccd_toler
        if tol is not None and not math.isnan(float(tol)) and 0.0 < float(tol) < 1.0:
            ctrl.ccd_toler = float(tol)
        admm = list(config.admmctrl) if config.admmctrl is not None else []
        if len(admm) > 0 and admm[0] > 0:
            ctrl.rho = float(admm[0])
        if len(admm) > 1 and admm[1] > 0:
            ctrl.admm_reltol = float(admm[1])
        if len(admm) > 2 and admm[2] > 0:
            ctrl.admm_abstol = float(admm[2])
        # the absolute tolerance is stated per coefficient
        ctrl.admm_abstol *= math.sqrt(k)
        return ctrl
