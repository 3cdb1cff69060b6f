from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, MutableMapping, Optional

import numpy as np
import pandas as pd

from ._math import _infnorm, get_backend
from ._solvers import _ADMMLasso, _CCDPath, _SVDRidge, _ccd_scale
from .config import ReglsConfig, SolverControl
from .crossval import FoldPlan, draw_seed, run_folds
from .distributed import Communicator, LocalCommunicator, run_distributed
from .errors import ErrorCode, InvalidArgumentError, ReglsError
from .lambdas import BIG_LAMBDA, LambdaScale, admm_lambda, ccd_lambda, svd_lambda, xv_lambda_max
from .metrics import XVSelection, process_xv_criterion
from .preprocessing import StandardizedProblem, standardize, unscale_coefficients, unscale_vcv
from .results import ReglsResult

__all__ = [
    "regls",
    "regls_bundle",
    "regls_xv_spmd",
    "admm_lasso",
    "ccd_regls",
    "svd_ridge",
]

logger = logging.getLogger(__name__)


@dataclass
class _PathFit:
    """Full-data fit in standardized space, before unscaling."""

    coef: np.ndarray
    lam: np.ndarray
    lmax: Optional[float]
    crit: np.ndarray
    r2: np.ndarray
    df: np.ndarray
    vcv: Optional[np.ndarray] = None
    n_active: Optional[np.ndarray] = None


def _check_data(X, y):
    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64).ravel()
    if X.ndim != 2:
        raise InvalidArgumentError(f"X must be a 2-D matrix, got {X.ndim} dimension(s).")
    n, k = X.shape
    if n == 0 or k == 0:
        raise InvalidArgumentError("X must have at least one row and one column.")
    if y.size != n:
        raise InvalidArgumentError(f"X has {n} rows but y has {y.size} elements.")
    if not (np.all(np.isfinite(X)) and np.all(np.isfinite(y))):
        raise InvalidArgumentError("X and y must not contain missing or non-finite values.")
    return X, y


def _resolve_config(config: Optional[ReglsConfig], options: dict) -> ReglsConfig:
    if config is None:
        return ReglsConfig(**options)
    if options:
        return replace(config, **options)
    return config


# --------------------------------------------------------------------------- #
# Full-data drivers
# --------------------------------------------------------------------------- #

def admm_lasso(
    problem: StandardizedProblem,
    config: ReglsConfig,
    control: SolverControl,
    lfrac: np.ndarray,
) -> _PathFit:
    """Lasso path by ADMM on the full (standardized) data."""
    X, y = problem.X, problem.y
    ops = get_backend(control.backend)
    xty = ops.xt_dot(X, y)
    path = admm_lambda(lfrac, _infnorm(xty))
    if config.verbosity > 0:
        _lambda_report(lfrac, path.raw_lmax)

    solver = _ADMMLasso(control, ops).fit_path(X, y, path.lam, xty=xty)
    df = np.count_nonzero(solver.coef_, axis=0).astype(np.float64)
    return _PathFit(
        coef=solver.coef_,
        lam=path.raw,
        lmax=path.raw_lmax,
        crit=solver.objective_,
        r2=solver.r2_,
        df=df,
    )


def ccd_regls(
    problem: StandardizedProblem,
    config: ReglsConfig,
    control: SolverControl,
    lfrac: np.ndarray,
) -> _PathFit:
    """Elastic-net path (lasso or ridge as special cases) by coordinate descent."""
    X, y = problem.X, problem.y
    n = X.shape[0]
    alpha = config.mixing
    scale = config.scale
    ops = get_backend(control.backend)

    Xs, ys, xty, xv = _ccd_scale(X, y, ops)
    path = ccd_lambda(lfrac, _infnorm(xty), n, alpha, scale)
    if config.verbosity > 0 and alpha == 1.0:
        _lambda_report(lfrac, path.raw_lmax)

    solver = _CCDPath(alpha, control, ops).fit_path(Xs, ys, path.lam, xty=xty, xv=xv)
    coef = solver.coef_

    # the null-model sentinel is reported as the lambda it stands for
    lam = path.lam.copy()
    if scale != LambdaScale.NONE and lam[0] == BIG_LAMBDA:
        lam[0] = lfrac[0] * path.lmax

    ssr = float(np.dot(ys, ys)) * (1.0 - solver.r2_)
    l1 = np.sum(np.abs(coef), axis=0)
    l2 = np.sum(coef * coef, axis=0)
    crit = 0.5 * ssr + lam * (alpha * l1 + 0.5 * (1.0 - alpha) * l2)

    if alpha == 0.0:
        s = np.linalg.svd(X, compute_uv=False)
        df = np.array([_SVDRidge.effective_df(s, n * lam_j) for lam_j in path.lam])
    else:
        df = solver.nnz_.astype(np.float64)

    return _PathFit(
        coef=coef,
        lam=lam * n,
        lmax=path.raw_lmax if scale != LambdaScale.NONE else None,
        crit=crit,
        r2=solver.r2_,
        df=df,
        n_active=solver.n_active_,
    )


def svd_ridge(
    problem: StandardizedProblem,
    config: ReglsConfig,
    control: SolverControl,
    lfrac: np.ndarray,
) -> _PathFit:
    """Ridge path from one SVD; a single lambda also yields the covariance."""
    X, y = problem.X, problem.y
    n, k = X.shape
    scale = config.scale
    ops = get_backend(control.backend)

    path = svd_lambda(lfrac, _infnorm(ops.xt_dot(X, y)), n, k, scale)
    solver = _SVDRidge(control, ops).fit_path(X, y, path.raw, compute_vcv=path.lam.size == 1)

    raw = path.raw.copy()
    if scale == LambdaScale.GLMNET and path.lam[0] == BIG_LAMBDA:
        raw[0] = lfrac[0] * path.raw_lmax
    crit = solver.ssr_ + raw * np.sum(solver.coef_ ** 2, axis=0)

    return _PathFit(
        coef=solver.coef_,
        lam=raw,
        lmax=path.raw_lmax if scale != LambdaScale.NONE else None,
        crit=crit,
        r2=solver.r2_,
        df=solver.df_,
        vcv=solver.vcv_,
    )


_DRIVERS = {
    "admm": admm_lasso,
    "ccd": ccd_regls,
    "svd": svd_ridge,
}


def _fit_full(
    problem: StandardizedProblem,
    config: ReglsConfig,
    control: SolverControl,
    lfrac: np.ndarray,
) -> ReglsResult:
    lfrac = np.asarray(lfrac, dtype=np.float64)
    fit = _DRIVERS[config.method](problem, config, control, lfrac)
    vcv = unscale_vcv(fit.vcv, problem) if fit.vcv is not None else None
    return ReglsResult(
        B=unscale_coefficients(fit.coef, problem),
        lfrac=np.array(config.lfrac, dtype=np.float64),
        lfrac_path=lfrac.copy(),
        lam=fit.lam,
        lmax=fit.lmax,
        crit=fit.crit,
        R2=fit.r2,
        df=fit.df,
        vcv=vcv,
        n_active=fit.n_active,
        method=config.method,
        stdize=problem.stdize,
    )


# --------------------------------------------------------------------------- #
# Verbose reports
# --------------------------------------------------------------------------- #

def _lambda_report(lfrac: np.ndarray, lmax: float) -> None:
    lf = np.asarray(lfrac)
    logger.info("lambda-max = %g", lmax)
    if lf.size > 1:
        logger.info("lambda fractions: %d values from %g to %g", lf.size, lf[0], lf[-1])
    else:
        logger.info("lambda = %g (fraction %g)", lf[0] * lmax, lf[0])


def _path_report(config: ReglsConfig, result: ReglsResult) -> None:
    frame = result.path_frame()
    frame = frame[[c for c in ("lambda", "df", "crit", "R2") if c in frame.columns]]
    if config.ridge or config.mixing == 0.0:
        logger.info("df = effective number of free parameters")
    logger.info("\n%s", frame.to_string(index=False, float_format=lambda v: f"{v:12f}"))


def _xv_report(config: ReglsConfig, sel: XVSelection) -> None:
    crit = config.criterion.upper()
    frame = pd.DataFrame({"s": config.lfrac, crit: sel.mean, "se": sel.se})
    logger.info("\n%s", frame.to_string(index=False, float_format=lambda v: f"{v:10f}"))
    logger.info(
        "Average out-of-sample %s minimized at %#g for s=%#g",
        crit, sel.mean[sel.imin], config.lfrac[sel.imin],
    )
    logger.info("Largest s within one s.e. of best criterion: %#g", config.lfrac[sel.i1se])


# --------------------------------------------------------------------------- #
# Entry points
# --------------------------------------------------------------------------- #

def regls_xv_spmd(
    comm: Communicator,
    X: np.ndarray,
    y: np.ndarray,
    config: ReglsConfig,
) -> Optional[ReglsResult]:
    """
    Cross-validation run by every rank of ``comm``.

    Rank 0 computes lambda-max and (for random folds) the seed and
    broadcasts both; every rank permutes identically and works through its
    share of the folds; the criterion blocks are gathered at rank 0, which
    restores fold order, selects lambda and refits on the full, unpermuted
    data. Ranks other than 0 return None.
    """
    config.validate()
    X, y = _check_data(X, y)
    n, k = X.shape
    control = SolverControl.from_config(config, k)
    problem = standardize(X, y, config.stdize)
    plan = FoldPlan(n, int(config.nfolds))

    seed: Optional[int] = None
    lmax: Optional[float] = None
    if comm.is_root:
        if config.randfolds:
            seed = int(config.seed) if config.seed is not None else draw_seed()
        ops = get_backend(control.backend)
        infnorm = _infnorm(ops.xt_dot(problem.X, problem.y))
        lmax = xv_lambda_max(config.method, infnorm, plan.esize, k, config.mixing, config.scale)
        if config.verbosity > 0:
            logger.info(
                "regls_xv: nf=%d, fsize=%d, randfolds=%d, crit=%s, method=%s, processes=%d",
                plan.nfolds, plan.fsize, int(config.randfolds), config.criterion,
                config.method, comm.size,
            )
            logger.info("cross-validation lmax = %g", lmax)
    seed, lmax = comm.bcast((seed, lmax))

    code, message = ErrorCode.OK, ""
    local = np.zeros((config.nlam, len(plan.folds_for_rank(comm.rank, comm.size))))
    try:
        local = run_folds(
            plan, problem.X, problem.y, config, control, lmax,
            rank=comm.rank, size=comm.size, seed=seed,
        )
    except ReglsError as exc:
        code, message = exc.code, str(exc)
    except MemoryError as exc:
        code, message = ErrorCode.E_ALLOC, str(exc) or "out of memory"

    gathered = comm.hcat_reduce(local, code, message)
    if not comm.is_root:
        return None

    scores = np.empty_like(gathered)
    scores[:, plan.rank_order(comm.size)] = gathered
    sel = process_xv_criterion(scores)
    if config.verbosity > 0:
        _xv_report(config, sel)

    if config.single_b:
        idx = sel.i1se if config.use_1se else sel.imin
        lfrac_path = config.lfrac[idx:idx + 1]
    else:
        lfrac_path = config.lfrac
    result = _fit_full(problem, config, control, lfrac_path)

    result.XVC = sel.XVC
    result.xv_folds = scores
    result.idxmin = sel.imin + 1
    result.idx1se = sel.i1se + 1
    result.lfmin = float(config.lfrac[sel.imin])
    result.lf1se = float(config.lfrac[sel.i1se])
    result.seed = seed
    result.criterion = config.criterion
    return result


def regls(
    X: np.ndarray,
    y: np.ndarray,
    config: Optional[ReglsConfig] = None,
    **options: Any,
) -> ReglsResult:
    """
    Fit a lasso, ridge or elastic-net path, optionally cross-validated.

    Parameters
    ----------
    X : (n, k) array
        Regressors; never modified.
    y : (n,) array
        Dependent variable.
    config :
        A :class:`ReglsConfig`; keyword ``options`` override its fields (or
        build one from scratch when ``config`` is None).

    Returns
    -------
    ReglsResult

    Raises
    ------
    InvalidArgumentError
        Bad options or data, detected before any numerical work.
    NonConvergenceError
        CCD exceeded its iteration limit, or ADMM did with ``admm_strict``.
    LinAlgFailure
        A Cholesky factorization or SVD failed.
    AllocationError
        Workspace allocation failed.
    """
    config = _resolve_config(config, options).validate()
    X, y = _check_data(X, y)

    if config.xvalidate:
        if config.nproc > 1 and not config.no_mpi:
            return run_distributed(X, y, config)
        return regls_xv_spmd(LocalCommunicator(), X, y, config)

    control = SolverControl.from_config(config, X.shape[1])
    problem = standardize(X, y, config.stdize)
    result = _fit_full(problem, config, control, config.lfrac)
    if config.nlam > 1:
        imin = int(np.argmin(result.crit))
        result.idxmin = imin + 1
        result.lfmin = float(config.lfrac[imin])
    if config.verbosity > 0:
        _path_report(config, result)
    return result


def regls_bundle(X: np.ndarray, y: np.ndarray, bundle: MutableMapping[str, Any]) -> int:
    """
    Bundle interface: options are read from ``bundle`` and outputs written
    back into it. Returns an :class:`ErrorCode` value; on failure the
    message is stored under ``"errmsg"`` and nothing else is written.
    """
    try:
        config = ReglsConfig.from_mapping(bundle)
        result = regls(X, y, config)
    except ReglsError as exc:
        bundle["errmsg"] = str(exc)
        return int(exc.code)
    except MemoryError as exc:
        bundle["errmsg"] = str(exc) or "out of memory"
        return int(ErrorCode.E_ALLOC)
    except (TypeError, ValueError) as exc:
        bundle["errmsg"] = str(exc)
        return int(ErrorCode.E_INVARG)
    bundle.update(result.to_bundle())
    return int(ErrorCode.OK)
