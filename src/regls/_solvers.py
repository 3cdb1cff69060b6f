"""
Low-level solvers for penalized least squares.

Three interchangeable solvers walk a whole lambda path and keep their
state in an explicit workspace context, so a cross-validation fold loop can
reuse the buffers from one fold to the next:

  * :class:`_ADMMLasso`  ADMM for the lasso, with a cached Cholesky factor
    and adaptive step size.
  * :class:`_CCDPath`    cyclical coordinate descent for the elastic net
    (glmnet's "covariance" updates, warm-started along the path).
  * :class:`_SVDRidge`   closed-form ridge from one thin SVD.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import numpy as np
from scipy.linalg import LinAlgError, cho_factor, cho_solve, svd

from ._math import VectorOps, get_backend
from ._workspace import AdmmContext, CcdContext, SvdContext
from .config import SolverControl
from .errors import LinAlgFailure, NonConvergenceError

__all__ = ["_ADMMLasso", "_CCDPath", "_SVDRidge", "_ccd_scale"]

logger = logging.getLogger(__name__)

RHO_ADJUST_RATIO = 10.0


def _ccd_scale(
    X: np.ndarray,
    y: np.ndarray,
    ops: Optional[VectorOps] = None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Scale copies of X and y by sqrt(1/n).

    Returns the scaled data together with X'y and the column sums of
    squares (``xv``) of the scaled design.
    """
    ops = get_backend("numpy") if ops is None else ops
    n = X.shape[0]
    v = math.sqrt(1.0 / n)
    Xs = np.array(X, dtype=np.float64, order="F") * v
    ys = np.array(y, dtype=np.float64) * v
    xty = np.asarray(ops.xt_dot(Xs, ys), dtype=np.float64)
    xv = np.einsum("ij,ij->j", Xs, Xs)
    return Xs, ys, xty, xv


class _ADMMLasso:
    """
    ADMM for 0.5*||y - Xb||^2 + lam*||b||_1.

    The step size ``rho`` and the state vectors live in an
    :class:`AdmmContext`; successive lambdas on one sample warm-start from
    the previous solution.
    """

    def __init__(
        self,
        control: Optional[SolverControl] = None,
        ops: Optional[VectorOps] = None,
    ) -> None:
        self.control = SolverControl() if control is None else control
        self.ops = get_backend(self.control.backend if ops is None else ops)
        self.coef_: Optional[np.ndarray] = None
        self.objective_: Optional[np.ndarray] = None
        self.r2_: Optional[np.ndarray] = None
        self.n_iter_: Optional[np.ndarray] = None
        self.rho_: float = self.control.rho

    def _factorize(self, X: np.ndarray, ctx: AdmmContext) -> None:
        L = ctx.L
        if ctx.skinny:
            # chol(X'X + rho*I)
            np.dot(X.T, X, out=L)
            L[np.diag_indices_from(L)] += ctx.rho
        else:
            # chol(I + XX'/rho)
            np.dot(X, X.T, out=L)
            if ctx.rho != 1.0:
                L /= ctx.rho
            L[np.diag_indices_from(L)] += 1.0
        try:
            ctx.chol = cho_factor(L, lower=True, overwrite_a=True)
        except (LinAlgError, ValueError) as exc:
            raise LinAlgFailure(f"ADMM: Cholesky factorization failed ({exc})") from exc

    def _solve_v(self, X: np.ndarray, ctx: AdmmContext, v, q, rho: float) -> None:
        if ctx.skinny:
            v[:] = cho_solve(ctx.chol, q, check_finite=False)
            return
        # v = q/rho - X'(L'L \ Xq) / rho^2
        p = ctx.scratch(ctx.n)
        np.dot(X, q, out=p)
        w = cho_solve(ctx.chol, p, check_finite=False)
        v[:] = self.ops.xt_dot(X, w)
        v *= -1.0 / (rho * rho)
        q /= rho
        self.ops.add_to(v, q)

    def _iterate(self, X: np.ndarray, xty: np.ndarray, lam: float, ctx: AdmmContext) -> int:
        ops = self.ops
        ctl = self.control
        v, u, b, r = ctx.vec("v"), ctx.vec("u"), ctx.vec("b"), ctx.vec("r")
        bprev, bdiff, q = ctx.vec("bprev"), ctx.vec("bdiff"), ctx.vec("q")
        abstol, reltol = ctl.admm_abstol, ctl.admm_reltol

        rho = ctx.rho
        itermin = 1
        it = 0
        converged = False

        while it < ctl.admm_max_iter:
            ops.add_to(u, r)
            ops.compute_q(q, b, u, xty, rho)
            self._solve_v(X, ctx, v, q, rho)

            prires = math.sqrt(ops.dot(r, r))
            nxstack = math.sqrt(ops.dot(v, v))
            nystack = math.sqrt(ops.dot(u, u) / (rho * rho))

            bprev[:] = b
            ops.add_into(v, u, b)
            ops.soft_threshold(b, lam / rho)

            ops.subtract_into(b, bprev, bdiff)
            dualres = rho * math.sqrt(ops.dot(bdiff, bdiff))

            eps_pri = abstol + reltol * max(nxstack, math.sqrt(ops.dot(b, b)))
            eps_dual = abstol + reltol * nystack

            if it >= itermin and prires <= eps_pri and dualres <= eps_dual:
                converged = True
                break

            ops.subtract_into(v, b, r)

            if ctl.tune_rho and it > 0 and (it == 32 or it % 200 == 0):
                adj = 0.0
                if prires > RHO_ADJUST_RATIO * dualres:
                    adj = 2.0
                elif dualres > RHO_ADJUST_RATIO * prires:
                    adj = 0.5
                if adj > 0:
                    rho *= adj
                    ctx.rho = rho
                    u /= adj
                    r /= adj
                    self._factorize(X, ctx)
                    itermin = it + 100
                    logger.debug("ADMM iter %d: rho adjusted by %g to %g", it, adj, rho)

            it += 1

        ctx.rho = rho
        if not converged:
            msg = f"ADMM: no convergence after {it} iterations (lambda = {lam:g})"
            if ctl.admm_strict:
                raise NonConvergenceError(msg)
            logger.warning(msg)
        return it

    def fit_path(
        self,
        X: np.ndarray,
        y: np.ndarray,
        lam: np.ndarray,
        ctx: Optional[AdmmContext] = None,
        xty: Optional[np.ndarray] = None,
    ) -> "_ADMMLasso":
        """
        Solve for each lambda in ``lam`` (largest first), warm-starting.

        A context that has not been prepared for a sample of this shape is
        prepared here and its step size reset to ``control.rho``.
        """
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        lam = np.atleast_1d(np.asarray(lam, dtype=np.float64))
        n, k = X.shape
        nlam = lam.size

        own_ctx = ctx is None
        if own_ctx:
            ctx = AdmmContext()
        try:
            if ctx.chol is None or ctx.n != n or ctx.k != k:
                ctx.prepare(n, k)
                ctx.rho = self.control.rho
                self._factorize(X, ctx)
            if xty is None:
                xty = self.ops.xt_dot(X, y)
            tss = self.ops.dot(y, y)

            coef = np.zeros((k, nlam), dtype=np.float64)
            obj = np.empty(nlam, dtype=np.float64)
            r2 = np.empty(nlam, dtype=np.float64)
            iters = np.zeros(nlam, dtype=np.int64)

            b = ctx.vec("b")
            for j, lam_j in enumerate(lam):
                iters[j] = self._iterate(X, xty, float(lam_j), ctx)
                coef[:, j] = b
                resid = y - X @ b
                ssr = self.ops.dot(resid, resid)
                obj[j] = (0.5 * ssr + lam_j * np.sum(np.abs(b))) / n
                r2[j] = 1.0 - ssr / tss if tss > 0 else 0.0
                logger.debug(
                    "ADMM lambda %g: %d iterations, rho %g, %d nonzero",
                    lam_j, iters[j], ctx.rho, int(np.count_nonzero(b)),
                )
            self.rho_ = ctx.rho
        finally:
            if own_ctx:
                ctx.close()

        self.coef_ = coef
        self.objective_ = obj
        self.r2_ = r2
        self.n_iter_ = iters
        return self


class _CCDPath:
    """
    Cyclical coordinate descent for the elastic net on data scaled by
    sqrt(1/n), minimising

        (1/2)||y - Xa||^2 + lam * (alpha*||a||_1 + (1-alpha)/2*||a||^2)

    The gradient g = X'(y - Xa) is updated incrementally; the cross-product
    cache only holds columns for predictors that have entered the active
    set. The coefficient vector is never reset between lambdas.
    """

    def __init__(
        self,
        alpha: float = 1.0,
        control: Optional[SolverControl] = None,
        ops: Optional[VectorOps] = None,
    ) -> None:
        self.alpha = float(alpha)
        self.control = SolverControl() if control is None else control
        self.ops = get_backend(self.control.backend if ops is None else ops)
        self.coef_: Optional[np.ndarray] = None
        self.rsq_: Optional[np.ndarray] = None
        self.r2_: Optional[np.ndarray] = None
        self.n_active_: Optional[np.ndarray] = None
        self.nnz_: Optional[np.ndarray] = None
        self.n_passes_: int = 0

    def _enter(self, Xs, C, mm, ia, kk: int, nin: int, xv) -> int:
        """Fill cache column ``nin`` for predictor ``kk`` entering the active set."""
        col = C[:, nin]
        active = mm >= 0
        col[active] = C[kk, mm[active]]
        fresh = ~active
        fresh[kk] = False
        if np.any(fresh):
            col[fresh] = self.ops.xt_dot(Xs[:, fresh], Xs[:, kk])
        col[kk] = xv[kk]
        mm[kk] = nin
        ia[nin] = kk
        return nin + 1

    def fit_path(
        self,
        Xs: np.ndarray,
        ys: np.ndarray,
        lam: np.ndarray,
        ctx: Optional[CcdContext] = None,
        xty: Optional[np.ndarray] = None,
        xv: Optional[np.ndarray] = None,
    ) -> "_CCDPath":
        """
        Run the path on data already scaled by sqrt(1/n) (see
        :func:`_ccd_scale`). Raises :class:`NonConvergenceError` when the
        total number of sweeps exceeds ``control.ccd_max_iter``.
        """
        lam = np.atleast_1d(np.asarray(lam, dtype=np.float64))
        k = Xs.shape[1]
        nlam = lam.size
        if xty is None:
            xty = self.ops.xt_dot(Xs, ys)
        if xv is None:
            xv = np.einsum("ij,ij->j", Xs, Xs)

        own_ctx = ctx is None
        if own_ctx:
            ctx = CcdContext()
        try:
            ctx.prepare(k, nlam)
            C, B = ctx.C, ctx.B
            a, da = ctx.vec("a"), ctx.vec("da")
            mm, ia = ctx.vec("mm"), ctx.vec("ia")

            g = np.array(xty, dtype=np.float64)
            thr = self.control.ccd_toler
            maxit = self.control.ccd_max_iter
            omb = 1.0 - self.alpha
            nin = nlp = iz = 0
            rsq = 0.0
            kin = np.zeros(nlam, dtype=np.int64)
            rsq_path = np.zeros(nlam, dtype=np.float64)

            for m in range(nlam):
                alm = lam[m]
                dem = alm * omb
                ab = alm * self.alpha
                jz = 1
                while True:
                    if iz * jz == 0:
                        # sweep over all predictors
                        nlp += 1
                        dlx = 0.0
                        for kk in range(k):
                            ak = a[kk]
                            u = g[kk] + ak * xv[kk]
                            v = abs(u) - ab
                            a[kk] = (v if u >= 0 else -v) / (xv[kk] + dem) if v > 0.0 else 0.0
                            if a[kk] != ak:
                                if mm[kk] < 0:
                                    nin = self._enter(Xs, C, mm, ia, kk, nin, xv)
                                d = a[kk] - ak
                                rsq += d * (2.0 * g[kk] - d * xv[kk])
                                dlx = max(xv[kk] * d * d, dlx)
                                g -= C[:, mm[kk]] * d
                        if dlx < thr:
                            break
                        if nlp > maxit:
                            raise NonConvergenceError(
                                f"CCD: maximum number of passes ({maxit}) reached"
                            )
                    iz = 1
                    act = ia[:nin]
                    da[:nin] = a[act]
                    while True:
                        # sweeps over the active set only
                        nlp += 1
                        dlx = 0.0
                        for kk in act:
                            ak = a[kk]
                            u = g[kk] + ak * xv[kk]
                            v = abs(u) - ab
                            a[kk] = (v if u >= 0 else -v) / (xv[kk] + dem) if v > 0.0 else 0.0
                            if a[kk] != ak:
                                d = a[kk] - ak
                                rsq += d * (2.0 * g[kk] - d * xv[kk])
                                dlx = max(xv[kk] * d * d, dlx)
                                g[act] -= C[act, mm[kk]] * d
                        if dlx < thr:
                            break
                        if nlp > maxit:
                            raise NonConvergenceError(
                                f"CCD: maximum number of passes ({maxit}) reached"
                            )
                    # bring the gradient of inactive predictors up to date
                    da[:nin] = a[act] - da[:nin]
                    inactive = mm < 0
                    if np.any(inactive) and nin > 0:
                        g[inactive] -= C[inactive, :nin] @ da[:nin]
                    jz = 0

                B[:, m] = a
                kin[m] = nin
                rsq_path[m] = rsq
                logger.debug("CCD lambda %g: %d active, %d passes so far", alm, nin, nlp)

            coef = B.copy()
        finally:
            if own_ctx:
                ctx.close()

        yty = float(np.dot(ys, ys))
        self.coef_ = coef
        self.rsq_ = rsq_path
        self.r2_ = rsq_path / yty if yty > 0 else np.zeros(nlam)
        self.n_active_ = kin
        self.nnz_ = np.count_nonzero(coef, axis=0)
        self.n_passes_ = nlp
        return self


class _SVDRidge:
    """Ridge regression ||y - Xb||^2 + lam*||b||^2 via one thin SVD of X."""

    def __init__(
        self,
        control: Optional[SolverControl] = None,
        ops: Optional[VectorOps] = None,
    ) -> None:
        self.control = SolverControl() if control is None else control
        self.ops = get_backend(self.control.backend if ops is None else ops)
        self.coef_: Optional[np.ndarray] = None
        self.r2_: Optional[np.ndarray] = None
        self.ssr_: Optional[np.ndarray] = None
        self.crit_: Optional[np.ndarray] = None
        self.df_: Optional[np.ndarray] = None
        self.vcv_: Optional[np.ndarray] = None

    @staticmethod
    def decompose(X: np.ndarray, ctx: SvdContext) -> SvdContext:
        try:
            ctx.U, ctx.s, ctx.Vt = svd(X, full_matrices=False)
        except (LinAlgError, ValueError) as exc:
            raise LinAlgFailure(f"SVD of the regressor matrix failed ({exc})") from exc
        return ctx

    @staticmethod
    def effective_df(s: np.ndarray, lam: float) -> float:
        s2 = s * s
        return float(np.sum(s2 / (s2 + lam)))

    def fit_path(
        self,
        X: np.ndarray,
        y: np.ndarray,
        lam: np.ndarray,
        ctx: Optional[SvdContext] = None,
        compute_vcv: bool = False,
    ) -> "_SVDRidge":
        """
        Ridge coefficients for each (raw-unit) lambda. With a single lambda
        and ``compute_vcv`` the coefficient covariance is also produced.
        """
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        lam = np.atleast_1d(np.asarray(lam, dtype=np.float64))
        n, k = X.shape
        nlam = lam.size

        own_ctx = ctx is None
        if own_ctx:
            ctx = SvdContext()
        try:
            ctx.prepare(k, nlam)
            self.decompose(X, ctx)
            U, s, Vt = ctx.U, ctx.s, ctx.Vt
            B = ctx.B
            uty = U.T @ y
            tss = self.ops.dot(y, y)
            s2 = s * s

            r2 = np.empty(nlam, dtype=np.float64)
            ssr = np.empty(nlam, dtype=np.float64)
            df = np.empty(nlam, dtype=np.float64)
            for j, lam_j in enumerate(lam):
                B[:, j] = Vt.T @ (s / (s2 + lam_j) * uty)
                resid = y - X @ B[:, j]
                ssr[j] = self.ops.dot(resid, resid)
                r2[j] = 1.0 - ssr[j] / tss if tss > 0 else 0.0
                df[j] = self.effective_df(s, lam_j)

            coef = B.copy()
            vcv = None
            if compute_vcv and nlam == 1:
                sigma2 = ssr[0] / n
                w = s2 / (s2 + lam[0]) ** 2
                vcv = sigma2 * (Vt.T * w) @ Vt
        finally:
            if own_ctx:
                ctx.close()

        self.coef_ = coef
        self.r2_ = r2
        self.ssr_ = ssr
        self.crit_ = ssr + lam * np.sum(coef * coef, axis=0)
        self.df_ = df
        self.vcv_ = vcv
        return self
