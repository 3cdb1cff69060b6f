"""
Low-level numerical kernels used throughout the regls package.

The solvers never touch a particular array library directly for their
vector arithmetic: they go through a :class:`VectorOps` backend, so an
accelerated implementation can be swapped in by name at run time without
changing any solver control flow.

Two backends are provided:
  • ``"numpy"``  vectorised NumPy ufuncs (default), and
  • ``"blas"``   level-1/level-2 BLAS routines from :mod:`scipy.linalg.blas`.
"""

from __future__ import annotations

from typing import Dict

import numpy as np
from scipy.linalg import blas

from .errors import InvalidArgumentError

__all__ = [
    "VectorOps",
    "NumpyOps",
    "BlasOps",
    "get_backend",
    "available_backends",
    "_soft_threshold",
    "_infnorm",
]


def _soft_threshold(w: np.ndarray, thresh: float) -> np.ndarray:
    """Proximal operator for the L1 norm."""
    return np.sign(w) * np.maximum(np.abs(w) - thresh, 0.0)


def _infnorm(z: np.ndarray) -> float:
    z = np.asarray(z, dtype=np.float64)
    if z.size == 0:
        return 0.0
    return float(np.max(np.abs(z)))


class VectorOps:
    """
    Interface for the element-wise kernels the solvers rely on.

    All in-place methods write into their first (or ``out``) argument and
    return it, so calls can be chained where convenient.
    """

    name = "abstract"

    def dot(self, x: np.ndarray, y: np.ndarray) -> float:
        raise NotImplementedError

    def add_to(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """a += b"""
        raise NotImplementedError

    def add_into(self, a: np.ndarray, b: np.ndarray, out: np.ndarray) -> np.ndarray:
        """out = a + b"""
        out[...] = a
        return self.add_to(out, b)

    def subtract_into(self, a: np.ndarray, b: np.ndarray, out: np.ndarray) -> np.ndarray:
        """out = a - b"""
        raise NotImplementedError

    def compute_q(
        self,
        q: np.ndarray,
        b: np.ndarray,
        u: np.ndarray,
        xty: np.ndarray,
        rho: float,
    ) -> np.ndarray:
        """q = rho * (b - u) + X'y, the right-hand side of the ADMM v-update."""
        raise NotImplementedError

    def xt_dot(self, X: np.ndarray, v: np.ndarray) -> np.ndarray:
        """Return X' v."""
        raise NotImplementedError

    def soft_threshold(self, v: np.ndarray, thresh: float) -> np.ndarray:
        """In-place soft thresholding: shrink toward zero by ``thresh``."""
        np.copyto(v, _soft_threshold(v, thresh))
        return v

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class NumpyOps(VectorOps):
    name = "numpy"

    def dot(self, x, y):
        return float(np.dot(x, y))

    def add_to(self, a, b):
        np.add(a, b, out=a)
        return a

    def add_into(self, a, b, out):
        np.add(a, b, out=out)
        return out

    def subtract_into(self, a, b, out):
        np.subtract(a, b, out=out)
        return out

    def compute_q(self, q, b, u, xty, rho):
        np.subtract(b, u, out=q)
        if rho != 1.0:
            q *= rho
        q += xty
        return q

    def xt_dot(self, X, v):
        return X.T @ v


class BlasOps(VectorOps):
    """Kernels backed by the BLAS bundled with SciPy (ddot, daxpy, dscal, dgemv)."""

    name = "blas"

    @staticmethod
    def _axpy(x: np.ndarray, y: np.ndarray, a: float) -> np.ndarray:
        res = blas.daxpy(x, y, a=a)
        if res is not y:
            y[...] = res
        return y

    def dot(self, x, y):
        return float(blas.ddot(x, y))

    def add_to(self, a, b):
        return self._axpy(b, a, 1.0)

    def subtract_into(self, a, b, out):
        out[...] = a
        return self._axpy(b, out, -1.0)

    def compute_q(self, q, b, u, xty, rho):
        q[...] = b
        self._axpy(u, q, -1.0)
        if rho != 1.0:
            res = blas.dscal(rho, q)
            if res is not q:
                q[...] = res
        return self._axpy(xty, q, 1.0)

    def xt_dot(self, X, v):
        return blas.dgemv(1.0, X, v, trans=1)


_BACKENDS: Dict[str, VectorOps] = {
    NumpyOps.name: NumpyOps(),
    BlasOps.name: BlasOps(),
}


def available_backends() -> list[str]:
    return sorted(_BACKENDS)


def get_backend(name: str | VectorOps = "numpy") -> VectorOps:
    """Look up a kernel backend by name (an instance is passed through)."""
    if isinstance(name, VectorOps):
        return name
    try:
        return _BACKENDS[str(name).lower()]
    except KeyError:
        raise InvalidArgumentError(
            f"Unknown vector backend '{name}'. Use one of {available_backends()}."
        ) from None
