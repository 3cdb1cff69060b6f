"""
Reusable solver workspaces.

A cross-validation run calls the same solver once per fold on estimation
samples of (almost) the same shape. Rather than hiding the buffers in
module-level state, each solver gets an explicit context object that the
fold loop creates, resets between folds and closes at the end.

:class:`ArenaBuffer` separates the allocated capacity from the logical
shape, so a buffer can be reused for a smaller problem without ever
exposing data beyond the logical bounds.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .errors import AllocationError

__all__ = ["ArenaBuffer", "AdmmContext", "CcdContext", "SvdContext"]


def _alloc(size: int, dtype) -> np.ndarray:
    try:
        return np.zeros(int(size), dtype=dtype)
    except MemoryError as exc:
        raise AllocationError(f"cannot allocate workspace of {size} elements") from exc


class ArenaBuffer:
    """Flat storage with a tracked capacity and a logical 2-D shape."""

    def __init__(self, rows: int, cols: int = 1, dtype=np.float64) -> None:
        self.dtype = np.dtype(dtype)
        self._data: Optional[np.ndarray] = _alloc(rows * cols, self.dtype)
        self._shape: Tuple[int, int] = (int(rows), int(cols))

    @property
    def capacity(self) -> int:
        return 0 if self._data is None else int(self._data.size)

    @property
    def shape(self) -> Tuple[int, int]:
        return self._shape

    @property
    def size(self) -> int:
        return self._shape[0] * self._shape[1]

    def resize(self, rows: int, cols: int = 1) -> "ArenaBuffer":
        """Change the logical shape, growing the storage only when needed."""
        rows, cols = int(rows), int(cols)
        if rows < 0 or cols < 0:
            raise ValueError("buffer dimensions must be non-negative")
        if self._data is None:
            raise RuntimeError("buffer has been released")
        if rows * cols > self.capacity:
            self._data = _alloc(rows * cols, self.dtype)
        self._shape = (rows, cols)
        return self

    @property
    def view(self) -> np.ndarray:
        """Writable (rows, cols) view of the logical region."""
        if self._data is None:
            raise RuntimeError("buffer has been released")
        return self._data[: self.size].reshape(self._shape)

    @property
    def vector(self) -> np.ndarray:
        """1-D view of the logical region."""
        if self._data is None:
            raise RuntimeError("buffer has been released")
        return self._data[: self.size]

    def _check(self, i: int, j: int) -> int:
        rows, cols = self._shape
        if not (0 <= i < rows and 0 <= j < cols):
            raise IndexError(f"index ({i}, {j}) outside logical shape {self._shape}")
        return i * cols + j

    def get(self, i: int, j: int = 0):
        return self._data[self._check(i, j)]

    def set(self, i: int, j: int, value) -> None:
        self._data[self._check(i, j)] = value

    def zero(self) -> None:
        """Clear the whole capacity, not just the logical region."""
        if self._data is not None:
            self._data.fill(0)

    def release(self) -> None:
        self._data = None
        self._shape = (0, 0)


class _SolverContext:
    """Shared lifecycle for the per-solver workspaces."""

    def __init__(self) -> None:
        self._buffers: dict[str, ArenaBuffer] = {}
        self.closed = False

    def _buffer(self, name: str, rows: int, cols: int = 1, dtype=np.float64) -> ArenaBuffer:
        if self.closed:
            raise RuntimeError(f"{type(self).__name__} has been closed")
        buf = self._buffers.get(name)
        if buf is None or buf.dtype != np.dtype(dtype):
            buf = ArenaBuffer(rows, cols, dtype=dtype)
            self._buffers[name] = buf
        else:
            buf.resize(rows, cols)
        return buf

    def reset(self) -> None:
        for buf in self._buffers.values():
            buf.zero()

    def close(self) -> None:
        for buf in self._buffers.values():
            buf.release()
        self._buffers.clear()
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class AdmmContext(_SolverContext):
    """
    ADMM state vectors (b, v, u, r and scratch), the Cholesky factor and
    the current step size. The state vectors carry the warm start along a
    lambda path; :meth:`prepare` clears everything for a new sample.
    """

    def __init__(self) -> None:
        super().__init__()
        self.rho: float = 0.0
        self.chol = None
        self.skinny = True
        self.k = 0
        self.n = 0

    def prepare(self, n: int, k: int) -> "AdmmContext":
        self.n, self.k = int(n), int(k)
        self.skinny = self.n >= self.k
        ldim = self.k if self.skinny else self.n
        for name in ("v", "u", "b", "r", "bprev", "bdiff", "q"):
            self._buffer(name, self.k)
        self._buffer("n1", self.n)
        self._buffer("L", ldim, ldim)
        self.reset()
        self.chol = None
        return self

    def vec(self, name: str) -> np.ndarray:
        return self._buffers[name].vector

    def scratch(self, length: int) -> np.ndarray:
        """Length-``length`` view of the observation-sized scratch vector."""
        return self._buffers["n1"].resize(length).vector

    @property
    def L(self) -> np.ndarray:
        return self._buffers["L"].view


class CcdContext(_SolverContext):
    """
    Coordinate-descent workspace: coefficient vector, active-set index
    arrays and the k x k cross-product cache filled column by column as
    predictors enter the active set.
    """

    def prepare(self, k: int, nlam: int) -> "CcdContext":
        self._buffer("C", k, k)
        self._buffer("a", k)
        self._buffer("da", k)
        self._buffer("mm", k, dtype=np.intp)
        self._buffer("ia", k, dtype=np.intp)
        self._buffer("B", k, nlam)
        self.reset()
        self._buffers["mm"].vector.fill(-1)
        return self

    @property
    def C(self) -> np.ndarray:
        return self._buffers["C"].view

    @property
    def B(self) -> np.ndarray:
        return self._buffers["B"].view

    def vec(self, name: str) -> np.ndarray:
        return self._buffers[name].vector


class SvdContext(_SolverContext):
    """Holds one thin SVD (U, s, V') plus the coefficient block for a path."""

    def __init__(self) -> None:
        super().__init__()
        self.U: Optional[np.ndarray] = None
        self.s: Optional[np.ndarray] = None
        self.Vt: Optional[np.ndarray] = None

    def prepare(self, k: int, nlam: int) -> "SvdContext":
        self._buffer("B", k, nlam)
        self.reset()
        self.U = self.s = self.Vt = None
        return self

    @property
    def B(self) -> np.ndarray:
        return self._buffers["B"].view

    def close(self) -> None:
        self.U = self.s = self.Vt = None
        super().close()
