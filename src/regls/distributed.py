"""
Multi-process cross-validation.

The fold loop is written once, against a small rank/size communicator
(:func:`regls.linear_model.regls_xv_spmd`). In a single process it runs
with :class:`LocalCommunicator`; for a distributed run the coordinating
process writes the data and configuration to a private work directory,
spawns ``nproc`` workers connected to rank 0 by pipes, and reads back what
rank 0 wrote.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import os
import tempfile
from typing import Any, List, Optional, Sequence

import numpy as np

from . import serialization
from .config import ReglsConfig
from .errors import ErrorCode, ReglsError, error_from_code
from .results import ReglsResult

__all__ = [
    "Communicator",
    "LocalCommunicator",
    "PipeCommunicator",
    "effective_nproc",
    "run_distributed",
]

logger = logging.getLogger(__name__)


class Communicator:
    """Minimal collective operations needed by the fold dispatcher."""

    rank: int = 0
    size: int = 1

    @property
    def is_root(self) -> bool:
        return self.rank == 0

    def bcast(self, obj: Any, root: int = 0) -> Any:
        raise NotImplementedError

    def hcat_reduce(
        self, local: np.ndarray, code: int = ErrorCode.OK, message: str = ""
    ) -> Optional[np.ndarray]:
        """
        Concatenate every rank's (nrows, ncols_r) block horizontally at
        rank 0, in rank order. Rank 0 raises the first error carried by any
        rank; other ranks get None.
        """
        raise NotImplementedError


class LocalCommunicator(Communicator):
    """Single-process communicator (rank 0 of 1)."""

    def bcast(self, obj, root=0):
        return obj

    def hcat_reduce(self, local, code=ErrorCode.OK, message=""):
        if code != ErrorCode.OK:
            raise error_from_code(code, message)
        return local


class PipeCommunicator(Communicator):
    """
    Star topology over :func:`multiprocessing.Pipe`: rank 0 holds one
    connection per worker, every other rank one connection to rank 0.
    """

    def __init__(self, rank: int, size: int, conns: Sequence) -> None:
        self.rank = int(rank)
        self.size = int(size)
        self.conns = list(conns)

    def bcast(self, obj, root=0):
        if self.is_root:
            for conn in self.conns:
                conn.send(obj)
            return obj
        return self.conns[0].recv()

    def hcat_reduce(self, local, code=ErrorCode.OK, message=""):
        if not self.is_root:
            self.conns[0].send((local, int(code), message))
            return None
        blocks = [local]
        errors = [(int(code), message)]
        for conn in self.conns:
            block, rcode, rmsg = conn.recv()
            blocks.append(block)
            errors.append((rcode, rmsg))
        for rcode, rmsg in errors:
            if rcode != ErrorCode.OK:
                raise error_from_code(rcode, rmsg)
        return np.hstack(blocks)

    def close(self) -> None:
        for conn in self.conns:
            conn.close()


def effective_nproc(config: ReglsConfig) -> int:
    """Requested process count, capped at the number of CPUs when local_only."""
    nproc = max(1, int(config.nproc))
    if config.local_only:
        nproc = min(nproc, os.cpu_count() or 1)
    return min(nproc, max(1, int(config.nfolds)))


def _worker_main(workdir: str, rank: int, size: int, conns: List) -> None:
    """Entry point of every worker process."""
    from .linear_model import regls_xv_spmd

    X, y, config = serialization.read_exchange(workdir)
    if config.verbosity > 0:
        logging.basicConfig(
            level=logging.DEBUG if config.verbosity > 1 else logging.INFO,
            format=f"[rank {rank}] %(levelname)s %(name)s: %(message)s",
        )
    comm = PipeCommunicator(rank, size, conns)
    try:
        result = regls_xv_spmd(comm, X, y, config)
        if comm.is_root:
            serialization.write_result(workdir, result)
    except ReglsError as exc:
        if comm.is_root:
            serialization.write_result(workdir, None, exc.code, str(exc))
        else:
            raise
    except MemoryError as exc:
        if comm.is_root:
            serialization.write_result(workdir, None, ErrorCode.E_ALLOC, str(exc))
        else:
            raise
    finally:
        comm.close()


def run_distributed(X: np.ndarray, y: np.ndarray, config: ReglsConfig) -> ReglsResult:
    """
    Cross-validate across worker processes and return rank 0's result.

    Errors raised on any rank travel through the reduction to rank 0 and
    are re-raised here with their original result code.
    """
    size = effective_nproc(config)
    ctx = mp.get_context("spawn")
    with tempfile.TemporaryDirectory(prefix="regls_") as workdir:
        serialization.write_exchange(workdir, X, y, config)
        root_conns, worker_conns = [], []
        for _ in range(size - 1):
            a, b = ctx.Pipe(duplex=True)
            root_conns.append(a)
            worker_conns.append(b)

        procs = [ctx.Process(target=_worker_main, args=(workdir, 0, size, root_conns))]
        for rank in range(1, size):
            procs.append(
                ctx.Process(target=_worker_main, args=(workdir, rank, size, [worker_conns[rank - 1]]))
            )
        if config.verbosity > 0:
            logger.info("launching %d cross-validation processes", size)
        for proc in procs:
            proc.start()
        # the parent keeps no pipe ends open
        for conn in root_conns + worker_conns:
            conn.close()
        for proc in procs:
            proc.join()

        failed = [p.exitcode for p in procs if p.exitcode != 0]
        if failed:
            logger.warning("worker exit codes: %s", failed)
        return serialization.read_result(workdir)
