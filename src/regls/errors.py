"""Error classes and integer result codes used across the regls engine."""

from __future__ import annotations

from enum import IntEnum

__all__ = [
    "ErrorCode",
    "ReglsError",
    "AllocationError",
    "NonConvergenceError",
    "InvalidArgumentError",
    "LinAlgFailure",
    "error_from_code",
]


class ErrorCode(IntEnum):
    OK = 0
    E_ALLOC = 12
    E_NOCONV = 31
    E_INVARG = 17
    E_SINGULAR = 3


class ReglsError(Exception):
    """Base class; every subclass carries the matching :class:`ErrorCode`."""

    code = ErrorCode.OK


class AllocationError(ReglsError, MemoryError):
    code = ErrorCode.E_ALLOC


class NonConvergenceError(ReglsError, RuntimeError):
    code = ErrorCode.E_NOCONV


class InvalidArgumentError(ReglsError, ValueError):
    code = ErrorCode.E_INVARG


class LinAlgFailure(ReglsError, ArithmeticError):
    code = ErrorCode.E_SINGULAR


_BY_CODE = {
    cls.code: cls
    for cls in (AllocationError, NonConvergenceError, InvalidArgumentError, LinAlgFailure)
}


def error_from_code(code: int, message: str = "") -> ReglsError:
    """Rebuild an exception from a result code (used on the worker boundary)."""
    try:
        cls = _BY_CODE.get(ErrorCode(int(code)), ReglsError)
    except ValueError:
        cls = ReglsError
    return cls(message)
