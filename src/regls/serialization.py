"""File exchange between the coordinating process and the fold workers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .config import ReglsConfig
from .errors import ErrorCode, error_from_code
from .results import ReglsResult

__all__ = [
    "X_FILE",
    "Y_FILE",
    "CONFIG_FILE",
    "RESULT_ARRAYS",
    "RESULT_JSON",
    "write_exchange",
    "read_exchange",
    "write_result",
    "read_result",
]

X_FILE = "regls_X.npy"
Y_FILE = "regls_y.npy"
CONFIG_FILE = "regls_config.json"
RESULT_ARRAYS = "regls_result.npz"
RESULT_JSON = "regls_result.json"


def _nan_to_none(x):
    if isinstance(x, float) and np.isnan(x):
        return None
    if isinstance(x, np.ndarray):
        return [_nan_to_none(v) for v in x.tolist()]
    if isinstance(x, np.generic):
        return _nan_to_none(x.item())
    if isinstance(x, (list, tuple)):
        return [_nan_to_none(v) for v in x]
    return x


def _none_to_nan(x):
    if x is None:
        return float("nan")
    return x


def write_exchange(workdir: str | Path, X: np.ndarray, y: np.ndarray, config: ReglsConfig) -> None:
    """Deposit the data and the configuration for the worker processes."""
    workdir = Path(workdir)
    np.save(workdir / X_FILE, np.asarray(X, dtype=np.float64))
    np.save(workdir / Y_FILE, np.asarray(y, dtype=np.float64))
    payload = {k: _nan_to_none(v) for k, v in config.to_mapping().items()}
    (workdir / CONFIG_FILE).write_text(json.dumps(payload, indent=2))


def read_exchange(workdir: str | Path) -> Tuple[np.ndarray, np.ndarray, ReglsConfig]:
    workdir = Path(workdir)
    X = np.load(workdir / X_FILE)
    y = np.load(workdir / Y_FILE)
    raw = json.loads((workdir / CONFIG_FILE).read_text())
    raw["lfrac"] = [float(_none_to_nan(v)) for v in raw["lfrac"]]
    return X, y, ReglsConfig.from_mapping(raw)


def write_result(
    workdir: str | Path,
    result: Optional[ReglsResult],
    code: int = ErrorCode.OK,
    message: str = "",
) -> None:
    """
    Written by rank 0: arrays go to the npz file, scalars plus the result
    code and message to the JSON file.
    """
    workdir = Path(workdir)
    scalars: Dict[str, Any] = {"code": int(code), "errmsg": message}
    if result is not None:
        np.savez(workdir / RESULT_ARRAYS, **result.array_items())
        scalars.update({k: _nan_to_none(v) for k, v in result.scalar_items().items()})
    (workdir / RESULT_JSON).write_text(json.dumps(scalars, indent=2))


def read_result(workdir: str | Path) -> ReglsResult:
    """Load what rank 0 wrote, raising the carried error if there is one."""
    workdir = Path(workdir)
    path = workdir / RESULT_JSON
    if not path.exists():
        raise error_from_code(ErrorCode.E_INVARG, "worker processes produced no result")
    scalars = json.loads(path.read_text())
    code = int(scalars.pop("code", 0))
    message = scalars.pop("errmsg", "")
    if code != ErrorCode.OK:
        raise error_from_code(code, message)
    for key in ("lmax", "lfmin", "lf1se"):
        if key in scalars and scalars[key] is not None:
            scalars[key] = float(scalars[key])
    with np.load(workdir / RESULT_ARRAYS) as blob:
        arrays = {name: blob[name] for name in blob.files}
    return ReglsResult.from_items(arrays, scalars)
