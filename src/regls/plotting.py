"""Diagnostic plots for fitted regls paths."""

from __future__ import annotations

import logging
import os
from typing import Optional, Sequence

import numpy as np

from .results import ReglsResult

__all__ = ["plot_xv_curve", "plot_coef_path"]

logger = logging.getLogger(__name__)


def _save_or_collect(fig, fname: str, plot_dir: Optional[str]):
    """Save to ``plot_dir`` (closing the figure) or hand the figure back."""
    import matplotlib.pyplot as plt

    if plot_dir:
        os.makedirs(plot_dir, exist_ok=True)
        out = os.path.join(plot_dir, fname)
        fig.savefig(out, dpi=150)
        logger.info("saved: %s", out)
        plt.close(fig)
        return out
    return fig


def plot_xv_curve(result: ReglsResult, plot_dir: Optional[str] = None):
    """
    Mean cross-validation criterion against the lambda fraction (log
    scale), with one-standard-error bars and the two selected fractions.
    """
    import matplotlib.pyplot as plt

    frame = result.xv_frame()
    crit = (result.criterion or "criterion").upper()

    fig, ax = plt.subplots(figsize=(6.8, 4.2))
    ax.errorbar(frame["lfrac"], frame["mean"], yerr=frame["se"],
                marker="o", markersize=3, linewidth=1, capsize=2, label=f"mean {crit}")
    if result.lfmin is not None:
        ax.axvline(result.lfmin, color="C3", linestyle="--", linewidth=1.0,
                   label=f"min @ s={result.lfmin:.4g}")
    if result.lf1se is not None:
        ax.axvline(result.lf1se, color="gray", linestyle=":", linewidth=1.5,
                   label=f"1se @ s={result.lf1se:.4g}")
    ax.set_xscale("log")
    ax.set_xlabel("s (lambda fraction)")
    ax.set_ylabel(f"out-of-sample {crit}")
    ax.set_title(f"{len(frame)}-point cross-validation curve")
    ax.legend(loc="best")
    fig.tight_layout()
    return _save_or_collect(fig, "regls_xv_curve.png", plot_dir)


def plot_coef_path(
    result: ReglsResult,
    feature_names: Optional[Sequence[str]] = None,
    plot_dir: Optional[str] = None,
):
    """Slope coefficients (intercept excluded) along the lambda path."""
    import matplotlib.pyplot as plt

    if result.coef.shape[1] < 2:
        raise ValueError("A coefficient path needs at least two lambda values.")
    frame = result.path_frame(feature_names)
    names = list(frame.columns[-result.coef.shape[0]:])

    fig, ax = plt.subplots(figsize=(6.8, 4.2))
    x = np.asarray(frame["lfrac"])
    for name in names:
        ax.plot(x, frame[name], linewidth=1)
    ax.axhline(0.0, color="k", linewidth=0.8)
    ax.set_xscale("log")
    ax.invert_xaxis()
    ax.set_xlabel("s (lambda fraction)")
    ax.set_ylabel("coefficient")
    ax.set_title(f"Coefficient path ({result.method})")
    if len(names) <= 12:
        ax.legend(names, loc="best", fontsize="small")
    fig.tight_layout()
    return _save_or_collect(fig, "regls_coef_path.png", plot_dir)
