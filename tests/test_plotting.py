import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
from matplotlib.figure import Figure

from regls import regls
from regls.plotting import plot_coef_path, plot_xv_curve


@pytest.fixture
def xv_result(scenario_data):
    X, y = scenario_data
    return regls(X, y, lfrac=np.geomspace(1.0, 0.01, 8), ccd=True,
                 xvalidate=True, nfolds=4, verbosity=0)


def test_xv_curve_returns_figure(xv_result):
    fig = plot_xv_curve(xv_result)
    assert isinstance(fig, Figure)
    assert fig.axes[0].get_xscale() == "log"


def test_plots_saved(tmp_path, xv_result):
    out = plot_xv_curve(xv_result, plot_dir=str(tmp_path))
    assert out.endswith("regls_xv_curve.png")
    out = plot_coef_path(xv_result, plot_dir=str(tmp_path / "sub"))
    assert (tmp_path / "sub" / "regls_coef_path.png").exists()


def test_coef_path_needs_a_path(scenario_data):
    X, y = scenario_data
    res = regls(X, y, lfrac=[0.5], verbosity=0)
    with pytest.raises(ValueError):
        plot_coef_path(res)
    with pytest.raises(RuntimeError):
        plot_xv_curve(res)
