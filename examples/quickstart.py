"""
Quickstart example for the regls package.

Fits a cross-validated lasso path on synthetic data, prints the selected
penalty and saves the diagnostic plots. Run with:

    python examples/quickstart.py
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from regls import ReglsRegressor, regls
from regls.plotting import plot_coef_path, plot_xv_curve


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    rng = np.random.default_rng(0)
    X = pd.DataFrame(rng.standard_normal((100, 20)), columns=[f"feat_{i}" for i in range(20)])
    beta = np.r_[3.0, -2.0, 1.5, 1.0, -1.0, np.zeros(15)]
    y = 1.0 + X.to_numpy() @ beta + 0.5 * rng.standard_normal(100)

    # engine call: 5-fold cross-validation over 50 fractions of lambda-max
    res = regls(X.to_numpy(), y, lfrac=np.geomspace(1.0, 0.01, 50),
                xvalidate=True, nfolds=5, randfolds=True, seed=1)
    print("best s:", res.lfmin, " 1se s:", res.lf1se)

    # estimator wrapper
    model = ReglsRegressor(lfrac=50, cv=5, rule="1se", random_state=1).fit(X, y)
    print(model.coef_path_.iloc[model.index_].round(3))
    print("R^2:", round(model.score(X, y), 4))

    plot_xv_curve(res, plot_dir="regls_plots")
    plot_coef_path(res, feature_names=X.columns, plot_dir="regls_plots")


if __name__ == "__main__":
    main()
