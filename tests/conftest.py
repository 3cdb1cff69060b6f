import numpy as np
import pytest


def _make_data(n=100, k=20, informative=5, seed=0, noise=0.5):
    rng = np.random.default_rng(seed)
    X = rng.standard_normal((n, k))
    beta = np.zeros(k)
    beta[:informative] = np.array([3.0, -2.0, 1.5, 1.0, -1.0, 0.8, -0.6, 0.5])[:informative]
    y = 1.0 + X @ beta + noise * rng.standard_normal(n)
    return X, y, beta


@pytest.fixture
def make_data():
    return _make_data


@pytest.fixture
def scenario_data():
    """100 x 20 design with 5 informative predictors."""
    X, y, _ = _make_data()
    return X, y


@pytest.fixture
def lfrac_grid():
    return np.geomspace(1.0, 0.01, 50)


@pytest.fixture
def orthogonal_data():
    rng = np.random.default_rng(7)
    n, k = 60, 8
    Q, _ = np.linalg.qr(rng.standard_normal((n, k)))
    X = Q * np.sqrt(n)
    beta = np.array([4.0, -3.0, 2.5, 2.0, -1.5, 1.0, 0.5, -0.25])
    y = X @ beta + 0.1 * rng.standard_normal(n)
    return X, y
