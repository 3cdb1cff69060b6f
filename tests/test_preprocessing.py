import numpy as np
import pytest

from regls import StandardScaler
from regls.preprocessing import standardize, unscale_coefficients, unscale_vcv


def test_scaler_population_moments():
    X = np.array([[1.0, 5.0], [3.0, 5.0], [5.0, 5.0]])
    scaler = StandardScaler().fit(X)
    np.testing.assert_allclose(scaler.mean_, [3.0, 5.0])
    # constant columns keep a unit scale
    np.testing.assert_allclose(scaler.scale_, [np.sqrt(8.0 / 3.0), 1.0])
    Z = scaler.transform(X)
    np.testing.assert_allclose(Z[:, 1], 0.0)


def test_scaler_requires_fit():
    with pytest.raises(RuntimeError):
        StandardScaler().transform(np.ones((2, 2)))


def test_standardize_copies(scenario_data):
    X, y = scenario_data
    prob = standardize(X, y)
    assert prob.stdize
    assert prob.X is not X
    np.testing.assert_allclose(prob.X.mean(axis=0), 0.0, atol=1e-12)
    np.testing.assert_allclose(prob.y.mean(), 0.0, atol=1e-12)
    assert prob.ybar == pytest.approx(y.mean())

    raw = standardize(X, y, stdize=False)
    assert not raw.stdize
    np.testing.assert_array_equal(raw.X, X)
    raw.X[0, 0] = 1e6
    assert X[0, 0] != 1e6


def test_unscale_round_trip(scenario_data):
    X, y = scenario_data
    prob = standardize(X, y)
    rng = np.random.default_rng(1)
    b = rng.standard_normal((X.shape[1], 2))
    B = unscale_coefficients(b, prob)
    assert B.shape == (X.shape[1] + 1, 2)
    # predictions agree on both scales
    np.testing.assert_allclose(X @ B[1:] + B[0], prob.X @ b + prob.ybar)


def test_unscale_vcv():
    X = np.array([[0.0, 0.0], [2.0, 4.0]])
    prob = standardize(X, np.array([0.0, 1.0]))
    out = unscale_vcv(np.ones((2, 2)), prob)
    np.testing.assert_allclose(out, [[1.0, 0.5], [0.5, 0.25]])
