import numpy as np
import pytest

from regls.lambdas import (
    BIG_LAMBDA,
    LambdaScale,
    admm_lambda,
    ccd_lambda,
    lambda_fraction_grid,
    lambda_max,
    svd_lambda,
    xv_lambda,
    xv_lambda_max,
)


def test_lambda_max_is_infnorm_of_xty():
    X = np.array([[1.0, 2.0], [3.0, -4.0]])
    y = np.array([1.0, 1.0])
    assert lambda_max(X, y) == 4.0


def test_admm_lambda_scales_fractions():
    path = admm_lambda([1.0, 0.5, 0.1], 10.0)
    np.testing.assert_allclose(path.lam, [10.0, 5.0, 1.0])
    assert path.raw_lmax == 10.0
    np.testing.assert_allclose(path.raw, path.lam)


def test_admm_lambda_does_not_alias_input():
    lfrac = np.array([1.0, 0.5])
    admm_lambda(lfrac, 3.0)
    np.testing.assert_array_equal(lfrac, [1.0, 0.5])


def test_ccd_lasso_lambda():
    path = ccd_lambda([1.0, 0.5], lmax=2.0, n=10, alpha=1.0)
    np.testing.assert_allclose(path.lam, [2.0, 1.0])
    assert path.raw_mult == 10.0


def test_ccd_elastic_net_pins_head_of_path():
    path = ccd_lambda([1.0, 0.5], lmax=2.0, n=10, alpha=0.5)
    assert path.lmax == 4.0
    assert path.lam[0] == BIG_LAMBDA
    assert path.lam[1] == 2.0


def test_ccd_ridge_alpha_floor():
    path = ccd_lambda([0.1], lmax=2.0, n=10, alpha=0.0)
    assert path.lmax == pytest.approx(2000.0)
    # a single lambda is never replaced by the sentinel
    assert path.lam[0] == pytest.approx(200.0)


def test_ccd_unscaled_fractions_are_raw():
    path = ccd_lambda([5.0, 2.0], lmax=3.0, n=10, alpha=0.0, scale=LambdaScale.NONE)
    np.testing.assert_allclose(path.lam, [0.5, 0.2])
    np.testing.assert_allclose(path.raw, [5.0, 2.0])


def test_svd_glmnet_scale():
    path = svd_lambda([1.0, 0.5], infnorm=50.0, n=10, k=4)
    assert path.lmax == pytest.approx(5000.0)
    assert path.lam[0] == BIG_LAMBDA
    assert path.lam[1] == pytest.approx(2500.0)
    assert path.raw_lmax == pytest.approx(50000.0)


def test_svd_frobenius_and_unscaled():
    frob = svd_lambda([1.0, 0.5], infnorm=50.0, n=10, k=4, scale=LambdaScale.FROB)
    np.testing.assert_allclose(frob.lam, [4.0, 2.0])
    assert frob.lmax == 4.0

    raw = svd_lambda([3.0], infnorm=50.0, n=10, k=4, scale=LambdaScale.NONE)
    np.testing.assert_allclose(raw.raw, [3.0])
    assert raw.lmax == 1.0


def test_xv_lambda_max_per_method():
    assert xv_lambda_max("admm", 40.0, 80, 5) == 40.0
    assert xv_lambda_max("ccd", 40.0, 80, 5) == pytest.approx(0.5)
    assert xv_lambda_max("ccd", 40.0, 80, 5, alpha=0.25) == pytest.approx(2.0)
    assert xv_lambda_max("svd", 40.0, 80, 5) == pytest.approx(500.0)
    assert xv_lambda_max("svd", 40.0, 80, 5, scale=LambdaScale.FROB) == 5.0
    assert xv_lambda_max("svd", 40.0, 80, 5, scale=LambdaScale.NONE) == 1.0


def test_xv_lambda_uses_broadcast_lmax():
    path = xv_lambda("ccd", [1.0, 0.5], 0.5, esize=80)
    np.testing.assert_allclose(path.lam, [0.5, 0.25])
    assert path.raw_mult == 80.0

    path = xv_lambda("svd", [1.0, 0.5], 500.0, esize=80)
    assert path.lam[0] == BIG_LAMBDA
    assert path.lam[1] == 250.0


def test_fraction_grid():
    grid = lambda_fraction_grid(5, 0.01)
    assert grid[0] == 1.0
    assert grid[-1] == pytest.approx(0.01)
    assert np.all(np.diff(grid) < 0)
    np.testing.assert_array_equal(lambda_fraction_grid(1), [1.0])
