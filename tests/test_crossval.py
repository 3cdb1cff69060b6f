import numpy as np
import pytest

from regls import regls
from regls.crossval import FoldPlan, permute_rows
from regls.errors import InvalidArgumentError
from regls.metrics import mean_absolute_error, mean_squared_error, process_xv_criterion, xv_score


def test_fold_plan_sizes():
    plan = FoldPlan(103, 5)
    assert plan.fsize == 20
    assert plan.esize == 80
    assert plan.used == 100

    X = np.arange(103 * 2, dtype=float).reshape(103, 2)
    y = np.arange(103, dtype=float)
    Xe, ye, Xf, yf = plan.split(X, y, 1)
    assert Xe.shape == (80, 2) and Xf.shape == (20, 2)
    np.testing.assert_array_equal(yf, np.arange(20, 40))
    assert 102.0 not in ye
    assert not set(ye) & set(yf)


def test_fold_assignment_to_ranks():
    plan = FoldPlan(50, 5)
    assert list(plan.folds_for_rank(0, 2)) == [0, 2, 4]
    assert list(plan.folds_for_rank(1, 2)) == [1, 3]
    np.testing.assert_array_equal(plan.rank_order(2), [0, 2, 4, 1, 3])
    np.testing.assert_array_equal(plan.rank_order(1), np.arange(5))


@pytest.mark.parametrize("n,nfolds", [(10, 1), (3, 5)])
def test_fold_plan_rejects(n, nfolds):
    with pytest.raises(InvalidArgumentError):
        FoldPlan(n, nfolds)


def test_permutation_is_reproducible():
    X = np.arange(20, dtype=float).reshape(10, 2)
    y = np.arange(10, dtype=float)
    X1, y1 = permute_rows(X, y, 42)
    X2, y2 = permute_rows(X, y, 42)
    np.testing.assert_array_equal(y1, y2)
    np.testing.assert_array_equal(X1[:, 0], 2 * y1)
    np.testing.assert_array_equal(y, np.arange(10))


def test_scores():
    X = np.array([[1.0, 0.0], [0.0, 1.0]])
    y = np.array([1.0, 3.0])
    b = np.array([1.0, 1.0])
    assert xv_score(X, y, b) == pytest.approx(2.0)
    assert xv_score(X, y, b, "MAE") == pytest.approx(1.0)
    assert mean_squared_error([1, 2], [1, 4]) == 2.0
    assert mean_absolute_error([1, 2], [1, 4]) == 1.0
    with pytest.raises(InvalidArgumentError):
        xv_score(X, y, b, "r2")


def test_one_standard_error_rule():
    scores = np.array([
        [3.0, 5.0],   # mean 4.0
        [1.0, 3.0],   # mean 2.0
        [0.5, 2.5],   # mean 1.5, se 1.0
        [3.0, 3.0],   # mean 3.0
    ])
    sel = process_xv_criterion(scores)
    np.testing.assert_allclose(sel.mean, [4.0, 2.0, 1.5, 3.0])
    np.testing.assert_allclose(sel.se, [1.0, 1.0, 1.0, 0.0])
    assert sel.imin == 2
    assert sel.i1se == 1
    assert sel.XVC.shape == (4, 2)


def test_first_minimum_wins():
    sel = process_xv_criterion(np.array([[2.0, 2.0], [1.0, 1.0], [1.0, 1.0]]))
    assert sel.imin == 1


def test_single_fold_matrix_rejected():
    with pytest.raises(InvalidArgumentError):
        process_xv_criterion(np.ones((3, 1)))


def test_scenario_cross_validation(scenario_data, lfrac_grid):
    X, y = scenario_data
    res = regls(X, y, lfrac=lfrac_grid, xvalidate=True, nfolds=5, verbosity=0)

    assert res.xv_folds.shape == (50, 5)
    assert res.XVC.shape == (50, 2)
    np.testing.assert_allclose(res.XVC[:, 0], res.xv_folds.mean(axis=1))
    assert res.B.shape == (21, 50)
    assert res.idxmin > 25
    assert res.idx1se <= res.idxmin
    assert res.lf1se >= res.lfmin
    assert res.lfmin == lfrac_grid[res.idxmin - 1]
    assert res.criterion == "mse"
    assert res.seed is None


def test_random_folds_reproducible(scenario_data):
    X, y = scenario_data
    opts = dict(lfrac=np.geomspace(1.0, 0.01, 10), ccd=True, xvalidate=True,
                nfolds=4, randfolds=True, verbosity=0)
    a = regls(X, y, seed=123, **opts)
    b = regls(X, y, seed=123, **opts)
    assert a.seed == 123
    np.testing.assert_array_equal(a.xv_folds, b.xv_folds)

    drawn = regls(X, y, **opts)
    assert 0 <= drawn.seed < 2**32
    again = regls(X, y, seed=drawn.seed, **opts)
    np.testing.assert_array_equal(drawn.xv_folds, again.xv_folds)


def test_single_coefficient_vector(scenario_data):
    X, y = scenario_data
    opts = dict(lfrac=np.geomspace(1.0, 0.01, 10), ccd=True, xvalidate=True,
                nfolds=5, single_b=True, verbosity=0)
    best = regls(X, y, **opts)
    assert best.B.shape == (21, 1)
    np.testing.assert_array_equal(best.lfrac_path, [best.lfmin])
    assert best.lfrac.shape == (10,)

    cons = regls(X, y, use_1se=True, **opts)
    np.testing.assert_array_equal(cons.lfrac_path, [cons.lf1se])


def test_ridge_cross_validation_with_mae(scenario_data):
    X, y = scenario_data
    res = regls(X, y, lfrac=[1.0, 0.1, 0.01, 0.001], ridge=True, xvalidate=True,
                nfolds=5, xvcrit="MAE", verbosity=0)
    assert res.criterion == "mae"
    assert res.xv_folds.shape == (4, 5)
    # the null-model head of the ridge path is never the best fit
    assert res.idxmin > 1


def test_invalid_xv_options(scenario_data):
    X, y = scenario_data
    with pytest.raises(InvalidArgumentError, match="invalid criterion"):
        regls(X, y, lfrac=[0.5, 0.1], xvalidate=True, xvcrit="bogus")
    with pytest.raises(InvalidArgumentError):
        regls(X, y, lfrac=[0.5, 0.1], xvalidate=True, nfolds=1)


@pytest.mark.parametrize("options", [{}, {"ccd": True}, {"ridge": True}])
def test_fixed_folds_are_deterministic(scenario_data, lfrac_grid, options):
    X, y = scenario_data
    first = regls(X, y, lfrac=lfrac_grid, xvalidate=True, nfolds=5, verbosity=0, **options)
    second = regls(X, y, lfrac=lfrac_grid, xvalidate=True, nfolds=5, verbosity=0, **options)
    assert np.array_equal(first.B, second.B)
    assert np.array_equal(first.XVC, second.XVC)
    assert first.idxmin == second.idxmin
    assert first.idx1se == second.idx1se
