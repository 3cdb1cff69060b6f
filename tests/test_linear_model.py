import numpy as np
import pytest

from regls import ReglsConfig, regls, regls_bundle
from regls.errors import ErrorCode, InvalidArgumentError


def test_inputs_not_modified(scenario_data):
    X, y = scenario_data
    X0, y0 = X.copy(), y.copy()
    regls(X, y, lfrac=[0.5, 0.1], verbosity=0)
    regls(X, y, lfrac=[0.5], ridge=True, verbosity=0)
    np.testing.assert_array_equal(X, X0)
    np.testing.assert_array_equal(y, y0)


def test_options_override_config(scenario_data):
    X, y = scenario_data
    base = ReglsConfig(lfrac=[0.5], verbosity=0)
    res = regls(X, y, base, lfrac=[0.5, 0.2])
    assert res.B.shape == (21, 2)
    assert base.nlam == 1


def test_in_sample_selection(scenario_data):
    X, y = scenario_data
    res = regls(X, y, lfrac=[0.9, 0.5, 0.1], ccd=True, verbosity=0)
    assert res.idxmin == int(np.argmin(res.crit)) + 1
    assert res.idx1se is None
    assert res.XVC is None

    single = regls(X, y, lfrac=[0.5], ccd=True, verbosity=0)
    assert single.idxmin is None


def test_unstandardized_has_no_intercept(scenario_data):
    X, y = scenario_data
    res = regls(X, y, lfrac=[0.5], stdize=False, ccd=True, verbosity=0)
    assert res.B.shape == (20, 1)
    assert res.intercept is None


@pytest.mark.parametrize(
    "X,y",
    [
        (np.ones(5), np.ones(5)),
        (np.ones((5, 2)), np.ones(4)),
        (np.full((3, 2), np.nan), np.ones(3)),
        (np.ones((0, 2)), np.ones(0)),
    ],
)
def test_bad_data(X, y):
    with pytest.raises(InvalidArgumentError):
        regls(X, y, lfrac=[0.5], verbosity=0)


def test_verbose_reports(scenario_data, caplog):
    X, y = scenario_data
    with caplog.at_level("INFO", logger="regls.linear_model"):
        regls(X, y, lfrac=[0.5, 0.1], ccd=True, xvalidate=True, nfolds=3, verbosity=1)
    assert "lmax" in caplog.text
    assert "minimized at" in caplog.text


def test_bundle_outputs(scenario_data):
    X, y = scenario_data
    bundle = {"lfrac": [0.5], "verbosity": 0}
    assert regls_bundle(X, y, bundle) == ErrorCode.OK
    assert bundle["B"].shape == (21, 1)
    assert isinstance(bundle["lambda"], float)
    assert isinstance(bundle["crit"], float)
    assert bundle["lambda"] == pytest.approx(0.5 * bundle["lmax"])
    assert "R2" in bundle and "df" in bundle
    assert "XVC" not in bundle and "errmsg" not in bundle


def test_bundle_ridge_covariance(scenario_data):
    X, y = scenario_data
    bundle = {"lfrac": [0.01], "ridge": True, "verbosity": 0}
    assert regls_bundle(X, y, bundle) == ErrorCode.OK
    assert bundle["vcv"].shape == (20, 20)


def test_bundle_cross_validation(scenario_data):
    X, y = scenario_data
    bundle = {"lfrac": [1.0, 0.3, 0.1, 0.03], "ccd": True, "xvalidate": True,
              "nfolds": 4, "verbosity": 0}
    assert regls_bundle(X, y, bundle) == ErrorCode.OK
    assert bundle["XVC"].shape == (4, 2)
    assert bundle["xv_folds"].shape == (4, 4)
    assert 1 <= bundle["idx1se"] <= bundle["idxmin"] <= 4
    assert "lambda" not in bundle
    assert "crit" not in bundle


def test_bundle_path_without_cross_validation(scenario_data):
    X, y = scenario_data
    bundle = {"lfrac": [1.0, 0.3, 0.1], "ccd": True, "verbosity": 0}
    assert regls_bundle(X, y, bundle) == ErrorCode.OK
    assert "lambda" not in bundle
    assert bundle["crit"].shape == (3,)
    assert bundle["idxmin"] == int(np.argmin(bundle["crit"])) + 1


@pytest.mark.parametrize(
    "options,fragment",
    [
        ({"lfrac": [0.5, 0.1], "xvalidate": True, "nfolds": 1}, "nfolds"),
        ({"lfrac": [0.5, 0.1], "xvalidate": True, "xvcrit": "bogus"}, "'bogus' invalid criterion"),
        ({"lfrac": [0.1, 0.5]}, "nonincreasing"),
        ({"lfrac": [0.5], "alpha": 0.5}, "alpha"),
    ],
)
def test_bundle_errors(scenario_data, options, fragment):
    X, y = scenario_data
    bundle = dict(options, verbosity=0)
    assert regls_bundle(X, y, bundle) == ErrorCode.E_INVARG
    assert fragment in bundle["errmsg"]
    assert "B" not in bundle


def test_bundle_unknown_option_type(scenario_data):
    X, y = scenario_data
    bundle = {"lfrac": "many", "verbosity": 0}
    assert regls_bundle(X, y, bundle) == ErrorCode.E_INVARG
