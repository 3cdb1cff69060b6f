import numpy as np
import pandas as pd
import pytest

from regls import ReglsRegressor


@pytest.fixture
def frame_data(scenario_data):
    X, y = scenario_data
    cols = [f"f{i}" for i in range(X.shape[1])]
    return pd.DataFrame(X, columns=cols), pd.Series(y)


def test_fit_predict_score(frame_data):
    df, y = frame_data
    model = ReglsRegressor(lfrac=[0.05]).fit(df, y)
    assert model.feature_names_ == list(df.columns)
    assert model.n_features_in_ == 20
    pred = model.predict(df)
    assert pred.shape == (100,)
    assert model.score(df, y) > 0.9

    # column order does not matter for DataFrames
    shuffled = df[df.columns[::-1]]
    np.testing.assert_allclose(model.predict(shuffled), pred)


def test_cross_validated_choice(frame_data):
    df, y = frame_data
    model = ReglsRegressor(solver="ccd", lfrac=12, cv=4, rule="1se",
                           randfolds=True, random_state=3).fit(df, y)
    assert model.lfrac_ == model.result_.lf1se
    assert model.cv_results_.shape == (12, 7)
    path = model.coef_path_
    assert list(path.columns[-20:]) == list(df.columns)
    assert "const" in path.columns


def test_in_sample_choice_without_cv(scenario_data):
    X, y = scenario_data
    model = ReglsRegressor(solver="ccd", lfrac=6).fit(X, y)
    assert model.index_ == model.result_.idxmin - 1
    with pytest.raises(RuntimeError):
        model.cv_results_


def test_ridge_and_elastic_net(scenario_data):
    X, y = scenario_data
    ridge = ReglsRegressor(penalty="ridge", lfrac=[0.001]).fit(X, y)
    assert ridge.result_.method == "svd"
    assert ridge.result_.vcv is not None

    enet = ReglsRegressor(penalty="elasticnet", lfrac=[0.05]).fit(X, y)
    assert enet.result_.method == "ccd"
    assert enet.alpha is None
    assert enet.score(X, y) > 0.9


@pytest.mark.parametrize(
    "kwargs",
    [
        {"penalty": "l0"},
        {"solver": "lars"},
        {"penalty": "ridge", "solver": "admm"},
        {"penalty": "lasso", "solver": "svd"},
        {"penalty": "elasticnet", "solver": "admm"},
        {"rule": "2se"},
    ],
)
def test_invalid_settings(scenario_data, kwargs):
    X, y = scenario_data
    with pytest.raises(ValueError):
        ReglsRegressor(**kwargs).fit(X, y)


def test_unstandardized_has_zero_intercept(scenario_data):
    X, y = scenario_data
    model = ReglsRegressor(solver="ccd", lfrac=[0.1], stdize=False).fit(X, y)
    assert model.intercept_ == 0.0


def test_predict_checks(scenario_data):
    X, y = scenario_data
    model = ReglsRegressor(lfrac=[0.1])
    with pytest.raises(RuntimeError):
        model.predict(X)
    model.fit(X, y)
    with pytest.raises(ValueError):
        model.predict(X[:, :5])


def test_params():
    model = ReglsRegressor()
    params = model.get_params()
    assert params["penalty"] == "lasso"
    assert params["cv"] == 0
    model.set_params(cv=5, rule="1se")
    assert model.cv == 5 and model.rule == "1se"
    with pytest.raises(ValueError):
        model.set_params(bogus=1)
