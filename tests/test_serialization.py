import numpy as np
import pytest

from regls import regls
from regls.config import ReglsConfig
from regls.errors import ErrorCode, InvalidArgumentError, NonConvergenceError
from regls.serialization import read_exchange, read_result, write_exchange, write_result


def test_exchange_round_trip(tmp_path, scenario_data):
    X, y = scenario_data
    cfg = ReglsConfig(lfrac=[1.0, 0.1], ccd=True, xvalidate=True, nfolds=4,
                      randfolds=True, nproc=2, ccd_toler=float("nan"))
    write_exchange(tmp_path, X, y, cfg)
    X2, y2, cfg2 = read_exchange(tmp_path)

    np.testing.assert_array_equal(X2, X)
    np.testing.assert_array_equal(y2, y)
    np.testing.assert_array_equal(cfg2.lfrac, cfg.lfrac)
    assert cfg2.method == "ccd"
    assert cfg2.nfolds == 4 and cfg2.nproc == 2
    assert cfg2.seed is None
    assert cfg2.ccd_toler is None


def test_result_round_trip(tmp_path, scenario_data):
    X, y = scenario_data
    res = regls(X, y, lfrac=[0.5, 0.1], ccd=True, xvalidate=True, nfolds=4, verbosity=0)
    write_result(tmp_path, res)
    back = read_result(tmp_path)

    np.testing.assert_array_equal(back.B, res.B)
    np.testing.assert_array_equal(back.xv_folds, res.xv_folds)
    assert back.idxmin == res.idxmin
    assert back.lfmin == res.lfmin
    assert back.method == "ccd"
    assert back.criterion == "mse"
    assert back.vcv is None
    np.testing.assert_array_equal(back.n_active, res.n_active)


def test_error_code_is_raised(tmp_path):
    write_result(tmp_path, None, ErrorCode.E_NOCONV, "ADMM: no convergence")
    with pytest.raises(NonConvergenceError, match="no convergence"):
        read_result(tmp_path)


def test_missing_result(tmp_path):
    with pytest.raises(InvalidArgumentError):
        read_result(tmp_path)
