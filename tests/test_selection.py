import math

import pandas as pd
import pytest

from tunekit.core.cross_validation import vfold_cv
from tunekit.core.data import Dataset
from tunekit.core.errors import FitFailure, NoValidFoldsError
from tunekit.core.grid import Candidate
from tunekit.core.selection import (
    collect_metrics,
    rank_candidates,
    select_best,
    select_by_one_std_err,
    show_best,
)
from tunekit.core.tuning import MetricRecord, TuneResults


@pytest.fixture
def two_folds():
    df = pd.DataFrame({"x": range(10), "y": [0, 1] * 5})
    return vfold_cv(Dataset(df, "y"), v=2, seed=0)


def make_results(folds, values, params=None, metric="accuracy", failing=()):
    """values: one list of per-fold values per candidate (None = failed cell)."""
    params = params or [{"c": i + 1} for i in range(len(values))]
    grid = [Candidate(i, p) for i, p in enumerate(params)]
    res = TuneResults(model_name="fake", grid=grid, folds=folds, metrics=[metric])
    for cand, per_fold in zip(grid, values):
        for fold_id, v in zip(folds.fold_ids, per_fold):
            if v is None:
                res.failures.append(FitFailure(cand.index, fold_id, RuntimeError("failed")))
            else:
                res.records.append(MetricRecord(cand.index, fold_id, metric, v))
    return res


def test_collect_metrics_means_and_failures(two_folds):
    res = make_results(two_folds, [[0.8, 0.9], [0.95, 0.85], [None, None]])
    summary = collect_metrics(res)
    by_config = summary.set_index("config")
    assert by_config.loc["Config01", "mean"] == pytest.approx(0.85)
    assert by_config.loc["Config02", "mean"] == pytest.approx(0.90)
    assert by_config.loc["Config02", "n"] == 2
    assert by_config.loc["Config02", "std_err"] == pytest.approx(0.05)
    assert by_config.loc["Config03", "failure_count"] == 2
    assert math.isnan(by_config.loc["Config03", "mean"])
    assert list(summary.columns) == ["config", "c", ".metric", "mean", "n", "std_err", "failure_count"]


def test_collect_metrics_raw(two_folds):
    res = make_results(two_folds, [[0.8, 0.9], [0.95, 0.85]])
    raw = collect_metrics(res, summarize=False)
    assert len(raw) == 4
    assert list(raw.columns) == ["config", "c", "fold_id", ".metric", "value"]


def test_failed_candidate_is_never_selected(two_folds):
    res = make_results(two_folds, [[0.8, 0.9], [0.95, 0.85], [None, None]])
    ranking = rank_candidates(res, "accuracy")
    assert ranking.order == [1, 0]
    assert select_best(res, "accuracy").index == 1
    assert isinstance(ranking.errors[2], NoValidFoldsError)
    assert ranking.errors[2].failure_count == 2
    last = ranking.table.iloc[-1]
    assert last["config"] == "Config03"
    assert pd.isna(last["rank"])
    assert last["error"] == "NoValidFoldsError"


def test_partial_failures_still_rank(two_folds):
    res = make_results(two_folds, [[0.8, 0.9], [0.99, None]])
    summary = collect_metrics(res).set_index("config")
    assert summary.loc["Config02", "n"] == 1
    assert math.isnan(summary.loc["Config02", "std_err"])
    assert select_best(res, "accuracy").index == 1


def test_all_failed_raises(two_folds):
    res = make_results(two_folds, [[None, None], [None, None]])
    with pytest.raises(NoValidFoldsError):
        select_best(res, "accuracy")


def test_ties_break_on_std_err_then_grid_position(two_folds):
    # equal means; Config02 is less variable, Config03 duplicates Config02
    res = make_results(two_folds, [[0.625, 0.875], [0.75, 0.75], [0.75, 0.75]])
    ranking = rank_candidates(res, "accuracy")
    assert ranking.order == [1, 2, 0]
    assert list(ranking.table["rank"]) == [1, 2, 3]


def test_minimize_direction(two_folds):
    res = make_results(two_folds, [[2.0, 2.2], [1.0, 1.4], [3.0, 3.0]], metric="rmse")
    assert select_best(res, "rmse").index == 1
    # forcing the opposite direction flips the choice
    assert select_best(res, "rmse", direction="maximize").index == 2


def test_unknown_metric(two_folds):
    res = make_results(two_folds, [[0.8, 0.9]])
    with pytest.raises(ValueError):
        rank_candidates(res, "rmse")


def test_show_best_limits_rows(two_folds):
    res = make_results(two_folds, [[0.5, 0.5], [0.6, 0.6], [0.7, 0.7], [None, None]])
    top = show_best(res, "accuracy", n=2)
    assert list(top["config"]) == ["Config03", "Config02"]


def test_one_std_err_picks_simplest_within_bound(two_folds):
    params = [{"penalty": 0.001}, {"penalty": 0.01}, {"penalty": 0.1}, {"penalty": 1.0}]
    # best is penalty=0.001 with mean .90 and se .02 -> bound .88
    values = [[0.88, 0.92], [0.885, 0.895], [0.86, 0.88], [0.6, 0.6]]
    res = make_results(two_folds, values, params=params)
    assert select_best(res, "accuracy").params == {"penalty": 0.001}
    chosen = select_by_one_std_err(res, "accuracy", simplicity=[("penalty", "desc")])
    assert chosen.params == {"penalty": 0.01}
    chosen = select_by_one_std_err(res, "accuracy", simplicity=[("penalty", "asc")])
    assert chosen.params == {"penalty": 0.001}


def test_one_std_err_minimize(two_folds):
    params = [{"depth": 8}, {"depth": 2}, {"depth": 4}]
    values = [[1.0, 1.2], [1.25, 1.35], [1.1, 1.2]]
    res = make_results(two_folds, values, params=params, metric="rmse")
    # best mean 1.1, se .1 -> bound 1.2; depth 4 (1.15) qualifies, depth 2 (1.3) does not
    chosen = select_by_one_std_err(res, "rmse", simplicity=[("depth", "asc")])
    assert chosen.params == {"depth": 4}


def test_one_std_err_falls_back_without_std_err(two_folds):
    res = make_results(two_folds, [[0.9, None], [0.8, 0.8]], params=[{"k": 9}, {"k": 1}])
    chosen = select_by_one_std_err(res, "accuracy", simplicity=[("k", "asc")])
    assert chosen.params == {"k": 9}


@pytest.mark.parametrize("simplicity", [[], [("penalty", "up")]])
def test_one_std_err_validates_simplicity(two_folds, simplicity):
    res = make_results(two_folds, [[0.8, 0.9]])
    with pytest.raises(ValueError):
        select_by_one_std_err(res, "accuracy", simplicity=simplicity)


@pytest.mark.parametrize("how", ["asc", "desc"])
def test_one_std_err_treats_missing_values_as_least_simple(two_folds, how):
    # unlimited depth (None) is best, depth 8 is within one SE of it
    params = [{"depth": None}, {"depth": 8}]
    res = make_results(two_folds, [[0.88, 0.92], [0.89, 0.90]], params=params)
    chosen = select_by_one_std_err(res, "accuracy", simplicity=[("depth", how)])
    assert chosen.params == {"depth": 8}


def test_one_std_err_nan_parameter_is_missing(two_folds):
    params = [{"penalty": float("nan")}, {"penalty": 0.1}]
    res = make_results(two_folds, [[0.88, 0.92], [0.89, 0.90]], params=params)
    chosen = select_by_one_std_err(res, "accuracy", simplicity=[("penalty", "desc")])
    assert chosen.params == {"penalty": 0.1}


def test_one_std_err_orders_categorical_values(two_folds):
    params = [{"criterion": "entropy"}, {"criterion": "gini"}]
    res = make_results(two_folds, [[0.88, 0.92], [0.89, 0.90]], params=params)
    assert select_by_one_std_err(res, "accuracy", [("criterion", "desc")]).params == {"criterion": "gini"}
    assert select_by_one_std_err(res, "accuracy", [("criterion", "asc")]).params == {"criterion": "entropy"}


def test_one_std_err_later_orderings_break_ties(two_folds):
    params = [{"a": 1, "b": 5}, {"a": 1, "b": 9}, {"a": 2, "b": 1}]
    res = make_results(two_folds, [[0.88, 0.92], [0.89, 0.90], [0.89, 0.90]], params=params)
    chosen = select_by_one_std_err(res, "accuracy", [("a", "asc"), ("b", "desc")])
    assert chosen.params == {"a": 1, "b": 9}


def test_one_std_err_rejects_unorderable_values(two_folds):
    params = [{"k": "gini"}, {"k": 3}]
    res = make_results(two_folds, [[0.88, 0.92], [0.89, 0.90]], params=params)
    with pytest.raises(ValueError, match="cannot be ordered"):
        select_by_one_std_err(res, "accuracy", [("k", "desc")])


def test_all_nan_folds_are_reported_as_nan(two_folds):
    nan = float("nan")
    res = make_results(two_folds, [[0.8, 0.9], [nan, nan], [nan, None]])
    ranking = rank_candidates(res, "accuracy")
    assert ranking.order == [0]
    err = ranking.errors[1]
    assert err.failure_count == 0
    assert err.nan_count == 2
    assert "2 returned NaN" in str(err)
    assert ranking.errors[2].failure_count == 1
    assert ranking.errors[2].nan_count == 1
    assert "all" not in str(ranking.errors[2])


def test_failed_only_candidate_message(two_folds):
    res = make_results(two_folds, [[0.8, 0.9], [None, None]])
    assert str(rank_candidates(res, "accuracy").errors[1]) == "Config02: all 2 resamples failed"
