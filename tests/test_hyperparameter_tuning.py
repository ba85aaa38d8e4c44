import json

import pandas as pd
import pytest

from tunekit.core.config import TuningConfig
from tunekit.core.grid import Range
from tunekit.experiments.hyperparameter_tuning import HyperparameterTuner, derive_seed, tune_models
from tunekit.models.linear_models import LogisticRegressionSpec
from tunekit.models.tree_models import DecisionTreeSpec

SPACE = {"penalty": Range(1e-3, 1.0, count=3, log=True), "mixture": [0.0]}


@pytest.fixture
def config():
    return TuningConfig(v=3, strata="outcome", metrics=["accuracy", "roc_auc"], metric="roc_auc", seed=7)


def test_tune_model_end_to_end(binary_data, config):
    tuner = HyperparameterTuner(config)
    out = tuner.tune_model(binary_data, LogisticRegressionSpec("outcome ~ ."), SPACE, "logreg")
    assert out["metric"] == "roc_auc"
    assert out["direction"] == "maximize"
    assert out["n_candidates"] == 3
    assert out["n_resamples"] == 3
    assert out["n_failures"] == 0
    assert out["excluded_candidates"] == []
    assert out["n_train"] + out["n_test"] == len(binary_data)
    assert abs(out["n_train"] - 150) <= 2
    assert out["best_params"]["penalty"] in SPACE["penalty"].values(3)
    assert out["ranking"].iloc[0]["config"] == out["best_config"]
    assert set(out["test_metrics"]) == {"accuracy", "roc_auc"}
    assert out["test_metrics"]["roc_auc"] > 0.9
    assert set(out["overfitting_gap"]) == {"accuracy", "roc_auc"}
    assert "logreg" in tuner.results
    assert tuner.results["logreg"]["final_fit"].model.n_train == out["n_train"]


def test_same_seed_gives_identical_rankings(binary_data, config):
    a = HyperparameterTuner(config).tune_model(binary_data, DecisionTreeSpec("outcome ~ ."), {"tree_depth": [1, 3, 5]})
    b = HyperparameterTuner(config).tune_model(binary_data, DecisionTreeSpec("outcome ~ ."), {"tree_depth": [1, 3, 5]})
    assert a["ranking"].to_csv(index=False) == b["ranking"].to_csv(index=False)
    assert a["test_metrics"] == b["test_metrics"]


def test_overrides_and_one_std_err(binary_data, config):
    tuner = HyperparameterTuner(config, selection="one_std_err", simplicity=[("penalty", "desc")])
    assert tuner.config.v == 3
    out = tuner.tune_model(binary_data, LogisticRegressionSpec("outcome ~ ."), SPACE, "logreg")
    assert out["selection"] == "one_std_err"
    assert out["best_params"]["penalty"] >= HyperparameterTuner(config).tune_model(
        binary_data, LogisticRegressionSpec("outcome ~ ."), SPACE, "logreg"
    )["best_params"]["penalty"]


def test_metric_defaults_come_from_the_model(reg_data):
    tuner = HyperparameterTuner(v=3, seed=1)
    out = tuner.tune_model(reg_data, DecisionTreeSpec("y ~ ."), {"tree_depth": [2, 4]}, "tree")
    assert out["metric"] == "rmse"
    assert out["direction"] == "minimize"
    assert set(out["test_metrics"]) == {"rmse", "rsq"}


def test_multiple_models_and_comparison(binary_data, config):
    tuner = tune_models(
        binary_data,
        [
            ("logreg", LogisticRegressionSpec("outcome ~ ."), SPACE),
            ("tree", DecisionTreeSpec("outcome ~ ."), {"tree_depth": [1, 2]}),
            ("broken", DecisionTreeSpec("outcome ~ missing_col"), {"tree_depth": [1]}),
        ],
        config,
    )
    assert tuner.results["broken"] == {"error": tuner.results["broken"]["error"]}
    best = tuner.get_best_models()
    assert set(best) == {"logreg", "tree"}
    table = tuner.compare_models()
    assert list(table["Model"]) == sorted(best, key=lambda m: -best[m]["cv_score"])
    assert table["CV_Score"].is_monotonic_decreasing


def test_save_and_load_results(binary_data, config, tmp_path):
    tuner = HyperparameterTuner(config)
    tuner.tune_model(binary_data, LogisticRegressionSpec("outcome ~ x1 + x2"), SPACE, "logreg")
    path = tmp_path / "out" / "results.json"
    tuner.save_results(path)

    payload = json.loads(path.read_text())
    assert payload["config"]["v"] == 3
    saved = payload["results"]["logreg"]
    assert "final_fit" not in saved
    assert isinstance(saved["ranking"], list)
    assert saved["ranking"][0]["rank"] == 1

    other = HyperparameterTuner()
    loaded = other.load_results(path)
    assert loaded["logreg"]["best_config"] == tuner.results["logreg"]["best_config"]
    assert not other.compare_models().empty


def test_failing_candidates_are_reported(binary_data, fake_model_cls):
    tuner = HyperparameterTuner(v=3, seed=0, metrics=["accuracy"])
    model = fake_model_cls({1: 0.6, 2: 0.9}, fail_on={2})
    # the final fit re-fits the winner, which must be the surviving candidate
    out = tuner.tune_model(binary_data, model, {"c": [1, 2]}, "fake")
    assert out["best_params"] == {"c": 1}
    assert out["excluded_candidates"] == ["Config02"]
    assert out["n_failures"] == 3
    ranking = out["ranking"]
    assert pd.isna(ranking.iloc[-1]["rank"])


def test_derive_seed_is_step_specific():
    assert len({derive_seed(5, s) for s in range(3)}) == 3
