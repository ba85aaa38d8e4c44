import matplotlib.pyplot as plt
import pandas as pd
import pytest

from tunekit.core.cross_validation import vfold_cv
from tunekit.core.grid import grid_regular
from tunekit.core.selection import collect_metrics
from tunekit.core.tuning import tune_grid
from tunekit.experiments.visualization import (
    export_summary_table,
    plot_coefficients,
    plot_confusion_matrix,
    plot_model_performance,
    plot_roc_curve,
    plot_tuning_results,
)
from tunekit.models.linear_models import LogisticRegressionSpec


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


@pytest.fixture
def tuned(binary_data):
    folds = vfold_cv(binary_data, v=3, seed=0)
    grid = grid_regular({"penalty": [0.01, 0.1, 1.0]})
    return tune_grid(LogisticRegressionSpec("outcome ~ x1 + x2"), folds, grid, save_pred=True)


@pytest.fixture
def ht_results():
    return {
        "logreg": {
            "metric": "roc_auc", "mean_cv_score": 0.93, "std_err_cv_score": 0.01, "n_failures": 0,
            "best_params": {"penalty": 0.01}, "test_metrics": {"accuracy": 0.9, "roc_auc": 0.95},
        },
        "tree": {
            "metric": "roc_auc", "mean_cv_score": 0.85, "std_err_cv_score": None, "n_failures": 2,
            "best_params": {"tree_depth": 3}, "test_metrics": {"accuracy": 0.8, "roc_auc": 0.86},
        },
        "broken": {"error": "all resamples failed"},
    }


def test_roc_curve_per_config(tuned, tmp_path):
    path = tmp_path / "roc.png"
    fig = plot_roc_curve(tuned.predictions, "yes", group_col="config", save_path=path)
    assert path.exists()
    assert len(fig.axes[0].get_legend().get_texts()) == 3


def test_roc_curve_needs_probability_column(tuned):
    with pytest.raises(KeyError):
        plot_roc_curve(tuned.predictions, "maybe")


def test_tuning_results_plot(tuned, tmp_path):
    summary = collect_metrics(tuned)
    plot_tuning_results(summary, "penalty", "roc_auc", log_x=True, save_path=tmp_path / "tune.png")
    assert (tmp_path / "tune.png").exists()
    with pytest.raises(ValueError):
        plot_tuning_results(summary, "penalty", "rmse")


def test_coefficients_and_confusion_matrix(binary_data, tmp_path):
    spec = LogisticRegressionSpec("outcome ~ x1 + x2 + noise")
    handle = spec.fit({"penalty": 0.1}, binary_data)
    plot_coefficients(spec.tidy(handle), top_n=2, save_path=tmp_path / "coef.png")
    preds = spec.predict(handle, binary_data)
    plot_confusion_matrix(binary_data.y, preds[".pred"], save_path=tmp_path / "cm.png")
    assert (tmp_path / "coef.png").exists()
    assert (tmp_path / "cm.png").exists()


def test_model_performance_and_summary_table(ht_results, tmp_path):
    plot_model_performance(ht_results, tmp_path)
    assert (tmp_path / "model_performance_bar.png").exists()

    df = export_summary_table(ht_results, tmp_path)
    assert list(df["Model"]) == ["logreg", "tree"]
    assert "Test_roc_auc" in df.columns
    saved = pd.read_csv(tmp_path / "model_summary.csv")
    assert len(saved) == 2
    assert "| logreg" in (tmp_path / "model_summary.md").read_text()
