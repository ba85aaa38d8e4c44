# visualization.py
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from ..core.metrics import confusion_matrix, roc_auc_score, roc_curve

logger = logging.getLogger(__name__)


def _finish(fig, save_path: Optional[Path]):
    fig.tight_layout()
    if save_path is not None:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=200, bbox_inches="tight")
        plt.close(fig)
        logger.info("Saved figure to %s", save_path)
    return fig


def plot_roc_curve(predictions: pd.DataFrame, event_level: Any, truth_col: str = "truth", group_col: Optional[str] = None, save_path: Optional[Path] = None):
    """ROC curve from a predictions frame holding ``.pred_<event_level>``."""
    prob_col = f".pred_{event_level}"
    if prob_col not in predictions:
        raise KeyError(f"Predictions have no '{prob_col}' column")

    fig, ax = plt.subplots(figsize=(5.5, 5))
    groups = predictions.groupby(group_col, sort=True) if group_col else [("all", predictions)]
    for name, df in groups:
        fpr, tpr, _ = roc_curve(df[truth_col], df[prob_col], pos_label=event_level)
        classes = sorted(df[truth_col].unique().tolist())
        label = f"{name}" if group_col else "ROC"
        if len(classes) == 2:
            is_event = (df[truth_col] == event_level).to_numpy()
            auc = roc_auc_score(is_event.astype(int), df[prob_col].to_numpy(), [0, 1])
            label = f"{label} (AUC={auc:.3f})"
        ax.step(fpr, tpr, where="post", label=label)
    ax.plot([0, 1], [0, 1], linestyle="--", color="grey", linewidth=1)
    ax.set_xlabel("1 - specificity")
    ax.set_ylabel("sensitivity")
    ax.set_title(f"ROC curve (event = {event_level})")
    ax.legend(loc="lower right")
    return _finish(fig, save_path)


def plot_coefficients(coefs: pd.DataFrame, top_n: int = 20, include_intercept: bool = False, save_path: Optional[Path] = None):
    """Horizontal bar chart of a ``tidy()`` coefficient table, largest magnitude first."""
    df = coefs if include_intercept else coefs[coefs["term"] != "(Intercept)"]
    if "class" in df:
        df = df.assign(term=df["term"] + " [" + df["class"].astype(str) + "]")
    df = df.reindex(df["estimate"].abs().sort_values(ascending=False, kind="mergesort").index).head(top_n)

    fig, ax = plt.subplots(figsize=(7, max(3, 0.3 * len(df) + 1)))
    colors = ["tab:blue" if v >= 0 else "tab:red" for v in df["estimate"]]
    ax.barh(df["term"][::-1], df["estimate"][::-1], color=colors[::-1])
    ax.axvline(0, color="black", linewidth=0.8)
    ax.set_xlabel("estimate")
    ax.set_title("Model coefficients")
    return _finish(fig, save_path)


def plot_confusion_matrix(y_true, y_pred, labels=None, title: str = "Confusion Matrix", save_path: Optional[Path] = None):
    if labels is None:
        labels = sorted(set(np.asarray(y_true).tolist()) | set(np.asarray(y_pred).tolist()))
    cm = confusion_matrix(y_true, y_pred, labels)
    fig, ax = plt.subplots(figsize=(5, 4))
    sns.heatmap(cm, annot=True, fmt="d", cmap="Blues", ax=ax, cbar=True, square=True,
                xticklabels=[str(l) for l in labels], yticklabels=[str(l) for l in labels])
    ax.set_title(title)
    ax.set_xlabel("Predicted")
    ax.set_ylabel("Actual")
    return _finish(fig, save_path)


def plot_tuning_results(summary: pd.DataFrame, param: str, metric: str, hue: Optional[str] = None, log_x: bool = False, save_path: Optional[Path] = None):
    """Mean ± one standard error of ``metric`` against ``param`` (from ``collect_metrics``)."""
    df = summary[summary[".metric"] == metric].dropna(subset=["mean"])
    if df.empty:
        raise ValueError(f"No results for metric '{metric}'")

    fig, ax = plt.subplots(figsize=(7, 4.5))
    groups = df.groupby(hue, sort=True) if hue else [(None, df)]
    for name, g in groups:
        agg = g.groupby(param, sort=True).agg(mean=("mean", "mean"), std_err=("std_err", "mean")).reset_index()
        label = f"{hue}={name}" if hue else None
        ax.errorbar(agg[param], agg["mean"], yerr=agg["std_err"].fillna(0.0), marker="o", capsize=3, label=label)
    if log_x:
        ax.set_xscale("log")
    ax.set_xlabel(param)
    ax.set_ylabel(f"{metric} (mean ± SE over resamples)")
    ax.set_title(f"Tuning results: {metric}")
    if hue:
        ax.legend()
    return _finish(fig, save_path)


def plot_model_performance(ht_results: Dict[str, Dict[str, Any]], save_dir: Path):
    models, means, errs = [], [], []
    for model, res in ht_results.items():
        if "error" in res:
            continue
        models.append(model)
        means.append(res["mean_cv_score"])
        se = res.get("std_err_cv_score")
        errs.append(0.0 if se is None or np.isnan(se) else se)
    fig, ax = plt.subplots(figsize=(7, 5))
    ax.bar(models, means, yerr=errs, capsize=6)
    metric = next((r["metric"] for r in ht_results.values() if "metric" in r), "score")
    ax.set_ylabel(f"{metric} (mean ± SE over resamples)")
    ax.set_title("Model Comparison")
    return _finish(fig, Path(save_dir) / "model_performance_bar.png")


def export_summary_table(ht_results: Dict[str, Dict[str, Any]], save_dir: Path) -> pd.DataFrame:
    rows = []
    for model, res in ht_results.items():
        if "error" in res:
            continue
        row = {
            "Model": model,
            "Metric": res["metric"],
            "Mean_CV": res["mean_cv_score"],
            "SE_CV": res["std_err_cv_score"],
            "Failures": res["n_failures"],
            "Best_Params": str(res["best_params"]),
        }
        row.update({f"Test_{k}": v for k, v in res["test_metrics"].items()})
        rows.append(row)
    df = pd.DataFrame(rows)
    save_dir = Path(save_dir)
    save_dir.mkdir(parents=True, exist_ok=True)
    df.to_csv(save_dir / "model_summary.csv", index=False)
    (save_dir / "model_summary.md").write_text(df.to_markdown(index=False, floatfmt=".4f"), encoding="utf-8")
    return df
