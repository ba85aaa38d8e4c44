#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Performance Metrics

Metrics used to score resamples and holdout sets, written on top of numpy:

- Class metrics: accuracy, precision/recall/F1 (macro), confusion matrix
- Probability metrics: ROC AUC (binary and macro one-vs-rest), log loss
- Numeric metrics: RMSE, MAE, R squared

Every metric is registered in ``METRICS`` with the direction that counts as
better, so the selector knows whether to maximize or minimize it.

For binary problems the event (positive) class is the last of the sorted
class labels, e.g. 1 for {0, 1} and "yes" for {"no", "yes"}.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.stats import rankdata

logger = logging.getLogger(__name__)


def confusion_matrix(y_true, y_pred, labels: Optional[List] = None) -> np.ndarray:
    """
    Confusion matrix with true labels on rows and predictions on columns.

    Args:
        y_true: Ground truth labels
        y_pred: Predicted labels
        labels: Label order (defaults to the sorted union of both inputs)

    Returns:
        Square integer matrix
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if labels is None:
        labels = sorted(set(y_true.tolist()) | set(y_pred.tolist()))
    label_to_idx = {label: i for i, label in enumerate(labels)}

    cm = np.zeros((len(labels), len(labels)), dtype=int)
    for t, p in zip(y_true.tolist(), y_pred.tolist()):
        cm[label_to_idx[t], label_to_idx[p]] += 1
    return cm


def accuracy_score(y_true, y_pred) -> float:
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if len(y_true) != len(y_pred):
        raise ValueError("y_true and y_pred must have the same length")
    if len(y_true) == 0:
        return float("nan")
    return float(np.mean(y_true == y_pred))


def _per_class(y_true, y_pred, labels: Optional[List]) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Per-class precision, recall, F1 and support; ill-defined ratios are 0."""
    cm = confusion_matrix(y_true, y_pred, labels)
    tp = np.diag(cm).astype(float)
    pred_pos = cm.sum(axis=0).astype(float)
    support = cm.sum(axis=1).astype(float)

    with np.errstate(divide="ignore", invalid="ignore"):
        precision = np.where(pred_pos > 0, tp / pred_pos, 0.0)
        recall = np.where(support > 0, tp / support, 0.0)
        denom = precision + recall
        f1 = np.where(denom > 0, 2 * precision * recall / denom, 0.0)
    return precision, recall, f1, support


def _average(values: np.ndarray, support: np.ndarray, average: Optional[str]):
    if average is None:
        return values
    if average == "binary":
        if len(values) != 2:
            raise ValueError("binary averaging requires exactly 2 classes")
        return float(values[1])
    if average == "macro":
        return float(np.mean(values))
    if average == "weighted":
        if support.sum() == 0:
            return 0.0
        return float(np.average(values, weights=support))
    raise ValueError(f"Unknown averaging strategy: {average}")


def precision_score(y_true, y_pred, average: Optional[str] = "macro", labels: Optional[List] = None):
    p, _, _, support = _per_class(y_true, y_pred, labels)
    return _average(p, support, average)


def recall_score(y_true, y_pred, average: Optional[str] = "macro", labels: Optional[List] = None):
    _, r, _, support = _per_class(y_true, y_pred, labels)
    return _average(r, support, average)


def f1_score(y_true, y_pred, average: Optional[str] = "macro", labels: Optional[List] = None):
    _, _, f, support = _per_class(y_true, y_pred, labels)
    return _average(f, support, average)


def classification_report(y_true, y_pred, labels: Optional[List] = None, digits: int = 2) -> str:
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if labels is None:
        labels = sorted(set(y_true.tolist()) | set(y_pred.tolist()))
    names = [str(label) for label in labels]
    precision, recall, f1, support = _per_class(y_true, y_pred, labels)

    width = max(max(len(n) for n in names), len("weighted avg"))
    lines = [f"{'':>{width}} {'precision':>9} {'recall':>9} {'f1-score':>9} {'support':>9}", ""]
    for name, p, r, f, s in zip(names, precision, recall, f1, support):
        lines.append(f"{name:>{width}} {p:>9.{digits}f} {r:>9.{digits}f} {f:>9.{digits}f} {int(s):>9}")
    lines.append("")
    total = int(support.sum())
    lines.append(
        f"{'macro avg':>{width}} {precision.mean():>9.{digits}f} {recall.mean():>9.{digits}f} "
        f"{f1.mean():>9.{digits}f} {total:>9}"
    )
    if total:
        lines.append(
            f"{'weighted avg':>{width}} {np.average(precision, weights=support):>9.{digits}f} "
            f"{np.average(recall, weights=support):>9.{digits}f} "
            f"{np.average(f1, weights=support):>9.{digits}f} {total:>9}"
        )
    return "\n".join(lines) + "\n"


# ---------------- probability metrics ----------------


def _binary_auc(is_event: np.ndarray, score: np.ndarray) -> float:
    n_pos = int(is_event.sum())
    n_neg = len(is_event) - n_pos
    if n_pos == 0 or n_neg == 0:
        logger.debug("ROC AUC undefined with a single class present")
        return float("nan")
    # Mann-Whitney U with mid-ranks for ties
    ranks = rankdata(score)
    u = ranks[is_event].sum() - n_pos * (n_pos + 1) / 2.0
    return float(u / (n_pos * n_neg))


def roc_auc_score(y_true, y_prob, classes: Sequence) -> float:
    """
    Area under the ROC curve.

    Args:
        y_true: Ground truth labels
        y_prob: Class probabilities, one column per entry of ``classes``
        classes: Class labels in the column order of ``y_prob``

    Returns:
        Binary AUC for the event class, or the macro one-vs-rest AUC
    """
    y_true = np.asarray(y_true)
    y_prob = np.asarray(y_prob, dtype=float)
    if y_prob.ndim == 1:
        y_prob = np.column_stack([1.0 - y_prob, y_prob])
    classes = list(classes)
    if len(classes) == 2:
        return _binary_auc(y_true == classes[1], y_prob[:, 1])
    aucs = [_binary_auc(y_true == c, y_prob[:, i]) for i, c in enumerate(classes)]
    return float(np.nanmean(aucs)) if not np.all(np.isnan(aucs)) else float("nan")


def log_loss(y_true, y_prob, classes: Sequence, eps: float = 1e-15) -> float:
    y_true = np.asarray(y_true)
    y_prob = np.clip(np.asarray(y_prob, dtype=float), eps, 1 - eps)
    if y_prob.ndim == 1:
        y_prob = np.column_stack([1.0 - y_prob, y_prob])
    col = {c: i for i, c in enumerate(classes)}
    idx = np.array([col[t] for t in y_true.tolist()])
    return float(-np.mean(np.log(y_prob[np.arange(len(idx)), idx])))


def roc_curve(y_true, score, pos_label) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """False positive rate, true positive rate and thresholds, highest threshold first."""
    is_event = np.asarray(y_true) == pos_label
    score = np.asarray(score, dtype=float)
    order = np.argsort(-score, kind="mergesort")
    score, is_event = score[order], is_event[order]

    # Keep the last index of every distinct threshold
    distinct = np.where(np.diff(score))[0]
    cut = np.r_[distinct, len(score) - 1]
    tps = np.cumsum(is_event)[cut]
    fps = (cut + 1) - tps

    n_pos, n_neg = is_event.sum(), (~is_event).sum()
    tpr = np.r_[0.0, tps / n_pos if n_pos else np.zeros_like(tps, dtype=float)]
    fpr = np.r_[0.0, fps / n_neg if n_neg else np.zeros_like(fps, dtype=float)]
    thresholds = np.r_[np.inf, score[cut]]
    return fpr, tpr, thresholds


# ---------------- numeric metrics ----------------


def rmse(y_true, y_pred) -> float:
    err = np.asarray(y_true, dtype=float) - np.asarray(y_pred, dtype=float)
    return float(np.sqrt(np.mean(err ** 2)))


def mae(y_true, y_pred) -> float:
    err = np.asarray(y_true, dtype=float) - np.asarray(y_pred, dtype=float)
    return float(np.mean(np.abs(err)))


def rsq(y_true, y_pred) -> float:
    """Squared correlation between truth and prediction."""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if len(y_true) < 2 or np.std(y_true) == 0 or np.std(y_pred) == 0:
        return float("nan")
    return float(np.corrcoef(y_true, y_pred)[0, 1] ** 2)


# ---------------- registry ----------------


@dataclass(frozen=True)
class MetricInfo:
    func: Callable
    direction: str  # "maximize" or "minimize"
    kind: str  # "class", "prob" or "numeric"


METRICS: Dict[str, MetricInfo] = {
    "accuracy": MetricInfo(accuracy_score, "maximize", "class"),
    "precision_macro": MetricInfo(lambda t, p: precision_score(t, p, "macro"), "maximize", "class"),
    "recall_macro": MetricInfo(lambda t, p: recall_score(t, p, "macro"), "maximize", "class"),
    "f1_macro": MetricInfo(lambda t, p: f1_score(t, p, "macro"), "maximize", "class"),
    "roc_auc": MetricInfo(roc_auc_score, "maximize", "prob"),
    "mn_log_loss": MetricInfo(log_loss, "minimize", "prob"),
    "rmse": MetricInfo(rmse, "minimize", "numeric"),
    "mae": MetricInfo(mae, "minimize", "numeric"),
    "rsq": MetricInfo(rsq, "maximize", "numeric"),
}


def get_metric(name: str) -> MetricInfo:
    try:
        return METRICS[name]
    except KeyError:
        raise ValueError(f"Unknown metric: {name}. Known metrics: {sorted(METRICS)}") from None


def metric_direction(name: str, direction: Optional[str] = None) -> str:
    if direction is None:
        return get_metric(name).direction
    if direction not in ("maximize", "minimize"):
        raise ValueError(f"direction must be 'maximize' or 'minimize'; got {direction}")
    return direction


def default_metrics(outcome_type: str) -> List[str]:
    if outcome_type == "categorical":
        return ["accuracy", "roc_auc"]
    return ["rmse", "rsq"]


def compute_metrics(
    metric_names: Sequence[str],
    y_true,
    y_pred,
    y_prob: Optional[np.ndarray] = None,
    classes: Optional[Sequence] = None,
) -> Dict[str, float]:
    """
    Evaluate each named metric on one set of predictions.

    Probability metrics need ``y_prob`` and ``classes``; asking for one on a
    model that gives no probabilities raises ValueError.
    """
    out = {}
    for name in metric_names:
        info = get_metric(name)
        if info.kind == "prob":
            if y_prob is None or classes is None:
                raise ValueError(f"Metric '{name}' needs class probabilities")
            out[name] = float(info.func(y_true, y_prob, classes))
        else:
            out[name] = float(info.func(y_true, y_pred))
    return out
