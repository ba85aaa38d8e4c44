# final_fit.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import pandas as pd

from .data import FoldSet, Split, ValidationSplit
from .errors import HoldoutLeakError
from .grid import Candidate
from .metrics import get_metric

logger = logging.getLogger(__name__)


@dataclass
class FinalFitResult:
    model: Any
    params: Dict[str, Any]
    metrics: Dict[str, float]
    predictions: pd.DataFrame
    train_metrics: Dict[str, float] = field(default_factory=dict)
    overfitting_gap: Dict[str, float] = field(default_factory=dict)


def last_fit(
    model,
    candidate: Union[Candidate, Mapping[str, Any]],
    split: Union[Split, ValidationSplit],
    metrics: Optional[Sequence[str]] = None,
    extra_metrics: Sequence[str] = (),
    include_training_metrics: bool = False,
    resamples: Optional[FoldSet] = None,
) -> FinalFitResult:
    """
    Fit once on the training set and evaluate once on the held-out test set.

    Args:
        model: ModelSpec-like object
        candidate: Selected candidate (or a plain parameter mapping)
        split: Split whose test ids were never used for tuning; a
            ValidationSplit is merged to train+validation vs test
        metrics: Metric names used during tuning
        extra_metrics: Additional diagnostics to report on the test set
        include_training_metrics: Also score the training set and report
            the train minus test gap
        resamples: Fold set used for tuning; checked to share no record
            with the test set

    Returns:
        FinalFitResult with the fitted handle and holdout metrics
    """
    if isinstance(split, ValidationSplit):
        split = split.as_split()
    params = dict(candidate.params if isinstance(candidate, Candidate) else candidate)

    test_ids = set(split.test_ids.tolist())
    overlap = set(split.train_ids.tolist()) & test_ids
    if overlap:
        raise HoldoutLeakError(f"{len(overlap)} test record(s) also appear in the training set")
    if resamples is not None:
        used = set(resamples.data.ids.tolist()) & test_ids
        if used:
            raise HoldoutLeakError(f"{len(used)} test record(s) were used while tuning")

    training, testing = split.training(), split.testing()
    if metrics is None:
        metrics = model.default_metrics(training)
    names = list(dict.fromkeys([*metrics, *extra_metrics]))
    for m in names:
        get_metric(m)

    handle = model.fit(params, training)
    scores = model.score(handle, testing, names)
    preds = model.predict(handle, testing)
    preds.insert(0, "truth", testing.y.to_numpy())

    result = FinalFitResult(model=handle, params=params, metrics=scores, predictions=preds)
    if include_training_metrics:
        result.train_metrics = model.score(handle, training, names)
        result.overfitting_gap = {m: result.train_metrics[m] - scores[m] for m in names}

    logger.info(
        "Final fit on %d training records, holdout of %d: %s",
        len(training), len(testing), " ".join(f"{k}={v:.4f}" for k, v in scores.items()),
    )
    return result
