#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Resampled grid evaluation.

Every (candidate, fold) cell fits the model on the fold's training ids and
scores it on the fold's validation ids. Cells share nothing but read-only
data, so they can run on a joblib worker pool; results are always merged
back in (candidate, fold) order.

A failing cell becomes a ``FitFailure`` next to the metric records instead
of stopping the loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import pandas as pd
from joblib import Parallel, delayed, effective_n_jobs

from .data import Fold, FoldSet
from .errors import EmptySearchSpaceError, FitFailure, TuningAbortedError
from .grid import Candidate
from .metrics import get_metric

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricRecord:
    candidate_index: int
    fold_id: str
    metric: str
    value: float


@dataclass
class TuneResults:
    model_name: str
    grid: List[Candidate]
    folds: FoldSet
    metrics: List[str]
    records: List[MetricRecord] = field(default_factory=list)
    failures: List[FitFailure] = field(default_factory=list)
    predictions: Optional[pd.DataFrame] = None

    @property
    def n_cells(self) -> int:
        return len(self.grid) * len(self.folds)

    def failure_counts(self) -> dict:
        counts = {c.index: 0 for c in self.grid}
        for f in self.failures:
            counts[f.candidate_index] += 1
        return counts

    def candidate(self, index: int) -> Candidate:
        return self.grid[index]


@dataclass
class _CellResult:
    records: List[MetricRecord]
    failure: Optional[FitFailure] = None
    predictions: Optional[pd.DataFrame] = None


def _run_cell(model, folds: FoldSet, fold: Fold, candidate: Candidate, metrics: Sequence[str], save_pred: bool) -> _CellResult:
    try:
        training = folds.data.subset(fold.train_ids)
        validation = folds.data.subset(fold.validation_ids)
        handle = model.fit(candidate.params, training)
        scores = model.score(handle, validation, metrics)
        preds = None
        if save_pred:
            preds = model.predict(handle, validation)
            preds.insert(0, "truth", validation.y.to_numpy())
            preds.insert(0, "fold_id", fold.fold_id)
            preds.insert(0, "config", candidate.config_id)
            preds.index.name = "row_id"
            preds = preds.reset_index()
        records = [MetricRecord(candidate.index, fold.fold_id, m, float(scores[m])) for m in metrics]
    except Exception as e:
        return _CellResult([], FitFailure(candidate.index, fold.fold_id, e))

    return _CellResult(records, None, preds)


def _cells(grid: Sequence[Candidate], folds: FoldSet) -> List[Tuple[Candidate, Fold]]:
    return [(c, f) for c in grid for f in folds]


def tune_grid(
    model,
    folds: FoldSet,
    grid: Sequence[Candidate],
    metrics: Optional[Sequence[str]] = None,
    n_jobs: int = 1,
    save_pred: bool = False,
    should_abort: Optional[Callable[[], bool]] = None,
    model_name: Optional[str] = None,
    backend: Optional[str] = None,
) -> TuneResults:
    """
    Fit and score every candidate on every fold.

    Args:
        model: ModelSpec-like object with fit/score (and predict if save_pred)
        folds: Fold set from ``vfold_cv``
        grid: Candidates from one of the grid builders
        metrics: Metric names (defaults to the model's defaults for the data)
        n_jobs: joblib worker count; 1 runs in-process
        save_pred: Keep out-of-fold predictions
        should_abort: Polled between cells (between batches when parallel)
        model_name: Label stored on the results
        backend: joblib backend for n_jobs != 1 (default loky)

    Returns:
        TuneResults with one metric record per metric per successful cell
    """
    grid = list(grid)
    if not grid:
        raise EmptySearchSpaceError("Grid has no candidates")
    if [c.index for c in grid] != list(range(len(grid))):
        raise ValueError("Candidate indices must match their grid positions")
    if metrics is None:
        metrics = model.default_metrics(folds.data)
    metrics = list(metrics)
    for m in metrics:
        get_metric(m)

    cells = _cells(grid, folds)
    name = model_name or getattr(model, "name", type(model).__name__)
    logger.info(
        "Tuning %s: %d candidates x %d resamples = %d fits (n_jobs=%s)",
        name, len(grid), len(folds), len(cells), n_jobs,
    )

    results: List[_CellResult] = []
    if n_jobs == 1:
        for i, (cand, fold) in enumerate(cells):
            if should_abort is not None and should_abort():
                raise TuningAbortedError(f"Tuning aborted after {i} of {len(cells)} cells")
            results.append(_run_cell(model, folds, fold, cand, metrics, save_pred))
            _log_cell(results[-1], cand, fold)
    else:
        with Parallel(n_jobs=n_jobs, backend=backend) as parallel:
            batch = max(1, effective_n_jobs(n_jobs)) * 2
            for start in range(0, len(cells), batch):
                if should_abort is not None and should_abort():
                    raise TuningAbortedError(f"Tuning aborted after {start} of {len(cells)} cells")
                chunk = cells[start:start + batch]
                out = parallel(delayed(_run_cell)(model, folds, f, c, metrics, save_pred) for c, f in chunk)
                for res, (cand, fold) in zip(out, chunk):
                    _log_cell(res, cand, fold)
                results.extend(out)

    tuned = TuneResults(model_name=name, grid=grid, folds=folds, metrics=metrics)
    pred_frames = []
    for res in results:
        tuned.records.extend(res.records)
        if res.failure is not None:
            tuned.failures.append(res.failure)
        if res.predictions is not None:
            pred_frames.append(res.predictions)
    if save_pred:
        tuned.predictions = pd.concat(pred_frames, ignore_index=True) if pred_frames else pd.DataFrame()

    if tuned.failures:
        logger.warning("%d of %d fits failed", len(tuned.failures), len(cells))
    return tuned


def _log_cell(res: _CellResult, cand: Candidate, fold: Fold) -> None:
    if res.failure is not None:
        logger.warning("%s / %s failed: %s", cand.config_id, fold.fold_id, res.failure.message)
    else:
        logger.debug(
            "%s / %s %s", cand.config_id, fold.fold_id,
            " ".join(f"{r.metric}={r.value:.4f}" for r in res.records),
        )
