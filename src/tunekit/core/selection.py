#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Aggregation and selection of tuning results.

Per candidate and metric the fold values are reduced to a mean, a count
and a standard error (``std(ddof=1) / sqrt(n)``, NaN below two folds).
Candidates are ranked by mean, then by lower standard error, then by grid
position, so rankings are fully deterministic.

Two selection rules are available and neither is applied implicitly:

- select_best: the top-ranked candidate
- select_by_one_std_err: the simplest candidate within one standard error
  of the best
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import NoValidFoldsError
from .grid import Candidate
from .metrics import metric_direction
from .tuning import TuneResults

logger = logging.getLogger(__name__)


def _param_columns(results: TuneResults) -> List[str]:
    names: List[str] = []
    for cand in results.grid:
        for k in cand.params:
            if k not in names:
                names.append(k)
    return names


def collect_metrics(results: TuneResults, summarize: bool = True) -> pd.DataFrame:
    """
    Metric table for a tuning run.

    Args:
        results: Output of ``tune_grid``
        summarize: Reduce folds to mean/n/std_err per candidate and metric

    Returns:
        Summarized: config, params..., .metric, mean, n, std_err, failure_count.
        Raw: config, params..., fold_id, .metric, value.
    """
    params = _param_columns(results)

    if not summarize:
        rows = []
        for r in results.records:
            cand = results.grid[r.candidate_index]
            row = {"config": cand.config_id, **{p: cand.params.get(p) for p in params}}
            row.update({"fold_id": r.fold_id, ".metric": r.metric, "value": r.value})
            rows.append(row)
        return pd.DataFrame(rows, columns=["config", *params, "fold_id", ".metric", "value"])

    values: Dict[Tuple[int, str], List[float]] = {}
    for r in results.records:
        values.setdefault((r.candidate_index, r.metric), []).append(r.value)
    failures = results.failure_counts()

    rows = []
    for cand in results.grid:
        for metric in results.metrics:
            vals = np.asarray(values.get((cand.index, metric), []), dtype=float)
            vals = vals[~np.isnan(vals)]
            n = len(vals)
            mean = float(vals.mean()) if n else float("nan")
            std_err = float(vals.std(ddof=1) / math.sqrt(n)) if n >= 2 else float("nan")
            row = {"config": cand.config_id, **{p: cand.params.get(p) for p in params}}
            row.update({
                ".metric": metric,
                "mean": mean,
                "n": n,
                "std_err": std_err,
                "failure_count": failures[cand.index],
            })
            rows.append(row)
    return pd.DataFrame(rows, columns=["config", *params, ".metric", "mean", "n", "std_err", "failure_count"])


@dataclass
class Ranking:
    metric: str
    direction: str
    table: pd.DataFrame
    order: List[int]
    best: Optional[Candidate]
    errors: Dict[int, NoValidFoldsError] = field(default_factory=dict)


def _check_metric(results: TuneResults, metric: str) -> None:
    if metric not in results.metrics:
        raise ValueError(f"Metric '{metric}' was not computed; available: {results.metrics}")


def rank_candidates(results: TuneResults, metric: str, direction: Optional[str] = None) -> Ranking:
    """
    Rank candidates on one metric.

    Candidates without a single valid fold are kept at the bottom of the
    table with a null rank and a ``NoValidFoldsError`` in ``errors``; the
    other candidates are ranked as usual.
    """
    _check_metric(results, metric)
    direction = metric_direction(metric, direction)
    summary = collect_metrics(results, summarize=True)
    summary = summary[summary[".metric"] == metric].reset_index(drop=True)

    nan_counts: Dict[int, int] = {}
    for r in results.records:
        if r.metric == metric and math.isnan(r.value):
            nan_counts[r.candidate_index] = nan_counts.get(r.candidate_index, 0) + 1

    sign = -1.0 if direction == "maximize" else 1.0
    valid: List[Tuple[float, float, int]] = []
    errors: Dict[int, NoValidFoldsError] = {}
    for cand, (_, row) in zip(results.grid, summary.iterrows()):
        if row["n"] == 0:
            errors[cand.index] = NoValidFoldsError(
                cand.index, int(row["failure_count"]), cand.config_id, nan_counts.get(cand.index, 0)
            )
            logger.warning("%s excluded from ranking: %s", cand.config_id, errors[cand.index])
            continue
        se = row["std_err"]
        valid.append((sign * row["mean"], math.inf if math.isnan(se) else se, cand.index))

    order = [idx for _, _, idx in sorted(valid)]
    excluded = sorted(errors)

    table = summary.iloc[order + excluded].reset_index(drop=True)
    table.insert(0, "rank", pd.array(list(range(1, len(order) + 1)) + [None] * len(excluded), dtype="Int64"))
    table["error"] = [None] * len(order) + [type(errors[i]).__name__ for i in excluded]

    best = results.grid[order[0]] if order else None
    return Ranking(metric, direction, table, order, best, errors)


def show_best(results: TuneResults, metric: str, n: int = 5, direction: Optional[str] = None) -> pd.DataFrame:
    ranking = rank_candidates(results, metric, direction)
    return ranking.table[ranking.table["rank"].notna()].head(n).reset_index(drop=True)


def select_best(results: TuneResults, metric: str, direction: Optional[str] = None) -> Candidate:
    ranking = rank_candidates(results, metric, direction)
    if ranking.best is None:
        # Every candidate failed; report the first one
        raise next(iter(ranking.errors.values()))
    return ranking.best


def _is_missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _simplest(results: TuneResults, indices: List[int], simplicity: Sequence[Tuple[str, str]]) -> int:
    """
    Simplest of ``indices`` (given in grid order) under the orderings.

    Stable sorts run from the last ordering to the first, so earlier
    orderings take precedence and grid order breaks the remaining ties.
    Missing values sort last in every direction.
    """
    order = list(indices)
    for param, how in reversed(simplicity):
        present = [i for i in order if not _is_missing(results.grid[i].params.get(param))]
        missing = [i for i in order if _is_missing(results.grid[i].params.get(param))]
        try:
            present.sort(key=lambda i: results.grid[i].params[param], reverse=(how == "desc"))
        except TypeError:
            raise ValueError(f"Values of '{param}' cannot be ordered for the simplicity rule") from None
        order = present + missing
    return order[0]


def select_by_one_std_err(
    results: TuneResults,
    metric: str,
    simplicity: Sequence[Tuple[str, str]],
    direction: Optional[str] = None,
) -> Candidate:
    """
    Simplest candidate whose mean is within one standard error of the best.

    Args:
        results: Output of ``tune_grid``
        metric: Metric to select on
        simplicity: (param, "asc" | "desc") pairs; "desc" means larger values
            are simpler, e.g. ``[("penalty", "desc")]``. Missing values
            (e.g. ``tree_depth=None``) count as the least simple; values
            that cannot be compared raise ValueError
        direction: "maximize" or "minimize" (defaults to the metric's)

    Returns:
        The chosen candidate
    """
    if not simplicity:
        raise ValueError("simplicity must name at least one parameter ordering")
    for param, how in simplicity:
        if how not in ("asc", "desc"):
            raise ValueError(f"Ordering for '{param}' must be 'asc' or 'desc'; got {how}")

    ranking = rank_candidates(results, metric, direction)
    if ranking.best is None:
        raise next(iter(ranking.errors.values()))

    table = ranking.table[ranking.table["rank"].notna()]
    best_row = table.iloc[0]
    best_mean, best_se = float(best_row["mean"]), float(best_row["std_err"])
    if math.isnan(best_se):
        logger.info("Best candidate has no standard error; one-SE rule falls back to the best")
        return ranking.best

    if ranking.direction == "maximize":
        bound = best_mean - best_se
        within = [i for i, m in zip(ranking.order, table["mean"]) if m >= bound]
    else:
        bound = best_mean + best_se
        within = [i for i, m in zip(ranking.order, table["mean"]) if m <= bound]

    chosen = _simplest(results, sorted(within), simplicity)
    logger.info(
        "One-SE rule on %s: %d candidate(s) within %.4f, picked %s",
        metric, len(within), bound, results.grid[chosen].config_id,
    )
    return results.grid[chosen]
