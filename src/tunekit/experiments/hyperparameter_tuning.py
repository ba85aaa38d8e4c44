#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Hyperparameter Tuning Pipeline

This module strings the resampling pieces together for one or more models:

- Stratified train/test split (the test set is held out until the end)
- V-fold cross-validation on the training set
- Regular or space-filling grid over the model's search space
- Resampled evaluation of every candidate, ranking, selection
- One final fit on the full training set, scored on the test set

Each randomized step gets its own seed derived from the tuner's seed
(split: seed, folds: seed + 1, grid: seed + 2), so two tuners with the same
seed produce identical splits, folds, grids and rankings.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..core.config import TuningConfig
from ..core.cross_validation import vfold_cv
from ..core.data import Dataset
from ..core.errors import TuneError
from ..core.final_fit import last_fit
from ..core.grid import SearchSpace, build_grid
from ..core.selection import collect_metrics, rank_candidates, select_best, select_by_one_std_err
from ..core.splitting import initial_split
from ..core.tuning import tune_grid

logger = logging.getLogger(__name__)

SPLIT_STEP, FOLD_STEP, GRID_STEP = 0, 1, 2


def derive_seed(seed: int, step: int) -> int:
    return int(seed) + step


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, pd.DataFrame):
        return _jsonable(value.astype(object).where(value.notna(), None).to_dict(orient="records"))
    if isinstance(value, np.generic):
        return _jsonable(value.item())
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


class HyperparameterTuner:
    """
    Tune, select and evaluate models on one dataset.

    The tuner keeps every run's results in ``self.results`` keyed by model
    name, so several model families can be compared afterwards.
    """

    def __init__(self, config: Optional[TuningConfig] = None, **overrides: Any):
        """
        Args:
            config: Tuning configuration (defaults to ``TuningConfig()``)
            **overrides: Individual config fields, e.g. ``v=5, seed=1``
        """
        base = config.to_dict() if config is not None else {}
        self.config = TuningConfig.from_dict({**base, **overrides})
        self.results: Dict[str, Dict[str, Any]] = {}

    def tune_model(
        self,
        data: Dataset,
        model,
        space: SearchSpace,
        model_name: str = "model",
    ) -> Dict[str, Any]:
        """
        Run split -> folds -> grid -> resampled fits -> selection -> final fit.

        Args:
            data: Full dataset; its test portion is only touched by the final fit
            model: ModelSpec for the model family
            space: Search space for the grid builder
            model_name: Key for results tracking

        Returns:
            Dictionary with the ranking table, the selected params, the
            holdout metrics and the failure tally
        """
        cfg = self.config
        logger.info("=" * 60)
        logger.info("Tuning hyperparameters for: %s", model_name)
        logger.info("=" * 60)

        split = initial_split(data, prop=cfg.prop, strata=cfg.strata, seed=derive_seed(cfg.seed, SPLIT_STEP))
        training = split.training()
        folds = vfold_cv(
            training, v=cfg.v, strata=cfg.strata, seed=derive_seed(cfg.seed, FOLD_STEP), repeats=cfg.repeats
        )
        grid = build_grid(
            space, grid_type=cfg.grid_type, size=cfg.grid_size, levels=cfg.levels,
            seed=derive_seed(cfg.seed, GRID_STEP),
        )

        metrics = list(cfg.metrics or model.default_metrics(training))
        if cfg.metric is not None and cfg.metric not in metrics:
            metrics.append(cfg.metric)
        target_metric = cfg.metric or metrics[0]
        tuned = tune_grid(model, folds, grid, metrics=metrics, n_jobs=cfg.n_jobs, model_name=model_name)

        ranking = rank_candidates(tuned, target_metric, cfg.direction)
        if cfg.selection == "one_std_err":
            chosen = select_by_one_std_err(tuned, target_metric, cfg.simplicity, cfg.direction)
        else:
            chosen = select_best(tuned, target_metric, cfg.direction)

        final = last_fit(model, chosen, split, metrics=metrics, include_training_metrics=True, resamples=folds)

        best_row = ranking.table[ranking.table["config"] == chosen.config_id].iloc[0]
        out = {
            "model": model_name,
            "metric": target_metric,
            "direction": ranking.direction,
            "selection": cfg.selection,
            "best_config": chosen.config_id,
            "best_params": dict(chosen.params),
            "mean_cv_score": float(best_row["mean"]),
            "std_err_cv_score": float(best_row["std_err"]),
            "n_candidates": len(grid),
            "n_resamples": len(folds),
            "n_failures": len(tuned.failures),
            "excluded_candidates": [e.config_id for e in ranking.errors.values()],
            "ranking": ranking.table,
            "cv_metrics": collect_metrics(tuned),
            "test_metrics": final.metrics,
            "train_metrics": final.train_metrics,
            "overfitting_gap": final.overfitting_gap,
            "n_train": len(split.train_ids),
            "n_test": len(split.test_ids),
        }
        self.results[model_name] = {**out, "model_spec": model, "tune_results": tuned, "final_fit": final}

        logger.info("Best parameters: %s", chosen.params)
        logger.info(
            "CV %s: %.4f (SE %.4f) | test: %s",
            target_metric, out["mean_cv_score"], out["std_err_cv_score"],
            ", ".join(f"{k}={v:.4f}" for k, v in final.metrics.items()),
        )
        return out

    def tune_multiple_models(
        self,
        experiments: Sequence[Tuple[str, Dataset, Any, SearchSpace]],
    ) -> Dict[str, Any]:
        """
        Tune several models; one model's failure does not stop the others.

        Args:
            experiments: (model_name, data, model, space) tuples

        Returns:
            Results per model name; failed models hold an ``error`` entry
        """
        logger.info("Starting hyperparameter tuning for %d model(s)", len(experiments))
        all_results: Dict[str, Any] = {}
        for i, (model_name, data, model, space) in enumerate(experiments, 1):
            logger.info("Experiment %d/%d: %s", i, len(experiments), model_name)
            try:
                all_results[model_name] = self.tune_model(data, model, space, model_name)
            except (TuneError, ValueError, KeyError) as e:
                logger.error("Error tuning %s: %s", model_name, e)
                all_results[model_name] = {"error": str(e)}
                self.results[model_name] = {"error": str(e)}
        return all_results

    def get_best_models(self) -> Dict[str, Dict[str, Any]]:
        best = {}
        for name, res in self.results.items():
            if "error" in res:
                continue
            best[name] = {
                "best_params": res["best_params"],
                "cv_score": res["mean_cv_score"],
                "cv_std_err": res["std_err_cv_score"],
                "test_metrics": res["test_metrics"],
            }
        return best

    def compare_models(self) -> pd.DataFrame:
        """One row per successfully tuned model, best CV score first."""
        rows = []
        for name, res in self.results.items():
            if "error" in res:
                continue
            rows.append({
                "Model": name,
                "Metric": res["metric"],
                "Best_Params": str(res["best_params"]),
                "CV_Score": res["mean_cv_score"],
                "CV_Std_Err": res["std_err_cv_score"],
                "Test_Score": res["test_metrics"].get(res["metric"]),
                "Failures": res["n_failures"],
            })
        df = pd.DataFrame(rows, columns=["Model", "Metric", "Best_Params", "CV_Score", "CV_Std_Err", "Test_Score", "Failures"])
        if df.empty:
            return df
        # Minimized metrics are compared on their negation
        directions = [self.results[m]["direction"] for m in df["Model"]]
        key = [s if d == "maximize" else -s for s, d in zip(df["CV_Score"], directions)]
        return df.assign(_key=key).sort_values("_key", ascending=False, kind="mergesort").drop(columns="_key").reset_index(drop=True)

    def summary(self) -> Dict[str, Any]:
        """JSON-ready view of ``self.results`` (fitted objects are left out)."""
        skip = {"model_spec", "tune_results", "final_fit"}
        return {
            name: _jsonable({k: v for k, v in res.items() if k not in skip})
            for name, res in self.results.items()
        }

    def save_results(self, filepath: str | Path) -> None:
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump({"config": self.config.to_dict(), "results": self.summary()}, f, indent=2)
        logger.info("Results saved to: %s", filepath)

    def load_results(self, filepath: str | Path) -> Dict[str, Any]:
        """Load a saved summary; fitted models are not restored."""
        with open(Path(filepath), "r", encoding="utf-8") as f:
            payload = json.load(f)
        self.results = payload["results"]
        logger.info("Results loaded from: %s", filepath)
        return self.results


def tune_models(
    data: Dataset,
    models: List[Tuple[str, Any, SearchSpace]],
    config: Optional[TuningConfig] = None,
) -> HyperparameterTuner:
    tuner = HyperparameterTuner(config)
    tuner.tune_multiple_models([(name, data, model, space) for name, model, space in models])
    return tuner
