#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Runner for tuning experiments.

- Run from project root after ``pip install -e .``.
- Loads a bundled sample dataset (--dataset) or a local CSV (--csv/--target).
- Tunes one model family (linear_reg/logistic_reg/decision_tree/rand_forest)
  or every family that fits the outcome, then saves a JSON summary,
  the ranking tables and the standard plots under --results-dir.
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import List

from tunekit.core.config import TuningConfig, load_config
from tunekit.core.data import Dataset
from tunekit.experiments.hyperparameter_tuning import HyperparameterTuner
from tunekit.logging_utils import setup_logging
from tunekit.models.models_registry import get_model_and_space
from tunekit.prepare_dataset import load_csv, load_sample_dataset

CLASSIFICATION_MODELS = ["logistic_reg", "decision_tree", "rand_forest"]
REGRESSION_MODELS = ["linear_reg", "decision_tree", "rand_forest"]


def _load_data(args: argparse.Namespace) -> Dataset:
    if args.csv is not None:
        if not args.target:
            raise SystemExit("--target is required with --csv")
        return load_csv(args.csv, args.target)
    return load_sample_dataset(args.dataset)


def _build_config(args: argparse.Namespace) -> TuningConfig:
    if args.config is not None:
        return load_config(args.config)
    simplicity = [tuple(s.split(":", 1)) for s in args.simplicity or []]
    return TuningConfig(
        prop=args.prop,
        v=args.v,
        repeats=args.repeats,
        strata=args.strata,
        metrics=args.metrics,
        metric=args.metric,
        direction=args.direction,
        selection=args.selection,
        simplicity=simplicity,
        grid_type=args.grid_type,
        grid_size=args.grid_size,
        levels=args.levels,
        n_jobs=args.n_jobs,
        seed=args.seed,
    )


def _models_for(data: Dataset, choice: str) -> List[str]:
    if choice != "all":
        return [choice]
    return CLASSIFICATION_MODELS if data.outcome_type == "categorical" else REGRESSION_MODELS


def _save_plots(tuner: HyperparameterTuner, results_dir: Path) -> None:
    # Imported here so tuning runs without a plotting backend
    from tunekit.experiments.visualization import (
        export_summary_table,
        plot_coefficients,
        plot_confusion_matrix,
        plot_model_performance,
        plot_roc_curve,
    )

    plot_model_performance(tuner.results, results_dir)
    export_summary_table(tuner.results, results_dir)

    for name, res in tuner.results.items():
        if "error" in res:
            continue
        final = res["final_fit"]
        handle = final.model
        preds = final.predictions
        res["ranking"].to_csv(results_dir / f"{name}_ranking.csv", index=False)
        if handle.mode == "classification":
            plot_confusion_matrix(preds["truth"], preds[".pred"], labels=handle.classes,
                                  title=f"{name}\nConfusion Matrix", save_path=results_dir / f"{name}_confusion.png")
            if len(handle.classes) == 2:
                plot_roc_curve(preds, event_level=handle.classes[-1], save_path=results_dir / f"{name}_roc.png")
        model = res["model_spec"]
        if hasattr(model, "tidy"):
            plot_coefficients(model.tidy(handle), save_path=results_dir / f"{name}_coefficients.png")


def main() -> None:
    ap = argparse.ArgumentParser(description="Tune model hyperparameters with cross-validation")
    ap.add_argument("--dataset", default="breast_cancer", help="Bundled sample dataset name")
    ap.add_argument("--csv", type=Path, default=None, help="Local CSV file instead of a sample dataset")
    ap.add_argument("--target", default=None, help="Target column of --csv")
    ap.add_argument("--formula", default=None, help="Model formula (default: '<target> ~ .')")
    ap.add_argument("--model", choices=["linear_reg", "logistic_reg", "decision_tree", "rand_forest", "all"], default="all")
    ap.add_argument("--results-dir", type=Path, default=Path("results"))
    ap.add_argument("--config", type=Path, default=None, help="JSON tuning config; overrides the flags below")

    ap.add_argument("--prop", type=float, default=0.75)
    ap.add_argument("--v", type=int, default=10)
    ap.add_argument("--repeats", type=int, default=1)
    ap.add_argument("--strata", default=None)
    ap.add_argument("--metrics", nargs="+", default=None)
    ap.add_argument("--metric", default=None, help="Metric used for selection")
    ap.add_argument("--direction", choices=["maximize", "minimize"], default=None)
    ap.add_argument("--selection", choices=["best", "one_std_err"], default="best")
    ap.add_argument("--simplicity", nargs="+", default=None, help="param:asc|desc orderings for one_std_err")
    ap.add_argument("--grid-type", choices=["regular", "space_filling", "random"], default="regular")
    ap.add_argument("--grid-size", type=int, default=10)
    ap.add_argument("--levels", type=int, default=None)
    ap.add_argument("--n-jobs", type=int, default=1)
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--fast", action="store_true", help="Use the small default search spaces")
    ap.add_argument("--no-plots", action="store_true")
    ap.add_argument("--log-json", action="store_true")

    args = ap.parse_args()
    args.results_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(level=logging.INFO, to_file=True, log_dir=str(args.results_dir / "logs"), use_json=args.log_json)

    print("============================================================")
    print("STEP 1: Loading Data")
    print("============================================================")
    data = _load_data(args)
    config = _build_config(args)
    formula = args.formula or f"{data.target} ~ ."
    print(f"[data] rows={len(data)}, target={data.target}, outcome={data.outcome_type}")
    if data.outcome_type == "categorical":
        print(f"[data] balance={data.y.value_counts().to_dict()}")

    print("============================================================")
    print("STEP 2: Tuning Models")
    print("============================================================")
    tuner = HyperparameterTuner(config)
    experiments = []
    for name in _models_for(data, args.model):
        model, space = get_model_and_space(name, formula, seed=config.seed, fast=args.fast)
        experiments.append((name, data, model, space))
    tuner.tune_multiple_models(experiments)

    comparison = tuner.compare_models()
    print("\nModel comparison:")
    print(comparison.to_string(index=False))

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_path = args.results_dir / f"experiment_results_{stamp}.json"
    tuner.save_results(out_path)
    print(f"Saved summary: {out_path}")

    if not args.no_plots:
        _save_plots(tuner, args.results_dir)
        print(f"Saved plots under: {args.results_dir}")


if __name__ == "__main__":
    main()
