#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Standalone script to plot results from an experiment results JSON file
"""

import argparse
import json
from pathlib import Path

from tunekit.experiments.visualization import export_summary_table, plot_model_performance


def _latest(results_dir: Path):
    files = sorted(results_dir.glob("experiment_results_*.json"))
    return files[-1] if files else None


def main():
    ap = argparse.ArgumentParser(description="Plot a saved experiment summary")
    ap.add_argument("--results-dir", type=Path, default=Path("results"))
    ap.add_argument("--results-file", type=Path, default=None, help="Default: most recent experiment_results_*.json")
    args = ap.parse_args()

    results_file = args.results_file or _latest(args.results_dir)
    if results_file is None or not results_file.exists():
        print(f"Error: no results file found in {args.results_dir}")
        return

    print(f"Loading results from: {results_file}")
    with open(results_file, "r", encoding="utf-8") as f:
        data = json.load(f)

    results = data.get("results", {})
    if not results:
        print("Error: No tuning results found in the file")
        return
    print(f"Found {len(results)} models:")
    for model_name, res in results.items():
        status = "error" if "error" in res else f"{res['metric']}={res['mean_cv_score']:.4f}"
        print(f"  - {model_name} ({status})")

    print("\nGenerating visualizations...")
    plot_model_performance(results, args.results_dir)
    print(f"✓ Model performance bar chart saved to {args.results_dir / 'model_performance_bar.png'}")
    export_summary_table(results, args.results_dir)
    print(f"✓ Summary table saved to {args.results_dir / 'model_summary.csv'} and model_summary.md")

    print("\nVisualization complete!")


if __name__ == "__main__":
    main()
