# models_registry.py
from typing import Any, Dict, Optional, Tuple

from ..core.grid import Range
from .base import ModelSpec
from .linear_models import LinearRegressionSpec, LogisticRegressionSpec
from .tree_models import DecisionTreeSpec, RandomForestSpec

ALIASES = {
    "lr": "linear_reg",
    "linear": "linear_reg",
    "linear_reg": "linear_reg",
    "logreg": "logistic_reg",
    "logistic": "logistic_reg",
    "logistic_reg": "logistic_reg",
    "tree": "decision_tree",
    "cart": "decision_tree",
    "decision_tree": "decision_tree",
    "rf": "rand_forest",
    "forest": "rand_forest",
    "rand_forest": "rand_forest",
}

MODEL_CLASSES = {
    "linear_reg": LinearRegressionSpec,
    "logistic_reg": LogisticRegressionSpec,
    "decision_tree": DecisionTreeSpec,
    "rand_forest": RandomForestSpec,
}


def search_space(model: str, fast: bool = True) -> Dict[str, Any]:
    """Default search space per model family; ``fast`` keeps grids small."""
    key = canonical_name(model)
    if key in ("linear_reg", "logistic_reg"):
        return {
            "penalty": Range(1e-4, 1.0, count=4 if fast else 10, log=True),
            "mixture": [0.0, 1.0] if fast else [0.0, 0.25, 0.5, 0.75, 1.0],
        }
    if key == "decision_tree":
        return {
            "cost_complexity": Range(1e-4, 1e-1, count=3 if fast else 5, log=True),
            "tree_depth": [2, 4, 8] if fast else [1, 2, 4, 8, 15],
            "min_n": [2, 10] if fast else [2, 10, 20, 40],
        }
    if key == "rand_forest":
        return {
            "mtry": Range(1, 6, count=3, integer=True) if fast else Range(1, 10, count=5, integer=True),
            "trees": [100] if fast else [250, 500, 1000],
            "min_n": [2, 10] if fast else [2, 5, 10, 20, 40],
        }
    raise ValueError(f"Unknown model: {model}")


def canonical_name(model: str) -> str:
    try:
        return ALIASES[model.lower()]
    except KeyError:
        raise ValueError(f"Unknown model: {model}") from None


def get_model_and_space(
    model: str,
    formula: str,
    mode: Optional[str] = None,
    seed: int = 0,
    fast: bool = True,
) -> Tuple[ModelSpec, Dict[str, Any]]:
    """
    Return (spec, search_space) for a model name.

    spec follows the ModelSpec capabilities: fit / predict / score.
    """
    key = canonical_name(model)
    spec = MODEL_CLASSES[key](formula, mode=mode, seed=seed)
    return spec, search_space(key, fast=fast)
