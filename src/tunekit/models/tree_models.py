# tree_models.py
from typing import Any, Mapping

import pandas as pd
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from .base import FittedModel, ModelSpec, clamp_int, is_missing


class _TreeFamily(ModelSpec):
    def importance(self, handle: FittedModel) -> pd.DataFrame:
        """Impurity-based importance per encoded feature, largest first."""
        imp = handle.estimator.feature_importances_
        df = pd.DataFrame({"term": handle.feature_names(), "importance": imp})
        return df.sort_values("importance", ascending=False, kind="mergesort").reset_index(drop=True)


class DecisionTreeSpec(_TreeFamily):
    """
    params:
      - cost_complexity: minimal cost-complexity pruning alpha
      - tree_depth: maximum depth (None = unlimited)
      - min_n: minimum records in a node to split it
    """

    name = "decision_tree"
    tunable = ("cost_complexity", "tree_depth", "min_n")

    def make_estimator(self, params: Mapping[str, Any], mode: str, n_features: int):
        depth = params.get("tree_depth")
        kwargs = dict(
            ccp_alpha=float(params.get("cost_complexity", 0.0)),
            max_depth=None if is_missing(depth) else max(1, int(depth)),
            min_samples_split=max(2, int(params.get("min_n", 2))),
            random_state=self.seed,
        )
        if mode == "classification":
            return DecisionTreeClassifier(**kwargs)
        return DecisionTreeRegressor(**kwargs)


class RandomForestSpec(_TreeFamily):
    """
    params:
      - mtry: predictors sampled at each split (clamped to the predictor count)
      - trees: number of trees
      - min_n: minimum records in a node to split it
    """

    name = "rand_forest"
    tunable = ("mtry", "trees", "min_n")

    def make_estimator(self, params: Mapping[str, Any], mode: str, n_features: int):
        mtry = params.get("mtry")
        if is_missing(mtry):
            max_features = "sqrt" if mode == "classification" else 1.0
        else:
            max_features = clamp_int(mtry, 1, max(1, n_features))
        kwargs = dict(
            n_estimators=max(1, int(params.get("trees", 500))),
            max_features=max_features,
            min_samples_split=max(2, int(params.get("min_n", 2))),
            n_jobs=int(params.get("n_jobs", 1)),
            random_state=self.seed,
        )
        if mode == "classification":
            return RandomForestClassifier(**kwargs)
        return RandomForestRegressor(**kwargs)
