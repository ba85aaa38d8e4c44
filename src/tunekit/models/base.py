#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Model family interface.

The tuning loop only talks to ``ModelSpec``: one method per capability
(fit, predict, score). Each model family is a subclass that knows how to
turn a parameter mapping into a scikit-learn estimator; preprocessing,
prediction and scoring are shared here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler
from pandas.api.types import is_numeric_dtype, is_bool_dtype

from ..core.data import Dataset
from ..core.metrics import compute_metrics, default_metrics, get_metric
from .formula import resolve_predictors

MODES = ("classification", "regression")


@dataclass
class FittedModel:
    """Handle returned by ``ModelSpec.fit``."""

    spec_name: str
    mode: str
    params: Dict[str, Any]
    outcome: str
    predictors: List[str]
    pipeline: Pipeline
    classes: Optional[List[Any]] = None
    n_train: int = 0
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def estimator(self):
        return self.pipeline.named_steps["model"]

    def feature_names(self) -> List[str]:
        return [str(n) for n in self.pipeline.named_steps["prep"].get_feature_names_out()]


class ModelSpec(ABC):
    """
    Base class for model families.

    Args:
        formula: ``"outcome ~ predictors"``; ``"y ~ ."`` uses every column
        mode: "classification", "regression" or None to follow the outcome type
        seed: Seed handed to randomized estimators
        **defaults: Parameter values used when a candidate omits them
    """

    name = "model"
    tunable: Sequence[str] = ()
    normalize = False
    supported_modes: Sequence[str] = MODES

    def __init__(self, formula: str, mode: Optional[str] = None, seed: int = 0, **defaults: Any):
        if mode is not None and mode not in self.supported_modes:
            raise ValueError(f"{self.name} does not support mode '{mode}'")
        self.formula = formula
        self.mode = mode
        self.seed = seed
        self.defaults = defaults

    def __repr__(self) -> str:
        return f"{type(self).__name__}(formula={self.formula!r}, mode={self.mode!r})"

    # ---------------- to implement per family ----------------

    @abstractmethod
    def make_estimator(self, params: Mapping[str, Any], mode: str, n_features: int):
        """Build an unfitted scikit-learn estimator for ``params``."""

    # ---------------- shared capabilities ----------------

    def resolve_mode(self, data: Dataset) -> str:
        if self.mode is not None:
            return self.mode
        mode = "classification" if data.outcome_type == "categorical" else "regression"
        if mode not in self.supported_modes:
            raise ValueError(f"{self.name} cannot model a {data.outcome_type} outcome")
        return mode

    def default_metrics(self, data: Dataset) -> List[str]:
        mode = self.resolve_mode(data)
        return default_metrics("categorical" if mode == "classification" else "continuous")

    def _preprocessor(self, frame: pd.DataFrame, predictors: List[str]) -> ColumnTransformer:
        numeric = [c for c in predictors if is_numeric_dtype(frame[c]) and not is_bool_dtype(frame[c])]
        categorical = [c for c in predictors if c not in numeric]
        transformers = []
        if numeric:
            transformers.append(("num", StandardScaler() if self.normalize else "passthrough", numeric))
        if categorical:
            transformers.append(("cat", OneHotEncoder(handle_unknown="ignore"), categorical))
        return ColumnTransformer(transformers, sparse_threshold=0.0)

    def fit(self, params: Mapping[str, Any], training: Dataset) -> FittedModel:
        params = {**self.defaults, **dict(params)}
        mode = self.resolve_mode(training)
        outcome, predictors = resolve_predictors(self.formula, list(training.frame.columns))

        frame = training.frame
        y = frame[outcome]
        classes = None
        if mode == "classification":
            classes = sorted(y.unique().tolist())
            if len(classes) < 2:
                raise ValueError(f"Training data has a single class ({classes[0]!r})")
            y = y.to_numpy()
        else:
            y = y.to_numpy(dtype=float)

        prep = self._preprocessor(frame, predictors)
        n_features = len(predictors)
        pipeline = Pipeline([("prep", prep), ("model", self.make_estimator(params, mode, n_features))])
        pipeline.fit(frame[predictors], y)

        return FittedModel(
            spec_name=self.name,
            mode=mode,
            params=params,
            outcome=outcome,
            predictors=predictors,
            pipeline=pipeline,
            classes=classes,
            n_train=len(frame),
        )

    def predict(self, handle: FittedModel, data: Dataset) -> pd.DataFrame:
        """
        Predictions indexed by record id.

        Columns: ``.pred`` plus ``.pred_<class>`` probabilities for
        classifiers that expose ``predict_proba``.
        """
        X = data.frame[handle.predictors]
        out = pd.DataFrame(index=data.frame.index)
        out[".pred"] = handle.pipeline.predict(X)
        if handle.mode == "classification" and hasattr(handle.pipeline, "predict_proba"):
            proba = handle.pipeline.predict_proba(X)
            fitted_classes = list(handle.estimator.classes_)
            for c in handle.classes:
                out[f".pred_{c}"] = proba[:, fitted_classes.index(c)]
        return out

    def score(self, handle: FittedModel, validation: Dataset, metric_names: Optional[Sequence[str]] = None) -> Dict[str, float]:
        if not metric_names:
            metric_names = default_metrics("categorical" if handle.mode == "classification" else "continuous")
        metric_names = list(metric_names)
        for name in metric_names:
            kind = get_metric(name).kind
            if (kind == "numeric") != (handle.mode == "regression"):
                raise ValueError(f"Metric '{name}' does not apply to {handle.mode} models")
        preds = self.predict(handle, validation)
        y_true = validation.frame[handle.outcome].to_numpy()
        prob_cols = [f".pred_{c}" for c in handle.classes or []]
        y_prob = preds[prob_cols].to_numpy() if prob_cols and all(c in preds for c in prob_cols) else None
        return compute_metrics(metric_names, y_true, preds[".pred"].to_numpy(), y_prob, handle.classes)


def clamp_int(value: Any, lo: int, hi: int) -> int:
    return int(min(max(int(round(float(value))), lo), hi))


def is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and np.isnan(value))
