# linear_models.py
from typing import Any, Mapping

import numpy as np
import pandas as pd
from sklearn.linear_model import ElasticNet, LinearRegression, LogisticRegression

from .base import FittedModel, ModelSpec, is_missing


class _LinearFamily(ModelSpec):
    """
    Penalized linear models.

    params:
      - penalty: total regularization amount (0 or None means none)
      - mixture: share of L1 in the penalty, 0 = ridge, 1 = lasso
      - max_iter: solver iterations
    """

    tunable = ("penalty", "mixture")
    normalize = True

    def tidy(self, handle: FittedModel) -> pd.DataFrame:
        """Coefficient table with one row per term (and class for multinomial fits)."""
        est = handle.estimator
        names = ["(Intercept)"] + handle.feature_names()
        coef = np.atleast_2d(est.coef_)
        intercept = np.atleast_1d(est.intercept_)

        rows = []
        if coef.shape[0] == 1:
            for term, value in zip(names, np.r_[intercept[0], coef[0]]):
                rows.append({"term": term, "estimate": float(value)})
        else:
            for k, cls in enumerate(est.classes_):
                for term, value in zip(names, np.r_[intercept[k], coef[k]]):
                    rows.append({"term": term, "class": cls, "estimate": float(value)})
        return pd.DataFrame(rows)


class LinearRegressionSpec(_LinearFamily):
    name = "linear_reg"
    supported_modes = ("regression",)

    def make_estimator(self, params: Mapping[str, Any], mode: str, n_features: int):
        penalty = params.get("penalty")
        if is_missing(penalty) or float(penalty) <= 0:
            return LinearRegression()
        return ElasticNet(
            alpha=float(penalty),
            l1_ratio=float(params.get("mixture", 1.0)),
            max_iter=int(params.get("max_iter", 10000)),
        )


class LogisticRegressionSpec(_LinearFamily):
    name = "logistic_reg"
    supported_modes = ("classification",)

    def make_estimator(self, params: Mapping[str, Any], mode: str, n_features: int):
        penalty = params.get("penalty")
        max_iter = int(params.get("max_iter", 1000))
        if is_missing(penalty) or float(penalty) <= 0:
            return LogisticRegression(penalty=None, max_iter=max_iter)
        mixture = float(params.get("mixture", 0.0))
        if mixture <= 0:
            return LogisticRegression(C=1.0 / float(penalty), max_iter=max_iter)
        return LogisticRegression(
            C=1.0 / float(penalty),
            penalty="elasticnet",
            l1_ratio=mixture,
            solver="saga",
            max_iter=max_iter,
        )
