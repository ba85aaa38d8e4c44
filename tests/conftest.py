# tests/conftest.py
from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from tunekit.core.data import Dataset


class FakeModel:
    """
    Minimal fit/score capability for loop and selector tests.

    ``scores`` maps candidate param 'c' to the score returned on every fold;
    candidates whose 'c' is in ``fail_on`` raise during fit. With
    ``held_out`` set they only raise on folds that hold that record id out.
    """

    name = "fake"

    def __init__(self, scores=None, fail_on=(), held_out=None):
        self.scores = scores or {}
        self.fail_on = set(fail_on)
        self.held_out = held_out

    def fit(self, params, training):
        c = params.get("c")
        if c in self.fail_on:
            if self.held_out is None or self.held_out not in set(training.ids.tolist()):
                raise RuntimeError(f"did not converge for c={c}")
        return {"params": dict(params), "n": len(training)}

    def score(self, handle, validation, metric_names):
        value = self.scores.get(handle["params"].get("c"), 0.5)
        return {m: float(value) for m in metric_names}

    def predict(self, handle, data):
        return pd.DataFrame({".pred": np.zeros(len(data))}, index=data.frame.index)

    def default_metrics(self, data):
        return ["accuracy"]


@pytest.fixture
def fake_model_cls():
    return FakeModel


@pytest.fixture
def class_data() -> Dataset:
    """120 rows, imbalanced 3-class label plus a numeric and a categorical feature."""
    rng = np.random.default_rng(7)
    n = 120
    label = np.array(["a"] * 60 + ["b"] * 40 + ["c"] * 20)
    df = pd.DataFrame({
        "x1": rng.normal(size=n),
        "x2": rng.normal(size=n),
        "color": rng.choice(["red", "green", "blue"], size=n),
        "label": label,
    })
    return Dataset(df, "label")


@pytest.fixture
def binary_data() -> Dataset:
    """Linearly separable-ish binary problem."""
    rng = np.random.default_rng(11)
    n = 200
    x1 = rng.normal(size=n)
    x2 = rng.normal(size=n)
    logit = 2.5 * x1 - 1.5 * x2
    y = np.where(logit + rng.normal(scale=0.5, size=n) > 0, "yes", "no")
    return Dataset(pd.DataFrame({"x1": x1, "x2": x2, "noise": rng.normal(size=n), "outcome": y}), "outcome")


@pytest.fixture
def reg_data() -> Dataset:
    rng = np.random.default_rng(3)
    n = 150
    x1 = rng.normal(size=n)
    x2 = rng.uniform(-1, 1, size=n)
    grp = rng.choice(["g1", "g2"], size=n)
    y = 3.0 * x1 - 2.0 * x2 + np.where(grp == "g1", 1.0, -1.0) + rng.normal(scale=0.3, size=n)
    return Dataset(pd.DataFrame({"x1": x1, "x2": x2, "grp": grp, "y": y}), "y")
