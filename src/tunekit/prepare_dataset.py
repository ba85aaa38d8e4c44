#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Sample datasets for the tuning walkthroughs.

- load_sample_dataset: scikit-learn's bundled tables as Datasets
- load_csv: a local CSV file with a named target column

Column names are normalized to snake_case so they can be used in
formulas without backticks.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path

import pandas as pd
from sklearn import datasets as sk_datasets

from .core.data import Dataset

logger = logging.getLogger(__name__)

SAMPLE_DATASETS = {
    "iris": (sk_datasets.load_iris, "species"),
    "breast_cancer": (sk_datasets.load_breast_cancer, "diagnosis"),
    "wine": (sk_datasets.load_wine, "cultivar"),
    "diabetes": (sk_datasets.load_diabetes, "progression"),
}


def clean_column_name(name: str) -> str:
    s = re.sub(r"\(.*?\)", "", str(name)).strip().lower()
    s = re.sub(r"[^0-9a-z]+", "_", s).strip("_")
    if not s or s[0].isdigit():
        s = f"x_{s}"
    return s


def load_sample_dataset(name: str) -> Dataset:
    """
    Load a bundled dataset.

    Classification targets are replaced by their class names (e.g.
    "malignant"/"benign") so predictions read naturally.
    """
    try:
        loader, target = SAMPLE_DATASETS[name]
    except KeyError:
        raise ValueError(f"Unknown sample dataset: {name}. Available: {sorted(SAMPLE_DATASETS)}") from None

    bunch = loader(as_frame=True)
    df = bunch.frame.copy()
    df.columns = [clean_column_name(c) for c in df.columns]
    df = df.rename(columns={"target": target})
    names = getattr(bunch, "target_names", None)
    if names is not None and len(names) and df[target].dtype.kind in "iu":
        df[target] = pd.Categorical.from_codes(df[target], [str(n) for n in names]).astype(str)

    logger.info("Loaded sample dataset '%s': %d rows, %d columns", name, len(df), df.shape[1])
    return Dataset(df, target)


def load_csv(path: str | Path, target: str, **read_csv_kwargs) -> Dataset:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV not found: {path}")
    df = pd.read_csv(path, **read_csv_kwargs)
    df.columns = [clean_column_name(c) for c in df.columns]
    target = clean_column_name(target)
    df = df.dropna(subset=[target]).reset_index(drop=True)
    logger.info("Loaded %s: %d rows, target=%s", path, len(df), target)
    return Dataset(df, target)
