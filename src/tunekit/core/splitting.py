#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Train/test splitting with optional stratification.

Stratified splits shuffle and cut each stratum separately, so category
ratios are kept exactly up to rounding, and every stratum keeps at least
one record on each side of the cut.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype

from .data import Dataset, Split, ValidationSplit
from .errors import InsufficientDataError, InvalidProportionError

logger = logging.getLogger(__name__)


def strata_labels(data: Dataset, strata: str, breaks: int = 4) -> pd.Series:
    """
    Stratum label per record.

    A numeric column with many distinct values is binned into ``breaks``
    quantile bins; anything else is used as-is.
    """
    if strata not in data.frame.columns:
        raise KeyError(f"Stratification column '{strata}' not found in dataset")
    col = data.frame[strata]
    if is_numeric_dtype(col) and col.nunique() > 2 * breaks:
        binned = pd.qcut(col, q=breaks, duplicates="drop")
        logger.debug("Binned numeric strata '%s' into %d quantile groups", strata, binned.cat.categories.size)
        return binned.astype(str)
    return col.astype(str)


def group_ids(data: Dataset, strata: Optional[str], breaks: int = 4) -> Dict[str, np.ndarray]:
    """Record ids per stratum, strata in sorted order. One group when unstratified."""
    if strata is None:
        return {"": data.ids}
    labels = strata_labels(data, strata, breaks)
    groups = {}
    for key in sorted(labels.unique()):
        groups[key] = labels.index[labels.to_numpy() == key].to_numpy()
    return groups


def _cut_count(n: int, prop: float) -> int:
    return min(max(int(math.floor(prop * n)), 1), n - 1)


def _shuffle_and_cut(
    data: Dataset, prop: float, strata: Optional[str], rng: np.random.Generator, breaks: int
) -> Tuple[np.ndarray, np.ndarray]:
    if len(data) < 2:
        raise InsufficientDataError(f"Need at least 2 records to split, got {len(data)}")

    groups = group_ids(data, strata, breaks)
    for key, ids in groups.items():
        if len(ids) < 2:
            raise InsufficientDataError(
                f"Stratum '{key}' of '{strata}' has {len(ids)} record(s); at least 2 are needed"
            )

    first: List[np.ndarray] = []
    second: List[np.ndarray] = []
    for ids in groups.values():
        shuffled = ids[rng.permutation(len(ids))]
        cut = _cut_count(len(ids), prop)
        first.append(shuffled[:cut])
        second.append(shuffled[cut:])
    return np.concatenate(first), np.concatenate(second)


def _check_prop(prop: float) -> float:
    prop = float(prop)
    if not 0.0 < prop < 1.0:
        raise InvalidProportionError(f"prop must be in (0, 1); got {prop}")
    return prop


def initial_split(
    data: Dataset,
    prop: float = 0.75,
    strata: Optional[str] = None,
    seed: int = 0,
    strata_breaks: int = 4,
) -> Split:
    """
    Split a dataset into training and testing subsets.

    Args:
        data: Dataset to split
        prop: Proportion of records that go to training
        strata: Optional column whose category proportions are preserved
        seed: Seed for the shuffle
        strata_breaks: Quantile bins used when ``strata`` is numeric

    Returns:
        Split with disjoint train/test ids covering the whole dataset
    """
    prop = _check_prop(prop)
    rng = np.random.default_rng(seed)
    train_ids, test_ids = _shuffle_and_cut(data, prop, strata, rng, strata_breaks)

    logger.info(
        "Initial split (prop=%.2f, strata=%s, seed=%d): %d training, %d testing",
        prop, strata, seed, len(train_ids), len(test_ids),
    )
    return Split(data, train_ids, test_ids)


def initial_validation_split(
    data: Dataset,
    prop: Sequence[float] = (0.6, 0.2),
    strata: Optional[str] = None,
    seed: int = 0,
    strata_breaks: int = 4,
) -> ValidationSplit:
    """
    Three-way split into training, validation and testing.

    ``prop`` holds the training and validation proportions; the test set
    gets the remainder.
    """
    if len(prop) != 2:
        raise InvalidProportionError(f"prop must hold two proportions, got {list(prop)}")
    p_train, p_val = float(prop[0]), float(prop[1])
    if p_train <= 0 or p_val <= 0 or p_train + p_val >= 1:
        raise InvalidProportionError(
            f"Training and validation proportions must be positive and sum to < 1; got {p_train}, {p_val}"
        )

    rng = np.random.default_rng(seed)
    # First cut: train+validation vs test, then train vs validation inside it
    keep_ids, test_ids = _shuffle_and_cut(data, p_train + p_val, strata, rng, strata_breaks)
    keep = data.subset(keep_ids)
    train_ids, val_ids = _shuffle_and_cut(keep, p_train / (p_train + p_val), strata, rng, strata_breaks)

    logger.info(
        "Validation split (seed=%d): %d training, %d validation, %d testing",
        seed, len(train_ids), len(val_ids), len(test_ids),
    )
    return ValidationSplit(data, train_ids, val_ids, test_ids)
