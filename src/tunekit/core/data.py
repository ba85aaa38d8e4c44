#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Data containers shared by the resampling and tuning code.

- Dataset: a DataFrame plus its target column; the index is the record id
- Split / ValidationSplit: disjoint, exhaustive partitions of one Dataset
- Fold / FoldSet: cross-validation folds derived from one Dataset

Subsets are stored as record ids and materialized on demand, so a split
never copies the underlying frame until a subset is asked for.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_integer_dtype, is_numeric_dtype

# Integer targets with at most this many levels are treated as class labels
MAX_INTEGER_CLASSES = 10


@dataclass(frozen=True, eq=False)
class Dataset:
    frame: pd.DataFrame
    target: str

    def __post_init__(self):
        if self.target not in self.frame.columns:
            raise KeyError(f"Target column '{self.target}' not found in dataset")
        if not self.frame.index.is_unique:
            raise ValueError("Dataset index must be unique; it is used as the record id")

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def ids(self) -> np.ndarray:
        return self.frame.index.to_numpy()

    @property
    def y(self) -> pd.Series:
        return self.frame[self.target]

    @property
    def features(self) -> List[str]:
        return [c for c in self.frame.columns if c != self.target]

    @property
    def outcome_type(self) -> str:
        """Either 'categorical' or 'continuous'."""
        y = self.y
        if is_bool_dtype(y) or not is_numeric_dtype(y):
            return "categorical"
        if is_integer_dtype(y) and y.nunique() <= MAX_INTEGER_CLASSES:
            return "categorical"
        return "continuous"

    def subset(self, ids: Sequence) -> "Dataset":
        return Dataset(self.frame.loc[list(ids)], self.target)


def _check_partition(data: Dataset, parts: Sequence[np.ndarray]) -> None:
    seen = set()
    total = 0
    for part in parts:
        part_set = set(part.tolist())
        if len(part_set) != len(part) or seen & part_set:
            raise ValueError("Split subsets must be disjoint")
        seen |= part_set
        total += len(part)
    if total != len(data) or seen != set(data.ids.tolist()):
        raise ValueError("Split subsets must cover the whole dataset")


@dataclass(frozen=True, eq=False)
class Split:
    data: Dataset
    train_ids: np.ndarray
    test_ids: np.ndarray

    def __post_init__(self):
        _check_partition(self.data, [self.train_ids, self.test_ids])

    def training(self) -> Dataset:
        return self.data.subset(self.train_ids)

    def testing(self) -> Dataset:
        return self.data.subset(self.test_ids)

    def __repr__(self) -> str:
        return f"<Training/Testing/Total> <{len(self.train_ids)}/{len(self.test_ids)}/{len(self.data)}>"


@dataclass(frozen=True, eq=False)
class ValidationSplit:
    data: Dataset
    train_ids: np.ndarray
    validation_ids: np.ndarray
    test_ids: np.ndarray

    def __post_init__(self):
        _check_partition(self.data, [self.train_ids, self.validation_ids, self.test_ids])

    def training(self) -> Dataset:
        return self.data.subset(self.train_ids)

    def validation(self) -> Dataset:
        return self.data.subset(self.validation_ids)

    def testing(self) -> Dataset:
        return self.data.subset(self.test_ids)

    def as_split(self) -> Split:
        """Train + validation merged against the untouched test set."""
        return Split(
            self.data,
            np.concatenate([self.train_ids, self.validation_ids]),
            self.test_ids,
        )

    def __repr__(self) -> str:
        return (
            f"<Training/Validation/Testing/Total> <{len(self.train_ids)}/"
            f"{len(self.validation_ids)}/{len(self.test_ids)}/{len(self.data)}>"
        )


@dataclass(frozen=True, eq=False)
class Fold:
    fold_id: str
    train_ids: np.ndarray
    validation_ids: np.ndarray


@dataclass(frozen=True, eq=False)
class FoldSet:
    data: Dataset
    folds: List[Fold] = field(default_factory=list)
    v: int = 0
    repeats: int = 1

    def __len__(self) -> int:
        return len(self.folds)

    def __iter__(self) -> Iterator[Fold]:
        return iter(self.folds)

    def __getitem__(self, i: int) -> Fold:
        return self.folds[i]

    @property
    def fold_ids(self) -> List[str]:
        return [f.fold_id for f in self.folds]

    def analysis(self, i: int) -> Dataset:
        return self.data.subset(self.folds[i].train_ids)

    def assessment(self, i: int) -> Dataset:
        return self.data.subset(self.folds[i].validation_ids)
