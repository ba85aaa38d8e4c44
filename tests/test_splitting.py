import numpy as np
import pandas as pd
import pytest

from tunekit.core.data import Dataset, Split
from tunekit.core.errors import InsufficientDataError, InvalidProportionError
from tunekit.core.splitting import initial_split, initial_validation_split


@pytest.mark.parametrize("prop", [0.1, 0.5, 0.75, 0.9])
def test_split_is_disjoint_and_exhaustive(class_data, prop):
    split = initial_split(class_data, prop=prop, seed=1)
    train, test = set(split.train_ids.tolist()), set(split.test_ids.tolist())
    assert not train & test
    assert train | test == set(class_data.ids.tolist())
    assert len(split.train_ids) + len(split.test_ids) == len(class_data)
    assert abs(len(split.train_ids) - prop * len(class_data)) <= 1


def test_stratified_split_preserves_category_counts(class_data):
    split = initial_split(class_data, prop=0.75, strata="label", seed=5)
    train_counts = split.training().y.value_counts()
    test_counts = split.testing().y.value_counts()
    for label, total in class_data.y.value_counts().items():
        assert abs(train_counts[label] - 0.75 * total) <= 1
        assert train_counts[label] + test_counts[label] == total


def test_stratified_split_of_pair_is_one_and_one():
    df = pd.DataFrame({"x": range(6), "k": ["a", "a", "b", "b", "c", "c"]})
    split = initial_split(Dataset(df, "k"), prop=0.5, strata="k", seed=0)
    assert split.training().y.value_counts().to_dict() == {"a": 1, "b": 1, "c": 1}
    assert split.testing().y.value_counts().to_dict() == {"a": 1, "b": 1, "c": 1}


def test_split_is_reproducible_with_seed(class_data):
    a = initial_split(class_data, seed=123, strata="label")
    b = initial_split(class_data, seed=123, strata="label")
    c = initial_split(class_data, seed=124, strata="label")
    assert np.array_equal(a.train_ids, b.train_ids)
    assert not np.array_equal(a.train_ids, c.train_ids)


@pytest.mark.parametrize("prop", [0, 1, -0.2, 1.5])
def test_invalid_proportion(class_data, prop):
    with pytest.raises(InvalidProportionError):
        initial_split(class_data, prop=prop)


def test_stratum_with_single_record_is_rejected():
    df = pd.DataFrame({"x": range(5), "k": ["a", "a", "b", "b", "c"]})
    with pytest.raises(InsufficientDataError):
        initial_split(Dataset(df, "k"), strata="k")


def test_too_small_dataset_is_rejected():
    with pytest.raises(InsufficientDataError):
        initial_split(Dataset(pd.DataFrame({"x": [1], "y": [0]}), "y"))


def test_numeric_strata_are_binned(reg_data):
    split = initial_split(reg_data, prop=0.8, strata="y", seed=2)
    assert len(split.train_ids) + len(split.test_ids) == len(reg_data)
    # every quartile of the outcome is represented in the test set
    quartiles = pd.qcut(reg_data.y, 4, labels=False)
    assert set(quartiles.loc[split.test_ids]) == {0, 1, 2, 3}


def test_missing_strata_column(class_data):
    with pytest.raises(KeyError):
        initial_split(class_data, strata="nope")


def test_string_index_is_used_as_record_id():
    df = pd.DataFrame({"x": range(8), "y": [0, 1] * 4}, index=[f"r{i}" for i in range(8)])
    split = initial_split(Dataset(df, "y"), prop=0.5, seed=0)
    assert set(split.train_ids.tolist()) | set(split.test_ids.tolist()) == set(df.index)


def test_validation_split_three_way(class_data):
    vs = initial_validation_split(class_data, prop=(0.6, 0.2), strata="label", seed=4)
    parts = [set(vs.train_ids.tolist()), set(vs.validation_ids.tolist()), set(vs.test_ids.tolist())]
    assert sum(len(p) for p in parts) == len(class_data)
    assert not (parts[0] & parts[1] or parts[0] & parts[2] or parts[1] & parts[2])
    assert abs(len(vs.test_ids) - 0.2 * len(class_data)) <= 3
    merged = vs.as_split()
    assert len(merged.train_ids) == len(vs.train_ids) + len(vs.validation_ids)


@pytest.mark.parametrize("prop", [(0.8, 0.2), (0.0, 0.5), (0.5,)])
def test_validation_split_rejects_bad_props(class_data, prop):
    with pytest.raises(InvalidProportionError):
        initial_validation_split(class_data, prop=prop)


def test_split_constructor_rejects_overlap(class_data):
    ids = class_data.ids
    with pytest.raises(ValueError):
        Split(class_data, ids[:70], ids[60:])
