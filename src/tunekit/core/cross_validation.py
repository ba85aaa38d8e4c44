# cross_validation.py
import logging
from typing import List, Optional, Tuple

import numpy as np

from .data import Dataset, Fold, FoldSet
from .errors import InvalidFoldCountError
from .splitting import group_ids

logger = logging.getLogger(__name__)


def stratified_kfold_indices(
    data: Dataset, k: int, strata: Optional[str] = None, seed: int = 0, strata_breaks: int = 4
) -> List[Tuple[np.ndarray, np.ndarray]]:
    """(train_ids, validation_ids) per fold, in fold order."""
    rng = np.random.default_rng(seed)
    groups = group_ids(data, strata, strata_breaks)

    # Shuffle inside each stratum, then deal records out round-robin; the
    # counter carries over between strata so fold sizes stay within one.
    fold_of = {}
    pos = 0
    for key, ids in groups.items():
        if strata is not None and len(ids) < k:
            logger.warning("Stratum '%s' has %d records, fewer than %d folds", key, len(ids), k)
        for rid in ids[rng.permutation(len(ids))]:
            fold_of[rid] = pos % k
            pos += 1

    all_ids = data.ids
    assigned = np.array([fold_of[rid] for rid in all_ids])
    out = []
    for j in range(k):
        out.append((all_ids[assigned != j], all_ids[assigned == j]))
    return out


def vfold_cv(
    data: Dataset,
    v: int = 10,
    strata: Optional[str] = None,
    seed: int = 0,
    repeats: int = 1,
    strata_breaks: int = 4,
) -> FoldSet:
    """
    V-fold cross-validation folds over ``data``.

    Repeat ``r`` is shuffled with ``seed + r`` so repeated folds differ
    but stay reproducible.
    """
    v = int(v)
    if v < 2:
        raise InvalidFoldCountError(f"v must be at least 2; got {v}")
    if v > len(data):
        raise InvalidFoldCountError(f"v={v} exceeds the number of records ({len(data)})")
    if repeats < 1:
        raise InvalidFoldCountError(f"repeats must be at least 1; got {repeats}")

    folds = []
    for r in range(repeats):
        for j, (tr, va) in enumerate(stratified_kfold_indices(data, v, strata, seed + r, strata_breaks)):
            fold_id = f"Fold{j + 1:02d}" if repeats == 1 else f"Repeat{r + 1}/Fold{j + 1:02d}"
            folds.append(Fold(fold_id, tr, va))

    logger.info("Created %d-fold CV x %d repeat(s) (strata=%s, seed=%d)", v, repeats, strata, seed)
    return FoldSet(data, folds, v=v, repeats=repeats)
