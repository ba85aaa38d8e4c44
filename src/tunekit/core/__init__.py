# Core resampling and tuning components

from .cross_validation import stratified_kfold_indices, vfold_cv
from .data import Dataset, Fold, FoldSet, Split, ValidationSplit
from .errors import (
    EmptySearchSpaceError,
    FitFailure,
    HoldoutLeakError,
    InsufficientDataError,
    InvalidFoldCountError,
    InvalidProportionError,
    NoValidFoldsError,
    TuneError,
    TuningAbortedError,
)
from .final_fit import FinalFitResult, last_fit
from .grid import Candidate, Range, build_grid, grid_random, grid_regular, grid_space_filling
from .metrics import METRICS, compute_metrics, confusion_matrix, roc_curve
from .selection import Ranking, collect_metrics, rank_candidates, select_best, select_by_one_std_err, show_best
from .splitting import initial_split, initial_validation_split
from .tuning import MetricRecord, TuneResults, tune_grid

__all__ = [
    "Dataset",
    "Split",
    "ValidationSplit",
    "Fold",
    "FoldSet",
    "initial_split",
    "initial_validation_split",
    "vfold_cv",
    "stratified_kfold_indices",
    "Range",
    "Candidate",
    "grid_regular",
    "grid_space_filling",
    "grid_random",
    "build_grid",
    "tune_grid",
    "TuneResults",
    "MetricRecord",
    "collect_metrics",
    "rank_candidates",
    "show_best",
    "select_best",
    "select_by_one_std_err",
    "Ranking",
    "last_fit",
    "FinalFitResult",
    "METRICS",
    "compute_metrics",
    "confusion_matrix",
    "roc_curve",
    "TuneError",
    "InvalidProportionError",
    "InsufficientDataError",
    "InvalidFoldCountError",
    "EmptySearchSpaceError",
    "NoValidFoldsError",
    "FitFailure",
    "TuningAbortedError",
    "HoldoutLeakError",
]
