# errors.py
from typing import Optional


class TuneError(Exception):
    """Base class for every error raised by tunekit."""


class InvalidProportionError(TuneError):
    pass


class InsufficientDataError(TuneError):
    pass


class InvalidFoldCountError(TuneError):
    pass


class EmptySearchSpaceError(TuneError):
    pass


class TuningAbortedError(TuneError):
    pass


class HoldoutLeakError(TuneError):
    pass


class FitFailure(TuneError):
    """
    One failed (candidate, fold) cell.

    The tuning loop does not raise it: the failure is kept next to the
    metric records so the aggregator can count the gap per candidate.
    """

    def __init__(self, candidate_index: int, fold_id: str, error: BaseException):
        super().__init__(candidate_index, fold_id, error)
        self.candidate_index = candidate_index
        self.fold_id = fold_id
        self.error = error

    @property
    def message(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"

    def to_dict(self) -> dict:
        return {
            "candidate_index": self.candidate_index,
            "fold_id": self.fold_id,
            "error": self.message,
        }

    def __str__(self) -> str:
        return f"candidate {self.candidate_index} on {self.fold_id} failed ({self.message})"


class NoValidFoldsError(TuneError):
    """Every cell of one candidate failed, so it has no aggregated metric."""

    def __init__(
        self,
        candidate_index: int,
        failure_count: int,
        config_id: Optional[str] = None,
        nan_count: int = 0,
    ):
        super().__init__(candidate_index, failure_count, config_id, nan_count)
        self.candidate_index = candidate_index
        self.failure_count = failure_count
        self.config_id = config_id or f"Config{candidate_index + 1:02d}"
        self.nan_count = nan_count

    def __str__(self) -> str:
        if not self.nan_count:
            return f"{self.config_id}: all {self.failure_count} resamples failed"
        total = self.failure_count + self.nan_count
        return (
            f"{self.config_id}: no valid value in {total} resamples "
            f"({self.failure_count} failed, {self.nan_count} returned NaN)"
        )
