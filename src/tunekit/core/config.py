# config.py
import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import InvalidFoldCountError, InvalidProportionError
from .metrics import get_metric, metric_direction

SELECTION_RULES = ("best", "one_std_err")
GRID_TYPES = ("regular", "space_filling", "random")


@dataclass
class TuningConfig:
    """Every knob of one tuning run; nothing is read from global state."""

    prop: float = 0.75
    v: int = 10
    repeats: int = 1
    strata: Optional[str] = None
    metrics: Optional[List[str]] = None
    metric: Optional[str] = None
    direction: Optional[str] = None
    selection: str = "best"
    simplicity: List[Tuple[str, str]] = field(default_factory=list)
    grid_type: str = "regular"
    grid_size: int = 10
    levels: Optional[int] = None
    n_jobs: int = 1
    seed: int = 42

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if not 0.0 < float(self.prop) < 1.0:
            raise InvalidProportionError(f"prop must be in (0, 1); got {self.prop}")
        if int(self.v) < 2:
            raise InvalidFoldCountError(f"v must be at least 2; got {self.v}")
        if int(self.repeats) < 1:
            raise InvalidFoldCountError(f"repeats must be at least 1; got {self.repeats}")
        for m in self.metrics or []:
            get_metric(m)
        if self.metric is not None:
            get_metric(self.metric)
            if self.metrics is not None and self.metric not in self.metrics:
                raise ValueError(f"Selection metric '{self.metric}' is not among metrics {self.metrics}")
            metric_direction(self.metric, self.direction)
        elif self.direction is not None:
            raise ValueError("direction needs a metric")
        if self.selection not in SELECTION_RULES:
            raise ValueError(f"selection must be one of {SELECTION_RULES}; got {self.selection}")
        if self.selection == "one_std_err" and not self.simplicity:
            raise ValueError("The one_std_err rule needs a simplicity ordering")
        if self.grid_type not in GRID_TYPES:
            raise ValueError(f"grid_type must be one of {GRID_TYPES}; got {self.grid_type}")
        if self.grid_type != "regular" and int(self.grid_size) < 1:
            raise ValueError(f"grid_size must be >= 1; got {self.grid_size}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TuningConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        d = dict(d)
        if "simplicity" in d:
            d["simplicity"] = [tuple(pair) for pair in d["simplicity"]]
        return cls(**d)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["simplicity"] = [list(pair) for pair in self.simplicity]
        return out


def load_config(path) -> TuningConfig:
    with open(Path(path), "r", encoding="utf-8") as f:
        return TuningConfig.from_dict(json.load(f))
