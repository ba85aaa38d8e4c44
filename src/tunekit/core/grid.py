#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Hyperparameter grids.

A search space maps parameter names to either an explicit sequence of
values or a ``Range``. Three builders turn a space into candidates:

- grid_regular: full Cartesian product (deterministic)
- grid_space_filling: Latin hypercube sample of ``size`` points
- grid_random: uniform random sample of ``size`` points

The two sampled grids are deterministic given their seed.
"""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
from scipy.stats import qmc

from .errors import EmptySearchSpaceError


@dataclass(frozen=True)
class Range:
    """Numeric parameter range; ``count`` is only used by regular grids."""

    min: float
    max: float
    count: Optional[int] = None
    log: bool = False
    integer: bool = False

    def __post_init__(self):
        if self.min > self.max:
            raise ValueError(f"Range min ({self.min}) must not exceed max ({self.max})")
        if self.log and self.min <= 0:
            raise ValueError("Log-scaled ranges need a positive min")
        if self.count is not None and self.count < 1:
            raise ValueError(f"Range count must be >= 1; got {self.count}")

    def values(self, count: int) -> List[Any]:
        if self.log:
            vals = np.logspace(math.log10(self.min), math.log10(self.max), count)
        else:
            vals = np.linspace(self.min, self.max, count)
        if self.integer:
            # Rounding can collapse neighbours on narrow ranges
            return list(dict.fromkeys(int(round(v)) for v in vals))
        return [float(v) for v in vals]

    def from_unit(self, u: float) -> Any:
        if self.log:
            lo, hi = math.log10(self.min), math.log10(self.max)
            val = 10 ** (lo + u * (hi - lo))
        else:
            val = self.min + u * (self.max - self.min)
        if self.integer:
            return int(min(max(round(val), math.ceil(self.min)), math.floor(self.max)))
        return float(val)


SearchSpace = Mapping[str, Union[Range, Sequence[Any]]]


@dataclass(frozen=True)
class Candidate:
    index: int
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def config_id(self) -> str:
        return f"Config{self.index + 1:02d}"

    def __hash__(self) -> int:
        return hash((self.index, tuple(sorted((k, repr(v)) for k, v in self.params.items()))))


def _check_space(space: SearchSpace) -> None:
    if not space:
        raise EmptySearchSpaceError("Search space declares no parameters")
    for name, spec in space.items():
        if isinstance(spec, Range):
            continue
        if isinstance(spec, (str, bytes)) or not isinstance(spec, Sequence):
            raise ValueError(f"Parameter '{name}' must be a Range or a sequence of values")
        if len(spec) == 0:
            raise ValueError(f"Parameter '{name}' has no candidate values")


def _from_unit(spec: Union[Range, Sequence[Any]], u: float) -> Any:
    if isinstance(spec, Range):
        return spec.from_unit(u)
    return spec[min(int(math.floor(u * len(spec))), len(spec) - 1)]


def _to_candidates(names: List[str], rows) -> List[Candidate]:
    return [Candidate(i, dict(zip(names, row))) for i, row in enumerate(rows)]


def grid_regular(space: SearchSpace, levels: Optional[int] = None) -> List[Candidate]:
    """
    Cartesian product of every parameter's values.

    Parameters vary in declaration order with the last one varying
    fastest, so ``{a: [1, 2], b: [10, 20]}`` gives (1,10), (1,20), (2,10),
    (2,20).

    Args:
        space: Search space declaration
        levels: Default number of values for ranges without ``count``

    Returns:
        Candidates indexed by their grid position
    """
    _check_space(space)
    names = list(space.keys())
    axes = []
    for name in names:
        spec = space[name]
        if isinstance(spec, Range):
            axes.append(spec.values(spec.count or levels or 3))
        else:
            axes.append(list(spec))
    return _to_candidates(names, itertools.product(*axes))


def grid_space_filling(space: SearchSpace, size: int, seed: int = 0) -> List[Candidate]:
    """Latin hypercube design of ``size`` candidates over ``space``."""
    _check_space(space)
    if size < 1:
        raise ValueError(f"Grid size must be >= 1; got {size}")
    names = list(space.keys())
    sampler = qmc.LatinHypercube(d=len(names), seed=np.random.default_rng(seed))
    unit = sampler.random(n=size)
    rows = [[_from_unit(space[n], u) for n, u in zip(names, point)] for point in unit]
    return _to_candidates(names, rows)


def grid_random(space: SearchSpace, size: int, seed: int = 0) -> List[Candidate]:
    """Independent uniform draws of ``size`` candidates over ``space``."""
    _check_space(space)
    if size < 1:
        raise ValueError(f"Grid size must be >= 1; got {size}")
    names = list(space.keys())
    unit = np.random.default_rng(seed).random((size, len(names)))
    rows = [[_from_unit(space[n], u) for n, u in zip(names, point)] for point in unit]
    return _to_candidates(names, rows)


def build_grid(
    space: SearchSpace,
    grid_type: str = "regular",
    size: Optional[int] = None,
    levels: Optional[int] = None,
    seed: int = 0,
) -> List[Candidate]:
    if grid_type == "regular":
        return grid_regular(space, levels=levels)
    if grid_type in ("space_filling", "latin_hypercube"):
        return grid_space_filling(space, size or 10, seed=seed)
    if grid_type == "random":
        return grid_random(space, size or 10, seed=seed)
    raise ValueError(f"Unknown grid type: {grid_type}")
