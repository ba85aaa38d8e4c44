# formula.py
import re
from typing import List, Tuple

_NAME_RE = re.compile(r"^[A-Za-z_.][A-Za-z0-9_.]*$|^`[^`]+`$")


def parse_formula(formula: str) -> Tuple[str, List[str]]:
    """
    Split ``"outcome ~ a + b"`` into ("outcome", ["a", "b"]).

    ``"outcome ~ ."`` means every other column and returns ["."]. Terms
    can be removed with ``-``, e.g. ``"y ~ . - id"``. Names containing
    spaces are written in backticks.
    """
    if formula.count("~") != 1:
        raise ValueError(f"Formula must contain exactly one '~': {formula!r}")
    lhs, rhs = (s.strip() for s in formula.split("~"))
    if not lhs or not rhs:
        raise ValueError(f"Formula needs both an outcome and predictors: {formula!r}")

    terms = []
    for sign, term in re.findall(r"([+-]?)\s*(`[^`]+`|[^+\-\s]+)", rhs):
        if not _NAME_RE.match(term) and term != ".":
            raise ValueError(f"Unsupported formula term {term!r}; only plain column names are allowed")
        terms.append(("-" if sign == "-" else "+", term.strip("`")))
    if not terms or terms[0][0] == "-":
        raise ValueError(f"Formula has no predictors: {formula!r}")

    return lhs.strip("`"), [("-" + t if s == "-" else t) for s, t in terms]


def resolve_predictors(formula: str, columns: List[str]) -> Tuple[str, List[str]]:
    """Outcome and concrete predictor columns of ``formula`` over ``columns``."""
    outcome, terms = parse_formula(formula)
    if outcome not in columns:
        raise KeyError(f"Outcome column '{outcome}' not found")

    included: List[str] = []
    excluded = set()
    for term in terms:
        if term.startswith("-"):
            excluded.add(term[1:])
        elif term == ".":
            included.extend(c for c in columns if c != outcome)
        else:
            if term not in columns:
                raise KeyError(f"Predictor column '{term}' not found")
            included.append(term)

    predictors = [c for c in dict.fromkeys(included) if c not in excluded and c != outcome]
    if not predictors:
        raise ValueError(f"Formula selects no predictors: {formula!r}")
    return outcome, predictors
