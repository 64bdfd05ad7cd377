"""
Constant perturbation operators.

These are the only callers of the Candidate const-leaf handle API that change
values. They pick the numerator or the denominator with equal probability and
act on one randomly chosen Const leaf of that tree.
"""

from typing import Optional

import numpy as np

from .nodes import INT64_MIN, INT64_MAX
from .series import Candidate, ConstHandle

__all__ = [
    "perturb_const",
    "replace_random_const",
]


def _pick_handle(candidate: Candidate, rng: np.random.Generator) -> Optional[ConstHandle]:
    side = "denominator" if rng.random() < 0.5 else "numerator"
    handles = candidate.const_handles(side)
    if not handles:
        return None
    return handles[int(rng.integers(len(handles)))]


def perturb_const(candidate: Candidate, rng: np.random.Generator, max_delta: int = 5) -> Optional[ConstHandle]:
    """Shift one constant by a non-zero amount in [-max_delta, max_delta].

    A constant that lands on zero becomes 1. Returns the handle that was
    changed, or None when the chosen tree has no constants.
    """
    if max_delta < 1:
        raise ValueError("max_delta must be at least 1")
    handle = _pick_handle(candidate, rng)
    if handle is None:
        return None
    delta = int(rng.integers(1, max_delta + 1))
    if rng.random() < 0.5:
        delta = -delta
    value = min(max(candidate.get_const(handle) + delta, INT64_MIN), INT64_MAX)
    candidate.set_const(handle, value if value != 0 else 1)
    return handle


def replace_random_const(candidate: Candidate, rng: np.random.Generator,
                         max_value: int = 100) -> Optional[ConstHandle]:
    """Overwrite one constant with a fresh value in [-max_value, max_value], never zero"""
    if max_value < 1:
        raise ValueError("max_value must be at least 1")
    handle = _pick_handle(candidate, rng)
    if handle is None:
        return None
    value = int(rng.integers(-max_value, max_value + 1))
    candidate.set_const(handle, value if value != 0 else 1)
    return handle
