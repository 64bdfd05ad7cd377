"""
Engine configuration: working precision and the safety ceilings used by the
simplifier and evaluator.
"""

import json
from dataclasses import dataclass, asdict, replace as _dc_replace
from importlib import resources
from typing import Dict, Any


@dataclass(frozen=True)
class EngineConfig:
    """Explicit knobs passed into every simplify/evaluate call"""
    precision: int = 128        # bits
    max_depth: int = 100        # recursion ceiling for tree walks
    max_iterations: int = 20    # rewrite passes before giving up on a fixed point
    max_magnitude: int = 1 << 24  # bits; larger intermediate values are not evaluated

    def __post_init__(self):
        for name in ("precision", "max_depth", "max_iterations", "max_magnitude"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    def replace(self, **changes) -> "EngineConfig":
        return _dc_replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(name: str = "engine_config") -> EngineConfig:
    """
    Load genetic_series/config/{name}.json
    """
    pkg = __package__                  # "genetic_series"
    resource = resources.files(pkg) / "config" / f"{name}.json"
    with resource.open("r", encoding="utf-8") as fp:
        data = json.load(fp)
    return EngineConfig(**data)


DEFAULT_CONFIG = load_config()
