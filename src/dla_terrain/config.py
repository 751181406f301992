from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

import numpy as np

MIN_SIZE = 4
MAX_SIZE = 4096

# Range used when a run asks for a fresh seed instead of the configured one.
RANDOM_SEED_LOW = -100_000
RANDOM_SEED_HIGH = 100_000


def is_power_of_two(v: int) -> bool:
    return v > 0 and (v & (v - 1)) == 0


def _is_integer(v: Any) -> bool:
    return isinstance(v, (int, np.integer)) and not isinstance(v, bool)


@dataclass(frozen=True)
class GenerationConfig:
    """Parameters for one multi-resolution DLA terrain run."""

    final_size: int = 1024
    initial_density: float = 0.15
    progressive_loosening: bool = True
    loosen_factor: float = 0.85
    max_walk_steps: int = 500
    seed: int = 12345
    use_random_seed: bool = False
    max_total_attempts: Optional[int] = None  # walker launches across the run
    time_limit: Optional[float] = None  # seconds
    verbose: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        size = self.final_size
        if not _is_integer(size):
            raise ValueError(f"final_size must be an integer, got {size!r}")
        if not is_power_of_two(int(size)) or not MIN_SIZE <= size <= MAX_SIZE:
            raise ValueError(
                f"final_size must be a power of two in [{MIN_SIZE}, {MAX_SIZE}], got {size}"
            )
        if not 0.0 <= self.initial_density <= 1.0:
            raise ValueError(
                f"initial_density must lie in [0, 1], got {self.initial_density}"
            )
        if not 0.0 <= self.loosen_factor <= 1.0:
            raise ValueError(f"loosen_factor must lie in [0, 1], got {self.loosen_factor}")
        if not _is_integer(self.max_walk_steps):
            raise ValueError(f"max_walk_steps must be an integer, got {self.max_walk_steps!r}")
        if self.max_walk_steps < 1:
            raise ValueError(f"max_walk_steps must be >= 1, got {self.max_walk_steps}")
        if self.max_total_attempts is not None and self.max_total_attempts < 0:
            raise ValueError(
                f"max_total_attempts must be non-negative, got {self.max_total_attempts}"
            )
        if self.time_limit is not None and self.time_limit <= 0.0:
            raise ValueError(f"time_limit must be positive, got {self.time_limit}")

    @classmethod
    def from_dict(cls, params: Mapping[str, Any] | None = None) -> "GenerationConfig":
        """Build a config from a (possibly partial) mapping, e.g. a loaded JSON/TOML file."""
        return cls(**dict(params or {}))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def resolve_seed(config: GenerationConfig) -> int:
    """
    Return the seed a run should use.

    In random-seed mode a fresh seed is drawn from OS entropy; the drawn value
    is returned so the run can be reproduced later with ``use_random_seed=False``.
    """
    if config.use_random_seed:
        entropy_rng = np.random.default_rng()
        return int(entropy_rng.integers(RANDOM_SEED_LOW, RANDOM_SEED_HIGH))
    return int(config.seed)


def make_rng(seed: int) -> np.random.Generator:
    """Create the run's PRNG stream. Negative seeds are folded into the uint64 range."""
    return np.random.default_rng(int(seed) % (1 << 64))


__all__ = [
    "GenerationConfig",
    "is_power_of_two",
    "make_rng",
    "resolve_seed",
]
