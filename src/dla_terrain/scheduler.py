"""
Multi-resolution DLA growth driver.

The run is a small state machine:

    SEEDED -> GROWING(4) -> UPSCALING(4 -> 8) -> GROWING(8) -> ... -> GROWING(N) -> DONE

At every resolution walkers are launched until the density target is met or
the consecutive-failure budget runs out; the grid and its height field are
then doubled together. Density decays by ``loosen_factor`` per transition
when progressive loosening is on.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

from . import utils
from .config import MIN_SIZE, GenerationConfig, make_rng, resolve_seed
from .grid import FillCounter, Grid
from .heightfield import HeightFieldAccumulator
from .upscale import CONNECTOR_WEIGHTS, ConnectorWeights, Upscaler
from .walker import RandomWalkAggregator

BUDGET_PER_TARGET = 10


class Stage(Enum):
    SEEDED = "seeded"
    GROWING = "growing"
    UPSCALING = "upscaling"
    DONE = "done"


@dataclass
class LevelReport:
    """Bookkeeping for one resolution of a run."""

    size: int
    density: float
    target: int = 0
    placed: int = 0
    launched: int = 0
    failures: int = 0
    budget_exhausted: bool = False
    ceiling_hit: bool = False
    fill_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def density_target(size: int, density: float) -> int:
    """Number of occupied cells aimed for at ``size`` (round half to even)."""
    return int(round(size * size * density))


def density_schedule(config: GenerationConfig) -> List[tuple[int, float]]:
    """(size, density) for every resolution the run will grow at."""
    schedule = []
    size = MIN_SIZE
    density = config.initial_density
    while size <= config.final_size:
        schedule.append((size, density))
        size *= 2
        if config.progressive_loosening:
            density *= config.loosen_factor
    return schedule


def grow_to_density(
    grid: Grid,
    counter: FillCounter,
    aggregator: RandomWalkAggregator,
    density: float,
    *,
    attempts_left: Optional[int] = None,
    deadline: Optional[float] = None,
) -> LevelReport:
    """
    Launch walkers until ``grid`` reaches ``density`` or too many fail in a row.

    The consecutive-failure budget is ten times the target. Running out of it
    is not an error: the grid is simply left sparser than requested.
    ``attempts_left`` (walker launches) and ``deadline`` (``time.perf_counter``
    value) cap the work independently of the budget.
    """
    n = grid.size
    target = density_target(n, density)
    remaining = max(0, target - counter.value)
    attempt_budget = target * BUDGET_PER_TARGET
    report = LevelReport(size=n, density=density, target=target)

    failures = 0
    while remaining > 0 and failures < attempt_budget:
        if attempts_left is not None and report.launched >= attempts_left:
            report.ceiling_hit = True
            break
        if deadline is not None and time.perf_counter() >= deadline:
            report.ceiling_hit = True
            break

        report.launched += 1
        if aggregator.try_place(grid, counter):
            remaining -= 1
            report.placed += 1
            failures = 0
        else:
            failures += 1

    report.failures = failures
    report.budget_exhausted = remaining > 0 and failures >= attempt_budget
    report.fill_count = counter.value
    return report


class LevelScheduler:
    """
    Drives one generation run stage by stage.

    Owns the run's Generator, grid, height field and fill counter; nothing is
    shared with other schedulers, so independent runs may execute in parallel.
    """

    def __init__(
        self,
        config: GenerationConfig | None = None,
        *,
        weights: ConnectorWeights = CONNECTOR_WEIGHTS,
    ) -> None:
        self.config = config or GenerationConfig()
        self.seed = resolve_seed(self.config)
        self.rng = make_rng(self.seed)

        self.aggregator = RandomWalkAggregator(self.rng, self.config.max_walk_steps)
        self.upscaler = Upscaler(self.rng, weights)
        self.height_field = HeightFieldAccumulator()

        self.size = MIN_SIZE
        self.density = self.config.initial_density
        self.grid = Grid.seeded(self.size)
        self.counter = FillCounter(1)
        self.stage = Stage.SEEDED
        self.reports: List[LevelReport] = []

        self.total_launched = 0
        self.ceiling_hit = False
        self._t_start: Optional[float] = None
        self._deadline: Optional[float] = None
        self.elapsed = 0.0

    @property
    def heights(self) -> Optional[np.ndarray]:
        return self.height_field.heights

    @property
    def done(self) -> bool:
        return self.stage is Stage.DONE

    def _log(self, message: str) -> None:
        if self.config.verbose:
            print(f"[dla] {message}")

    def _start_clock(self) -> None:
        self._t_start = time.perf_counter()
        if self.config.time_limit is not None:
            self._deadline = self._t_start + self.config.time_limit

    def _attempts_left(self) -> Optional[int]:
        if self.config.max_total_attempts is None:
            return None
        return max(0, self.config.max_total_attempts - self.total_launched)

    # ------------------------------------------------------------------ stages
    def _grow(self) -> None:
        if self.ceiling_hit:
            report = LevelReport(
                size=self.size,
                density=self.density,
                target=density_target(self.size, self.density),
                ceiling_hit=True,
                fill_count=self.counter.value,
            )
        else:
            report = grow_to_density(
                self.grid,
                self.counter,
                self.aggregator,
                self.density,
                attempts_left=self._attempts_left(),
                deadline=self._deadline,
            )
            self.total_launched += report.launched
            self.ceiling_hit = report.ceiling_hit
        self.reports.append(report)
        self._log(
            f"{self.size}x{self.size}: target={report.target}, placed={report.placed}, "
            f"fill={report.fill_count}"
            + (", budget exhausted" if report.budget_exhausted else "")
            + (", run ceiling reached" if report.ceiling_hit else "")
        )

        if self.size == MIN_SIZE:
            self.height_field.start(self.grid)

    def _upscale(self) -> None:
        self.grid = self.upscaler(self.grid, self.counter)
        self.height_field.advance(self.grid)
        self.size = self.grid.size
        if self.config.progressive_loosening:
            self.density *= self.config.loosen_factor

    def step(self) -> Stage:
        """Perform the current stage and move to the next one."""
        if self.stage is Stage.DONE:
            raise RuntimeError("Generation has already finished.")
        if self._t_start is None:
            self._start_clock()

        if self.stage is Stage.SEEDED:
            self.stage = Stage.GROWING
        elif self.stage is Stage.GROWING:
            self._grow()
            if self.size < self.config.final_size:
                self.stage = Stage.UPSCALING
            else:
                self.stage = Stage.DONE
        elif self.stage is Stage.UPSCALING:
            self._upscale()
            self.stage = Stage.GROWING

        self.elapsed = time.perf_counter() - self._t_start
        return self.stage

    def run(self) -> utils.TerrainResult:
        """Run all remaining stages and return the final grids."""
        while not self.done:
            self.step()
        self._log(
            f"Generation completed: {self.size}x{self.size}, {self.counter.value} cells "
            f"in {self.elapsed:.2f}s (seed={self.seed})"
        )
        return self.result()

    def result(self) -> utils.TerrainResult:
        if not self.done:
            raise RuntimeError("Generation has not finished. Call run() first.")
        meta = {
            "model": "dla_terrain",
            "seed": self.seed,
            "config": self.config.to_dict(),
            "levels": [r.to_dict() for r in self.reports],
            "fill_count": int(self.counter.value),
            "total_launched": int(self.total_launched),
            "ceiling_hit": bool(self.ceiling_hit),
            "time_elapsed": float(self.elapsed),
        }
        return utils.TerrainResult(
            occupied=self.grid.cells.copy(),
            heights=self.heights.copy(),
            meta=meta,
        )


def run_model(config: GenerationConfig | dict | None = None) -> utils.TerrainResult:
    """
    Generate a DLA terrain and return a TerrainResult.
    """
    if config is None:
        config = GenerationConfig()
    elif isinstance(config, dict):
        config = GenerationConfig.from_dict(config)
    return LevelScheduler(config).run()


__all__ = [
    "LevelReport",
    "LevelScheduler",
    "Stage",
    "density_schedule",
    "density_target",
    "grow_to_density",
    "run_model",
]
