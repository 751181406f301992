"""
End-to-end tests for the multi-resolution growth driver.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from src.dla_terrain.config import GenerationConfig, make_rng
from src.dla_terrain.grid import FillCounter, Grid
from src.dla_terrain.scheduler import (
    LevelScheduler,
    Stage,
    density_schedule,
    density_target,
    grow_to_density,
    run_model,
)
from src.dla_terrain.walker import RandomWalkAggregator


def small_config(**overrides):
    params = dict(final_size=32, initial_density=0.15, max_walk_steps=300, seed=42)
    params.update(overrides)
    return GenerationConfig(**params)


def test_scheduler_starts_from_a_single_seed():
    scheduler = LevelScheduler(small_config())
    assert scheduler.stage is Stage.SEEDED
    assert scheduler.grid.size == 4
    assert scheduler.grid.occupied_coords().tolist() == [[2, 2]]
    assert scheduler.counter.value == 1
    assert scheduler.heights is None


@pytest.mark.parametrize("size", [4, 8, 32, 64])
def test_output_dimensions_match_final_size(size):
    result = run_model(small_config(final_size=size))
    assert result.occupied.shape == (size, size)
    assert result.heights.shape == (size, size)
    assert result.occupied.dtype == bool
    assert len(result.meta["levels"]) == int(np.log2(size)) - 1


def test_stage_sequence():
    scheduler = LevelScheduler(small_config(final_size=8))
    stages = [scheduler.stage]
    while not scheduler.done:
        stages.append(scheduler.step())
    assert stages == [
        Stage.SEEDED,
        Stage.GROWING,
        Stage.UPSCALING,
        Stage.GROWING,
        Stage.DONE,
    ]
    with pytest.raises(RuntimeError):
        scheduler.step()


def test_same_seed_reproduces_every_checkpoint():
    config = small_config(final_size=64)
    a = run_model(config)
    b = run_model(config)
    assert np.array_equal(a.occupied, b.occupied)
    assert a.heights.tobytes() == b.heights.tobytes()
    assert [lvl["fill_count"] for lvl in a.meta["levels"]] == [
        lvl["fill_count"] for lvl in b.meta["levels"]
    ]


def test_different_seeds_give_different_terrains():
    a = run_model(small_config(final_size=64, seed=1))
    b = run_model(small_config(final_size=64, seed=2))
    assert not np.array_equal(a.occupied, b.occupied)


def test_fill_counter_matches_grid_and_heights_stay_non_negative():
    scheduler = LevelScheduler(small_config(final_size=64, initial_density=0.3))
    while not scheduler.done:
        scheduler.step()
        assert scheduler.counter.value == scheduler.grid.count()
        assert scheduler.counter.value <= scheduler.grid.size ** 2
        if scheduler.heights is not None:
            assert scheduler.heights.shape == scheduler.grid.cells.shape
            assert np.all(scheduler.heights >= 0.0)


def test_scenario_full_density_fills_small_grid():
    """finalSize=4, density 1.0: all 16 cells end up occupied within budget."""
    config = GenerationConfig(
        final_size=4, initial_density=1.0, max_walk_steps=10_000, seed=7
    )
    scheduler = LevelScheduler(config)
    result = scheduler.run()

    report = scheduler.reports[0]
    assert report.target == 16
    assert report.placed == 15
    assert not report.budget_exhausted
    assert result.occupied.all()
    assert np.all(result.heights == 1.0)


def test_scenario_zero_density_keeps_seed_lineage():
    """Density 0 never launches walkers; only the carried seed (5, 5) remains at 8x8."""
    config = GenerationConfig(
        final_size=8, initial_density=0.0, max_walk_steps=1, seed=3
    )
    scheduler = LevelScheduler(config)
    result = scheduler.run()

    assert [r.launched for r in scheduler.reports] == [0, 0]
    assert np.argwhere(result.occupied).tolist() == [[5, 5]]
    assert result.meta["fill_count"] == 1
    assert result.heights[5, 5] == pytest.approx(1.25)
    assert result.heights[4, 4] == pytest.approx(1.0)
    assert result.heights.max() == pytest.approx(1.25)


def test_scenario_progressive_loosening_targets():
    """Density decays by loosen_factor after every doubling."""
    config = GenerationConfig(
        final_size=16,
        initial_density=0.15,
        progressive_loosening=True,
        loosen_factor=0.85,
        max_walk_steps=500,
        seed=11,
    )
    schedule = density_schedule(config)
    assert [size for size, _ in schedule] == [4, 8, 16]
    assert [d for _, d in schedule] == pytest.approx([0.15, 0.1275, 0.108375])

    scheduler = LevelScheduler(config)
    scheduler.run()
    assert [r.target for r in scheduler.reports] == [2, 8, 28]
    assert [r.size for r in scheduler.reports] == [4, 8, 16]


def test_loosening_disabled_keeps_density():
    config = small_config(final_size=16, progressive_loosening=False)
    assert [d for _, d in density_schedule(config)] == [0.15, 0.15, 0.15]


def test_density_target_rounds_half_to_even():
    assert density_target(4, 0.15) == 2
    assert density_target(8, 0.15) == 10
    assert density_target(4, 0.125) == 2  # 2.0
    assert density_target(2, 0.625) == 2  # 2.5 -> 2


def test_growth_budget_exhaustion_is_not_an_error():
    """On an empty grid nothing sticks: growth stops after target * 10 consecutive failures."""
    grid = Grid(8)
    counter = FillCounter(0)
    aggregator = RandomWalkAggregator(make_rng(0), max_steps=5)
    report = grow_to_density(grid, counter, aggregator, 0.5)

    assert report.target == 32
    assert report.placed == 0
    assert report.launched == 320
    assert report.failures == 320
    assert report.budget_exhausted
    assert grid.count() == 0


def test_growth_stops_when_target_already_met():
    grid = Grid.seeded(4)
    counter = FillCounter(1)
    aggregator = RandomWalkAggregator(make_rng(0), max_steps=100)
    report = grow_to_density(grid, counter, aggregator, 0.05)  # round(0.8) = 1
    assert report.target == 1
    assert report.launched == 0
    assert not report.budget_exhausted


def test_attempt_ceiling_returns_best_effort_output():
    config = small_config(final_size=16, initial_density=0.5, max_total_attempts=0)
    scheduler = LevelScheduler(config)
    result = scheduler.run()

    assert scheduler.ceiling_hit
    assert result.meta["ceiling_hit"]
    assert result.meta["total_launched"] == 0
    assert result.occupied.shape == (16, 16)
    assert all(r.placed == 0 for r in scheduler.reports)
    assert all(r.ceiling_hit for r in scheduler.reports)


def test_expired_time_limit_returns_best_effort_output():
    """A deadline that has passed before the first launch still yields a full-size result."""
    config = small_config(final_size=64, initial_density=0.5, time_limit=1e-9, seed=1)
    scheduler = LevelScheduler(config)
    result = scheduler.run()

    assert scheduler.ceiling_hit
    assert scheduler.total_launched == 0
    assert result.meta["ceiling_hit"]
    assert result.occupied.shape == (64, 64)
    assert result.heights.shape == (64, 64)
    assert scheduler.counter.value == scheduler.grid.count()


def test_attempt_ceiling_caps_total_launches():
    config = small_config(final_size=32, initial_density=0.5, max_total_attempts=25)
    scheduler = LevelScheduler(config)
    scheduler.run()
    assert scheduler.total_launched <= 25


def test_random_seed_mode_records_a_reproducible_seed():
    config = small_config(final_size=16, use_random_seed=True)
    first = run_model(config)
    seed = first.meta["seed"]
    assert -100_000 <= seed < 100_000

    replay = run_model(small_config(final_size=16, seed=seed))
    assert np.array_equal(first.occupied, replay.occupied)
    assert np.array_equal(first.heights, replay.heights)


def test_negative_seed_is_accepted():
    a = run_model(small_config(final_size=16, seed=-5))
    b = run_model(small_config(final_size=16, seed=-5))
    assert np.array_equal(a.occupied, b.occupied)


def test_run_model_accepts_a_mapping():
    result = run_model({"final_size": 8, "initial_density": 0.2, "seed": 1})
    assert result.occupied.shape == (8, 8)
    assert result.meta["config"]["final_size"] == 8
    assert result.meta["seed"] == 1


def test_result_before_run_is_an_error():
    with pytest.raises(RuntimeError):
        LevelScheduler(small_config()).result()
