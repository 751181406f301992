"""
DLA Terrain Library - Multi-resolution aggregate growth and height fields

This package grows a diffusion-limited aggregate at low resolution and
repeatedly doubles it, producing:
- an occupancy grid (bool) with the branching pattern
- a height field (float) where long-lived lineages stand higher

Entry points:
- GenerationConfig: run parameters
- LevelScheduler: stage-by-stage driver
- run_model: one-call generation returning a TerrainResult
"""

from .config import GenerationConfig, make_rng, resolve_seed
from .grid import FillCounter, Grid
from .walker import RandomWalkAggregator, try_place_particle
from .upscale import CONNECTOR_WEIGHTS, ConnectorWeights, Upscaler, upscale
from .heightfield import (
    HeightFieldAccumulator,
    accumulate,
    init_from_occupancy,
    upsample_bilinear,
)
from .scheduler import (
    LevelReport,
    LevelScheduler,
    Stage,
    density_schedule,
    grow_to_density,
    run_model,
)
from .utils import TerrainResult
from . import analysis, utils

__all__ = [
    # Configuration
    "GenerationConfig",
    "make_rng",
    "resolve_seed",
    # Components
    "Grid",
    "FillCounter",
    "RandomWalkAggregator",
    "try_place_particle",
    "ConnectorWeights",
    "CONNECTOR_WEIGHTS",
    "Upscaler",
    "upscale",
    "HeightFieldAccumulator",
    "init_from_occupancy",
    "upsample_bilinear",
    "accumulate",
    # Driver
    "LevelScheduler",
    "LevelReport",
    "Stage",
    "density_schedule",
    "grow_to_density",
    "run_model",
    "TerrainResult",
    # Utilities
    "analysis",
    "utils",
]
