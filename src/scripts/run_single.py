#!/usr/bin/env python3
"""
Single DLA Terrain Runner

A CLI for generating one DLA occupancy grid and height field.
Parameters come from an optional JSON/TOML file; explicit flags override it.
"""

import argparse
import sys
import time
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.dla_terrain import GenerationConfig, LevelScheduler, utils


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a single DLA terrain",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON or TOML file with GenerationConfig fields",
    )
    parser.add_argument("--size", type=int, default=None, help="Final grid size (power of two, 4-4096)")
    parser.add_argument("--density", type=float, default=None, help="Initial fill density (0-1)")
    parser.add_argument(
        "--no-loosening",
        action="store_true",
        help="Keep the same density target at every resolution",
    )
    parser.add_argument("--loosen-factor", type=float, default=None, help="Density decay per resolution")
    parser.add_argument("--max-steps", type=int, default=None, help="Step budget per walker")
    parser.add_argument("--seed", type=int, default=None, help="PRNG seed")
    parser.add_argument(
        "--random-seed",
        action="store_true",
        help="Draw a fresh seed from OS entropy (stored in the output)",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Ceiling on walker launches over the whole run",
    )
    parser.add_argument("--time-limit", type=float, default=None, help="Wall-clock ceiling in seconds")
    parser.add_argument("--quiet", action="store_true", help="Suppress per-resolution progress")
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output .npz file path (auto-generated if not provided)",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> GenerationConfig:
    params = utils.load_params(args.config) if args.config else {}
    overrides = {
        "final_size": args.size,
        "initial_density": args.density,
        "loosen_factor": args.loosen_factor,
        "max_walk_steps": args.max_steps,
        "seed": args.seed,
        "max_total_attempts": args.max_attempts,
        "time_limit": args.time_limit,
    }
    params.update({k: v for k, v in overrides.items() if v is not None})
    if args.no_loosening:
        params["progressive_loosening"] = False
    if args.random_seed:
        params["use_random_seed"] = True
    params["verbose"] = not args.quiet
    return GenerationConfig.from_dict(params)


def main():
    args = build_parser().parse_args()
    config = config_from_args(args)

    print(f"Generating DLA terrain: size={config.final_size}, density={config.initial_density}")
    start_time = time.time()

    scheduler = LevelScheduler(config)
    result = scheduler.run()

    elapsed_time = time.time() - start_time

    if args.out is None:
        timestamp = utils.now_str()
        output_dir = Path("results")
        output_dir.mkdir(exist_ok=True)
        args.out = str(
            output_dir / f"terrain_N{config.final_size}_S{scheduler.seed}_{timestamp}.npz"
        )

    utils.save_terrain_result(args.out, result)

    print(f"\nGeneration completed.")
    print(f"   Seed: {scheduler.seed}")
    print(f"   Time elapsed: {elapsed_time:.2f} seconds")
    print(f"   Occupied cells: {int(result.occupied.sum())}")
    print(f"   Max height: {float(result.heights.max()):.3f}")
    if scheduler.ceiling_hit:
        print("   Note: run ceiling reached, output is best-effort")
    print(f"   Output saved to: {args.out}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
