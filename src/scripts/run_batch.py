#!/usr/bin/env python3
"""
Batch DLA Terrain Runner

Generates terrains for a range of seeds in parallel processes. Every run gets
its own Generator and buffers, so results match single runs with the same seed.
"""

import argparse
import dataclasses
import json
import sys
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict

# Add project root to path
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.dla_terrain import GenerationConfig, run_model, utils


def run_single_generation(
    params: Dict[str, Any], seed: int, output_path: str
) -> Dict[str, Any]:
    """
    Run one generation and save it.

    Called in worker processes by ProcessPoolExecutor, so it must live at
    module level for pickling.
    """
    config = GenerationConfig.from_dict({**params, "seed": seed, "use_random_seed": False})
    result = run_model(config)
    utils.save_terrain_result(output_path, result)

    return {
        "output_path": output_path,
        "seed": seed,
        "occupied": int(result.occupied.sum()),
        "max_height": float(result.heights.max()),
        "ceiling_hit": bool(result.meta["ceiling_hit"]),
        "success": True,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Generate a batch of DLA terrains",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=str, default=None, help="JSON or TOML base config")
    parser.add_argument("--size", type=int, default=None, help="Final grid size")
    parser.add_argument(
        "--count",
        type=int,
        required=True,
        help="Number of terrains to generate",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Number of parallel processes (default: 1)",
    )
    parser.add_argument(
        "--name",
        type=str,
        default="batch",
        help="Batch name for output folder (default: 'batch')",
    )
    parser.add_argument(
        "--base-seed",
        type=int,
        default=42,
        help="Base seed (each run gets base_seed + index) (default: 42)",
    )

    args = parser.parse_args()

    params = utils.load_params(args.config) if args.config else {}
    if args.size is not None:
        params["final_size"] = args.size
    params["verbose"] = False
    # validate once up front rather than in every worker
    base_config = GenerationConfig.from_dict(params)
    params = dataclasses.asdict(base_config)

    first_seed = args.base_seed
    last_seed = args.base_seed + args.count - 1

    timestamp = utils.now_str()
    batch_dir = (
        Path("results")
        / "batches"
        / f"{args.name}_N{base_config.final_size}_S{first_seed}-{last_seed}_{timestamp}"
    )
    batch_dir.mkdir(parents=True, exist_ok=True)

    manifest = {
        "config": params,
        "count": args.count,
        "base_seed": args.base_seed,
        "jobs": args.jobs,
        "timestamp": timestamp,
        "batch_name": args.name,
    }

    manifest_path = batch_dir / "manifest.json"
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    print(f"Batch generation started:")
    print(f"  Size: {base_config.final_size}")
    print(f"  Total terrains: {args.count}")
    print(f"  Parallel jobs: {args.jobs}")
    print(f"  Output directory: {batch_dir}")
    print(f"  Base seed: {args.base_seed}")
    print()

    tasks = []
    for i in range(args.count):
        seed = args.base_seed + i
        output_path = str(batch_dir / f"{seed}.npz")
        tasks.append((params, seed, output_path))

    start_time = time.time()
    results = []
    failed = []

    with ProcessPoolExecutor(max_workers=args.jobs) as executor:
        future_to_task = {
            executor.submit(run_single_generation, *task): task
            for task in tasks
        }

        completed = 0
        for future in as_completed(future_to_task):
            completed += 1
            task = future_to_task[future]
            try:
                result = future.result()
                results.append(result)
                print(
                    f"  [{completed}/{args.count}] Completed: seed={result['seed']}, "
                    f"occupied={result['occupied']}"
                )
            except Exception as e:
                failed.append({"seed": task[1], "error": str(e)})
                print(f"  [{completed}/{args.count}] FAILED: seed={task[1]} - {e}")

    elapsed_time = time.time() - start_time

    manifest["results"] = {
        "total": args.count,
        "successful": len(results),
        "failed": len(failed),
        "elapsed_seconds": elapsed_time,
    }
    manifest["runs"] = sorted(results, key=lambda r: r["seed"])
    if failed:
        manifest["failures"] = failed

    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    print()
    print("=" * 60)
    print("Batch generation completed!")
    print(f"  Successful: {len(results)}/{args.count}")
    print(f"  Failed: {len(failed)}/{args.count}")
    print(f"  Total time: {elapsed_time:.2f} seconds")
    if len(results) > 0:
        print(f"  Average time per terrain: {elapsed_time/len(results):.2f} seconds")
    print(f"  Output directory: {batch_dir}")
    print(f"  Manifest: {manifest_path}")
    print("=" * 60)

    return 0 if len(failed) == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
