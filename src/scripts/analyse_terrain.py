"""
Fractal and Height Analysis for Generated DLA Terrains.

Reports the box-counting dimension of the occupancy grid and summary
statistics of the height field, and saves the log-log fit as a figure.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
from matplotlib import pyplot as plt

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from src.dla_terrain import analysis, utils  # type: ignore[import]


def analyze_terrain(
    npz_path: str | Path,
    output_path: str | Path | None = None,
    show_plot: bool = False,
) -> None:
    """
    Analyse a terrain .npz and write the box-counting figure.

    Args:
        npz_path: Path to input .npz file
        output_path: Optional path to save output image
        show_plot: Whether to display plot interactively
    """
    npz_path = Path(npz_path)
    print(f"Loading {npz_path}...")

    result = utils.load_terrain(npz_path)
    if result.occupied is None or result.heights is None:
        raise ValueError(f"{npz_path} does not contain both 'occupied' and 'heights'.")
    print(f"Grid size: {result.size}x{result.size}, seed={result.ensure_meta().get('seed', '?')}")
    print(f"Occupied cells: {int(result.occupied.sum()):,}")

    print("\n" + "=" * 60)
    print("BOX COUNTING (Occupancy)")
    print("=" * 60)
    df, r2, log_s, log_n = analysis.box_counting_dimension(result.occupied)
    print(f"Fractal Dimension (Df_box): {df:.5f}")
    print(f"R² (Linearity): {r2:.6f}")

    print("\n" + "=" * 60)
    print("HEIGHT FIELD")
    print("=" * 60)
    stats = analysis.height_statistics(result.heights)
    for key, value in stats.items():
        print(f"{key:>16}: {value:.5f}")

    levels = result.ensure_meta().get("levels", [])
    if levels:
        print("\n" + "=" * 60)
        print("GROWTH LEVELS")
        print("=" * 60)
        for level in levels:
            print(
                f"{level['size']:>6}: target={level['target']}, placed={level['placed']}, "
                f"fill={level['fill_count']}"
            )

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 6))

    ax1.scatter(log_s, log_n, color="black", label="Box counts")
    fit = np.polyval(np.polyfit(log_s, log_n, 1), log_s)
    ax1.plot(log_s, fit, color="red", linestyle="--", linewidth=2,
             label=f"Fit: $D_f^{{box}} = {df:.3f}$")
    ax1.set_xlabel(r"$\log(s)$")
    ax1.set_ylabel(r"$\log(N(s))$")
    ax1.set_title(f"Box Counting: $N(s) \\sim s^{{-D_f}}$ (R² = {r2:.4f})")
    ax1.legend()
    ax1.grid(True, which="both", linestyle="--", alpha=0.4)

    ax2.hist(result.heights[result.heights > 0].ravel(), bins=50, color="gray")
    ax2.set_xlabel("height")
    ax2.set_ylabel("cells")
    ax2.set_title("Height distribution (raised cells)")
    ax2.grid(True, linestyle="--", alpha=0.4)

    plt.tight_layout()

    if output_path is None:
        output_path = npz_path.with_name(npz_path.stem + "_analysis.png")
    else:
        output_path = Path(output_path)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    print(f"\nFigure saved to: {output_path}")

    if show_plot:
        plt.show()
    else:
        plt.close()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Analyse a generated DLA terrain."
    )
    parser.add_argument("file", help="Path to the .npz file")
    parser.add_argument(
        "--out",
        type=str,
        help="Output path for the analysis figure (default: <input>_analysis.png)",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Display plot interactively",
    )
    args = parser.parse_args()

    analyze_terrain(args.file, output_path=args.out, show_plot=args.show)


if __name__ == "__main__":
    main()
