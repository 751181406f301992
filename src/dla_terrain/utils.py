# src/dla_terrain/utils.py
from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from .config import GenerationConfig

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    tomllib = None  # type: ignore


@dataclass
class TerrainResult:
    """Common container for terrain generation outputs."""

    occupied: Optional[np.ndarray] = None
    heights: Optional[np.ndarray] = None
    meta: Optional[Dict[str, Any]] = None

    def ensure_meta(self) -> Dict[str, Any]:
        if self.meta is None:
            self.meta = {}
        return self.meta

    @property
    def size(self) -> int:
        if self.occupied is not None:
            return int(self.occupied.shape[0])
        if self.heights is not None:
            return int(self.heights.shape[0])
        return 0


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def save_terrain_result(
    path: str | os.PathLike[str], result: TerrainResult, *, overwrite: bool = True
) -> None:
    """Serialize a TerrainResult to a compressed .npz file."""
    out_dir = Path(path).parent
    out_dir.mkdir(parents=True, exist_ok=True)
    out: Dict[str, Any] = {}
    if result.occupied is not None:
        out["occupied"] = result.occupied.astype("uint8")
    if result.heights is not None:
        out["heights"] = np.asarray(result.heights, dtype=np.float64)

    # numpy arrays in meta go to the top level, the rest is pickled as a dict
    meta = result.meta or {}
    meta_clean = {}
    for key, value in meta.items():
        if isinstance(value, np.ndarray):
            out[key] = value
        else:
            meta_clean[key] = value
    out["meta"] = meta_clean

    if not overwrite and Path(path).exists():
        raise FileExistsError(f"{path} already exists")
    np.savez_compressed(path, **out)


def load_terrain(path: str | os.PathLike[str]) -> TerrainResult:
    """Load a terrain .npz written by :func:`save_terrain_result`."""
    data = np.load(path, allow_pickle=True)
    occupied = data["occupied"].astype(bool) if "occupied" in data else None
    heights = data["heights"].astype(np.float64) if "heights" in data else None
    meta: Dict[str, Any] = {}
    if "meta" in data:
        meta_raw = data["meta"]
        try:
            meta = dict(meta_raw.item())
        except (ValueError, TypeError):
            meta = {"raw": meta_raw}
    for key in data.files:
        if key not in {"occupied", "heights", "meta"} and key not in meta:
            meta[key] = data[key]
    return TerrainResult(occupied=occupied, heights=heights, meta=meta)


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load :class:`~dla_terrain.config.GenerationConfig` fields from a parameter file.

    ``.json`` (or no suffix) is parsed as JSON, ``.toml``/``.tml`` as TOML. The
    file must hold a single table whose keys are config field names; anything
    else raises ``ValueError`` naming the file, before a config is built.
    """
    path = Path(path)
    text = path.read_bytes().decode("utf-8")
    suffix = path.suffix.lower()
    if suffix in {".json", ""}:
        params = json.loads(text)
    elif suffix in {".toml", ".tml"}:
        if tomllib is None:
            raise RuntimeError("tomllib is unavailable; cannot parse TOML files")
        params = tomllib.loads(text)
    else:
        raise ValueError(f"Unsupported parameter file format: {suffix}")

    if not isinstance(params, dict):
        raise ValueError(f"{path}: expected a table of parameters, got {type(params).__name__}")
    unknown = sorted(set(params) - {f.name for f in fields(GenerationConfig)})
    if unknown:
        raise ValueError(f"{path}: unknown parameters {', '.join(unknown)}")
    return params
