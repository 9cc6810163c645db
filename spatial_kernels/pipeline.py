"""Reproducible, config-driven spatial smoothing runs over pixel tables."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import json
import logging
from pathlib import Path
import platform
import re
import subprocess
import sys
from typing import Any

import numpy as np
import pandas as pd
import yaml

from .config import KernelConfig
from .errors import DegenerateBandwidth
from .filtering import spatial_filter
from .models import NeighborLists, WeightPair
from .neighbors import find_neighbors
from .offsets import neighborhood_offsets
from .parallel import map_points
from .scores import spatial_scores
from .weights import neighborhood_weights, spatial_weights

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a smoothing-run config is invalid."""


@dataclass(frozen=True)
class SmoothingRunConfig:
    """Resolved config for one reproducible smoothing run."""

    run_name: str
    output_root: Path
    seed: int | None
    pixels_path: Path
    pixels_format: str
    pixel_id_column: str | None
    coord_columns: tuple[str, ...]
    group_column: str | None
    feature_mode: str
    feature_prefix: str | None
    feature_columns: tuple[str, ...]
    centers_path: Path | None
    centers_format: str | None
    center_id_column: str
    sd: tuple[float, ...] | None
    kernel: KernelConfig

    def to_serializable_dict(self) -> dict[str, Any]:
        """Return config as plain Python types for YAML/JSON output."""
        return {
            "run": {
                "name": self.run_name,
                "output_root": str(self.output_root),
                "seed": self.seed,
            },
            "inputs": {
                "pixels_path": str(self.pixels_path),
                "pixels_format": self.pixels_format,
                "columns": {
                    "pixel_id": self.pixel_id_column,
                    "coords": list(self.coord_columns),
                    "group": self.group_column,
                },
                "features": {
                    "mode": self.feature_mode,
                    "prefix": self.feature_prefix,
                    "columns": list(self.feature_columns),
                },
                "centers_path": None if self.centers_path is None else str(self.centers_path),
                "centers_format": self.centers_format,
                "center_id_column": self.center_id_column,
                "sd": None if self.sd is None else list(self.sd),
            },
            "kernel": self.kernel.to_dict(),
        }


def load_smoothing_config(config_path: str | Path) -> SmoothingRunConfig:
    """Load and validate YAML config for a smoothing run."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)

    if not isinstance(raw, dict):
        raise ConfigError("config root must be a mapping")

    run = _as_dict(raw.get("run"), "run")
    inputs = _as_dict(raw.get("inputs"), "inputs")
    kernel_raw = _as_dict(raw.get("kernel"), "kernel")

    run_name = str(run.get("name", "spatial_smoothing"))
    if not run_name.strip():
        raise ConfigError("run.name must be a non-empty string")

    output_root = Path(str(run.get("output_root", "runs"))).expanduser().resolve()
    seed = run.get("seed")
    if seed is not None:
        seed = int(seed)

    pixels_path = Path(str(_require(inputs, "pixels_path", "inputs"))).expanduser().resolve()
    pixels_format = _normalize_format(str(inputs.get("pixels_format", "auto")), pixels_path)

    columns = _as_dict(inputs.get("columns", {}), "inputs.columns")
    pixel_id_column = columns.get("pixel_id")
    pixel_id_column = None if pixel_id_column is None else str(pixel_id_column)

    coord_columns_raw = columns.get("coords", ["x", "y"])
    if not isinstance(coord_columns_raw, list) or not coord_columns_raw:
        raise ConfigError("inputs.columns.coords must be a non-empty list")
    coord_columns = tuple(str(col) for col in coord_columns_raw)

    group_column = columns.get("group")
    group_column = None if group_column is None else str(group_column)

    features_cfg = _as_dict(inputs.get("features", {}), "inputs.features")
    feature_mode = str(features_cfg.get("mode", "prefix"))
    feature_prefix = features_cfg.get("prefix")
    feature_columns_raw = features_cfg.get("columns", [])

    if feature_columns_raw is None:
        feature_columns_raw = []
    if not isinstance(feature_columns_raw, list):
        raise ConfigError("inputs.features.columns must be a list")
    feature_columns = tuple(str(col) for col in feature_columns_raw)

    if feature_mode not in {"prefix", "list"}:
        raise ConfigError("inputs.features.mode must be 'prefix' or 'list'")

    if feature_mode == "prefix":
        if feature_prefix is None or not str(feature_prefix):
            raise ConfigError("inputs.features.prefix must be set when mode='prefix'")
        feature_prefix = str(feature_prefix)

    centers_raw = inputs.get("centers_path")
    centers_path = None
    centers_format = None
    if centers_raw is not None:
        centers_path = Path(str(centers_raw)).expanduser().resolve()
        centers_format = _normalize_format(str(inputs.get("centers_format", "auto")), centers_path)
    center_id_column = str(inputs.get("center_id_column", "center_id"))

    sd_raw = inputs.get("sd")
    sd = None
    if sd_raw is not None:
        if not isinstance(sd_raw, list) or not sd_raw:
            raise ConfigError("inputs.sd must be a non-empty list or null")
        sd = tuple(float(v) for v in sd_raw)
        if any(v <= 0 for v in sd):
            raise ConfigError("inputs.sd values must be > 0")

    try:
        kernel = KernelConfig(
            radius=float(kernel_raw.get("radius", 1.0)),
            metric=kernel_raw.get("metric", "radial"),
            sigma=float(kernel_raw.get("sigma", 1.0)),
            bilateral=bool(kernel_raw.get("bilateral", False)),
            tol_dist=float(kernel_raw.get("tol_dist", 1e-9)),
            minkowski_fallthrough=bool(kernel_raw.get("minkowski_fallthrough", False)),
            n_jobs=kernel_raw.get("n_jobs", 1),
        )
    except ValueError as exc:
        raise ConfigError(f"invalid kernel section: {exc}") from exc

    return SmoothingRunConfig(
        run_name=run_name,
        output_root=output_root,
        seed=seed,
        pixels_path=pixels_path,
        pixels_format=pixels_format,
        pixel_id_column=pixel_id_column,
        coord_columns=coord_columns,
        group_column=group_column,
        feature_mode=feature_mode,
        feature_prefix=feature_prefix,
        feature_columns=feature_columns,
        centers_path=centers_path,
        centers_format=centers_format,
        center_id_column=center_id_column,
        sd=sd,
        kernel=kernel,
    )


def run_smoothing(config: SmoothingRunConfig, limit_points: int | None = None) -> Path:
    """Run the full smoothing pipeline and return the output run directory."""
    config.output_root.mkdir(parents=True, exist_ok=True)

    timestamp = dt.datetime.now(dt.timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    run_dir = config.output_root / f"{_slugify(config.run_name)}_{timestamp}"
    run_dir.mkdir(parents=False, exist_ok=False)

    config_dir = run_dir / "config"
    logs_dir = run_dir / "logs"
    config_dir.mkdir(parents=True, exist_ok=True)
    logs_dir.mkdir(parents=True, exist_ok=True)

    steps_log_path = logs_dir / "steps.jsonl"
    _append_step_log(
        steps_log_path,
        event="run_start",
        payload={"run_name": config.run_name, "seed": config.seed},
    )
    logger.info("starting smoothing run %s in %s", config.run_name, run_dir)

    rng = np.random.default_rng(config.seed)

    pixels_df = _load_table(config.pixels_path, config.pixels_format)
    _append_step_log(
        steps_log_path,
        event="table_loaded",
        payload={"n_input_pixels": int(len(pixels_df))},
    )

    feature_columns = _resolve_feature_columns(
        pixels_df=pixels_df,
        mode=config.feature_mode,
        prefix=config.feature_prefix,
        configured_columns=config.feature_columns,
    )
    _append_step_log(
        steps_log_path,
        event="feature_columns_resolved",
        payload={"n_features": int(len(feature_columns))},
    )

    _validate_pixels_schema(pixels_df, config, feature_columns)
    _append_step_log(steps_log_path, event="schema_validated", payload={})

    if limit_points is not None:
        pixels_df = _crop_window(pixels_df, config.coord_columns, int(limit_points), rng)
        _append_step_log(
            steps_log_path,
            event="limit_points_applied",
            payload={"limit_points": int(limit_points), "n_pixels_after_limit": int(len(pixels_df))},
        )

    coord = _numeric_block(pixels_df, config.coord_columns)
    x = _numeric_block(pixels_df, feature_columns).T
    groups = None
    if config.group_column is not None:
        groups = pixels_df[config.group_column].to_numpy()

    kernel = config.kernel
    neighbors = find_neighbors(
        coord,
        kernel.radius,
        groups=groups,
        metric=kernel.metric,
        minkowski_fallthrough=kernel.minkowski_fallthrough,
        n_jobs=kernel.n_jobs,
    )
    lengths = neighbors.lengths
    _append_step_log(
        steps_log_path,
        event="neighbors_found",
        payload={
            "n_points": int(neighbors.n_points),
            "total_neighbors": int(lengths.sum()),
            "neighbors_mean": float(lengths.mean()) if lengths.size else 0.0,
        },
    )

    weights, n_flat = _compute_weights(coord, x, neighbors, kernel)
    _append_step_log(
        steps_log_path,
        event="weights_computed",
        payload={"bilateral": bool(kernel.bilateral), "flat_bilateral_count": int(n_flat)},
    )

    smoothed = spatial_filter(x, weights, neighbors, n_jobs=kernel.n_jobs)
    _append_step_log(steps_log_path, event="filter_applied", payload={})

    pixel_ids = _pixel_ids(pixels_df, config.pixel_id_column)
    filtered_df = pd.DataFrame(smoothed.T, columns=list(feature_columns))
    filtered_df.insert(0, "pixel_id", pixel_ids)
    filtered_df.to_csv(run_dir / "filtered.csv", index=False)

    np.savez_compressed(
        run_dir / "neighbors.npz",
        indices=neighbors.indices,
        indptr=neighbors.indptr,
        pixel_ids=np.asarray(pixel_ids, dtype=object),
    )

    n_centers = 0
    sd_used: np.ndarray | None = None
    if config.centers_path is not None:
        assert config.centers_format is not None
        centers_df = _load_table(config.centers_path, config.centers_format)
        _require_columns(centers_df, list(feature_columns), table_name="centers")
        centers = _numeric_block(centers_df, feature_columns).T
        sd_used = _resolve_sd(config.sd, x)

        scores = spatial_scores(x, centers, weights, neighbors, sd_used, n_jobs=kernel.n_jobs)
        n_centers = int(centers.shape[1])

        center_ids = _pixel_ids(
            centers_df,
            config.center_id_column if config.center_id_column in centers_df.columns else None,
        )
        scores_df = pd.DataFrame(scores, columns=[str(c) for c in center_ids])
        scores_df.insert(0, "pixel_id", pixel_ids)
        scores_df.to_csv(run_dir / "scores.csv", index=False)
        _append_step_log(
            steps_log_path,
            event="scores_computed",
            payload={"n_centers": n_centers},
        )

    summary = _compute_summary(
        n_input_pixels=len(pixels_df),
        n_features=len(feature_columns),
        n_dims=len(config.coord_columns),
        neighbor_counts=lengths,
        n_centers=n_centers,
        n_flat=n_flat,
    )

    resolved = config.to_serializable_dict()
    resolved["inputs"]["features"]["resolved_columns"] = list(feature_columns)
    if sd_used is not None:
        resolved["inputs"]["sd_resolved"] = [float(v) for v in sd_used]

    _write_yaml(config_dir / "config_resolved.yaml", resolved)
    _write_json(config_dir / "metadata.json", _build_metadata(config=config, run_dir=run_dir))
    _write_json(run_dir / "summary.json", summary)
    _append_step_log(
        steps_log_path,
        event="run_complete",
        payload={"n_points": int(summary["n_points"]), "n_centers": n_centers},
    )
    logger.info("smoothing run complete: %d points, %d centers", summary["n_points"], n_centers)

    return run_dir


def run_smoothing_from_config(config_path: str | Path, limit_points: int | None = None) -> Path:
    """Convenience wrapper: load config, execute run, and return run dir."""
    config = load_smoothing_config(config_path)
    return run_smoothing(config=config, limit_points=limit_points)


def _as_dict(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _require(mapping: dict[str, Any], key: str, section: str) -> Any:
    if key not in mapping:
        raise ConfigError(f"missing required key '{key}' in section '{section}'")
    return mapping[key]


def _normalize_format(raw_format: str, path: Path) -> str:
    value = raw_format.strip().lower()
    if value == "auto":
        suffix = path.suffix.lower()
        if suffix in {".csv"}:
            return "csv"
        if suffix in {".tsv", ".txt"}:
            return "tsv"
        if suffix in {".parquet", ".pq"}:
            return "parquet"
        raise ConfigError(f"cannot infer format from extension for file: {path}")

    if value not in {"csv", "tsv", "parquet"}:
        raise ConfigError(f"unsupported table format: {raw_format!r}")
    return value


def _load_table(path: Path, table_format: str) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"table file not found: {path}")

    if table_format == "csv":
        return pd.read_csv(path)
    if table_format == "tsv":
        return pd.read_csv(path, sep="\t")
    if table_format == "parquet":
        return pd.read_parquet(path)

    raise ConfigError(f"unsupported format in loader: {table_format!r}")


def _crop_window(
    df: pd.DataFrame,
    coord_columns: tuple[str, ...],
    limit: int,
    rng: np.random.Generator,
) -> pd.DataFrame:
    # The `limit` pixels nearest (chebyshev) to a random anchor pixel; neighborhoods
    # away from the window edge are unchanged.
    if limit <= 0:
        raise ValueError("limit values must be > 0")

    if len(df) <= limit:
        return df.reset_index(drop=True)

    coord = df.loc[:, list(coord_columns)].to_numpy(dtype=np.float64)
    anchor = coord[rng.integers(len(df))]
    reach = np.abs(coord - anchor).max(axis=1)
    keep = np.sort(np.argsort(reach, kind="stable")[:limit])
    return df.iloc[keep].reset_index(drop=True)


def _resolve_feature_columns(
    pixels_df: pd.DataFrame,
    mode: str,
    prefix: str | None,
    configured_columns: tuple[str, ...],
) -> tuple[str, ...]:
    if mode == "prefix":
        assert prefix is not None
        columns = tuple(col for col in pixels_df.columns if str(col).startswith(prefix))
        if not columns:
            raise ConfigError(
                f"no feature columns found with prefix {prefix!r}; "
                "check inputs.features.prefix and input pixel table"
            )
        return columns

    if mode == "list":
        if not configured_columns:
            raise ConfigError("inputs.features.columns must be non-empty when mode='list'")
        missing = [col for col in configured_columns if col not in pixels_df.columns]
        if missing:
            raise ConfigError(f"feature columns missing in pixel table: {missing}")
        return configured_columns

    raise ConfigError(f"unsupported feature mode: {mode!r}")


def _validate_pixels_schema(
    df: pd.DataFrame,
    config: SmoothingRunConfig,
    feature_columns: tuple[str, ...],
) -> None:
    required = [*config.coord_columns, *feature_columns]
    if config.pixel_id_column is not None:
        required.append(config.pixel_id_column)
    if config.group_column is not None:
        required.append(config.group_column)
    _require_columns(df, required, table_name="pixels")

    if config.pixel_id_column is not None:
        id_col = config.pixel_id_column
        if df[id_col].isna().any():
            raise ValueError("pixels pixel_id column contains missing values")
        if df[id_col].duplicated().any():
            dup_value = str(df.loc[df[id_col].duplicated(), id_col].iloc[0])
            raise ValueError(f"duplicate pixel_id found in pixels table: {dup_value!r}")

    if config.group_column is not None and df[config.group_column].isna().any():
        raise ValueError("pixels group column contains missing values")

    for col in (*config.coord_columns, *feature_columns):
        _validate_numeric_series(df[col], f"pixels.{col}")

    if config.sd is not None and len(config.sd) != len(feature_columns):
        raise ConfigError(
            f"inputs.sd has {len(config.sd)} values but {len(feature_columns)} feature columns were resolved"
        )


def _require_columns(df: pd.DataFrame, columns: list[str], table_name: str) -> None:
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ValueError(f"missing columns in {table_name} table: {missing}")


def _validate_numeric_series(series: pd.Series, name: str) -> None:
    numeric = pd.to_numeric(series, errors="coerce")
    if numeric.isna().any():
        raise ValueError(f"column {name} contains non-numeric or missing values")

    values = numeric.to_numpy(dtype=np.float64, copy=False)
    if not np.isfinite(values).all():
        raise ValueError(f"column {name} contains non-finite values")


def _numeric_block(df: pd.DataFrame, columns: tuple[str, ...] | list[str]) -> np.ndarray:
    # Integer columns stay integer so the kernels see the table's own dtype.
    block = df.loc[:, list(columns)].apply(pd.to_numeric, errors="raise")
    if all(pd.api.types.is_integer_dtype(dtype) for dtype in block.dtypes):
        return block.to_numpy(dtype=np.int64, copy=True)
    return block.to_numpy(dtype=np.float64, copy=True)


def _pixel_ids(df: pd.DataFrame, column: str | None) -> list[str]:
    if column is None:
        return [str(i) for i in range(len(df))]
    return df[column].astype(str).tolist()


def _resolve_sd(configured: tuple[float, ...] | None, x: np.ndarray) -> np.ndarray:
    if configured is not None:
        return np.asarray(configured, dtype=np.float64)

    if x.shape[1] < 2:
        raise ValueError("at least two pixels are required to estimate feature sd")

    sd = np.std(x.astype(np.float64), axis=1, ddof=1)
    if np.any(sd <= 0):
        raise ValueError("feature sd is zero for a constant feature; set inputs.sd explicitly")
    return sd


def _compute_weights(
    coord: np.ndarray,
    x: np.ndarray,
    neighbors: NeighborLists,
    kernel: KernelConfig,
) -> tuple[list[WeightPair], int]:
    """Return per-point weights and the number of flat bilateral neighborhoods.

    A neighborhood whose features all equal the center's has no bilateral
    bandwidth; that point keeps its gaussian weights (beta = 1) and the run
    continues.
    """
    if not kernel.bilateral:
        return neighborhood_weights(coord, neighbors, kernel.sigma, n_jobs=kernel.n_jobs), 0

    offsets = neighborhood_offsets(coord, neighbors, n_jobs=kernel.n_jobs)

    def _weights(i: int) -> tuple[WeightPair, bool]:
        try:
            pair = spatial_weights(offsets[i], kernel.sigma, x=x[:, neighbors[i]], bilateral=True)
        except DegenerateBandwidth:
            return spatial_weights(offsets[i], kernel.sigma), True
        return pair, False

    results = map_points(_weights, neighbors.n_points, kernel.n_jobs)
    n_flat = sum(1 for _, flat in results if flat)
    if n_flat:
        logger.warning(
            "%d of %d neighborhoods are feature-constant; using gaussian weights for them",
            n_flat,
            neighbors.n_points,
        )
    return [pair for pair, _ in results], n_flat


def _compute_summary(
    n_input_pixels: int,
    n_features: int,
    n_dims: int,
    neighbor_counts: np.ndarray,
    n_centers: int,
    n_flat: int = 0,
) -> dict[str, Any]:
    counts = np.asarray(neighbor_counts, dtype=np.int64)
    has_counts = counts.size > 0

    summary = {
        "n_input_pixels": int(n_input_pixels),
        "n_points": int(counts.size),
        "n_features": int(n_features),
        "n_dims": int(n_dims),
        "n_centers": int(n_centers),
        "total_neighbors": int(counts.sum()) if has_counts else 0,
        "isolated_point_count": int((counts == 1).sum()) if has_counts else 0,
        "neighbors_mean": float(counts.mean()) if has_counts else 0.0,
        "neighbors_median": float(np.median(counts)) if has_counts else 0.0,
        "neighbors_min": int(counts.min()) if has_counts else 0,
        "neighbors_max": int(counts.max()) if has_counts else 0,
        "flat_bilateral_count": int(n_flat),
    }
    return summary


def _build_metadata(config: SmoothingRunConfig, run_dir: Path) -> dict[str, Any]:
    now = dt.datetime.now(dt.timezone.utc).isoformat()

    metadata = {
        "timestamp_utc": now,
        "run_dir": str(run_dir),
        "seed": config.seed,
        "python_version": sys.version,
        "platform": platform.platform(),
        "numpy_version": np.__version__,
        "git_commit": _try_git_commit(),
    }
    return metadata


def _try_git_commit() -> str | None:
    try:
        completed = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        return completed.stdout.strip() or None
    except (OSError, subprocess.CalledProcessError):
        return None


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, sort_keys=False)
        handle.write("\n")


def _write_yaml(path: Path, payload: dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(payload, handle, sort_keys=False)


def _append_step_log(path: Path, event: str, payload: dict[str, Any]) -> None:
    entry = {
        "timestamp_utc": dt.datetime.now(dt.timezone.utc).isoformat(),
        "event": event,
        "payload": payload,
    }
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(entry, sort_keys=False))
        handle.write("\n")


def _slugify(text: str) -> str:
    normalized = re.sub(r"[^A-Za-z0-9._-]+", "_", text.strip())
    normalized = normalized.strip("_")
    return normalized or "item"
