"""Loading raw point records from tabular files and frames."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import polars as pl

from hotspotflow.core.utils import get_logger

logger = get_logger(__name__)


def points_from_frame(
    df: pl.DataFrame | pl.LazyFrame,
    lat_col: str = "lat",
    lng_col: str = "lng",
    value_col: str | None = "value",
    id_col: str | None = "id",
) -> list[dict[str, Any]]:
    """
    Convert a frame of aggregated locations into raw point records.

    Columns are renamed to ``lat``/``lng``/``value``/``id``; every other column
    passes through. Optional columns that are absent are simply skipped, so
    normalization applies its defaults.

    Args:
        df: Polars DataFrame or LazyFrame
        lat_col: Latitude column
        lng_col: Longitude column
        value_col: Attribute column, or None
        id_col: Identifier column, or None

    Returns:
        List of row dictionaries

    Raises:
        ValueError: If a coordinate column is missing
    """
    if isinstance(df, pl.LazyFrame):
        df = df.collect()

    missing = [col for col in (lat_col, lng_col) if col not in df.columns]
    if missing:
        raise ValueError(f"Missing coordinate columns: {missing}")

    renames = {lat_col: "lat", lng_col: "lng"}
    if value_col is not None and value_col in df.columns:
        renames[value_col] = "value"
    if id_col is not None and id_col in df.columns:
        renames[id_col] = "id"

    # Drop pre-existing columns that a rename would shadow
    clashes = [
        target for source, target in renames.items() if target in df.columns and target != source
    ]
    if clashes:
        df = df.drop(clashes)

    return df.rename({k: v for k, v in renames.items() if k != v}).to_dicts()


def read_points(
    path: Path | str,
    lat_col: str = "lat",
    lng_col: str = "lng",
    value_col: str | None = "value",
    id_col: str | None = "id",
) -> list[dict[str, Any]]:
    """
    Read raw point records from CSV, Parquet or JSON.

    JSON files may hold a list of records or an object with a ``points`` list.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the suffix is not supported
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Points file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pl.read_csv(path)
    elif suffix in (".parquet", ".pq"):
        df = pl.read_parquet(path)
    elif suffix == ".json":
        with open(path) as f:
            payload = json.load(f)
        records = payload.get("points", []) if isinstance(payload, dict) else payload
        if not isinstance(records, list):
            raise ValueError(f"Expected a list of points in {path}")
        if not records:
            return []
        df = pl.DataFrame(records, infer_schema_length=None)
    else:
        raise ValueError(f"Unsupported points file format: {suffix}")

    logger.info(f"Loaded {len(df)} point records from {path}")
    return points_from_frame(df, lat_col, lng_col, value_col, id_col)
