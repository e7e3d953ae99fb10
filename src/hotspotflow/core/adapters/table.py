"""TableAdapter: Gi* results as a polars DataFrame, one row per point."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import polars as pl

from hotspotflow.core.adapters.base import (
    AdapterMetadata,
    BaseModalityAdapter,
    SerializationFormat,
)
from hotspotflow.core.adapters.configs import TableAdapterConfig
from hotspotflow.core.utils import get_logger

if TYPE_CHECKING:
    from hotspotflow.core.schema import AnalysisResult

logger = get_logger(__name__)

# Ids are stored as strings since callers mix ints and strings
TABLE_SCHEMA: dict[str, pl.DataType] = {
    "id": pl.Utf8(),
    "lat": pl.Float64(),
    "lng": pl.Float64(),
    "value": pl.Float64(),
    "z_score": pl.Float64(),
    "p_value": pl.Float64(),
    "classification": pl.Utf8(),
    "confidence_level": pl.Int64(),
    "is_hotspot": pl.Boolean(),
    "is_coldspot": pl.Boolean(),
    "neighbors_count": pl.Float64(),
}

NUMERIC_COLUMNS = ["value", "z_score", "p_value", "neighbors_count"]


@dataclass
class TableOutput:
    """Output from TableAdapter conversion.

    Attributes:
        data: Gi* results as a polars DataFrame
        feature_names: Numeric statistic columns exported to downstream consumers
        summary: Gi* summary (camelCase keys)
        dtypes: Column dtypes mapping
    """

    data: pl.DataFrame
    feature_names: list[str] = field(default_factory=lambda: list(NUMERIC_COLUMNS))
    summary: dict[str, Any] = field(default_factory=dict)
    dtypes: dict[str, str] = field(default_factory=dict)

    def hotspots(self) -> pl.DataFrame:
        """Rows classified as hotspots at any confidence."""
        return self.data.filter(pl.col("is_hotspot"))

    def coldspots(self) -> pl.DataFrame:
        """Rows classified as coldspots at any confidence."""
        return self.data.filter(pl.col("is_coldspot"))

    def to_numpy(self) -> np.ndarray:
        """Numeric statistic columns as an array of shape (n_points, n_columns)."""
        return self.data.select(self.feature_names).to_numpy()


class TableAdapter(BaseModalityAdapter[TableOutput]):
    """Flatten per-point Gi* statistics into a table.

    Supports:
    - Passthrough of extra point fields
    - Filtering to significant rows
    - Sorting by z-score
    """

    def __init__(
        self,
        config: TableAdapterConfig | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize TableAdapter.

        Args:
            config: Configuration object or None for defaults
            **kwargs: Configuration parameters (used if config is None)
        """
        if config is None:
            config = TableAdapterConfig(**kwargs)
        self.config = config

    @property
    def modality(self) -> str:
        return "table"

    def convert(self, result: AnalysisResult) -> TableOutput:
        """Convert the Gi* part of an analysis result to tabular format.

        Args:
            result: The combined analysis result

        Returns:
            TableOutput with one row per analyzed point
        """
        results = result.gi_star.results
        columns: dict[str, list[Any]] = {name: [] for name in TABLE_SCHEMA}

        for r in results:
            columns["id"].append(None if r.id is None else str(r.id))
            columns["lat"].append(r.lat)
            columns["lng"].append(r.lng)
            columns["value"].append(r.value)
            columns["z_score"].append(r.z_score)
            columns["p_value"].append(r.p_value)
            columns["classification"].append(r.classification.value)
            columns["confidence_level"].append(r.confidence_level)
            columns["is_hotspot"].append(r.is_hotspot)
            columns["is_coldspot"].append(r.is_coldspot)
            columns["neighbors_count"].append(r.neighbors_count)

        df = pl.DataFrame(columns, schema=TABLE_SCHEMA)

        if self.config.include_passthrough:
            extra_keys = sorted({key for r in results for key in (r.model_extra or {})})
            extras = [
                pl.Series(key, [(r.model_extra or {}).get(key) for r in results], strict=False)
                for key in extra_keys
                if key not in TABLE_SCHEMA
            ]
            if extras:
                df = df.with_columns(extras)

        if self.config.significant_only:
            df = df.filter(pl.col("is_hotspot") | pl.col("is_coldspot"))

        if self.config.sort_by_z:
            df = df.sort("z_score", descending=True)

        dtypes = {col: str(df[col].dtype) for col in df.columns}

        logger.info(f"Created table with {len(df)} rows, {len(df.columns)} columns")

        return TableOutput(
            data=df,
            summary=result.gi_star.summary.model_dump(by_alias=True),
            dtypes=dtypes,
        )

    def get_metadata(self, output: TableOutput) -> AdapterMetadata:
        """Extract metadata from table output."""
        return AdapterMetadata(
            modality=self.modality,
            feature_names=output.feature_names,
            shapes={"data": (len(output.data), len(output.data.columns))},
            dtypes=output.dtypes,
            spatial_info={
                "distance_threshold_km": output.summary.get("distanceThreshold"),
            },
            extra={"summary": output.summary},
        )

    def serialize(
        self,
        output: TableOutput,
        path: Path | str,
        fmt: SerializationFormat | str,
    ) -> None:
        """Serialize table output to disk."""
        path = Path(path)
        fmt = SerializationFormat(fmt) if isinstance(fmt, str) else fmt

        path.parent.mkdir(parents=True, exist_ok=True)

        if fmt == SerializationFormat.PARQUET:
            output.data.write_parquet(path)
            # Write metadata sidecar
            meta_path = path.with_suffix(".meta.json")
            meta = self.get_metadata(output)
            meta_path.write_text(json.dumps(meta.to_dict(), indent=2))

        elif fmt == SerializationFormat.CSV:
            output.data.write_csv(path)

        elif fmt == SerializationFormat.JSON:
            output.data.write_json(path)

        else:
            raise ValueError(f"Unsupported format for TableAdapter: {fmt}")

        logger.info(f"Serialized table to {path} as {fmt}")

    def deserialize(
        self,
        path: Path | str,
        fmt: SerializationFormat | str,
    ) -> TableOutput:
        """Deserialize table output from disk."""
        path = Path(path)
        fmt = SerializationFormat(fmt) if isinstance(fmt, str) else fmt

        if fmt == SerializationFormat.PARQUET:
            df = pl.read_parquet(path)
            meta_path = path.with_suffix(".meta.json")
            if meta_path.exists():
                meta = AdapterMetadata.from_dict(json.loads(meta_path.read_text()))
                return TableOutput(
                    data=df,
                    feature_names=meta.feature_names,
                    summary=meta.extra.get("summary", {}),
                    dtypes=meta.dtypes,
                )
            return TableOutput(data=df)

        elif fmt == SerializationFormat.CSV:
            df = pl.read_csv(path, schema_overrides={"id": pl.Utf8})
            return TableOutput(data=df)

        elif fmt == SerializationFormat.JSON:
            df = pl.read_json(path)
            return TableOutput(data=df)

        else:
            raise ValueError(f"Unsupported format for deserialization: {fmt}")
