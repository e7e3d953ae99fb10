"""Pydantic configuration models for output adapters."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

DEFAULT_CONTOUR_THRESHOLDS = [0.2, 0.4, 0.6, 0.8]


class TableAdapterConfig(BaseModel):
    """Configuration for TableAdapter.

    Attributes:
        include_passthrough: Keep extra point fields as columns
        significant_only: Drop "Not Significant" rows
        sort_by_z: Order rows by descending z-score
    """

    include_passthrough: bool = False
    significant_only: bool = False
    sort_by_z: bool = False


class RasterAdapterConfig(BaseModel):
    """Configuration for RasterAdapter.

    Attributes:
        layer: Grid value to rasterize
        thresholds: Contour levels as fractions of the peak, ascending
        dtype: Output dtype
    """

    layer: Literal["density", "normalized_density"] = "normalized_density"
    thresholds: list[float] = Field(default_factory=lambda: list(DEFAULT_CONTOUR_THRESHOLDS))
    dtype: Literal["float32", "float64"] = "float64"

    @field_validator("thresholds")
    @classmethod
    def _check_thresholds(cls, v: list[float]) -> list[float]:
        if any(t < 0 or t > 1 for t in v):
            raise ValueError(f"Contour thresholds must lie in [0, 1], got {v}")
        return sorted(v)
