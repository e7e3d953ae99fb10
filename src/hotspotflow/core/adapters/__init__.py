"""Output adapters for converting analysis results to consumer formats.

- TableAdapter: Polars DataFrame of per-point Gi* statistics
- RasterAdapter: 2D density array with contour thresholds
"""

from __future__ import annotations

from hotspotflow.core.adapters.base import (
    AdapterMetadata,
    BaseModalityAdapter,
    SerializationFormat,
)
from hotspotflow.core.adapters.configs import RasterAdapterConfig, TableAdapterConfig
from hotspotflow.core.adapters.raster import RasterAdapter, RasterOutput
from hotspotflow.core.adapters.table import TableAdapter, TableOutput

__all__ = [
    # Base classes
    "BaseModalityAdapter",
    "AdapterMetadata",
    "SerializationFormat",
    # Configs
    "TableAdapterConfig",
    "RasterAdapterConfig",
    # Adapters
    "TableAdapter",
    "RasterAdapter",
    # Outputs
    "TableOutput",
    "RasterOutput",
]
