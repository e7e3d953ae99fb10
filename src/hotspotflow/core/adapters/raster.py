"""RasterAdapter: KDE surface as a 2D array ready for contouring."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from hotspotflow.core.adapters.base import (
    AdapterMetadata,
    BaseModalityAdapter,
    SerializationFormat,
)
from hotspotflow.core.adapters.configs import DEFAULT_CONTOUR_THRESHOLDS, RasterAdapterConfig
from hotspotflow.core.kde import grid_to_matrix
from hotspotflow.core.schema import Bounds
from hotspotflow.core.utils import get_logger

if TYPE_CHECKING:
    from hotspotflow.core.schema import AnalysisResult

logger = get_logger(__name__)


@dataclass
class RasterOutput:
    """Output from RasterAdapter conversion.

    Attributes:
        raster: 2D array of shape (rows, cols); row 0 is the southern edge
        bounds: Geographic extent of the grid, None for an empty surface
        thresholds: Contour levels as fractions of the peak
        layer: Which grid value was rasterized
        bandwidth: KDE bandwidth in km
        dtypes: Data type information
    """

    raster: np.ndarray
    bounds: Bounds | None = None
    thresholds: list[float] = field(default_factory=lambda: list(DEFAULT_CONTOUR_THRESHOLDS))
    layer: str = "normalized_density"
    bandwidth: float = 0.0
    dtypes: dict[str, str] = field(default_factory=dict)

    @property
    def height(self) -> int:
        """Number of grid rows (latitude nodes)."""
        return int(self.raster.shape[0])

    @property
    def width(self) -> int:
        """Number of grid columns (longitude nodes)."""
        return int(self.raster.shape[1])

    def contour_levels(self) -> list[float]:
        """Absolute contour levels: each threshold times the raster peak."""
        peak = float(self.raster.max()) if self.raster.size else 0.0
        return [t * peak for t in self.thresholds]

    def masks(self) -> dict[float, np.ndarray]:
        """Boolean mask of the cells at or above each threshold, keyed by threshold.

        A flat zero surface has no cells above any level.
        """
        peak = float(self.raster.max()) if self.raster.size else 0.0
        if peak <= 0:
            return {t: np.zeros(self.raster.shape, dtype=bool) for t in self.thresholds}
        return {t: self.raster >= t * peak for t in self.thresholds}


class RasterAdapter(BaseModalityAdapter[RasterOutput]):
    """Convert a KDE surface to a dense raster.

    Rows follow latitude and columns longitude, matching the grid
    ``row``/``col`` indices.
    """

    def __init__(
        self,
        config: RasterAdapterConfig | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize RasterAdapter.

        Args:
            config: Configuration object or None for defaults
            **kwargs: Configuration parameters (used if config is None)
        """
        if config is None:
            config = RasterAdapterConfig(**kwargs)
        self.config = config

    @property
    def modality(self) -> str:
        return "raster"

    def convert(self, result: AnalysisResult) -> RasterOutput:
        """Convert the KDE part of an analysis result to a raster."""
        kde = result.kde
        raster = grid_to_matrix(kde, self.config.layer).astype(self.config.dtype)

        logger.info(
            f"Created raster with shape {raster.shape} from {len(kde.grid)} grid cells"
        )

        return RasterOutput(
            raster=raster,
            bounds=kde.bounds,
            thresholds=list(self.config.thresholds),
            layer=self.config.layer,
            bandwidth=kde.bandwidth,
            dtypes={"raster": str(raster.dtype)},
        )

    def get_metadata(self, output: RasterOutput) -> AdapterMetadata:
        """Extract metadata from raster output."""
        return AdapterMetadata(
            modality=self.modality,
            feature_names=[output.layer],
            shapes={"raster": output.raster.shape},
            dtypes=output.dtypes,
            spatial_info={
                "bounds": output.bounds.model_dump() if output.bounds else None,
                "grid_height": output.height,
                "grid_width": output.width,
                "bandwidth_km": output.bandwidth,
            },
            extra={"thresholds": output.thresholds},
        )

    def serialize(
        self,
        output: RasterOutput,
        path: Path | str,
        fmt: SerializationFormat | str,
    ) -> None:
        """Serialize raster output to disk."""
        path = Path(path)
        fmt = SerializationFormat(fmt) if isinstance(fmt, str) else fmt

        path.parent.mkdir(parents=True, exist_ok=True)

        if fmt == SerializationFormat.NUMPY:
            bounds = output.bounds
            np.savez(
                path,
                raster=output.raster,
                bounds=np.array(
                    [bounds.min_lat, bounds.max_lat, bounds.min_lng, bounds.max_lng]
                    if bounds
                    else [],
                    dtype=np.float64,
                ),
                thresholds=np.array(output.thresholds, dtype=np.float64),
                layer=np.array(output.layer),
                bandwidth=np.array(output.bandwidth),
            )

        elif fmt == SerializationFormat.JSON:
            payload = {
                "values": output.raster.tolist(),
                "bounds": output.bounds.model_dump(by_alias=True) if output.bounds else None,
                "thresholds": output.thresholds,
                "layer": output.layer,
                "bandwidth": output.bandwidth,
            }
            path.write_text(json.dumps(payload))

        else:
            raise ValueError(f"Unsupported format for RasterAdapter: {fmt}")

        logger.info(f"Serialized raster to {path} as {fmt}")

    def deserialize(
        self,
        path: Path | str,
        fmt: SerializationFormat | str,
    ) -> RasterOutput:
        """Deserialize raster output from disk."""
        path = Path(path)
        fmt = SerializationFormat(fmt) if isinstance(fmt, str) else fmt

        if fmt == SerializationFormat.NUMPY:
            loaded = np.load(path)
            raw_bounds = loaded["bounds"]
            bounds = (
                Bounds(
                    min_lat=float(raw_bounds[0]),
                    max_lat=float(raw_bounds[1]),
                    min_lng=float(raw_bounds[2]),
                    max_lng=float(raw_bounds[3]),
                )
                if raw_bounds.size == 4
                else None
            )
            raster = loaded["raster"]
            return RasterOutput(
                raster=raster,
                bounds=bounds,
                thresholds=[float(t) for t in loaded["thresholds"]],
                layer=str(loaded["layer"]),
                bandwidth=float(loaded["bandwidth"]),
                dtypes={"raster": str(raster.dtype)},
            )

        elif fmt == SerializationFormat.JSON:
            payload = json.loads(path.read_text())
            raster = np.asarray(payload["values"], dtype=np.float64)
            return RasterOutput(
                raster=raster,
                bounds=Bounds(**payload["bounds"]) if payload.get("bounds") else None,
                thresholds=payload.get("thresholds", list(DEFAULT_CONTOUR_THRESHOLDS)),
                layer=payload.get("layer", "normalized_density"),
                bandwidth=payload.get("bandwidth", 0.0),
                dtypes={"raster": str(raster.dtype)},
            )

        else:
            raise ValueError(f"Unsupported format for deserialization: {fmt}")
