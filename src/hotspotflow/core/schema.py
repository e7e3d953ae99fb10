"""Schema definitions for points, analysis results and configuration.

Field names are snake_case; every model carries a camelCase alias so that
``model_dump(by_alias=True)`` reproduces the payload shape consumed by map
layers (``normalizedDensity``, ``zScore``, ``pValue`` ...). Either spelling
is accepted on input.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from hotspotflow.core.utils import validate_bounds

KernelName = Literal["gaussian", "epanechnikov"]


class Classification(str, Enum):
    """Gi* significance classes, ordered from hottest to coldest."""

    HOTSPOT_99 = "Hotspot (99%)"
    HOTSPOT_95 = "Hotspot (95%)"
    HOTSPOT_90 = "Hotspot (90%)"
    NOT_SIGNIFICANT = "Not Significant"
    COLDSPOT_90 = "Coldspot (90%)"
    COLDSPOT_95 = "Coldspot (95%)"
    COLDSPOT_99 = "Coldspot (99%)"

    def __str__(self) -> str:  # pragma: no cover - trivial wrapper
        return self.value


class WeightType(str, Enum):
    """Spatial weighting policies."""

    BINARY = "binary"
    INVERSE_DISTANCE = "inverse_distance"

    def __str__(self) -> str:  # pragma: no cover - trivial wrapper
        return self.value

    @classmethod
    def coerce(cls, value: Any) -> WeightType:
        """Accept enum members, their values and the legacy ``fixed_distance`` name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.lower() == "fixed_distance":
            return cls.BINARY
        return cls(str(value).lower())


class _Record(BaseModel):
    """Base for value records: camelCase aliases, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# -----------------------------------------------------------------------------
# Value records
# -----------------------------------------------------------------------------


class Point(_Record):
    """
    A normalized input observation.

    Attributes:
        id: Caller identifier (defaults to the list index during normalization)
        lat: Latitude in signed decimal degrees
        lng: Longitude in signed decimal degrees
        value: Non-negative attribute intensity, e.g. an incident count

    Unknown keys are kept as passthrough fields.
    """

    model_config = ConfigDict(extra="allow")

    id: Any = None
    lat: float = Field(..., allow_inf_nan=False)
    lng: float = Field(..., allow_inf_nan=False)
    value: float = Field(default=1.0, ge=0)

    def attribute(self, field: str) -> Any:
        """Return a named attribute, looking in passthrough fields as well."""
        if field in type(self).model_fields:
            return getattr(self, field)
        extras = self.model_extra or {}
        return extras.get(field)


class Bounds(_Record):
    """Geographic bounding box in decimal degrees."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @model_validator(mode="after")
    def _check_order(self) -> Bounds:
        validate_bounds((self.min_lat, self.max_lat, self.min_lng, self.max_lng))
        return self

    def padded(self, degrees: float) -> Bounds:
        """Return a copy expanded by ``degrees`` on every side."""
        return Bounds(
            min_lat=self.min_lat - degrees,
            max_lat=self.max_lat + degrees,
            min_lng=self.min_lng - degrees,
            max_lng=self.max_lng + degrees,
        )


class GridCell(_Record):
    """An evaluation node of the KDE surface."""

    lat: float
    lng: float
    row: int
    col: int
    density: float = 0.0
    normalized_density: float = 0.0


class KDEResult(_Record):
    """Kernel density surface over a regular grid."""

    grid: list[GridCell] = Field(default_factory=list)
    max_density: float = 0.0
    min_density: float = 0.0
    bandwidth: float = 0.0
    bounds: Bounds | None = None
    resolution: int = 0
    kernel: KernelName = "gaussian"


class GiStarResult(Point):
    """Per-point Getis-Ord Gi* output: the original point plus its statistics."""

    z_score: float = 0.0
    p_value: float = 1.0
    classification: Classification = Classification.NOT_SIGNIFICANT
    confidence_level: Literal[0, 90, 95, 99] = 0
    is_hotspot: bool = False
    is_coldspot: bool = False
    neighbors_count: float = 0.0
    sum_wij: float = 0.0
    sum_wij_xj: float = 0.0

    @computed_field(alias="giStar")  # type: ignore[prop-decorator]
    @property
    def gi_star(self) -> float:
        """The Gi* statistic; identical to the z-score."""
        return self.z_score


class AnalysisSummary(_Record):
    """Tier counts and the global statistics used for a Gi* run."""

    hotspots_99: int = Field(default=0, alias="hotspots99")
    hotspots_95: int = Field(default=0, alias="hotspots95")
    hotspots_90: int = Field(default=0, alias="hotspots90")
    coldspots_90: int = Field(default=0, alias="coldspots90")
    coldspots_95: int = Field(default=0, alias="coldspots95")
    coldspots_99: int = Field(default=0, alias="coldspots99")
    not_significant: int = 0
    total_hotspots: int = 0
    total_coldspots: int = 0
    distance_threshold: float = 0.0
    global_mean: float = 0.0
    global_std_dev: float = 0.0

    @property
    def total(self) -> int:
        """Number of points across all tiers."""
        return (
            self.hotspots_99
            + self.hotspots_95
            + self.hotspots_90
            + self.not_significant
            + self.coldspots_90
            + self.coldspots_95
            + self.coldspots_99
        )


class GiStarAnalysis(_Record):
    """Gi* results, summary and (unserialized) weight matrix."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    results: list[GiStarResult] = Field(default_factory=list)
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)
    weights: Any = Field(default=None, exclude=True, repr=False)


class AnalysisResult(_Record):
    """Combined output of :func:`hotspotflow.core.analysis.analyze`."""

    kde: KDEResult
    gi_star: GiStarAnalysis
    points: list[Point] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Pydantic Config Models
# -----------------------------------------------------------------------------


class _Config(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class KDEConfig(_Config):
    """Configuration for Kernel Density Estimation."""

    bandwidth: float | None = Field(
        default=None, gt=0, description="Kernel bandwidth in km; Silverman's rule if None"
    )
    resolution: int = Field(default=50, ge=1, description="Grid cells per axis (grid is +1)")
    kernel: KernelName = Field(default="gaussian", description="Kernel function type")
    bounds: Bounds | None = Field(
        default=None, description="Explicit grid bounds; padded point bbox if None"
    )
    padding_degrees: float = Field(
        default=0.1, ge=0, description="Padding added to the point bbox when bounds is None"
    )


class GetisOrdConfig(_Config):
    """Configuration for Getis-Ord Gi* analysis."""

    distance_threshold: float | None = Field(
        default=None, gt=0, description="Neighbor distance threshold in km; adaptive if None"
    )
    fixed_distance_km: float | None = Field(
        default=None, gt=0, description="Fixed threshold in km; takes precedence when set"
    )
    weight_type: WeightType = Field(default=WeightType.BINARY, description="Weighting policy")
    power: float = Field(default=1.0, gt=0, description="Exponent for inverse-distance weights")
    attribute_field: str = Field(default="value", description="Point attribute to analyze")

    @field_validator("weight_type", mode="before")
    @classmethod
    def _coerce_weight_type(cls, v: Any) -> WeightType:
        return WeightType.coerce(v)


class AnalysisOptions(_Config):
    """Options for the combined KDE + Gi* analysis."""

    kde_resolution: int = Field(default=40, ge=1, description="KDE grid cells per axis")
    kde_bandwidth: float | None = Field(default=None, gt=0, description="KDE bandwidth in km")
    kernel: KernelName = Field(default="gaussian", description="KDE kernel function")
    kde_weight_by_value: bool = Field(
        default=True, description="Weight each point's kernel by its value"
    )
    gi_distance_threshold: float | None = Field(
        default=None, gt=0, description="Gi* neighbor threshold in km; adaptive if None"
    )
    gi_weight_type: WeightType = Field(default=WeightType.BINARY, description="Gi* weighting")
    gi_inverse_distance_power: float = Field(
        default=1.0, gt=0, description="Exponent for inverse-distance Gi* weights"
    )
    timeout_seconds: float | None = Field(
        default=None, gt=0, description="Optional time budget for the whole analysis"
    )

    @field_validator("gi_weight_type", mode="before")
    @classmethod
    def _coerce_weight_type(cls, v: Any) -> WeightType:
        return WeightType.coerce(v)

    def to_kde_config(self) -> KDEConfig:
        """Project the KDE-related options."""
        return KDEConfig(
            bandwidth=self.kde_bandwidth,
            resolution=self.kde_resolution,
            kernel=self.kernel,
        )

    def to_getis_ord_config(self) -> GetisOrdConfig:
        """Project the Gi*-related options."""
        return GetisOrdConfig(
            distance_threshold=self.gi_distance_threshold,
            weight_type=self.gi_weight_type,
            power=self.gi_inverse_distance_power,
            attribute_field="value",
        )

    @classmethod
    def from_yaml(cls, path: Path | str) -> AnalysisOptions:
        """Load options from a YAML file (an empty file yields the defaults)."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_dict = yaml.safe_load(f) or {}

        if not isinstance(config_dict, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        return cls(**config_dict)


def load_options(path: Path | str) -> AnalysisOptions:
    """Load analysis options from a YAML file."""
    return AnalysisOptions.from_yaml(path)
