"""Core module containing the spatial statistics primitives."""

from hotspotflow.core.analysis import InvalidPointError, analyze, normalize_point, normalize_points
from hotspotflow.core.geodesy import haversine_km, pairwise_distances
from hotspotflow.core.gi_star import classification_label, hotspot_color, perform_gi_star
from hotspotflow.core.io import points_from_frame, read_points
from hotspotflow.core.kde import generate_grid, perform_kde, silverman_bandwidth
from hotspotflow.core.schema import (
    AnalysisOptions,
    AnalysisResult,
    AnalysisSummary,
    Bounds,
    Classification,
    GetisOrdConfig,
    GiStarAnalysis,
    GiStarResult,
    GridCell,
    KDEConfig,
    KDEResult,
    Point,
    WeightType,
    load_options,
)
from hotspotflow.core.stats import two_tailed_p_value
from hotspotflow.core.weights import SpatialWeights, adaptive_threshold, build_spatial_weights

__all__ = [
    "analyze",
    "normalize_point",
    "normalize_points",
    "InvalidPointError",
    "haversine_km",
    "pairwise_distances",
    "perform_kde",
    "generate_grid",
    "silverman_bandwidth",
    "perform_gi_star",
    "classification_label",
    "hotspot_color",
    "two_tailed_p_value",
    "SpatialWeights",
    "adaptive_threshold",
    "build_spatial_weights",
    "points_from_frame",
    "read_points",
    "load_options",
    "AnalysisOptions",
    "AnalysisResult",
    "AnalysisSummary",
    "Bounds",
    "Classification",
    "GetisOrdConfig",
    "GiStarAnalysis",
    "GiStarResult",
    "GridCell",
    "KDEConfig",
    "KDEResult",
    "Point",
    "WeightType",
]
