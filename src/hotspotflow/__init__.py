"""Hotspotflow: KDE and Getis-Ord Gi* hotspot analysis for point events."""

__version__ = "0.1.0"

from hotspotflow.core.analysis import InvalidPointError, analyze, normalize_points
from hotspotflow.core.schema import AnalysisOptions, AnalysisResult, Point
from hotspotflow.core.utils import Deadline, DeadlineExceeded

__all__ = [
    "analyze",
    "normalize_points",
    "AnalysisOptions",
    "AnalysisResult",
    "Point",
    "InvalidPointError",
    "Deadline",
    "DeadlineExceeded",
    "__version__",
]
