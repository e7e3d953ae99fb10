"""Base classes for analysis output adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from hotspotflow.core.schema import AnalysisResult


class SerializationFormat(str, Enum):
    """Supported serialization formats for adapter outputs."""

    PARQUET = "parquet"
    CSV = "csv"
    JSON = "json"
    NUMPY = "numpy"

    def __str__(self) -> str:
        return self.value


@dataclass
class AdapterMetadata:
    """Metadata describing the adapter output structure.

    Attributes:
        modality: The output modality (table, raster)
        feature_names: Column or layer names
        shapes: Dictionary of shape information by component
        dtypes: Dictionary of data types by component
        spatial_info: Spatial metadata (bounds, resolution, threshold)
        extra: Additional adapter-specific metadata
    """

    modality: str
    feature_names: list[str] = field(default_factory=list)
    shapes: dict[str, tuple[int, ...]] = field(default_factory=dict)
    dtypes: dict[str, str] = field(default_factory=dict)
    spatial_info: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert metadata to dictionary for serialization."""
        return {
            "modality": self.modality,
            "feature_names": self.feature_names,
            "shapes": {k: list(v) for k, v in self.shapes.items()},
            "dtypes": self.dtypes,
            "spatial_info": self.spatial_info,
            "extra": self.extra,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AdapterMetadata:
        """Create metadata from dictionary."""
        shapes = {k: tuple(v) for k, v in data.get("shapes", {}).items()}
        return cls(
            modality=data["modality"],
            feature_names=data.get("feature_names", []),
            shapes=shapes,
            dtypes=data.get("dtypes", {}),
            spatial_info=data.get("spatial_info", {}),
            extra=data.get("extra", {}),
        )


T = TypeVar("T")


class BaseModalityAdapter(ABC, Generic[T]):
    """Abstract base class for output adapters.

    Each adapter turns an AnalysisResult into a consumer-ready structure and
    knows how to write it to disk and read it back.
    """

    @property
    @abstractmethod
    def modality(self) -> str:
        """Return the modality name (table, raster)."""
        ...

    @abstractmethod
    def convert(self, result: AnalysisResult) -> T:
        """Convert an AnalysisResult to the adapter's output format.

        Args:
            result: The combined KDE + Gi* result

        Returns:
            The converted output in the adapter's format
        """
        ...

    @abstractmethod
    def get_metadata(self, output: T) -> AdapterMetadata:
        """Extract metadata from the converted output."""
        ...

    @abstractmethod
    def serialize(
        self,
        output: T,
        path: Path | str,
        fmt: SerializationFormat | str,
    ) -> None:
        """Serialize the output to disk.

        Args:
            output: The adapter output to serialize
            path: Destination file
            fmt: Serialization format
        """
        ...

    @abstractmethod
    def deserialize(
        self,
        path: Path | str,
        fmt: SerializationFormat | str,
    ) -> T:
        """Deserialize output from disk."""
        ...
