"""Base Swath Reader Module.

This module provides the interface implemented by every product reader. A
reader knows where a product keeps its geolocation: the native lat/lon grids,
the finer resolutions that must be derived from them, and the boundary
corners carried in product metadata.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np


@dataclass(frozen=True)
class NativeGrid:
    """A latitude/longitude grid read directly from a data file."""
    name: str
    latitude: np.ndarray
    longitude: np.ndarray
    variable_names: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DerivedResolution:
    """A finer resolution interpolated from a native grid by an integer factor."""
    name: str
    source: str
    factor: int
    variable_names: List[str] = field(default_factory=list)


class BaseSwathReader(ABC):
    """Abstract base class for swath geolocation readers."""

    product = None
    file_pattern = '*'

    @abstractmethod
    def read_native_grids(self, path: str) -> List[NativeGrid]:
        """Read the native geolocation grids of a data file.

        Args:
            path: Path to the data file

        Returns:
            Native grids in declaration order, coarse to fine

        Raises:
            SwathReaderError: If the file cannot be opened or read
        """
        pass

    def derived_resolutions(self) -> List[DerivedResolution]:
        """Finer resolutions to derive from the native grids; none by default."""
        return []

    @abstractmethod
    def read_boundary_corners(self, path: str) -> List[Tuple[float, float]]:
        """Read the four (lat, lon) boundary corners from product metadata.

        Raises:
            BoundaryMetadataUnavailableError: If the corners are absent or malformed
        """
        pass
