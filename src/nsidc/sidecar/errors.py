"""
Exception classes for sidecar generation.

Every error can carry the name of the resolution set or cover it affected and
the position (pixel, coarse cell or perimeter vertex) where it was detected.
Both are optional when raised and may be filled in by the caller that knows the
context, so an encoder error keeps its identity while gaining a location.
"""

from typing import Any, Optional


class SidecarError(Exception):
    """Base class for all sidecar generation errors."""

    def __init__(self, message: str, name: Optional[str] = None, position: Any = None):
        super().__init__(message)
        self.message = message
        self.name = name
        self.position = position

    def __str__(self):
        parts = []
        if self.name is not None:
            parts.append(f'[{self.name}]')
        parts.append(self.message)
        if self.position is not None:
            parts.append(f'(at {self.position})')
        return ' '.join(parts)


class GeometryInconsistencyError(SidecarError):
    """Raised when neighboring geolocation values are too far apart to interpolate."""
    pass


class BoundaryMetadataUnavailableError(SidecarError):
    """Raised when boundary corners are missing or malformed in product metadata."""
    pass


class EncoderError(SidecarError):
    """Raised by a spatial encoder that cannot encode its input."""
    pass


class AllocationError(SidecarError):
    """Raised when output arrays cannot be allocated."""
    pass


class SwathReaderError(SidecarError):
    """Raised when a data file cannot be opened or its geolocation read."""
    pass


class SidecarStoreError(SidecarError):
    """Raised when a sidecar file cannot be written or read."""
    pass
