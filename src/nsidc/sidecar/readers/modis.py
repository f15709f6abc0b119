"""MODIS Level 2 Swath Readers.

MODIS L2 products are HDF4 files holding Latitude and Longitude scientific
data sets for the coarsest grid and an ODL text block (ArchiveMetadata.0)
whose G-ring gives the four boundary corners of the granule.

HDF4 support comes from pyhdf, installed with the `hdf4` extra.
"""

import logging
import re
from typing import List, Tuple

import numpy as np

from nsidc.sidecar import constants
from nsidc.sidecar.errors import BoundaryMetadataUnavailableError, SwathReaderError
from nsidc.sidecar.readers.swath_reader import BaseSwathReader, DerivedResolution, NativeGrid

logger = logging.getLogger(__name__)

ARCHIVE_METADATA = 'ArchiveMetadata.0'
GRING_LATITUDE = 'GRINGPOINTLATITUDE'
GRING_LONGITUDE = 'GRINGPOINTLONGITUDE'


def odl_values(text: str, object_name: str) -> List[float]:
    """
    Returns the numbers in the VALUE of an ODL object, e.g.

        OBJECT = GRINGPOINTLATITUDE
          NUM_VAL = 4
          VALUE = (43.1, 47.3, 29.9, 26.6)
        END_OBJECT = GRINGPOINTLATITUDE
    """
    pattern = rf'(?<!END_)OBJECT\s*=\s*{object_name}\b(?:(?!END_OBJECT).)*?VALUE\s*=\s*\(([^)]*)\)'
    match = re.search(pattern, text, re.DOTALL)
    if match is None:
        raise BoundaryMetadataUnavailableError(f'{object_name} not found in {ARCHIVE_METADATA}')
    try:
        return [float(v) for v in match.group(1).split(',')]
    except ValueError:
        raise BoundaryMetadataUnavailableError(
            f'Malformed {object_name} value ({match.group(1).strip()})'
        ) from None


def parse_gring(text: str) -> List[Tuple[float, float]]:
    """Returns the (lat, lon) G-ring corners described by ArchiveMetadata text."""
    latitudes = odl_values(text, GRING_LATITUDE)
    longitudes = odl_values(text, GRING_LONGITUDE)
    if len(latitudes) != constants.NUM_BOUNDARY_CORNERS or len(longitudes) != constants.NUM_BOUNDARY_CORNERS:
        raise BoundaryMetadataUnavailableError(
            f'Expected {constants.NUM_BOUNDARY_CORNERS} G-ring points, found '
            f'{len(latitudes)} latitudes and {len(longitudes)} longitudes'
        )
    return list(zip(latitudes, longitudes))


class ModisL2Reader(BaseSwathReader):
    """Reader for HDF4 MODIS L2 swaths with one native geolocation grid."""

    grid_name = None
    variable_names: List[str] = []

    def _open(self, path):
        from pyhdf.SD import SD, SDC
        from pyhdf.error import HDF4Error

        try:
            return SD(str(path), SDC.READ)
        except HDF4Error as e:
            raise SwathReaderError(f'Could not open HDF4 file {path}: {e}') from e

    def read_native_grids(self, path) -> List[NativeGrid]:
        from pyhdf.error import HDF4Error

        sd = self._open(path)
        try:
            latitude = np.asarray(sd.select(constants.LAT_NAME)[:], dtype=np.float64)
            longitude = np.asarray(sd.select(constants.LON_NAME)[:], dtype=np.float64)
        except HDF4Error as e:
            raise SwathReaderError(f'Could not read geolocation from {path}: {e}') from e
        finally:
            sd.end()

        logger.debug(f'Read {self.grid_name} geolocation {latitude.shape} from {path}')
        return [NativeGrid(self.grid_name, latitude, longitude, list(self.variable_names))]

    def read_boundary_corners(self, path) -> List[Tuple[float, float]]:
        sd = self._open(path)
        try:
            attributes = sd.attributes()
        finally:
            sd.end()

        if ARCHIVE_METADATA not in attributes:
            raise BoundaryMetadataUnavailableError(f'{ARCHIVE_METADATA} not found in {path}')
        return parse_gring(attributes[ARCHIVE_METADATA])


class Modis05L2Reader(ModisL2Reader):
    """MOD05 L2 precipitable water, 5 km geolocation."""

    product = 'MOD05'
    file_pattern = 'MOD05_L2.*.hdf'
    grid_name = '5km'
    variable_names = [
        'Scan_Start_Time',
        'Solar_Zenith',
        'Solar_Azimuth',
        'Water_Vapor_Infrared',
        'Quality_Assurance_Infrared',
    ]


class Modis09L2Reader(ModisL2Reader):
    """MOD09 L2 surface reflectance, 1 km geolocation with 500 m and 250 m derived."""

    product = 'MOD09'
    file_pattern = 'MOD09.*.hdf'
    grid_name = '1km'
    variable_names = [
        '1km Atmospheric Optical Depth Band 1',
        '1km Atmospheric Optical Depth Band 3',
        '1km Atmospheric Optical Depth Band 8',
        '1km Atmospheric Optical Depth Model',
        '1km water_vapor',
        '1km Atmospheric Optical Depth Band QA',
        '1km Atmospheric Optical Depth Band CM',
    ]

    def derived_resolutions(self) -> List[DerivedResolution]:
        return [
            DerivedResolution('500m', self.grid_name, 2,
                              [f'500m Surface Reflectance Band {b}' for b in range(1, 8)]),
            DerivedResolution('250m', self.grid_name, 4,
                              [f'250m Surface Reflectance Band {b}' for b in range(1, 8)]),
        ]
