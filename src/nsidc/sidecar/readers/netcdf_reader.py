"""NetCDF Swath Reader Module.

Reads geolocation from netCDF files with xarray. Files either carry latitude
and longitude variables (2-D swath geolocation or 1-D axes of a regular grid)
or projected x/y coordinates with a CF grid mapping variable, in which case
the grid is transformed to latitude/longitude with pyproj.
"""

import logging
from typing import List, Tuple

import numpy as np
import xarray as xr
from pyproj import CRS, Transformer
from shapely import wkt
from shapely.errors import ShapelyError
from shapely.geometry import Polygon

from nsidc.sidecar import constants
from nsidc.sidecar.errors import BoundaryMetadataUnavailableError, SwathReaderError
from nsidc.sidecar.readers.swath_reader import BaseSwathReader, NativeGrid

logger = logging.getLogger(__name__)

GRID_NAME = 'native'
LATITUDE_NAMES = ('latitude', 'lat', 'Latitude')
LONGITUDE_NAMES = ('longitude', 'lon', 'Longitude')
GEOSPATIAL_BOUNDS = 'geospatial_bounds'


def open_dataset(path):
    try:
        return xr.open_dataset(path, decode_coords='all')
    except (OSError, ValueError) as e:
        raise SwathReaderError(f'Could not open netCDF file {path}: {e}') from e


def _find(netcdf, names):
    for name in names:
        if name in netcdf.variables:
            return netcdf.variables[name]
    return None


def lat_lon_variables(netcdf) -> Tuple[np.ndarray, np.ndarray, tuple]:
    """
    Returns 2-D latitude and longitude arrays and the dimensions they span,
    from latitude/longitude variables when present.
    """
    lat = _find(netcdf, LATITUDE_NAMES)
    lon = _find(netcdf, LONGITUDE_NAMES)
    if lat is None or lon is None:
        return None

    if lat.ndim == 2 and lon.ndim == 2:
        return np.asarray(lat.values, dtype=np.float64), np.asarray(lon.values, dtype=np.float64), lat.dims
    if lat.ndim == 1 and lon.ndim == 1:
        longitude, latitude = np.meshgrid(np.asarray(lon.values, dtype=np.float64),
                                          np.asarray(lat.values, dtype=np.float64))
        return latitude, longitude, lat.dims + lon.dims
    raise SwathReaderError(f'Unsupported latitude/longitude shapes {lat.shape} and {lon.shape}')


def projected_lat_lon(netcdf) -> Tuple[np.ndarray, np.ndarray, tuple]:
    """
    Returns 2-D latitude and longitude arrays for a projected x/y grid,
    transformed with the CRS in the grid mapping variable.
    """
    grid_mapping_name = lambda v: v is not None
    grid_mapping_var = netcdf.filter_by_attrs(grid_mapping_name=grid_mapping_name)
    names = list(grid_mapping_var.variables) or list(grid_mapping_var.coords)
    if not names or 'x' not in netcdf.variables or 'y' not in netcdf.variables:
        raise SwathReaderError('No latitude/longitude variables and no projected x/y grid found')

    crs_wkt = netcdf.variables[names[0]].attrs.get('crs_wkt')
    if crs_wkt is None:
        raise SwathReaderError(f'Grid mapping variable {names[0]} has no crs_wkt attribute')

    xformer = Transformer.from_crs(CRS.from_wkt(crs_wkt), CRS.from_epsg(4326), always_xy=True)
    x, y = np.meshgrid(netcdf.x.data, netcdf.y.data)
    longitude, latitude = xformer.transform(x, y)
    return np.asarray(latitude, dtype=np.float64), np.asarray(longitude, dtype=np.float64), ('y', 'x')


def geolocated_variables(netcdf, dims) -> List[str]:
    """Names of the data variables laid out on the geolocation dimensions."""
    skip = set(LATITUDE_NAMES + LONGITUDE_NAMES)
    return [
        str(name) for name, var in netcdf.data_vars.items()
        if name not in skip and tuple(var.dims[-len(dims):]) == tuple(dims)
    ]


def corners_from_geospatial_bounds(netcdf) -> List[Tuple[float, float]]:
    """
    Returns the (lat, lon) corners of the geospatial_bounds POLYGON, whose
    coordinates are given as longitude latitude pairs.
    """
    if GEOSPATIAL_BOUNDS not in netcdf.attrs:
        raise BoundaryMetadataUnavailableError(f'{GEOSPATIAL_BOUNDS} attribute not found')

    try:
        geometry = wkt.loads(netcdf.attrs[GEOSPATIAL_BOUNDS])
    except ShapelyError as e:
        raise BoundaryMetadataUnavailableError(f'Failed to parse {GEOSPATIAL_BOUNDS} WKT: {e}') from e

    if not isinstance(geometry, Polygon):
        raise BoundaryMetadataUnavailableError(
            f'{GEOSPATIAL_BOUNDS} must be a POLYGON, found {geometry.geom_type}'
        )

    # Drop the closing point.
    return [(lat, lon) for lon, lat in list(geometry.exterior.coords)[:-1]]


class NetcdfSwathReader(BaseSwathReader):
    """Reader for netCDF geolocation with a single native grid."""

    product = 'netcdf'
    file_pattern = '*.nc'

    def read_native_grids(self, path) -> List[NativeGrid]:
        netcdf = open_dataset(path)
        try:
            found = lat_lon_variables(netcdf)
            if found is None:
                found = projected_lat_lon(netcdf)
            latitude, longitude, dims = found
            variable_names = geolocated_variables(netcdf, dims)
        finally:
            netcdf.close()

        logger.debug(f'Read {GRID_NAME} geolocation {latitude.shape} from {path}')
        return [NativeGrid(GRID_NAME, latitude, longitude, variable_names)]

    def read_boundary_corners(self, path) -> List[Tuple[float, float]]:
        netcdf = open_dataset(path)
        try:
            corners = corners_from_geospatial_bounds(netcdf)
        finally:
            netcdf.close()

        if len(corners) != constants.NUM_BOUNDARY_CORNERS:
            raise BoundaryMetadataUnavailableError(
                f'{GEOSPATIAL_BOUNDS} has {len(corners)} corners, expected {constants.NUM_BOUNDARY_CORNERS}'
            )
        return corners
