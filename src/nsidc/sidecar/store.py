"""
Sidecar files.

A sidecar is a NetCDF-4 file holding, for every resolution set, its latitude,
longitude and spatial index arrays on a private (i, j) dimension pair, and for
every cover a one dimensional array of cells:

    Latitude_<name>(i_<name>, j_<name>)         float64
    Longitude_<name>(i_<name>, j_<name>)        float64
    spatial_index_<name>(i_<name>, j_<name>)    uint64, attributes variables, finest_level
    spatial_cover_<name>(l_<name>)              uint64, attribute cover_level
"""

import logging
from pathlib import Path
from typing import List

import numpy as np
import xarray as xr

from nsidc.sidecar import constants
from nsidc.sidecar.errors import SidecarStoreError
from nsidc.sidecar.models import CoverSet, GeoDataset, ResolutionSet

logger = logging.getLogger(__name__)

DERIVED_FROM_ATTR = 'derived_from'
FACTOR_ATTR = 'factor'
SOURCE_FILE_ATTR = 'source_file'


def sidecar_filename(data_file, output_dir=None) -> str:
    """
    Returns the sidecar path for a data file: `<stem>_sidecar.nc` next to the
    data file, or in `output_dir` when given.
    """
    data_file = Path(data_file)
    directory = Path(output_dir) if output_dir else data_file.parent
    return str(directory / f'{data_file.stem}{constants.SIDECAR_SUFFIX}')


def _dims(name):
    return f'{constants.I_NAME}_{name}', f'{constants.J_NAME}_{name}'


def _variable_names(text) -> List[str]:
    return [v.strip() for v in str(text).split(',') if v.strip()]


def to_xarray(dataset: GeoDataset):
    """Returns the xarray Dataset and per-variable encoding for a GeoDataset."""
    variables = {}
    encoding = {}
    compressed = {'zlib': True, 'complevel': constants.DEFLATE_LEVEL}

    for rs in dataset.resolution_sets:
        if not rs.is_indexed:
            raise SidecarStoreError('Resolution set has no spatial index', name=rs.name)
        dims = _dims(rs.name)
        lat_name = f'{constants.LAT_NAME}_{rs.name}'
        lon_name = f'{constants.LON_NAME}_{rs.name}'
        index_name = f'{constants.INDEX_NAME}_{rs.name}'

        variables[lat_name] = xr.Variable(dims, rs.latitude, {
            constants.LONG_NAME: constants.LAT_LONG_NAME,
            constants.UNITS: constants.LAT_UNITS,
        })
        variables[lon_name] = xr.Variable(dims, rs.longitude, {
            constants.LONG_NAME: constants.LON_LONG_NAME,
            constants.UNITS: constants.LON_UNITS,
        })

        index_attrs = {
            constants.LONG_NAME: f'{constants.INDEX_LONG_NAME} {rs.name}',
            constants.VARIABLES_ATTR: ', '.join(rs.variable_names),
            constants.FINEST_LEVEL_ATTR: int(rs.finest_level),
        }
        if rs.derived_from is not None:
            index_attrs[DERIVED_FROM_ATTR] = rs.derived_from
            index_attrs[FACTOR_ATTR] = int(rs.factor)
        variables[index_name] = xr.Variable(dims, rs.index_values, index_attrs)

        encoding[lat_name] = {**compressed, '_FillValue': None}
        encoding[lon_name] = {**compressed, '_FillValue': None}
        encoding[index_name] = dict(compressed)

    for cover in dataset.cover_sets:
        cover_name = f'{constants.COVER_NAME}_{cover.name}'
        variables[cover_name] = xr.Variable((f'{constants.L_NAME}_{cover.name}',), cover.cells, {
            constants.LONG_NAME: f'{constants.COVER_LONG_NAME} {cover.name}',
            constants.COVER_LEVEL_ATTR: int(cover.resolution_level),
        })
        # A zero length dimension cannot be chunked.
        if cover.size:
            encoding[cover_name] = dict(compressed)

    attrs = {k: ('' if v is None else v) for k, v in dataset.attributes.items()}
    return xr.Dataset(variables, attrs=attrs), encoding


def write_sidecar(dataset: GeoDataset, path) -> str:
    """
    Write a GeoDataset to a NetCDF-4 sidecar file and return its path.

    Raises:
        SidecarStoreError: the dataset is incomplete or the file cannot be written
    """
    xds, encoding = to_xarray(dataset)
    try:
        xds.to_netcdf(path, mode='w', format='NETCDF4', engine='netcdf4', encoding=encoding)
    except (OSError, RuntimeError, ValueError) as e:
        raise SidecarStoreError(f'Could not write sidecar {path}: {e}', name=dataset.name) from e

    logger.info(f'Wrote sidecar {path}')
    return str(path)


def _names(xds, prefix):
    prefix = f'{prefix}_'
    return [str(v)[len(prefix):] for v in xds.data_vars if str(v).startswith(prefix)]


def from_xarray(xds, name=None) -> GeoDataset:
    """Returns the GeoDataset stored in an xarray Dataset read from a sidecar."""
    attributes = dict(xds.attrs)
    dataset = GeoDataset(name=name or attributes.get(SOURCE_FILE_ATTR, ''), attributes=attributes)

    for rs_name in _names(xds, constants.INDEX_NAME):
        index = xds[f'{constants.INDEX_NAME}_{rs_name}']
        derived_from = index.attrs.get(DERIVED_FROM_ATTR)
        dataset.add_resolution_set(ResolutionSet(
            name=rs_name,
            latitude=xds[f'{constants.LAT_NAME}_{rs_name}'].values,
            longitude=xds[f'{constants.LON_NAME}_{rs_name}'].values,
            variable_names=_variable_names(index.attrs.get(constants.VARIABLES_ATTR, '')),
            index_values=np.asarray(index.values, dtype=np.uint64),
            finest_level=int(index.attrs[constants.FINEST_LEVEL_ATTR]),
            derived_from=derived_from or None,
            factor=int(index.attrs.get(FACTOR_ATTR, 1)),
        ))

    for cover_name in _names(xds, constants.COVER_NAME):
        cover = xds[f'{constants.COVER_NAME}_{cover_name}']
        dataset.add_cover_set(CoverSet(
            name=cover_name,
            cells=np.asarray(cover.values, dtype=np.uint64),
            resolution_level=int(cover.attrs[constants.COVER_LEVEL_ATTR]),
        ))

    return dataset


def read_sidecar(path) -> GeoDataset:
    """
    Read a sidecar file back into a GeoDataset.

    Raises:
        SidecarStoreError: the file cannot be opened or is not a sidecar
    """
    try:
        with xr.open_dataset(path, engine='netcdf4', mask_and_scale=False, decode_times=False) as xds:
            xds.load()
            dataset = from_xarray(xds)
    except (OSError, KeyError, ValueError) as e:
        raise SidecarStoreError(f'Could not read sidecar {path}: {e}') from e

    if not dataset.resolution_sets:
        raise SidecarStoreError(f'No spatial index variables found in {path}')
    return dataset


def sidecar_summary(path, verbose: bool = False) -> List[str]:
    """Returns printable lines describing the contents of a sidecar file."""
    dataset = read_sidecar(path)
    lines = [f'Sidecar {path}']
    for key, value in dataset.attributes.items():
        lines.append(f'  {key}: {value}')

    lines.append(f'Resolution sets: {len(dataset.resolution_sets)}')
    for rs in dataset.resolution_sets:
        provenance = f', derived from {rs.derived_from} x{rs.factor}' if rs.derived_from else ''
        lines.append(f'  + {rs.name}: {rs.size_i} x {rs.size_j}, finest level {rs.finest_level}{provenance}')
        if verbose:
            for v in rs.variable_names:
                lines.append(f'      {v}')

    lines.append(f'Covers: {len(dataset.cover_sets)}')
    for cover in dataset.cover_sets:
        lines.append(f'  + {cover.name}: {cover.size} cells at level {cover.resolution_level}')
        if verbose:
            for cell in cover.cells:
                lines.append(f'      0x{int(cell):016x}')

    return lines
