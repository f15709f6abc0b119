import dataclasses
import datetime as dt

import numpy as np
import pytest
from funcy import partial

from nsidc.sidecar import config, sidecar, store
from nsidc.sidecar.errors import SwathReaderError
from nsidc.sidecar.readers import registry
from nsidc.sidecar.readers.swath_reader import BaseSwathReader, DerivedResolution, NativeGrid

# Unit tests for the 'sidecar' module functions.
#
# The test boundary is the reader registry: a fake reader stands in for the
# product readers, and sidecar files are written to a pytest temporary
# directory.


class FakeReader(BaseSwathReader):
    product = 'FAKE'
    file_pattern = '*.dat'

    def read_native_grids(self, path):
        if 'broken' in str(path):
            raise SwathReaderError(f'Could not read geolocation from {path}')
        i, j = np.mgrid[0:4, 0:5]
        return [NativeGrid('coarse', 65.0 + 0.05 * i, 20.0 + 0.05 * j, ['sea_ice'])]

    def derived_resolutions(self):
        return [DerivedResolution('fine', 'coarse', 2, ['sea_ice_fine'])]

    def read_boundary_corners(self, path):
        return [(65.0, 20.0), (65.0, 20.2), (65.15, 20.2), (65.15, 20.0)]


@pytest.fixture
def fake_reader(monkeypatch):
    monkeypatch.setattr(registry, 'lookup', lambda product: FakeReader())


@pytest.fixture
def data_dir(tmp_path):
    data = tmp_path / 'data'
    data.mkdir()
    for name in ['granule_2.dat', 'granule_1.dat', 'notes.txt']:
        (data / name).write_text('')
    return data


@pytest.fixture
def output_dir(tmp_path):
    out = tmp_path / 'output'
    out.mkdir()
    return out


@pytest.fixture
def test_config(data_dir, output_dir):
    return config.Config(
        data_dir=str(data_dir),
        product='fake',
        output_dir=str(output_dir),
        institution='NSIDC',
        overwrite=False,
        cover_level='auto',
        perimeter_strategy='strided-walk',
        perimeter_stride=1,
        retry_with_walk=False,
        meridian_threshold=0.4,
        index_level=27,
        workers=2,
        number=-1,
    )


def test_banner():
    assert len(sidecar.banner()) > 0


def test_granules_are_sorted_and_filtered(data_dir):
    (data_dir / 'granule_1_sidecar.nc').write_text('')

    result = sidecar.granules(str(data_dir), '*')

    assert [g.id for g in result] == ['granule_1.dat', 'granule_2.dat', 'notes.txt']


def test_granules_with_pattern(data_dir):
    result = sidecar.granules(str(data_dir), '*.dat')
    assert [g.id for g in result] == ['granule_1.dat', 'granule_2.dat']
    assert result[0].data_filename == str(data_dir / 'granule_1.dat')


def succeed(configuration, granule):
    return dataclasses.replace(granule, skipped=True)


def fail(configuration, granule):
    raise SwathReaderError('No Latitude')


def test_recorder_records_success():
    record = sidecar.Record(sidecar.Granule('g1', 'g1.dat'))

    result = sidecar.recorder(partial(succeed, None), record)

    [action] = result.actions
    assert action.name == 'succeed'
    assert action.successful
    assert isinstance(action.startDatetime, dt.datetime)
    assert result.granule.skipped


def test_recorder_records_failure():
    record = sidecar.Record(sidecar.Granule('g1', 'g1.dat'))

    result = sidecar.recorder(partial(fail, None), record)

    [action] = result.actions
    assert action.name == 'fail'
    assert not action.successful
    assert action.message == 'No Latitude'
    assert result.granule == record.granule


def test_recorder_skips_after_failure():
    record = sidecar.Record(sidecar.Granule('g1', 'g1.dat'))

    failed = sidecar.recorder(partial(fail, None), record)
    result = sidecar.recorder(partial(succeed, None), failed)

    assert len(result.actions) == 1
    assert not result.granule.skipped


def test_end_record_summarizes_actions():
    record = sidecar.Record(sidecar.Granule('g1', 'g1.dat'))
    record = sidecar.recorder(partial(succeed, None), record)

    result = sidecar.end_record(record)

    assert result.successful
    assert isinstance(result.endDatetime, dt.datetime)


def test_prepare_granule(test_config, output_dir):
    granule = sidecar.Granule('granule_1.dat', '/data/granule_1.dat')

    result = sidecar.prepare_granule(test_config, granule)

    assert result.sidecar_filename == str(output_dir / 'granule_1_sidecar.nc')
    assert not result.skipped


def test_prepare_granule_skips_existing_sidecar(test_config, output_dir):
    (output_dir / 'granule_1_sidecar.nc').write_text('')
    granule = sidecar.Granule('granule_1.dat', '/data/granule_1.dat')

    assert sidecar.prepare_granule(test_config, granule).skipped
    overwrite = dataclasses.replace(test_config, overwrite=True)
    assert not sidecar.prepare_granule(overwrite, granule).skipped


def test_process(fake_reader, test_config, output_dir):
    records = sidecar.process(test_config)

    assert [r.granule.id for r in records] == ['granule_1.dat', 'granule_2.dat']
    assert all(r.successful for r in records)
    assert [a.name for a in records[0].actions] == ['prepare_granule', 'create_dataset', 'write_sidecar']

    result = store.read_sidecar(output_dir / 'granule_1_sidecar.nc')
    assert result.resolution_set_names() == ['coarse', 'fine']
    assert result.resolution_set('fine').latitude.shape == (8, 10)
    assert result.cover_set('coarse').size > 0
    assert result.attributes['institution'] == 'NSIDC'
    assert result.attributes['product'] == 'FAKE'


def test_process_with_number(fake_reader, test_config, output_dir):
    records = sidecar.process(dataclasses.replace(test_config, number=1))

    assert len(records) == 1
    assert (output_dir / 'granule_1_sidecar.nc').exists()
    assert not (output_dir / 'granule_2_sidecar.nc').exists()


def test_process_records_failed_granules(fake_reader, test_config, data_dir, output_dir):
    (data_dir / 'broken.dat').write_text('')

    records = sidecar.process(test_config)

    broken = next(r for r in records if r.granule.id == 'broken.dat')
    assert not broken.successful
    assert [a.successful for a in broken.actions] == [True, False]
    assert not (output_dir / 'broken_sidecar.nc').exists()
    assert sum(r.successful for r in records) == 2


def test_process_skips_existing_sidecars(fake_reader, test_config, output_dir):
    (output_dir / 'granule_2_sidecar.nc').write_text('')

    records = sidecar.process(test_config)

    assert [r.granule.skipped for r in records] == [False, True]
    assert all(r.successful for r in records)
    assert (output_dir / 'granule_2_sidecar.nc').read_text() == ''


def test_create_sidecar(fake_reader, data_dir, output_dir):
    settings = sidecar.BuildSettings(workers=1)

    path = sidecar.create_sidecar(str(data_dir / 'granule_1.dat'), 'fake', settings,
                                  output_dir=str(output_dir), institution='NSIDC')

    assert path == str(output_dir / 'granule_1_sidecar.nc')
    assert 'Resolution sets: 2' in store.sidecar_summary(path)


def test_create_sidecar_with_output_file(fake_reader, data_dir, tmp_path):
    output_file = str(tmp_path / 'custom.nc')

    path = sidecar.create_sidecar(str(data_dir / 'granule_1.dat'), 'fake', sidecar.BuildSettings(), output_file)

    assert path == output_file
