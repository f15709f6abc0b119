import dataclasses
from configparser import ConfigParser, ExtendedInterpolation

import pytest
from nsidc.sidecar import config, constants

# Unit tests for the 'config' module functions.
#
# The test boundary is the config module's interface with the filesystem, so
# the tests build config parsers in memory and use temporary directories for
# anything validate checks on disk.


@pytest.fixture
def expected_keys():
    return set(
        [
            "data_dir",
            "product",
            "output_dir",
            "institution",
            "overwrite",
            "cover_level",
            "perimeter_strategy",
            "perimeter_stride",
            "retry_with_walk",
            "meridian_threshold",
            "index_level",
            "workers",
            "number",
        ]
    )


@pytest.fixture
def cfg_parser():
    cp = ConfigParser(interpolation=ExtendedInterpolation())
    cp["Source"] = {"data_dir": "/data/example", "product": "MOD09"}
    cp["Destination"] = {
        "output_dir": "${Source:data_dir}/sidecars",
        "institution": "NSIDC",
        "overwrite": True,
    }
    cp["Settings"] = {
        "cover_level": 12,
        "perimeter_strategy": "boundary-metadata",
        "perimeter_stride": 5,
        "retry_with_walk": True,
        "meridian_threshold": 0.5,
        "index_level": 20,
        "workers": 2,
        "number": 3,
    }
    return cp


@pytest.fixture
def minimal_parser():
    cp = ConfigParser(interpolation=ExtendedInterpolation())
    cp["Source"] = {"data_dir": "/data/example"}
    cp["Destination"] = {"output_dir": "/output/here"}
    cp["Settings"] = {}
    return cp


def test_config_parser_without_filename():
    with pytest.raises(ValueError):
        config.config_parser_factory(None)


def test_config_parser_with_missing_file(tmp_path):
    with pytest.raises(ValueError):
        config.config_parser_factory(str(tmp_path / "missing.ini"))


def test_config_parser_reads_file(tmp_path):
    path = tmp_path / "example.ini"
    path.write_text("[Source]\ndata_dir = /data\n")
    cp = config.config_parser_factory(str(path))
    assert cp.get("Source", "data_dir") == "/data"


def test_config_from_config_parser(cfg_parser):
    cfg = config.configuration(cfg_parser, {})
    assert isinstance(cfg, config.Config)


def test_config_with_no_overrides(cfg_parser, expected_keys):
    result = config.configuration(cfg_parser, {})

    assert len(dataclasses.asdict(result)) == len(expected_keys)
    assert set(dataclasses.asdict(result).keys()) == expected_keys
    assert result.data_dir == "/data/example"
    assert result.output_dir == "/data/example/sidecars"
    assert result.product == "MOD09"
    assert result.overwrite is True
    assert result.cover_level == "12"
    assert result.perimeter_strategy == "boundary-metadata"
    assert result.perimeter_stride == 5
    assert result.retry_with_walk is True
    assert result.meridian_threshold == 0.5
    assert result.index_level == 20
    assert result.workers == 2
    assert result.number == 3


def test_config_with_overrides(cfg_parser):
    overrides = {"workers": 8, "number": 1, "overwrite": None}
    result = config.configuration(cfg_parser, overrides)

    assert result.workers == 8
    assert result.number == 1
    assert result.overwrite is True


def test_config_defaults(minimal_parser):
    result = config.configuration(minimal_parser, {})

    assert result.product == constants.DEFAULT_PRODUCT
    assert result.cover_level == constants.DEFAULT_COVER_LEVEL
    assert result.perimeter_strategy == constants.DEFAULT_PERIMETER_STRATEGY
    assert result.perimeter_stride == constants.DEFAULT_PERIMETER_STRIDE
    assert result.retry_with_walk == constants.DEFAULT_RETRY_WITH_WALK
    assert result.meridian_threshold == constants.DEFAULT_MERIDIAN_THRESHOLD
    assert result.index_level == constants.DEFAULT_INDEX_LEVEL
    assert result.workers == constants.DEFAULT_WORKERS
    assert result.number == constants.DEFAULT_NUMBER
    assert result.overwrite is False


def test_config_with_bad_value(minimal_parser):
    minimal_parser["Settings"]["workers"] = "many"
    with pytest.raises(ValueError):
        config.configuration(minimal_parser, {})


def test_config_without_data_dir():
    cp = ConfigParser(interpolation=ExtendedInterpolation())
    with pytest.raises(ValueError):
        config.configuration(cp, {})


@pytest.fixture
def valid_config(cfg_parser, tmp_path):
    result = config.configuration(cfg_parser, {})
    return dataclasses.replace(result, data_dir=str(tmp_path), output_dir=str(tmp_path))


def test_validate_with_valid_values(valid_config):
    valid, errors = config.validate(valid_config)
    assert valid
    assert errors == []


@pytest.mark.parametrize(
    "key,value,message",
    [
        ("data_dir", "/does/not/exist", "The data_dir does not exist."),
        ("output_dir", "/does/not/exist", "The output_dir does not exist."),
        ("product", "MOD43", "The product is not supported."),
        ("cover_level", "fine", "The cover_level must be 'auto' or a level from 0 to 27."),
        ("perimeter_strategy", "convex-hull", "The perimeter_strategy is not recognized."),
        ("perimeter_stride", 0, "The perimeter_stride must be positive."),
        ("meridian_threshold", 0.0, "The meridian_threshold must be between 0 and 180 degrees."),
        ("index_level", 30, "The index_level must be from 0 to 27."),
        ("workers", 0, "The number of workers must be positive."),
    ],
)
def test_validate_with_invalid_value(valid_config, key, value, message):
    valid, errors = config.validate(dataclasses.replace(valid_config, **{key: value}))
    assert not valid
    assert errors == [message]
