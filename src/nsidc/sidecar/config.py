import configparser
import dataclasses
import os.path

from nsidc.sidecar import constants
from nsidc.sidecar.models import cover_level_policy, perimeter_source
from nsidc.sidecar.readers import registry


@dataclasses.dataclass
class Config:
    data_dir: str
    product: str
    output_dir: str
    institution: str
    overwrite: bool
    cover_level: str
    perimeter_strategy: str
    perimeter_stride: int
    retry_with_walk: bool
    meridian_threshold: float
    index_level: int
    workers: int
    number: int

    def show(self):
        print()
        print('Using configuration:')
        for k, v in self.__dict__.items():
            print(f'  + {k}: {v}')


def config_parser_factory(configuration_file):
    """
    Returns a ConfigParser by reading the specified file.
    """
    if configuration_file is None or not os.path.exists(configuration_file):
        raise ValueError(f'Unable to find configuration file {configuration_file}')
    cfg_parser = configparser.ConfigParser(interpolation=configparser.ExtendedInterpolation())
    cfg_parser.read(configuration_file)
    return cfg_parser


def _get_configuration_value(section, name, value_type, config_parser, overrides):
    """
    Returns a value from the provided config parser; any value for the key that
    is provided in the 'overrides' dictionary will take precedence.
    """
    if overrides.get(name) is None:
        if value_type is bool:
            return config_parser.getboolean(section, name)
        elif value_type is int:
            return config_parser.getint(section, name)
        elif value_type is float:
            return config_parser.getfloat(section, name)
        else:
            return config_parser.get(section, name)
    else:
        return overrides.get(name)


def configuration(config_parser, overrides):
    """
    Returns a Config object populated from the provided config parser, with
    values overridden by anything provided in 'overrides'.
    """
    config_parser['DEFAULT'] = {
        'product': constants.DEFAULT_PRODUCT,
        'institution': constants.DEFAULT_INSTITUTION,
        'overwrite': constants.DEFAULT_OVERWRITE,
        'cover_level': constants.DEFAULT_COVER_LEVEL,
        'perimeter_strategy': constants.DEFAULT_PERIMETER_STRATEGY,
        'perimeter_stride': constants.DEFAULT_PERIMETER_STRIDE,
        'retry_with_walk': constants.DEFAULT_RETRY_WITH_WALK,
        'meridian_threshold': constants.DEFAULT_MERIDIAN_THRESHOLD,
        'index_level': constants.DEFAULT_INDEX_LEVEL,
        'workers': constants.DEFAULT_WORKERS,
        'number': constants.DEFAULT_NUMBER,
    }
    try:
        return Config(
            _get_configuration_value(constants.SOURCE_SECTION_NAME, 'data_dir', str, config_parser, overrides),
            _get_configuration_value(constants.SOURCE_SECTION_NAME, 'product', str, config_parser, overrides),
            _get_configuration_value(constants.DESTINATION_SECTION_NAME, 'output_dir', str, config_parser, overrides),
            _get_configuration_value(constants.DESTINATION_SECTION_NAME, 'institution', str, config_parser, overrides),
            _get_configuration_value(constants.DESTINATION_SECTION_NAME, 'overwrite', bool, config_parser, overrides),
            _get_configuration_value(constants.SETTINGS_SECTION_NAME, 'cover_level', str, config_parser, overrides),
            _get_configuration_value(constants.SETTINGS_SECTION_NAME, 'perimeter_strategy', str, config_parser, overrides),
            _get_configuration_value(constants.SETTINGS_SECTION_NAME, 'perimeter_stride', int, config_parser, overrides),
            _get_configuration_value(constants.SETTINGS_SECTION_NAME, 'retry_with_walk', bool, config_parser, overrides),
            _get_configuration_value(constants.SETTINGS_SECTION_NAME, 'meridian_threshold', float, config_parser, overrides),
            _get_configuration_value(constants.SETTINGS_SECTION_NAME, 'index_level', int, config_parser, overrides),
            _get_configuration_value(constants.SETTINGS_SECTION_NAME, 'workers', int, config_parser, overrides),
            _get_configuration_value(constants.SETTINGS_SECTION_NAME, 'number', int, config_parser, overrides),
        )
    except (configparser.Error, ValueError) as e:
        raise ValueError(f'Unable to read the configuration file: {e}') from e


def _valid(fn):
    def check(value):
        try:
            fn(value)
        except ValueError:
            return False
        return True
    return check


def validate(configuration):
    """
    Validates each value in the configuration.
    """
    validations = [
        ['data_dir', lambda dir: os.path.exists(dir), 'The data_dir does not exist.'],
        ['output_dir', lambda dir: os.path.exists(dir), 'The output_dir does not exist.'],
        ['product', _valid(registry.lookup), 'The product is not supported.'],
        ['cover_level', _valid(cover_level_policy), "The cover_level must be 'auto' or a level from 0 to 27."],
        ['perimeter_strategy', _valid(perimeter_source), 'The perimeter_strategy is not recognized.'],
        ['perimeter_stride', lambda stride: stride > 0, 'The perimeter_stride must be positive.'],
        ['meridian_threshold', lambda t: 0 < t < 180, 'The meridian_threshold must be between 0 and 180 degrees.'],
        ['index_level', lambda level: 0 <= level <= constants.MAX_LEVEL, 'The index_level must be from 0 to 27.'],
        ['workers', lambda workers: workers > 0, 'The number of workers must be positive.'],
    ]
    errors = [msg for name, fn, msg in validations if not fn(getattr(configuration, name))]
    return len(errors) == 0, errors
