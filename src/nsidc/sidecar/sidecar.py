import configparser
import dataclasses
import datetime as dt
import logging
import os.path
import sys
from pathlib import Path
from typing import Callable

from funcy import all, decorator, filter, partial, rcompose, take
from pyfiglet import Figlet
from returns.maybe import Maybe
from rich.prompt import Confirm, Prompt

from nsidc.sidecar import config
from nsidc.sidecar import constants
from nsidc.sidecar import store
from nsidc.sidecar.encoder import QuadtreeEncoder
from nsidc.sidecar.errors import SidecarError
from nsidc.sidecar.geodataset import BuildSettings, build_geo_dataset
from nsidc.sidecar.models import GeoDataset
from nsidc.sidecar.readers import registry


CONSOLE_FORMAT = "%(message)s"
LOGFILE_FORMAT = "%(asctime)s|%(levelname)s|%(name)s|%(message)s"

def init_logging(logfile: str = constants.LOGFILE_NAME):
    logger = logging.getLogger(constants.ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    logfile_handler = logging.FileHandler(logfile, "w")
    logfile_handler.setLevel(logging.DEBUG)
    logfile_handler.setFormatter(logging.Formatter(LOGFILE_FORMAT))
    logger.addHandler(logfile_handler)

    # Library modules log under the package name.
    package_logger = logging.getLogger("nsidc.sidecar")
    package_logger.setLevel(logging.DEBUG)
    package_logger.addHandler(logfile_handler)
    return logger

@decorator
def log(call):
    logging.getLogger(constants.ROOT_LOGGER).info(call._func.__name__)
    return call()

def banner():
    """
    Displays the name of this utility using incredible ASCII-art.
    """
    f = Figlet(font='slant')
    return f.renderText(constants.ROOT_LOGGER)

def init_config(configuration_file):
    """
    Prompts the user for configuration values and then creates a valid configuration file.
    """
    print("""This utility will create a sidecar generation configuration file by prompting """
          """you for values for each of the configuration parameters.""")
    print()
    if not configuration_file:
        configuration_file = Prompt.ask("configuration file name", default="example.ini")
    else:
        print(f'Creating configuration file {configuration_file}')
        print()

    if (os.path.exists(configuration_file)):
        print(f'WARNING: The {configuration_file} already exists.')
        overwrite = Confirm.ask("Overwrite?")
        if not overwrite:
            print('Not overwriting existing file. Exiting.')
            exit(1)

    cfg_parser = configparser.ConfigParser()

    print()
    print(f'{constants.SOURCE_SECTION_NAME} Data Parameters')
    print('--------------------------------------------------')
    cfg_parser.add_section(constants.SOURCE_SECTION_NAME)
    cfg_parser.set(constants.SOURCE_SECTION_NAME, "data_dir", Prompt.ask("Data directory", default="data"))
    cfg_parser.set(constants.SOURCE_SECTION_NAME, "product", Prompt.ask("Product", choices=registry.products(), default=constants.DEFAULT_PRODUCT.lower()))
    print()

    print()
    print(f'{constants.DESTINATION_SECTION_NAME} Parameters')
    print('--------------------------------------------------')
    cfg_parser.add_section(constants.DESTINATION_SECTION_NAME)
    cfg_parser.set(constants.DESTINATION_SECTION_NAME, "output_dir", Prompt.ask("Sidecar output directory", default="output"))
    cfg_parser.set(constants.DESTINATION_SECTION_NAME, "institution", Prompt.ask("Institution", default=constants.DEFAULT_INSTITUTION))
    cfg_parser.set(constants.DESTINATION_SECTION_NAME, "overwrite", Prompt.ask("Overwrite existing sidecar files? (True/False)", default=str(constants.DEFAULT_OVERWRITE)))

    print()
    print(f'{constants.SETTINGS_SECTION_NAME} Parameters')
    print('--------------------------------------------------')
    cfg_parser.add_section(constants.SETTINGS_SECTION_NAME)
    cfg_parser.set(constants.SETTINGS_SECTION_NAME, "cover_level", Prompt.ask("Cover level ('auto' or 0-27)", default=constants.DEFAULT_COVER_LEVEL))
    cfg_parser.set(constants.SETTINGS_SECTION_NAME, "perimeter_strategy", Prompt.ask("Perimeter strategy", choices=constants.PERIMETER_STRATEGIES, default=constants.DEFAULT_PERIMETER_STRATEGY))
    cfg_parser.set(constants.SETTINGS_SECTION_NAME, "perimeter_stride", Prompt.ask("Perimeter stride", default=str(constants.DEFAULT_PERIMETER_STRIDE)))
    cfg_parser.set(constants.SETTINGS_SECTION_NAME, "retry_with_walk", Prompt.ask("Retry missing boundary metadata with a perimeter walk? (True/False)", default=str(constants.DEFAULT_RETRY_WITH_WALK)))
    cfg_parser.set(constants.SETTINGS_SECTION_NAME, "meridian_threshold", Prompt.ask("Meridian threshold (degrees)", default=str(constants.DEFAULT_MERIDIAN_THRESHOLD)))
    cfg_parser.set(constants.SETTINGS_SECTION_NAME, "workers", Prompt.ask("Number of worker threads", default=str(constants.DEFAULT_WORKERS)))

    print()
    print(f'Saving new configuration: {configuration_file}')
    with open(configuration_file, "tw") as file:
        cfg_parser.write(file)

    return configuration_file

# -------------------------------------------------------------------
# -------------------------------------------------------------------

@dataclasses.dataclass
class Granule:
    id: str
    data_filename: str
    sidecar_filename: Maybe[str] = Maybe.empty
    dataset: Maybe[GeoDataset] = Maybe.empty
    skipped: bool = False

@dataclasses.dataclass
class Action:
    name: str
    successful: bool
    message: str
    startDatetime: Maybe[dt.datetime] = Maybe.empty
    endDatetime: Maybe[dt.datetime] = Maybe.empty

@dataclasses.dataclass
class Record:
    granule: Granule
    actions: list[Action] = dataclasses.field(default_factory=list)
    successful: bool = False
    startDatetime: Maybe[dt.datetime] = Maybe.empty
    endDatetime: Maybe[dt.datetime] = Maybe.empty

# -------------------------------------------------------------------

def process(configuration: config.Config) -> list[Record]:
    """
    Create a sidecar for every granule in the data directory.
    """
    operations = [
            prepare_granule,
            create_dataset,
            write_sidecar,
        ]

    configured_operations = [partial(fn, configuration) for fn in operations]
    recorded_operations = [partial(recorder, fn) for fn in configured_operations]
    pipeline = rcompose(
        start_record,
        *recorded_operations,
        end_record,
        log_record
    )

    reader = registry.lookup(configuration.product)
    gs = granules(configuration.data_dir, reader.file_pattern)
    if configuration.number >= 0:
        gs = take(configuration.number, gs)
    results = [pipeline(Record(g)) for g in gs]

    summarize_results(results)
    return results

def granules(data_dir: str, pattern: str = '*') -> list[Granule]:
    return [Granule(p.name, data_filename=str(p))
            for p in sorted(Path(data_dir).glob(pattern))
            if not p.name.endswith(constants.SIDECAR_SUFFIX)]

def recorder(fn: Callable[[Granule], Granule], record: Record) -> Record:
    """
    Runs one pipeline step and records its outcome. Once a step has failed
    the remaining steps are not run.
    """
    if not all([a.successful for a in record.actions]):
        return record

    start = dt.datetime.now()
    try:
        new_granule = fn(record.granule)
        successful, message = True, None
    except SidecarError as e:
        logging.getLogger(constants.ROOT_LOGGER).error(f"{record.granule.id}: {e}")
        new_granule, successful, message = record.granule, False, str(e)
    end = dt.datetime.now()

    new_actions = record.actions.copy()
    new_actions.append(
            Action(
                fn.func.__name__,
                successful=successful,
                message=message,
                startDatetime=start,
                endDatetime=end
            )
        )

    return dataclasses.replace(
        record,
        granule=new_granule,
        actions=new_actions
    )

def start_record(record: Record) -> Record:
    return dataclasses.replace(
        record,
        startDatetime=dt.datetime.now()
    )

def end_record(record: Record) -> Record:
    return dataclasses.replace(
        record,
        endDatetime=dt.datetime.now(),
        successful=all([a.successful for a in record.actions])
    )

@log
def prepare_granule(configuration: config.Config, granule: Granule) -> Granule:
    sidecar_filename = store.sidecar_filename(granule.data_filename, configuration.output_dir)
    skipped = os.path.exists(sidecar_filename) and not configuration.overwrite
    if skipped:
        logging.getLogger(constants.ROOT_LOGGER).info(f"Sidecar {sidecar_filename} exists, skipping {granule.id}")

    return dataclasses.replace(
        granule,
        sidecar_filename=sidecar_filename,
        skipped=skipped
    )

@log
def create_dataset(configuration: config.Config, granule: Granule) -> Granule:
    if granule.skipped:
        return granule

    dataset = build_geo_dataset(
        granule.data_filename,
        registry.lookup(configuration.product),
        QuadtreeEncoder(),
        BuildSettings.from_config(configuration),
        {'institution': configuration.institution},
    )
    return dataclasses.replace(
        granule,
        dataset=dataset
    )

@log
def write_sidecar(configuration: config.Config, granule: Granule) -> Granule:
    if granule.skipped:
        return granule

    store.write_sidecar(granule.dataset, granule.sidecar_filename)
    return granule

def log_record(record: Record) -> Record:
    logger = logging.getLogger(constants.ROOT_LOGGER)
    logger.info(f"  {record.granule.id}")
    logger.info(f"    * Sidecar        : {record.granule.sidecar_filename}")
    logger.info(f"    * Skipped        : {record.granule.skipped}")
    logger.info(f"    * Successful     : {record.successful}")
    logger.info(f"    * Start          : {record.startDatetime}")
    logger.info(f"    * End            : {record.endDatetime}")
    if isinstance(record.granule.dataset, GeoDataset):
        for failure in record.granule.dataset.failures:
            logger.info(f"    * Partial        : {failure}")
    logger.debug(f"    * Actions:")
    for a in record.actions:
        logger.debug(f"        + Name: {a.name}")
        logger.debug(f"          Start     : {a.startDatetime}")
        logger.debug(f"          End       : {a.endDatetime}")
        logger.debug(f"          Successful: {a.successful}")
        if a.message:
            logger.debug(f"          Message   : {a.message}")
    return record

def summarize_results(records: list[Record]) -> None:
    logger = logging.getLogger(constants.ROOT_LOGGER)
    if not records:
        logger.info("No granules found")
        return

    successful_count = len(list(filter(lambda r: r.successful, records)))
    failed_count = len(list(filter(lambda r: not r.successful, records)))
    skipped_count = len(list(filter(lambda r: r.granule.skipped, records)))
    logger.info("Processing Summary")
    logger.info("==================")
    logger.info(f"Granules: {len(records)}")
    logger.info(f"Start: {records[0].startDatetime}")
    logger.info(f"End: {records[-1].endDatetime}")
    logger.info(f"Successful: {successful_count}")
    logger.info(f"Skipped: {skipped_count}")
    logger.info(f"Failed: {failed_count}")

def create_sidecar(data_file: str,
                   product: str,
                   settings: BuildSettings,
                   output_file: str = None,
                   output_dir: str = None,
                   institution: str = constants.DEFAULT_INSTITUTION) -> str:
    """
    Create the sidecar for a single data file and return its path.
    """
    dataset = build_geo_dataset(
        data_file,
        registry.lookup(product),
        QuadtreeEncoder(),
        settings,
        {'institution': institution},
    )
    path = output_file or store.sidecar_filename(data_file, output_dir)
    return store.write_sidecar(dataset, path)
