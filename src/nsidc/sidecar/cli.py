import click

from nsidc.sidecar import config
from nsidc.sidecar import constants
from nsidc.sidecar import sidecar
from nsidc.sidecar import store
from nsidc.sidecar.encoder import build_index, format_index
from nsidc.sidecar.errors import SidecarError
from nsidc.sidecar.geodataset import BuildSettings
from nsidc.sidecar.models import (BoundaryMetadata, StridedWalk, cover_level_policy)
from nsidc.sidecar.readers import registry


@click.group(epilog="For detailed help on each command, run: sidecarc COMMAND --help")
def cli():
    """The sidecarc utility derives per-pixel spatial index values and a
    footprint cover for satellite swath granules, and writes them to a
    sidecar file next to each data file."""
    pass

@cli.command()
@click.option('-c', '--config', help='Path to configuration file to create or replace')
def init(config):
    """Populates a configuration file based on user input."""
    click.echo(sidecar.banner())
    config = sidecar.init_config(config)
    click.echo(f'Initialized the sidecarc configuration file {config}')

@cli.command()
@click.option('-c', '--config', 'config_filename', help='Path to configuration file to display', required=True)
def info(config_filename):
    """Summarizes the contents of a configuration file."""
    click.echo(sidecar.banner())
    try:
        configuration = config.configuration(config.config_parser_factory(config_filename), {})
    except ValueError as e:
        raise click.ClickException(str(e))
    configuration.show()

@cli.command()
@click.option('-c', '--config', 'config_filename', help='Path to configuration file', required=True)
@click.option('-n', '--number', help="Process at most 'count' granules.", metavar='count', required=False, default=constants.DEFAULT_NUMBER)
@click.option('-t', '--workers', type=int, help="Number of worker threads.", required=False, default=None)
@click.option('-f', '--overwrite', is_flag=True, help="Replace existing sidecar files.")
def process(config_filename, number, workers, overwrite):
    """Creates sidecar files for the data files named by the configuration file."""
    click.echo(sidecar.banner())
    overrides = {
        'number': number,
        'workers': workers,
        'overwrite': overwrite or None,
    }
    try:
        configuration = config.configuration(config.config_parser_factory(config_filename), overrides)
    except ValueError as e:
        raise click.ClickException(str(e))

    valid, errors = config.validate(configuration)
    if not valid:
        for error in errors:
            click.echo(error, err=True)
        raise SystemExit(1)

    sidecar.init_logging()
    try:
        sidecar.process(configuration)
    except SidecarError as e:
        print("\nUnable to process data: " + str(e))
        exit(1)
    click.echo(f'Processed granules using the configuration file {config_filename}')

@cli.command()
@click.argument('data_file', type=click.Path(exists=True, dir_okay=False))
@click.option('-d', '--data-type', 'product', help='Product of the data file.', type=click.Choice(registry.products(), case_sensitive=False), default=constants.DEFAULT_PRODUCT.lower(), show_default=True)
@click.option('-c', '--cover-level', default=constants.DEFAULT_COVER_LEVEL, show_default=True, help="Cover level, 'auto' or -1 for the finest level found while indexing.")
@click.option('-w', '--walk-perimeter', 'stride', type=int, default=None, help='Build the cover by walking the grid perimeter with this stride.')
@click.option('-g', '--use-gring', is_flag=True, help='Build the cover from the boundary corners in product metadata.')
@click.option('-x', '--retry-with-walk', is_flag=True, help='Walk the perimeter when boundary corners are unavailable.')
@click.option('-m', '--meridian-threshold', type=float, default=constants.DEFAULT_MERIDIAN_THRESHOLD, show_default=True, help='Largest step in degrees between neighboring coarse pixels.')
@click.option('-l', '--index-level', type=click.IntRange(0, constants.MAX_LEVEL), default=constants.DEFAULT_INDEX_LEVEL, show_default=True, help='Level at which pixels are first indexed.')
@click.option('-t', '--workers', type=click.IntRange(min=1), default=constants.DEFAULT_WORKERS, show_default=True, help='Number of worker threads.')
@click.option('-o', '--output-file', help='Sidecar file name.')
@click.option('-r', '--output-dir', help='Directory for the sidecar file.')
@click.option('-i', '--institution', default=constants.DEFAULT_INSTITUTION, help='Institution attribute of the sidecar file.')
def create(data_file, product, cover_level, stride, use_gring, retry_with_walk,
           meridian_threshold, index_level, workers, output_file, output_dir, institution):
    """Creates the sidecar file for one data file."""
    if use_gring and stride is not None:
        raise click.UsageError('Both a perimeter walk (-w) and the G-ring (-g) were requested, choose one.')
    if stride is not None and stride < 1:
        raise click.BadParameter('The perimeter stride must be positive.', param_hint='--walk-perimeter')

    try:
        settings = BuildSettings(
            cover_level=cover_level_policy(cover_level),
            perimeter=BoundaryMetadata() if use_gring else StridedWalk(stride or constants.DEFAULT_PERIMETER_STRIDE),
            retry_with_walk=retry_with_walk,
            retry_stride=stride or constants.DEFAULT_PERIMETER_STRIDE,
            meridian_threshold=meridian_threshold,
            index_level=index_level,
            workers=workers,
        )
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--cover-level')

    sidecar.init_logging()
    try:
        path = sidecar.create_sidecar(data_file, product, settings, output_file, output_dir, institution)
    except SidecarError as e:
        click.echo(f'Unable to create sidecar for {data_file}: {e}', err=True)
        exit(1)
    click.echo(f'Created sidecar {path}')

@cli.command()
@click.argument('sidecar_file', type=click.Path(exists=True, dir_okay=False))
@click.option('-v', '--verbose', is_flag=True, help='List every variable and cover cell.')
def check(sidecar_file, verbose):
    """Reads a sidecar file and summarizes its contents."""
    try:
        lines = store.sidecar_summary(sidecar_file, verbose)
    except SidecarError as e:
        click.echo(f'Invalid sidecar {sidecar_file}: {e}', err=True)
        exit(1)
    for line in lines:
        click.echo(line)

@cli.command()
@click.argument('value', required=False)
@click.option('-f', '--format', 'representation', type=click.Choice(['h', 'b']), default='h', show_default=True, help="Print in hex ('h') or binary ('b').")
@click.option('-s', '--split', is_flag=True, help='Print the location and resolution parts separately.')
@click.option('-b', '--build', nargs=2, type=int, default=None, metavar='LOCATION LEVEL', help='Build an index value from a location and a level.')
def index(value, representation, split, build):
    """Prints a spatial index value, or builds one from its parts."""
    if build:
        location, level = build
        try:
            value = build_index(location, level)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint='--build')
    elif value is None:
        raise click.UsageError('Provide an index VALUE or --build LOCATION LEVEL.')
    else:
        try:
            value = int(value, 0)
        except ValueError:
            raise click.BadParameter(f'{value} is not an integer.', param_hint='VALUE')

    for line in format_index(value, representation, split):
        click.echo(line)

if __name__ == "__main__":
    cli()
