from nsidc.sidecar.readers.modis import Modis05L2Reader, Modis09L2Reader
from nsidc.sidecar.readers.netcdf_reader import NetcdfSwathReader
from nsidc.sidecar.readers.swath_reader import BaseSwathReader

READERS = {
    'mod05': Modis05L2Reader,
    'mod09': Modis09L2Reader,
    'netcdf': NetcdfSwathReader,
}


def products() -> list:
    return sorted(READERS)


def lookup(product: str) -> BaseSwathReader:
    """
    Determine which swath reader to use for the given product code.
    """
    try:
        return READERS[product.lower()]()
    except KeyError:
        raise ValueError(f'Unknown product {product}, expected one of {", ".join(products())}') from None
