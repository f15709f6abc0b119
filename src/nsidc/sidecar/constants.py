# Default configuration values
DEFAULT_PRODUCT = 'MOD05'
DEFAULT_COVER_LEVEL = 'auto'
DEFAULT_PERIMETER_STRATEGY = 'strided-walk'
DEFAULT_PERIMETER_STRIDE = 1
DEFAULT_RETRY_WITH_WALK = False
DEFAULT_MERIDIAN_THRESHOLD = 0.4
DEFAULT_INDEX_LEVEL = 27
DEFAULT_WORKERS = 4
DEFAULT_INSTITUTION = ''
DEFAULT_OVERWRITE = False
DEFAULT_NUMBER = -1

# Logging
ROOT_LOGGER = 'sidecarc'
LOGFILE_NAME = 'sidecarc.log'

# Configuration sections
SOURCE_SECTION_NAME = 'Source'
DESTINATION_SECTION_NAME = 'Destination'
SETTINGS_SECTION_NAME = 'Settings'

# Cover level and perimeter choices
AUTO_COVER_LEVEL = 'auto'
STRIDED_WALK = 'strided-walk'
BOUNDARY_METADATA = 'boundary-metadata'
PERIMETER_STRATEGIES = [STRIDED_WALK, BOUNDARY_METADATA]

# Index value layout of the reference encoder
MAX_LEVEL = 27
LEVEL_BITS = 5
LEVEL_MASK = 0x1f
HALF_MERIDIAN_METERS = 20003931.0

# Number of boundary corners in product metadata
NUM_BOUNDARY_CORNERS = 4

# Sidecar file layout
SIDECAR_SUFFIX = '_sidecar.nc'
LAT_NAME = 'Latitude'
LON_NAME = 'Longitude'
I_NAME = 'i'
J_NAME = 'j'
L_NAME = 'l'
INDEX_NAME = 'spatial_index'
COVER_NAME = 'spatial_cover'
LONG_NAME = 'long_name'
UNITS = 'units'
LAT_LONG_NAME = 'latitude'
LON_LONG_NAME = 'longitude'
LAT_UNITS = 'degrees_north'
LON_UNITS = 'degrees_east'
INDEX_LONG_NAME = 'hierarchical spatial index'
COVER_LONG_NAME = 'hierarchical spatial cover'
VARIABLES_ATTR = 'variables'
FINEST_LEVEL_ATTR = 'finest_level'
COVER_LEVEL_ATTR = 'cover_level'
DEFLATE_LEVEL = 3
