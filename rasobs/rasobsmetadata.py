UWYO_SOUNDING_URL = "http://weather.uwyo.edu/cgi-bin/sounding"

# The archive also answers under /wsgi/sounding, but only the cgi-bin endpoint serves TEXT:LIST pages
# with the station information block.

DEFAULT_REGION = "europe"

DEFAULT_TYPE = "TEXT:LIST"

DEFAULT_HOURS = (0, 12)

REQUEST_TIMEOUT = 30

EXAMPLE_STATION_ID = "01028"

# Page fragments returned instead of a sounding table
NO_DATA_MARKERS = (
    "Can't get",
    "Sorry, the server is too busy",
    "Sorry, unable to generate",
)

SOUNDING_COLUMNS = {
    'PRES': ('Atmospheric Pressure', 'hPa'),
    'HGHT': ('Geopotential Height', 'm'),
    'TEMP': ('Temperature', 'C'),
    'DWPT': ('Dew Point Temperature', 'C'),
    'RELH': ('Relative Humidity', '%'),
    'MIXR': ('Mixing Ratio', 'g/kg'),
    'DRCT': ('Wind Direction', 'deg'),
    'SKNT': ('Wind Speed', 'knot'),
    'THTA': ('Potential Temperature', 'K'),
    'THTE': ('Equivalent Potential Temperature', 'K'),
    'THTV': ('Virtual Potential Temperature', 'K'),
}

STATION_INFO_NAMES = {
    'Station identifier': 'STID',
    'Station number': 'STNM',
    'Observation time': 'OBST',
    'Station latitude': 'SLAT',
    'Station longitude': 'SLON',
    'Station elevation': 'SELV',
    'Showalter index': 'SHOW',
    'Lifted index': 'LIFT',
    'LIFT computed using virtual temperature': 'LFTV',
    'SWEAT index': 'SWET',
    'K index': 'KINX',
    'Cross totals index': 'CTOT',
    'Vertical totals index': 'VTOT',
    'Totals totals index': 'TOTL',
    'Convective Available Potential Energy': 'CAPE',
    'CAPE using virtual temperature': 'CAPV',
    'Convective Inhibition': 'CINS',
    'CINS using virtual temperature': 'CINV',
    'Equilibrum Level': 'EQLV',
    'Equilibrum Level using virtual temperature': 'EQTV',
    'Level of Free Convection': 'LFCT',
    'LFCT using virtual temperature': 'LFCV',
    'Bulk Richardson Number': 'BRCH',
    'Bulk Richardson Number using CAPV': 'BRCV',
    'Temp [K] of the Lifted Condensation Level': 'LCLT',
    'Pres [hPa] of the Lifted Condensation Level': 'LCLP',
    'Mean mixed layer potential temperature': 'MLTH',
    'Mean mixed layer mixing ratio': 'MLMR',
    '1000 hPa to 500 hPa thickness': 'THTK',
    'Precipitable water [mm] for entire sounding': 'PWAT',
}

# Short names that are not stored as floats
STATION_INFO_TEXT = ('STID', 'OBST')

# Station information written under readable names in stored files
LOCATION_NAMES = {
    'SLAT': 'latitude',
    'SLON': 'longitude',
    'SELV': 'elevation',
}
