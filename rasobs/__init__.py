"""
RASOBS: University of Wyoming radiosonde toolkit

This library provides tools for working with upper-air soundings from the
University of Wyoming archive, including:
- Downloading and parsing sounding pages
- Saving soundings as CSV, Parquet or NetCDF
- Homogenizing profiles for radiative transfer simulations
- Browsing stored soundings in an interactive viewer
"""

__version__ = "0.1.0"

from .rasobs import (
    build_url,
    filter_by_date_range,
    load_data,
    load_soundings,
    parse_sounding_page,
    read_sounding,
    read_soundings,
    save_soundings,
)
