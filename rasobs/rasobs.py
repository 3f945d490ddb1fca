"""
Wyoming upper-air archive reader.

This module fetches radiosonde soundings from the University of Wyoming
upper-air archive, including:
- Building the archive query URL for a station, date and hour
- Scraping the TEXT:LIST page into a sounding record
- Collecting records over a date range, skipping missing soundings
- Saving records as CSV, Parquet or NetCDF and reading them back

A sounding record is a plain dictionary::

    {
        'station': '01028',
        'station_id': 'ENBJ',
        'station_name': 'Bjornoya',
        'time': Timestamp('2015-01-01 12:00:00'),
        'metvar': {'SLAT': 74.5, 'SLON': 19.0, 'SELV': 16.0, 'CAPE': 0.0, ...},
        'data': DataFrame with columns PRES, HGHT, TEMP, DWPT, RELH, ...
    }
"""

from typing import Dict, List, Optional, Sequence, Union
import argparse
import datetime
import os
import re
import time as timer
from pathlib import Path
from urllib.parse import urlencode

import numpy as np
import pandas as pd
import requests
import xarray as xr
from bs4 import BeautifulSoup
from tqdm import tqdm

from . import rasobsmetadata as metadata

TITLE_PATTERN = re.compile(
    r'^\s*(?P<number>\S+)\s+(?P<name>.*?)\s*Observations at\s+'
    r'(?P<hour>\d{2})Z\s+(?P<date>\d{1,2}\s+\w{3}\s+\d{4})'
)

STATION_ID_PATTERN = re.compile(r'[A-Z0-9]{3,4}')

TIMESTAMP = Union[str, int, datetime.datetime, pd.Timestamp]


def _to_timestamp(value: TIMESTAMP) -> pd.Timestamp:
    """Accept YYYYMMDD integers as well as anything pandas understands."""
    if isinstance(value, (int, np.integer)):
        return pd.to_datetime(str(value), format='%Y%m%d')
    return pd.Timestamp(value)


def build_url(station: str,
              when: TIMESTAMP,
              region: str = metadata.DEFAULT_REGION,
              sounding_type: str = metadata.DEFAULT_TYPE) -> str:
    """
    Build the archive URL for a single sounding.

    Args:
        station: WMO station number (e.g., "01028" for Bjornoya)
        when: Launch date and hour (UTC)
        region: Archive region, only used by the archive for its map links
        sounding_type: Page type, "TEXT:LIST" for the tabular page

    Returns:
        URL requesting the sounding from `when` to `when`.

    Examples:
        >>> build_url("01028", "2015-01-01 12:00")
        'http://weather.uwyo.edu/cgi-bin/sounding?region=europe&TYPE=TEXT%3ALIST&YEAR=2015&MONTH=01&FROM=0112&TO=0112&STNM=01028'
    """
    when = _to_timestamp(when)
    slot = f"{when.day:02d}{when.hour:02d}"
    params = {
        'region': region,
        'TYPE': sounding_type,
        'YEAR': f"{when.year:04d}",
        'MONTH': f"{when.month:02d}",
        'FROM': slot,
        'TO': slot,
        'STNM': str(station),
    }
    return f"{metadata.UWYO_SOUNDING_URL}?{urlencode(params)}"


def fetch_sounding_page(station: str,
                        when: TIMESTAMP,
                        region: str = metadata.DEFAULT_REGION,
                        sounding_type: str = metadata.DEFAULT_TYPE,
                        timeout: float = metadata.REQUEST_TIMEOUT) -> Optional[str]:
    """
    Download the HTML page of a single sounding.

    Returns:
        The page text, or None when the request failed or the archive has
        no sounding for this station and time.
    """
    when = _to_timestamp(when)
    url = build_url(station, when, region, sounding_type)

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        print(f"Error downloading sounding for station {station} at {when:%Y-%m-%d %HZ}: {e}")
        return None

    page = response.text

    if any(marker in page for marker in metadata.NO_DATA_MARKERS):
        print(f"No sounding available for station {station} at {when:%Y-%m-%d %HZ}")
        return None

    if '<pre>' not in page.lower():
        print(f"No sounding table in page for station {station} at {when:%Y-%m-%d %HZ}")
        return None

    return page


def _parse_title(text: str) -> Optional[Dict]:
    """
    Parse a page title such as "01028 ENBJ Bjornoya Observations at 12Z 01 Jan 2015".

    Stations without an identifier have the name right after the number.
    """
    match = TITLE_PATTERN.match(text)
    if match is None:
        return None

    tokens = match.group('name').split()
    station_id = ''
    if tokens and STATION_ID_PATTERN.fullmatch(tokens[0]):
        station_id = tokens.pop(0)

    return {
        'station': match.group('number'),
        'station_id': station_id,
        'station_name': ' '.join(tokens),
        'time': pd.to_datetime(f"{match.group('date')} {match.group('hour')}", format='%d %b %Y %H'),
    }


def _parse_table(text: str) -> pd.DataFrame:
    """
    Parse the fixed-width sounding table.

    Values are right-aligned to the end of their header token and left blank
    when missing, so each cell is cut between the end of the previous header
    token and the end of its own.
    """
    lines = text.splitlines()

    header_idx = None
    for i, line in enumerate(lines):
        if 'PRES' in line and 'HGHT' in line:
            header_idx = i
            break

    if header_idx is None:
        raise ValueError("No sounding table header found")

    names = []
    edges = []
    start = 0
    for match in re.finditer(r'\S+', lines[header_idx]):
        names.append(match.group())
        edges.append((start, match.end()))
        start = match.end()

    rows = []
    # header_idx + 1 holds the units
    for line in lines[header_idx + 2:]:
        stripped = line.strip()
        if not stripped or set(stripped) == {'-'}:
            continue

        line = line.ljust(start)
        row = []
        for left, right in edges:
            cell = line[left:right].strip()
            try:
                row.append(float(cell) if cell else np.nan)
            except ValueError:
                row.append(np.nan)

        if np.all(np.isnan(row)):
            continue
        rows.append(row)

    return pd.DataFrame(rows, columns=names, dtype=float)


def _parse_station_info(text: str) -> Dict:
    """Parse the "Station information and sounding indices" block into short names."""
    metvar = {}
    for line in text.splitlines():
        label, sep, value = line.partition(':')
        if not sep:
            continue

        label = label.strip()
        value = value.strip()
        name = metadata.STATION_INFO_NAMES.get(label, label)

        if name == 'OBST':
            try:
                metvar[name] = pd.to_datetime(value, format='%y%m%d/%H%M')
            except ValueError:
                print(f"Warning: Could not parse observation time: {value}")
        elif name == 'STID':
            metvar[name] = value
        else:
            try:
                metvar[name] = float(value)
            except ValueError:
                metvar[name] = value

    return metvar


def parse_sounding_pages(html: str) -> List[Dict]:
    """
    Parse every sounding contained in an archive page.

    A page requested with FROM != TO holds one title, table and station
    information block per sounding.

    Parameters
    ----------
    html : str
        Page returned by the archive

    Returns
    -------
    List[Dict]
        Sounding records in page order
    """
    soup = BeautifulSoup(html, 'lxml')
    records = []

    for title in soup.find_all('h2'):
        table = title.find_next('pre')
        if table is None:
            continue

        info = {}
        section = table.find_next(['h2', 'h3'])
        if section is not None and section.name == 'h3' and 'Station information' in section.get_text():
            info_block = section.find_next('pre')
            if info_block is not None:
                info = _parse_station_info(info_block.get_text())

        header = _parse_title(title.get_text())
        if header is None:
            if 'STNM' not in info or 'OBST' not in info:
                print(f"Warning: Skipping sounding with unreadable title: {title.get_text().strip()}")
                continue
            header = {
                'station': f"{int(info['STNM']):05d}",
                'station_id': '',
                'station_name': '',
                'time': info['OBST'],
            }

        for short in metadata.LOCATION_NAMES:
            info.setdefault(short, np.nan)

        records.append({
            'station': header['station'],
            'station_id': info.get('STID', header['station_id']),
            'station_name': header['station_name'],
            'time': info.get('OBST', header['time']),
            'metvar': info,
            'data': _parse_table(table.get_text()),
        })

    return records


def parse_sounding_page(html: str) -> Dict:
    """
    Parse a single-sounding archive page into a sounding record.

    Raises
    ------
    ValueError
        If the page holds no sounding table
    """
    records = parse_sounding_pages(html)
    if not records:
        raise ValueError("No sounding table found in page")
    return records[0]


def read_sounding(station: str,
                  when: TIMESTAMP,
                  region: str = metadata.DEFAULT_REGION,
                  sounding_type: str = metadata.DEFAULT_TYPE,
                  timeout: float = metadata.REQUEST_TIMEOUT) -> Optional[Dict]:
    """
    Fetch and parse one sounding.

    Returns None when the sounding is missing or unreadable so that callers
    can simply skip the slot.

    Examples:
        >>> record = read_sounding("01028", "2015-01-01 12:00")
        >>> record['data'][['PRES', 'HGHT', 'TEMP']].head()
    """
    when = _to_timestamp(when)
    page = fetch_sounding_page(station, when, region, sounding_type, timeout)
    if page is None:
        return None

    try:
        record = parse_sounding_page(page)
    except ValueError as e:
        print(f"Error parsing sounding for station {station} at {when:%Y-%m-%d %HZ}: {e}")
        return None

    if record['data'].empty:
        print(f"Warning: Sounding for station {station} at {when:%Y-%m-%d %HZ} has no levels")
        return None

    return record


def read_soundings(station: str,
                   start_date: TIMESTAMP,
                   end_date: TIMESTAMP,
                   hours: Sequence[int] = metadata.DEFAULT_HOURS,
                   region: str = metadata.DEFAULT_REGION,
                   sounding_type: str = metadata.DEFAULT_TYPE,
                   sleep: float = 0.0) -> List[Dict]:
    """
    Collect the soundings of a station over a date range.

    Every day from start_date to end_date (inclusive) is requested at each
    of the given hours. Missing soundings are skipped.

    Args:
        station: WMO station number
        start_date: First day, e.g. 20150101 or "2015-01-01"
        end_date: Last day (inclusive)
        hours: Launch hours (UTC) to request for every day
        region: Archive region
        sounding_type: Page type
        sleep: Seconds to wait between requests

    Returns:
        Sounding records sorted by time.

    Examples:
        >>> records = read_soundings("01028", 20150101, 20150131, hours=[0, 12])
        >>> print(f"Retrieved {len(records)} soundings")
    """
    start = _to_timestamp(start_date).normalize()
    end = _to_timestamp(end_date).normalize()
    if end < start:
        raise ValueError(f"end_date {end:%Y-%m-%d} is before start_date {start:%Y-%m-%d}")

    slots = [day + pd.Timedelta(hours=int(hour))
             for day in pd.date_range(start, end, freq='D')
             for hour in sorted(hours)]

    records = []
    missing = 0
    for when in tqdm(slots, desc=f"Station {station}", unit='sounding'):
        record = read_sounding(station, when, region, sounding_type)
        if record is None:
            missing += 1
        else:
            records.append(record)

        if sleep:
            timer.sleep(sleep)

    print(f"Retrieved {len(records)} soundings for station {station} ({missing} missing)")

    records.sort(key=lambda record: record['time'])
    return records


def _sounding_columns(records: List[Dict]) -> List[str]:
    """Sounding columns present in any record, in archive order."""
    present = set()
    for record in records:
        present.update(record['data'].columns)
    known = [name for name in metadata.SOUNDING_COLUMNS if name in present]
    extra = sorted(name for name in present if name not in metadata.SOUNDING_COLUMNS)
    return known + extra


def _index_names(records: List[Dict]) -> List[str]:
    """Numeric station information names present in any record, in archive order."""
    present = set()
    for record in records:
        for name, value in record['metvar'].items():
            if isinstance(value, (float, int, np.floating, np.integer)) and not isinstance(value, bool):
                present.add(name)

    skip = set(metadata.LOCATION_NAMES) | set(metadata.STATION_INFO_TEXT)
    known = [name for name in metadata.STATION_INFO_NAMES.values() if name in present and name not in skip]
    extra = sorted(name for name in present if name not in skip and name not in known)
    return known + extra


def soundings_to_df(records: List[Dict]) -> pd.DataFrame:
    """
    Flatten sounding records into a long DataFrame with one row per level.

    Columns are num_profiles, station, station_id, station_name, datetime,
    date (YYYYMMDD), time (HH), latitude, longitude, elevation, the sounding
    columns and the numeric sounding indices (CAPE, PWAT, ...).
    """
    if not records:
        raise ValueError("No soundings provided")

    columns = _sounding_columns(records)
    indices = _index_names(records)

    frames = []
    for i, record in enumerate(records):
        when = pd.Timestamp(record['time'])
        metvar = record['metvar']

        header = {
            'num_profiles': i,
            'station': record['station'],
            'station_id': record['station_id'],
            'station_name': record['station_name'],
            'datetime': when,
            'date': int(when.strftime('%Y%m%d')),
            'time': when.hour,
        }
        for short, name in metadata.LOCATION_NAMES.items():
            header[name] = metvar.get(short, np.nan)

        profile = record['data'].reindex(columns=columns)
        profile = profile.assign(**header, **{name: metvar.get(name, np.nan) for name in indices})
        frames.append(profile[list(header) + columns + indices])

    return pd.concat(frames, ignore_index=True)


def soundings_to_dataset(records: List[Dict]) -> xr.Dataset:
    """
    Pack sounding records into a Dataset with dimensions (num_profiles, levels).

    Profiles shorter than the longest one are padded with NaN.
    """
    if not records:
        raise ValueError("No soundings provided")

    columns = _sounding_columns(records)
    indices = _index_names(records)

    num_profiles = len(records)
    max_levels = max(len(record['data']) for record in records)

    levels = {name: np.full((num_profiles, max_levels), np.nan, dtype=np.float32) for name in columns}
    profile_vars = {name: np.full(num_profiles, np.nan, dtype=np.float32)
                    for name in list(metadata.LOCATION_NAMES.values()) + indices}

    dates = np.zeros(num_profiles, dtype=np.int32)
    times = np.zeros(num_profiles, dtype=np.int32)
    stations = []
    station_ids = []
    station_names = []

    for i, record in enumerate(records):
        when = pd.Timestamp(record['time'])
        dates[i] = when.year * 10000 + when.month * 100 + when.day
        times[i] = when.hour
        stations.append(record['station'])
        station_ids.append(record['station_id'])
        station_names.append(record['station_name'])

        data = record['data']
        for name in columns:
            if name in data.columns:
                levels[name][i, :len(data)] = data[name].to_numpy(dtype=float)

        metvar = record['metvar']
        for short, name in metadata.LOCATION_NAMES.items():
            profile_vars[name][i] = metvar.get(short, np.nan)
        for name in indices:
            profile_vars[name][i] = metvar.get(name, np.nan)

    ds = xr.Dataset(
        data_vars={
            'date': (['num_profiles'], dates),
            'time': (['num_profiles'], times),
            'station': (['num_profiles'], np.array(stations, dtype=object)),
            'station_id': (['num_profiles'], np.array(station_ids, dtype=object)),
            'station_name': (['num_profiles'], np.array(station_names, dtype=object)),
            **{name: (['num_profiles'], values) for name, values in profile_vars.items()},
            **{name: (['num_profiles', 'levels'], values) for name, values in levels.items()},
        },
        coords={
            'num_profiles': np.arange(num_profiles),
            'levels': np.arange(max_levels),
        }
    )

    ds.date.attrs.update({'units': 'YYYYMMDD', 'long_name': 'Date of sounding'})
    ds.time.attrs.update({'units': 'HH', 'long_name': 'Time of sounding (UTC)'})
    ds.latitude.attrs.update({'units': 'degrees_north', 'long_name': 'Station latitude'})
    ds.longitude.attrs.update({'units': 'degrees_east', 'long_name': 'Station longitude'})
    ds.elevation.attrs.update({'units': 'm', 'long_name': 'Station elevation'})

    labels = {short: label for label, short in metadata.STATION_INFO_NAMES.items()}
    for name in indices:
        ds[name].attrs['long_name'] = labels.get(name, name)

    for name in columns:
        if name in metadata.SOUNDING_COLUMNS:
            long_name, units = metadata.SOUNDING_COLUMNS[name]
            ds[name].attrs.update({'units': units, 'long_name': long_name})

    ds.attrs['title'] = 'University of Wyoming radiosonde soundings'
    ds.attrs['source'] = metadata.UWYO_SOUNDING_URL
    ds.attrs['history'] = f'Created {datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")}'

    return ds


def save_soundings(records: List[Dict],
                   file_path: Union[str, Path],
                   file_type: Optional[str] = None) -> Path:
    """
    Save sounding records as CSV, Parquet or NetCDF.

    Parameters
    ----------
    records : List[Dict]
        Sounding records to save
    file_path : Union[str, Path]
        Output file. Missing parent directories are created.
    file_type : str, optional
        'csv', 'parquet' or 'netcdf'/'nc'. Taken from the file suffix when None.

    Returns
    -------
    Path
        The written file
    """
    if not records:
        raise ValueError("No soundings to save")

    file_path = Path(file_path)
    file_type = (file_type or file_path.suffix.lstrip('.')).lower()

    if file_type not in ['netcdf', 'nc', 'csv', 'parquet']:
        raise ValueError("file_type must be either 'netcdf', 'nc', 'csv' or 'parquet'")

    file_path.parent.mkdir(parents=True, exist_ok=True)

    if file_type in ['netcdf', 'nc']:
        soundings_to_dataset(records).to_netcdf(file_path)
    elif file_type == 'csv':
        soundings_to_df(records).to_csv(file_path, index=False)
    else:
        soundings_to_df(records).to_parquet(file_path, index=False)

    print(f"Successfully saved {len(records)} soundings to: {file_path}")
    return file_path


def _text(value) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return ''
    return str(value)


def _df_to_records(df: pd.DataFrame) -> List[Dict]:
    columns = [name for name in metadata.SOUNDING_COLUMNS if name in df.columns]
    skip = set(metadata.LOCATION_NAMES) | set(metadata.STATION_INFO_TEXT)
    indices = [name for name in metadata.STATION_INFO_NAMES.values() if name in df.columns and name not in skip]

    records = []
    for _, profile in df.groupby('num_profiles', sort=True):
        first = profile.iloc[0]

        if 'datetime' in profile.columns:
            when = pd.Timestamp(first['datetime'])
        else:
            when = pd.to_datetime(f"{int(first['date']):08d}{int(first['time']):02d}", format='%Y%m%d%H')

        metvar = {}
        for short, name in metadata.LOCATION_NAMES.items():
            metvar[short] = float(first[name]) if name in profile.columns else np.nan
        for name in indices:
            if pd.notna(first[name]):
                metvar[name] = float(first[name])

        records.append({
            'station': _text(first.get('station')),
            'station_id': _text(first.get('station_id')),
            'station_name': _text(first.get('station_name')),
            'time': when,
            'metvar': metvar,
            'data': profile[columns].reset_index(drop=True),
        })

    return records


def _dataset_to_records(ds: xr.Dataset) -> List[Dict]:
    columns = [name for name in metadata.SOUNDING_COLUMNS if name in ds.variables]
    skip = set(metadata.LOCATION_NAMES) | set(metadata.STATION_INFO_TEXT)
    indices = [name for name in metadata.STATION_INFO_NAMES.values() if name in ds.variables and name not in skip]

    records = []
    for i in range(ds.sizes['num_profiles']):
        profile = ds.isel(num_profiles=i)

        when = pd.to_datetime(f"{int(profile['date'].values):08d}{int(profile['time'].values):02d}",
                              format='%Y%m%d%H')

        metvar = {}
        for short, name in metadata.LOCATION_NAMES.items():
            metvar[short] = float(profile[name].values) if name in ds.variables else np.nan
        for name in indices:
            value = float(profile[name].values)
            if not np.isnan(value):
                metvar[name] = value

        data = pd.DataFrame({name: profile[name].values.astype(float) for name in columns})

        records.append({
            'station': _text(profile['station'].values.item()) if 'station' in ds.variables else '',
            'station_id': _text(profile['station_id'].values.item()) if 'station_id' in ds.variables else '',
            'station_name': _text(profile['station_name'].values.item()) if 'station_name' in ds.variables else '',
            'time': when,
            'metvar': metvar,
            'data': data.dropna(how='all').reset_index(drop=True),
        })

    return records


def _read_table(file_path: Path) -> pd.DataFrame:
    text_columns = {'station': str, 'station_id': str, 'station_name': str}
    if file_path.suffix.lower() == '.csv':
        return pd.read_csv(file_path, dtype=text_columns, parse_dates=['datetime'])
    return pd.read_parquet(file_path)


def load_soundings(file_path: Union[str, Path]) -> List[Dict]:
    """
    Read a file written by save_soundings back into sounding records.

    Examples
    --------
    >>> records = load_soundings("01028/2015/RS_01028_20150101-20151231.nc")
    >>> records[0]['data']['TEMP'].max()
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Sounding file not found: {file_path}")

    suffix = file_path.suffix.lower()

    if suffix == '.nc':
        with xr.open_dataset(file_path) as ds:
            return _dataset_to_records(ds.load())
    elif suffix in ['.csv', '.parquet']:
        return _df_to_records(_read_table(file_path))
    else:
        raise ValueError(f"Unsupported file format: {suffix}")


def load_data(file_path: Union[str, Path], print_info: bool = True) -> Union[pd.DataFrame, xr.Dataset]:
    """
    Open a stored sounding file as a pandas DataFrame or xarray Dataset.

    Parameters
    ----------
    file_path : Union[str, Path]
        Path to a .csv, .parquet or .nc file
    print_info : bool, optional
        Whether to print overview information, by default True

    Returns
    -------
    Union[pd.DataFrame, xr.Dataset]
        DataFrame for tabular files, Dataset for NetCDF files
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    suffix = file_path.suffix.lower()

    if suffix in ['.csv', '.parquet']:
        data = _read_table(file_path)
    elif suffix == '.nc':
        data = xr.open_dataset(file_path)
    else:
        raise ValueError(f"Unsupported file format: {suffix}")

    if print_info:
        print("\nSounding File Overview:")
        print("=" * 50)
        print(f"File: {file_path}")

        if isinstance(data, xr.Dataset):
            print("\nDimensions:")
            for dim, size in data.sizes.items():
                print(f"  {dim}: {size}")

            print("\nVariables:")
            for var in data.data_vars:
                var_info = data[var]
                units = var_info.attrs.get('units', '')
                print(f"  {var}: {var_info.shape} {units}")

            if data.attrs:
                print("\nGlobal Attributes:")
                for attr, value in data.attrs.items():
                    print(f"  {attr}: {value}")
        else:
            print(f"\nShape: {data.shape}")
            print(f"Soundings: {data['num_profiles'].nunique()}")
            print(f"\nColumns: {', '.join(data.columns)}")
            print("\nSample Data:")
            print(data.head())

    return data


def filter_by_date_range(records: List[Dict],
                         start_date: int,
                         end_date: int) -> List[Dict]:
    """Filter sounding records by date range.

    Parameters
    ----------
    records : List[Dict]
        Sounding records
    start_date : int
        Start date in YYYYMMDD format.
    end_date : int
        End date in YYYYMMDD format.

    Returns
    -------
    List[Dict]
        Records launched between start_date and end_date (inclusive).

    Examples
    --------
    >>> # Keep January 2015
    >>> january = filter_by_date_range(records, 20150101, 20150131)
    """
    filtered = []
    for record in records:
        when = pd.Timestamp(record['time'])
        date = when.year * 10000 + when.month * 100 + when.day
        if start_date <= date <= end_date:
            filtered.append(record)

    if not filtered:
        print(f"Warning: No data found between {start_date} and {end_date}")

    return filtered


def _split_by_year(records: List[Dict]) -> Dict[int, List[Dict]]:
    years = {}
    for record in records:
        years.setdefault(pd.Timestamp(record['time']).year, []).append(record)
    return years


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Download radiosonde soundings from the University of Wyoming archive.')
    parser.add_argument('station', help='WMO station number, e.g. 01028')
    parser.add_argument('start_date', help='First day (YYYYMMDD)')
    parser.add_argument('end_date', help='Last day (YYYYMMDD), inclusive')
    parser.add_argument('--hours', type=int, nargs='+', default=list(metadata.DEFAULT_HOURS),
                        help='Launch hours (UTC) to request for every day')
    parser.add_argument('--region', default=metadata.DEFAULT_REGION)
    parser.add_argument('--format', dest='file_type', choices=['nc', 'csv', 'parquet'], default='nc')
    parser.add_argument('--output-dir', default=os.getcwd(),
                        help='Files are written to <output-dir>/<station>/<year>/')
    parser.add_argument('--sleep', type=float, default=0.0, help='Seconds between requests')
    args = parser.parse_args(argv)

    start = _to_timestamp(args.start_date)
    end = _to_timestamp(args.end_date)

    records = read_soundings(args.station, start, end, hours=args.hours, region=args.region, sleep=args.sleep)
    if not records:
        print(f"No soundings retrieved for station {args.station}, nothing written")
        return 1

    for year, year_records in _split_by_year(records).items():
        output_file = os.path.join(args.output_dir, args.station, f"{year:04d}",
                                   f"RS_{args.station}_{start:%Y%m%d}-{end:%Y%m%d}.{args.file_type}")
        save_soundings(year_records, output_file, args.file_type)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
