from typing import Dict, List, Optional, Sequence
import argparse
import json
import os
from datetime import datetime

import numpy as np
import pandas as pd

from . import rasobsmetadata as metadata
from .rasobs import load_soundings


def get_availability(records: List[Dict]) -> Dict:
    """Get the availability of soundings as a nested dictionary.

    Parameters
    ----------
    records : List[Dict]
        Sounding records

    Returns
    -------
    Dict
        Nested dictionary organised as:
        {
            year: {
                month: {
                    day: [hour, ...]
                }
            }
        }

    Examples
    --------
    >>> availability = get_availability(records)
    >>> # Launch hours on January 1, 2015
    >>> availability[2015][1][1]
    [0, 12]
    """
    nested_availability = {}

    times = sorted(pd.Timestamp(record['time']) for record in records)

    for when in times:
        hours = (nested_availability
                 .setdefault(when.year, {})
                 .setdefault(when.month, {})
                 .setdefault(when.day, []))
        if when.hour not in hours:
            hours.append(when.hour)

    return nested_availability


def get_availability_json(records: List[Dict],
                          download_dir: Optional[str] = None,
                          download_availability: bool = False) -> Optional[Dict]:
    """Summarise the availability of the soundings of one station.

    Parameters
    ----------
    records : List[Dict]
        Sounding records of a single station
    download_dir : Optional[str]
        Directory to save availability data. If None, uses current directory with date
    download_availability : bool, default=False
        Whether to save the availability data to a JSON file

    Returns
    -------
    Optional[Dict]
        Dictionary containing availability data with keys:
        - station_id: str
        - raw_data: List[List[int]] of [year, month, day, hour]
        - num_total_soundings: int
        - available_years: List[int]
        - num_soundings_per_year: Dict[int, int]
        - num_months_per_year: Dict[int, int]
        - num_days_per_year: Dict[int, int]
        Returns None when there are no records
    """
    if not records:
        print("Error: No soundings provided")
        return None

    stations = sorted({record['station'] for record in records})
    if len(stations) > 1:
        raise ValueError(f"Expected soundings of a single station, got {stations}")
    station_id = stations[0]

    availability = sorted([when.year, when.month, when.day, when.hour]
                          for when in (pd.Timestamp(record['time']) for record in records))
    availability_grid = np.array(availability)
    years = np.unique(availability_grid[:, 0])

    year_soundings = {}
    year_months = {}
    year_days = {}
    for year in years:
        year_data = availability_grid[availability_grid[:, 0] == year]
        year_soundings[int(year)] = int(len(year_data))
        year_months[int(year)] = int(len(np.unique(year_data[:, 1])))
        year_days[int(year)] = int(len(np.unique(year_data[:, 1] * 100 + year_data[:, 2])))

    availability_data = {
        'station_id': station_id,
        'raw_data': availability,
        'num_total_soundings': len(availability),
        'available_years': years.tolist(),
        'num_soundings_per_year': year_soundings,
        'num_months_per_year': year_months,
        'num_days_per_year': year_days
    }

    if download_availability:
        if download_dir is None:
            download_dir = os.path.join(os.getcwd(), str(datetime.now().strftime("%Y-%m-%d")))

        os.makedirs(download_dir, exist_ok=True)
        availability_file = os.path.join(download_dir, f"{station_id}-availability.json")
        with open(availability_file, 'w') as f:
            json.dump(availability_data, f, indent=4)
        print(f"Availability data saved to {availability_file}")

    return availability_data


def missing_soundings(records: List[Dict],
                      start_date: int,
                      end_date: int,
                      hours: Sequence[int] = metadata.DEFAULT_HOURS) -> List[pd.Timestamp]:
    """List the launch times between start_date and end_date (YYYYMMDD, inclusive) with no sounding."""
    start = pd.to_datetime(str(start_date), format='%Y%m%d')
    end = pd.to_datetime(str(end_date), format='%Y%m%d')

    available = {pd.Timestamp(record['time']).floor('h') for record in records}

    return [day + pd.Timedelta(hours=int(hour))
            for day in pd.date_range(start, end, freq='D')
            for hour in sorted(hours)
            if day + pd.Timedelta(hours=int(hour)) not in available]


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Summarise the availability of stored soundings.')
    parser.add_argument('file', help='Sounding file (.nc, .csv or .parquet)')
    parser.add_argument('--download-dir', help='Save <station>-availability.json here')
    parser.add_argument('--start', type=int, help='First day (YYYYMMDD) to check for missing soundings')
    parser.add_argument('--end', type=int, help='Last day (YYYYMMDD) to check for missing soundings')
    parser.add_argument('--hours', type=int, nargs='+', default=list(metadata.DEFAULT_HOURS))
    args = parser.parse_args(argv)

    records = load_soundings(args.file)

    error_stations = []
    for station in sorted({record['station'] for record in records}):
        station_records = [record for record in records if record['station'] == station]
        try:
            availability_data = get_availability_json(station_records, download_dir=args.download_dir,
                                                      download_availability=args.download_dir is not None)
        except (OSError, ValueError) as e:
            error_stations.append(station)
            print(f"Error processing station {station}: {e}")
            continue

        print(f"Station {station} has {availability_data['num_total_soundings']} soundings")
        for year, count in availability_data['num_soundings_per_year'].items():
            print(f"  {year}: {count} soundings on {availability_data['num_days_per_year'][year]} days")

        if args.start is not None and args.end is not None:
            missing = missing_soundings(station_records, args.start, args.end, args.hours)
            print(f"  {len(missing)} missing soundings between {args.start} and {args.end}")

    if error_stations:
        print(f"Error processing {len(error_stations)} stations: {error_stations}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
