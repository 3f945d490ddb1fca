"""
Homogenization of radiosonde profiles for radiative transfer simulations.

Stored soundings are quality checked, resampled onto a common altitude grid,
completed with a simple cloud model and written as:
- a plain ASCII file, the usual input of the RT3/RT4 radiative transfer codes
- a NetCDF file laid out like WRF model output (time, lev, yn, xn), so the
  profiles can be used wherever WRF output is expected

Stations are organised on a (xn, yn) grid: with a single station the grid
has the single point (0, 0).
"""

from typing import Dict, List, Optional, Sequence, Tuple, Union
import argparse
import datetime
import os
from pathlib import Path

import netCDF4 as nc
import numpy as np
import pandas as pd
from scipy import interpolate
from tqdm import tqdm

from .rasobs import load_soundings

TOP_HEIGHT = 9000  # max height to consider [m]
MIN_LEVELS = 40  # minimum number of levels below TOP_HEIGHT

P0 = 1013  # reference pressure [hPa]
MOLAR_MASS = 28.8  # [g/mol]
GRAVITY = 9.807  # [m/s^2]
GAS_CONSTANT = 8.31446  # [J/mol/K]
T0 = 290  # ambient temperature [K]

B0 = 90  # relative humidity threshold for clouds [%], between 85 and 90

# bit 1: height reaches TOP_HEIGHT with enough levels
# bit 2: height increases monotonically
# bit 3: no gaps in the levels below TOP_HEIGHT
# bit 4: pressure never increases with height
QC_PASSED = 15

SURFACE_NAMES = ['PRES', 'TEMP', 'RELH']

PROFILE_NAMES = ['HGHT', 'PRES', 'TEMP', 'RELH', 'CLOUD', 'RAIN', 'ICE', 'SNOW', 'GRAUPEL']

# (WRF name, short name, long name, units), in the storing order of PROFILE_NAMES
WRF_VARIABLES = [
    ('PHB', 'HGHT', 'Geopotential Height', 'km'),
    ('P', 'PRES', 'Atmospheric Pressure', 'hPa'),
    ('T', 'TEMP', 'Temperature', 'K'),
    ('QVAPOR', 'RELH', 'Relative Humidity', '%'),
    ('QCLOUD', 'CLOUD', 'Cloud Water Content', 'g/m^3'),
    ('QRAIN', 'RAIN', 'Rain Water Content', 'g/m^3'),
    ('QICE', 'ICE', 'Ice Content', 'g/m^3'),
    ('QSNOW', 'SNOW', 'Snow Content', 'g/m^3'),
    ('QGRAUP', 'GRAUPEL', 'Graupel Content', 'g/m^3'),
]

WRF_SURFACE = [
    ('PSFC', 'PRES', 'Surface Pressure', 'hPa'),
    ('T2', 'TEMP', '2-m Temperature', 'K'),
    ('Q2', 'RELH', 'Surface Relative Humidity', '%'),
]

WRF_LOCATION = [
    ('HGT', 'Station Altitude', 'km'),
    ('LAT', 'Station Latitude', 'deg'),
    ('LON', 'Station Longitude', 'deg'),
]

DATE_NAMES = ['year', 'month', 'day', 'hour']

ORIGIN_LENGTH = 300

SOUNDING_SUFFIXES = ('.nc', '.csv', '.parquet')


def _colon(start: float, stop: float, step: float) -> np.ndarray:
    """Inclusive range start, start + step, ... up to stop."""
    count = int(np.floor((stop - start) / step + 1e-9)) + 1
    return start + step * np.arange(count)


def standard_levels() -> np.ndarray:
    """
    Altitudes [m] of the default homogenization grid.

    The grid is defined in pressure (fine steps near the ground, coarser
    above 850 hPa) and converted to height with an isothermal standard
    atmosphere at T0:

        H = R * T0 / (M * g) * ln(P0 / P)

    Returns
    -------
    np.ndarray
        180 altitudes from 0 m (at P0) to about 9 km (at 350 hPa)
    """
    pressure = np.concatenate([
        _colon(P0, 850, -1.1),
        _colon(845, 760, -5),
        _colon(740, 600, -20),
        _colon(550, 350, -50),
    ])
    return 1e3 * GAS_CONSTANT * T0 / MOLAR_MASS / GRAVITY * np.log(P0 / pressure)


def fixed_levels(top: float = TOP_HEIGHT) -> np.ndarray:
    """Altitudes [m] every 20 m up to 1.5 km, every 50 m up to 3 km and every 200 m up to top."""
    return np.concatenate([
        _colon(10, 1500, 20),
        _colon(1550, 3000, 50),
        _colon(3200, top, 200),
    ])


def quality_flags(record: Dict, top: float = TOP_HEIGHT, min_levels: int = MIN_LEVELS) -> int:
    """
    Compute the quality control flag of a sounding.

    Parameters
    ----------
    record : Dict
        Sounding record with HGHT and PRES columns
    top : float, optional
        Height [m] the sounding must reach, by default TOP_HEIGHT
    min_levels : int, optional
        Minimum number of levels below top, by default MIN_LEVELS

    Returns
    -------
    int
        Sum of the passed tests:
        - 1: the sounding goes above top with at least min_levels levels below it
        - 2: height increases strictly from level to level
        - 4: no missing heights among the levels below top
        - 8: pressure never increases from level to level
        QC_PASSED (15) means all tests passed.

    Examples
    --------
    >>> flag = quality_flags(record)
    >>> flag & 2  # height monotonic
    2
    """
    data = record['data']
    height = data['HGHT'].to_numpy(dtype=float)
    pressure = data['PRES'].to_numpy(dtype=float)

    flag = 0

    valid = height[~np.isnan(height)]
    if valid.size and valid.max() > top and np.count_nonzero(valid < top) >= min_levels:
        flag |= 1

    if not np.any(np.diff(height) <= 0):
        flag |= 2

    above = np.flatnonzero(height >= top)
    below = height[:above[0]] if above.size else height
    if not np.any(np.isnan(below)):
        flag |= 4

    if not np.any(np.diff(pressure) > 0):
        flag |= 8

    return flag


def _interpolate(x: np.ndarray, y: np.ndarray, new_x: Union[float, np.ndarray]) -> np.ndarray:
    """Linear interpolation with linear extrapolation outside the data."""
    if len(x) < 2:
        return np.full(np.shape(new_x), np.nan)

    f = interpolate.interp1d(x, y, kind='linear', bounds_error=False, fill_value='extrapolate')
    return f(new_x)


def _column(data: pd.DataFrame, name: str) -> np.ndarray:
    values = data[name].to_numpy(dtype=float)
    if name == 'TEMP':
        values = values + 273.15
    return values


def surface_values(record: Dict, top: float = TOP_HEIGHT) -> Dict[str, float]:
    """
    Extrapolate pressure [hPa], temperature [K] and relative humidity [%] to height 0.

    Only levels up to top with a valid value are used.
    """
    data = record['data']
    height = data['HGHT'].to_numpy(dtype=float)

    surface = {}
    for name in SURFACE_NAMES:
        values = _column(data, name)
        mask = (height <= top) & ~np.isnan(values)
        surface[name] = float(_interpolate(height[mask], values[mask], 0.0))

    return surface


def interpolate_profile(record: Dict,
                        levels: Optional[np.ndarray] = None,
                        top: float = TOP_HEIGHT) -> pd.DataFrame:
    """
    Interpolate every sounding column onto fixed altitudes.

    Parameters
    ----------
    record : Dict
        Sounding record
    levels : np.ndarray, optional
        Target altitudes [m], by default standard_levels()
    top : float, optional
        Levels above this height [m] are ignored, by default TOP_HEIGHT

    Returns
    -------
    pd.DataFrame
        One row per target level. Temperatures are in K and HGHT holds the
        target altitudes in km.
    """
    if levels is None:
        levels = standard_levels()

    data = record['data']
    height = data['HGHT'].to_numpy(dtype=float)

    profile = {}
    for name in data.columns:
        values = _column(data, name)
        mask = (height <= top) & ~np.isnan(values)
        profile[name] = _interpolate(height[mask], values[mask], levels)

    profile['HGHT'] = np.asarray(levels, dtype=float) / 1e3

    return pd.DataFrame(profile)


def cloud_model(temp: np.ndarray, relh: np.ndarray, pres: np.ndarray) -> Dict[str, np.ndarray]:
    """
    Estimate hydrometeor contents [g/m^3] from temperature [K] and relative humidity [%].

    Liquid cloud water is 2 * ((RH - B0) / 30)^2 wherever RH >= B0 and
    T >= 240 K. Rain, ice, snow and graupel are not modelled and are zero.
    Pressure [hPa] is accepted for the hydrometeor assignment but not used yet.
    """
    temp = np.asarray(temp, dtype=float)
    relh = np.asarray(relh, dtype=float)

    cloud = np.zeros_like(temp)
    mask = (relh >= B0) & (temp >= 240)
    cloud[mask] = 2 * ((relh[mask] - B0) / 30) ** 2

    return {
        'CLOUD': cloud,
        'RAIN': np.zeros_like(temp),
        'ICE': np.zeros_like(temp),
        'SNOW': np.zeros_like(temp),
        'GRAUPEL': np.zeros_like(temp),
    }


def station_location(record: Dict) -> Dict[str, float]:
    """Station altitude [km], latitude and longitude [deg] from the station information."""
    metvar = record['metvar']
    return {
        'HGT': metvar.get('SELV', np.nan) / 1e3,
        'LAT': metvar.get('SLAT', np.nan),
        'LON': metvar.get('SLON', np.nan),
    }


def homogenize_profile(record: Dict,
                       levels: Optional[np.ndarray] = None,
                       top: float = TOP_HEIGHT,
                       min_levels: int = MIN_LEVELS,
                       qc: Optional[int] = None) -> Optional[Dict]:
    """
    Homogenize one sounding.

    Parameters
    ----------
    qc : int, optional
        Quality flag already computed with quality_flags, computed here when None

    Returns
    -------
    Optional[Dict]
        None when the sounding does not pass all quality checks, otherwise::

            {
                'time': Timestamp,
                'qc': 15,
                'surface': {'PRES': ..., 'TEMP': ..., 'RELH': ...},
                'location': {'HGT': km, 'LAT': deg, 'LON': deg},
                'profile': DataFrame with PROFILE_NAMES columns
            }
    """
    if qc is None:
        qc = quality_flags(record, top, min_levels)
    if qc != QC_PASSED:
        return None

    profile = interpolate_profile(record, levels, top)
    for name, values in cloud_model(profile['TEMP'], profile['RELH'], profile['PRES']).items():
        profile[name] = values

    return {
        'time': pd.Timestamp(record['time']),
        'qc': qc,
        'surface': surface_values(record, top),
        'location': station_location(record),
        'profile': profile[PROFILE_NAMES],
    }


def write_rt_ascii(results: List[Dict],
                   file_path: Union[str, Path],
                   nx: int,
                   ny: int,
                   nlev: int) -> Path:
    """
    Write homogenized profiles as RT3/RT4 ASCII input.

    The first line holds month, day and hour of the last profile, the grid
    size and the number of levels. Every profile follows as a "day hour"
    line, a line with station altitude [km] and surface pressure,
    temperature and humidity, and one line per level with HGHT PRES TEMP
    RELH CLOUD RAIN ICE SNOW GRAUPEL.
    """
    file_path = Path(file_path)

    if results:
        last = results[-1]['time']
        month, day, hour = last.month, last.day, last.hour
    else:
        month, day, hour = 99, 99, 99

    with open(file_path, 'w') as fp:
        fp.write('%02d %02d %02d %3d %3d %3d 2.5 2.5\n' % (month, day, hour, nx, ny, nlev))

        for result in results:
            surface = result['surface']
            fp.write('%2d %2d\n' % (result['time'].day, result['time'].hour))
            fp.write('%6.3f %10.3f %10.3f %10.3f\n' % (result['location']['HGT'],
                                                       surface['PRES'], surface['TEMP'], surface['RELH']))
            np.savetxt(fp, result['profile'][PROFILE_NAMES].to_numpy(dtype=float), fmt='%10.3f')

    print(f"Successfully created ASCII file: {file_path}")
    return file_path


def write_rt_netcdf(cells: Dict[Tuple[int, int], Dict],
                    file_path: Union[str, Path],
                    nx: int,
                    ny: int,
                    nlev: int,
                    contact: str = '') -> Path:
    """
    Write homogenized profiles as a WRF-like NetCDF file.

    Parameters
    ----------
    cells : Dict[Tuple[int, int], Dict]
        Per (ix, iy) grid cell: 'results' (homogenized profiles in time
        order), 'location' ({'HGT', 'LAT', 'LON'} or None) and 'origin'
        (last file read for the cell)
    file_path : Union[str, Path]
        Output file. An existing file is replaced.
    nx, ny : int
        Grid size
    nlev : int
        Number of levels
    contact : str, optional
        Contact written to the global attributes
    """
    file_path = Path(file_path)

    if file_path.exists():
        print(f"Deleting... NetCDF file {file_path}")
        os.remove(file_path)

    with nc.Dataset(file_path, 'w', format='NETCDF4') as ncfile:
        ncfile.createDimension('time', None)
        ncfile.createDimension('lev', nlev)
        ncfile.createDimension('yn', ny)
        ncfile.createDimension('xn', nx)
        ncfile.createDimension('strlen', ORIGIN_LENGTH)

        for wrf_name, short_name, long_name, units in WRF_VARIABLES:
            var = ncfile.createVariable(wrf_name, 'f4', ('time', 'lev', 'yn', 'xn'),
                                        zlib=True, complevel=9, fill_value=np.nan)
            var.short_name = short_name
            var.long_name = long_name
            var.units = units

        for wrf_name, _, long_name, units in WRF_SURFACE:
            var = ncfile.createVariable(wrf_name, 'f4', ('time', 'yn', 'xn'),
                                        zlib=True, complevel=9, fill_value=np.nan)
            var.short_name = wrf_name
            var.long_name = long_name
            var.units = units

        for wrf_name, long_name, units in WRF_LOCATION:
            var = ncfile.createVariable(wrf_name, 'f4', ('yn', 'xn'), fill_value=np.nan)
            var.short_name = wrf_name
            var.long_name = long_name
            var.units = units

        for name in DATE_NAMES:
            ncfile.createVariable(name, 'f4', ('time', 'yn', 'xn'), fill_value=np.nan)

        origin_var = ncfile.createVariable('origin', 'S1', ('yn', 'xn', 'strlen'))

        for (ix, iy), cell in cells.items():
            results = cell['results']
            ntime = len(results)

            if ntime:
                for wrf_name, short_name, _, _ in WRF_VARIABLES:
                    values = np.stack([result['profile'][short_name].to_numpy(dtype=float) for result in results])
                    ncfile[wrf_name][:ntime, :, iy, ix] = values

                for wrf_name, short_name, _, _ in WRF_SURFACE:
                    ncfile[wrf_name][:ntime, iy, ix] = [result['surface'][short_name] for result in results]

                dates = np.array([[r['time'].year, r['time'].month, r['time'].day, r['time'].hour] for r in results],
                                 dtype=float)
                for j, name in enumerate(DATE_NAMES):
                    ncfile[name][:ntime, iy, ix] = dates[:, j]

            if cell['location'] is not None:
                for wrf_name, _, _ in WRF_LOCATION:
                    ncfile[wrf_name][iy, ix] = cell['location'][wrf_name]

            origin = np.array([cell['origin'][:ORIGIN_LENGTH]], dtype=f'U{ORIGIN_LENGTH}')
            origin_var[iy, ix, :] = nc.stringtochar(origin, n_strlen=ORIGIN_LENGTH)[0]

        ncfile.grid_x = np.nan
        ncfile.grid_y = np.nan
        ncfile.Creation = datetime.date.today().strftime('%d-%b-%Y')
        ncfile.Contact = contact

    print(f"Successfully created NetCDF file: {file_path}")
    return file_path


def _station_files(input_dir: Union[str, Path], station: str, year: int) -> List[Path]:
    """Stored sounding files of a station and year, <input_dir>/<station>/<year>/*."""
    year_dir = Path(input_dir) / station / str(year)
    if not year_dir.is_dir():
        return []
    return sorted(path for path in year_dir.iterdir() if path.suffix.lower() in SOUNDING_SUFFIXES)


def homogenize_stations(stations: Sequence[Sequence[str]],
                        years: Sequence[int],
                        input_dir: Union[str, Path],
                        output_dir: Union[str, Path],
                        levels: Optional[np.ndarray] = None,
                        top: float = TOP_HEIGHT,
                        min_levels: int = MIN_LEVELS,
                        contact: str = '') -> Tuple[Path, Path, np.ndarray]:
    """
    Homogenize the stored soundings of a grid of stations.

    Parameters
    ----------
    stations : Sequence[Sequence[str]]
        Station directory names organised as grid rows: stations[ix][iy]
        is the station of grid cell (ix, iy). [['polargmo'], ['enbj']] is a
        2 x 1 grid.
    years : Sequence[int]
        Years to read
    input_dir : Union[str, Path]
        Directory holding <station>/<year>/ sounding files
    output_dir : Union[str, Path]
        Directory for the ASCII and NetCDF outputs
    levels : np.ndarray, optional
        Target altitudes [m], by default standard_levels()
    top : float, optional
        Maximum height [m] considered, by default TOP_HEIGHT
    min_levels : int, optional
        Minimum number of levels below top, by default MIN_LEVELS
    contact : str, optional
        Contact written to the NetCDF global attributes

    Returns
    -------
    Tuple[Path, Path, np.ndarray]
        ASCII file, NetCDF file and the quality flags of every sounding read

    Examples
    --------
    >>> dat_file, nc_file, qc = homogenize_stations([['polargmo'], ['enbj']], [2014, 2015],
    ...                                             'RASOBS', 'RT')
    >>> print(f"{np.sum(qc == QC_PASSED)} of {len(qc)} soundings passed")
    """
    if levels is None:
        levels = standard_levels()

    grid = [list(row) for row in stations]
    if not grid or not all(grid):
        raise ValueError("stations must be a non-empty grid of station names")

    years = sorted(years)
    if not years:
        raise ValueError("At least one year must be provided")

    nx = len(grid)
    ny = max(len(row) for row in grid)
    nlev = len(levels)

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    outfilen = 'RS_Y%04d-%04d_x%03dy%03d_RT' % (years[0], years[-1], nx, ny)

    qc = []
    cells = {}
    for ix, row in enumerate(grid):
        for iy, station in enumerate(row):
            cell = {'results': [], 'location': None, 'origin': ''}

            for year in years:
                files = _station_files(input_dir, station, year)
                if not files:
                    print(f"Warning: No sounding files for station {station} in {year}")

                for file_path in tqdm(files, desc=f"Station {station} {year}", unit="file"):
                    print(f"Loading... {file_path}")
                    records = load_soundings(file_path)

                    for record in records:
                        flag = quality_flags(record, top, min_levels)
                        qc.append(flag)
                        cell['location'] = station_location(record)

                        result = homogenize_profile(record, levels, top, min_levels, qc=flag)
                        if result is not None:
                            cell['results'].append(result)

                    cell['origin'] = str(file_path)

            cell['results'].sort(key=lambda result: result['time'])
            print(f"Station {station}: {len(cell['results'])} profiles passed the quality checks")
            cells[(ix, iy)] = cell

    results = [result for cell in cells.values() for result in cell['results']]

    nc_file = write_rt_netcdf(cells, output_dir / f'{outfilen}.nc', nx, ny, nlev, contact)
    dat_file = write_rt_ascii(results, output_dir / f'{outfilen}.dat', nx, ny, nlev)

    qc = np.array(qc, dtype=np.int8)
    print(f"{np.count_nonzero(qc == QC_PASSED)} of {len(qc)} soundings passed all quality checks")

    return dat_file, nc_file, qc


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Homogenize stored radiosonde profiles for radiative transfer simulations.')
    parser.add_argument('--stations', action='append', required=True,
                        help='Comma separated station directory names of one grid row; repeat for more rows')
    parser.add_argument('--years', type=int, nargs='+', required=True)
    parser.add_argument('--input-dir', required=True, help='Directory holding <station>/<year>/ sounding files')
    parser.add_argument('--output-dir', default=os.getcwd())
    parser.add_argument('--top', type=float, default=TOP_HEIGHT, help='Maximum height [m]')
    parser.add_argument('--min-levels', type=int, default=MIN_LEVELS)
    parser.add_argument('--grid', choices=['standard', 'fixed'], default='standard',
                        help='standard: isothermal atmosphere pressure levels, fixed: regular altitude steps')
    parser.add_argument('--contact', default='')
    args = parser.parse_args(argv)

    stations = [[name.strip() for name in row.split(',') if name.strip()] for row in args.stations]
    levels = standard_levels() if args.grid == 'standard' else fixed_levels(args.top)

    homogenize_stations(stations, args.years, args.input_dir, args.output_dir,
                        levels=levels, top=args.top, min_levels=args.min_levels, contact=args.contact)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
