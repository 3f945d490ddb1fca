"""
Interactive viewer for stored radiosonde soundings.

The viewer shows one sounding at a time in several panels (temperature and
dew point, relative humidity, wind, station map) above a time-height
overview of all loaded soundings. Previous/Next buttons step through the
soundings and hovering a curve shows its values.
"""

from typing import Dict, List, Optional, Tuple
import argparse

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.widgets import Button
import cartopy.crs as ccrs
import cartopy.feature as cfeature
import mplcursors
import plotly.express as px

from .rasobs import filter_by_date_range, load_soundings

KNOT = 0.514444  # m/s

UNITS = {
    'PRES': 'hPa',
    'HGHT': 'm',
    'TEMP': '°C',
    'DWPT': '°C',
    'RELH': '%',
    'MIXR': 'g/kg',
    'DRCT': '°',
    'SKNT': 'knot',
    'THTA': 'K',
    'THTE': 'K',
    'THTV': 'K',
}

INDEX_LABELS = [
    ('CAPE', 'CAPE', 'J/kg'),
    ('CINS', 'CIN', 'J/kg'),
    ('LIFT', 'Lifted index', ''),
    ('PWAT', 'Precip. water', 'mm'),
]


def _profile_values(record: Dict, x_variable: str, y_variable: str) -> Tuple[np.ndarray, np.ndarray]:
    """Pairs of valid values of two sounding columns."""
    data = record['data']
    for variable in (x_variable, y_variable):
        if variable not in data.columns:
            raise ValueError(f"Variable '{variable}' not found in sounding")

    x = data[x_variable].to_numpy(dtype=float)
    y = data[y_variable].to_numpy(dtype=float)
    mask = ~np.isnan(x) & ~np.isnan(y)
    return x[mask], y[mask]


def _sounding_title(record: Dict) -> str:
    station = ' '.join(part for part in (record['station'], record['station_id'], record['station_name']) if part)
    return f"{station} {pd.Timestamp(record['time']):%Y-%m-%d %HZ}"


def plot_profile(record: Dict,
                 x_variable: str,
                 y_variable: str = 'HGHT',
                 figsize: Tuple[int, int] = (6, 8),
                 title: Optional[str] = None,
                 xlabel: Optional[str] = None,
                 ylabel: Optional[str] = None,
                 grid: bool = True,
                 show: bool = True) -> Optional[plt.Figure]:
    """Plot a vertical profile of one sounding.

    Pressure on the y axis is drawn decreasing upwards.

    Examples
    --------
    >>> records = load_soundings("RS_01028_20150101-20150131.nc")
    >>> plot_profile(records[0], 'TEMP', 'PRES')
    """
    x_data, y_data = _profile_values(record, x_variable, y_variable)

    if len(x_data) == 0:
        print(f"Error: No valid data points found for {x_variable} vs {y_variable}")
        return None

    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(x_data, y_data)

    ax.set_xlabel(xlabel or f"{x_variable} [{UNITS.get(x_variable, '')}]")
    ax.set_ylabel(ylabel or f"{y_variable} [{UNITS.get(y_variable, '')}]")
    ax.set_title(title or f"{y_variable} vs {x_variable}\n{_sounding_title(record)}")

    if y_variable == 'PRES':
        ax.invert_yaxis()

    if grid:
        ax.grid(True)

    if show:
        plt.show()

    return fig


class SoundingViewer:
    """
    Multi-panel viewer stepping through sounding records.

    Parameters
    ----------
    records : List[Dict]
        Sounding records, shown in time order
    max_height : float, optional
        Upper limit of the height axes [km], by default 15
    map_panel : bool, optional
        Whether to draw the cartopy station map, by default True
    figsize : Tuple[int, int], optional
        Figure size, by default (15, 9)
    """

    def __init__(self,
                 records: List[Dict],
                 max_height: float = 15,
                 map_panel: bool = True,
                 figsize: Tuple[int, int] = (15, 9)):
        if not records:
            raise ValueError("No soundings to display")

        self.records = sorted(records, key=lambda record: pd.Timestamp(record['time']))
        self.index = 0
        self.max_height = max_height
        self._cursor = None

        self.fig = plt.figure(figsize=figsize)
        grid = self.fig.add_gridspec(2, 4, height_ratios=[3, 2], hspace=0.35, wspace=0.3,
                                     left=0.06, right=0.97, top=0.9, bottom=0.12)

        self.ax_temp = self.fig.add_subplot(grid[0, 0])
        self.ax_relh = self.fig.add_subplot(grid[0, 1], sharey=self.ax_temp)
        self.ax_wind = self.fig.add_subplot(grid[0, 2], sharey=self.ax_temp)
        self.ax_wdir = self.ax_wind.twiny()
        self.ax_time = self.fig.add_subplot(grid[1, :])

        self.ax_map = None
        if map_panel:
            self.ax_map = self.fig.add_subplot(grid[0, 3], projection=ccrs.PlateCarree())

        self.ax_prev = self.fig.add_axes([0.78, 0.02, 0.08, 0.04])
        self.ax_next = self.fig.add_axes([0.88, 0.02, 0.08, 0.04])
        self.prev_button = Button(self.ax_prev, 'Previous')
        self.next_button = Button(self.ax_next, 'Next')
        self.prev_button.on_clicked(self.previous)
        self.next_button.on_clicked(self.next)

        self._marker = self._draw_overview()
        self.draw()

    @property
    def record(self) -> Dict:
        return self.records[self.index]

    def _draw_overview(self):
        times = []
        heights = []
        temps = []
        for record in self.records:
            data = record['data']
            if 'TEMP' not in data.columns:
                continue
            mask = data['HGHT'].notna() & data['TEMP'].notna()
            times.extend([pd.Timestamp(record['time'])] * int(mask.sum()))
            heights.extend(data.loc[mask, 'HGHT'] / 1e3)
            temps.extend(data.loc[mask, 'TEMP'])

        if times:
            points = self.ax_time.scatter(times, heights, c=temps, cmap='RdYlBu_r', s=4)
            self.fig.colorbar(points, ax=self.ax_time, label='Temperature [°C]', pad=0.01)

        self.ax_time.set_ylim(0, self.max_height)
        self.ax_time.set_ylabel('Height [km]')
        self.ax_time.set_title(f'All soundings ({len(self.records)})')

        if self.ax_map is not None:
            self._draw_stations()

        return self.ax_time.axvline(pd.Timestamp(self.records[0]['time']), color='k', lw=1.5)

    def _draw_stations(self):
        self.ax_map.add_feature(cfeature.LAND, facecolor='0.95')
        self.ax_map.add_feature(cfeature.COASTLINE, linewidth=0.5)
        self.ax_map.add_feature(cfeature.BORDERS, linewidth=0.3)

        locations = {}
        for record in self.records:
            metvar = record['metvar']
            locations[record['station']] = (metvar.get('SLON', np.nan), metvar.get('SLAT', np.nan))

        for lon, lat in locations.values():
            if not (np.isnan(lon) or np.isnan(lat)):
                self.ax_map.plot(lon, lat, 'o', color='tab:blue', markersize=4)

        self._station_marker, = self.ax_map.plot([], [], '*', color='tab:red', markersize=12)

    def _update_map(self):
        lon = self.record['metvar'].get('SLON', np.nan)
        lat = self.record['metvar'].get('SLAT', np.nan)

        if np.isnan(lon) or np.isnan(lat):
            self._station_marker.set_data([], [])
            self.ax_map.set_global()
        else:
            self._station_marker.set_data([lon], [lat])
            self.ax_map.set_extent([max(lon - 20, -180), min(lon + 20, 180),
                                    max(lat - 12, -90), min(lat + 12, 90)], crs=ccrs.PlateCarree())
        self.ax_map.set_title('Station')

    def _indices_text(self) -> str:
        metvar = self.record['metvar']
        lines = [f"Lat {metvar.get('SLAT', np.nan):.2f}  Lon {metvar.get('SLON', np.nan):.2f}",
                 f"Elevation {metvar.get('SELV', np.nan):.0f} m"]
        for name, label, units in INDEX_LABELS:
            if name in metvar:
                lines.append(f"{label}: {metvar[name]:.2f} {units}".rstrip())
        return '\n'.join(lines)

    def draw(self):
        """Draw the current sounding."""
        record = self.record
        data = record['data']
        lines = []

        for ax in (self.ax_temp, self.ax_relh, self.ax_wind, self.ax_wdir):
            ax.clear()

        for name, color in (('TEMP', 'tab:red'), ('DWPT', 'tab:green')):
            if name in data.columns:
                x, y = _profile_values(record, name, 'HGHT')
                lines.extend(self.ax_temp.plot(x, y / 1e3, color=color, label=name))
        self.ax_temp.set_xlabel('Temperature [°C]')
        self.ax_temp.set_ylabel('Height [km]')
        self.ax_temp.set_ylim(0, self.max_height)
        self.ax_temp.legend(loc='upper right', fontsize='small')
        self.ax_temp.text(0.03, 0.03, self._indices_text(), transform=self.ax_temp.transAxes,
                          fontsize='x-small', va='bottom', bbox=dict(facecolor='white', alpha=0.8))

        if 'RELH' in data.columns:
            x, y = _profile_values(record, 'RELH', 'HGHT')
            lines.extend(self.ax_relh.plot(x, y / 1e3, color='tab:blue'))
        self.ax_relh.set_xlim(0, 105)
        self.ax_relh.set_xlabel('Relative humidity [%]')

        if 'SKNT' in data.columns:
            x, y = _profile_values(record, 'SKNT', 'HGHT')
            lines.extend(self.ax_wind.plot(x * KNOT, y / 1e3, color='tab:purple'))
        if 'DRCT' in data.columns:
            x, y = _profile_values(record, 'DRCT', 'HGHT')
            lines.append(self.ax_wdir.scatter(x, y / 1e3, s=6, color='tab:gray'))
        self.ax_wind.set_xlabel('Wind speed [m/s]')
        self.ax_wdir.set_xlim(0, 360)
        self.ax_wdir.set_xlabel('Wind direction [°]')

        for ax in (self.ax_temp, self.ax_relh, self.ax_wind):
            ax.grid(True)

        self._marker.set_xdata([pd.Timestamp(record['time'])] * 2)

        if self.ax_map is not None:
            self._update_map()

        if self._cursor is not None:
            self._cursor.remove()
        self._cursor = mplcursors.cursor(lines, hover=True) if lines else None

        self.fig.suptitle(f"{_sounding_title(record)}  ({self.index + 1}/{len(self.records)})")
        self.fig.canvas.draw_idle()

    def next(self, event=None):
        self.index = (self.index + 1) % len(self.records)
        self.draw()

    def previous(self, event=None):
        self.index = (self.index - 1) % len(self.records)
        self.draw()

    def show(self):
        plt.show()


def plot_station_map(records: List[Dict], show: bool = True):
    """
    Displays an interactive map of the stations in the loaded soundings using Plotly.

    Stations are coloured by their number of soundings.

    Examples
    --------
    >>> records = load_soundings("RS_01028_20150101-20151231.nc")
    >>> plot_station_map(records)
    """
    if not records:
        raise ValueError("No soundings to display")

    rows = []
    for record in records:
        rows.append({
            'station': record['station'],
            'name': record['station_name'],
            'latitude': record['metvar'].get('SLAT', np.nan),
            'longitude': record['metvar'].get('SLON', np.nan),
            'elevation': record['metvar'].get('SELV', np.nan),
            'time': pd.Timestamp(record['time']),
        })

    stations_df = (pd.DataFrame(rows)
                   .groupby('station')
                   .agg(name=('name', 'first'),
                        latitude=('latitude', 'first'),
                        longitude=('longitude', 'first'),
                        elevation=('elevation', 'first'),
                        first_sounding=('time', 'min'),
                        last_sounding=('time', 'max'),
                        nobs=('time', 'size'))
                   .reset_index())

    fig = px.scatter_geo(
        stations_df,
        lat='latitude',
        lon='longitude',
        color='nobs',
        color_continuous_scale='viridis',
        hover_data=['station', 'name', 'elevation', 'first_sounding', 'last_sounding', 'nobs'],
        projection='natural earth',
        title='Radiosonde Stations'
    )

    fig.update_traces(marker=dict(size=8, opacity=0.8, line=dict(width=0)))
    fig.update_layout(
        geo=dict(
            showland=True,
            showcoastlines=True,
            showcountries=True,
            showocean=True,
            oceancolor='rgb(204, 229, 255)',
            landcolor='rgb(243, 243, 243)',
            coastlinecolor='rgb(128, 128, 128)',
            countrycolor='rgb(128, 128, 128)',
        ),
        coloraxis_colorbar=dict(title='Soundings')
    )

    if show:
        fig.show()

    return fig


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Browse stored radiosonde soundings.')
    parser.add_argument('files', nargs='+', help='Sounding files (.nc, .csv or .parquet)')
    parser.add_argument('--station', help='Only show this station number')
    parser.add_argument('--start', type=int, help='First day (YYYYMMDD)')
    parser.add_argument('--end', type=int, help='Last day (YYYYMMDD)')
    parser.add_argument('--no-map', action='store_true', help='Do not draw the station map panel')
    parser.add_argument('--station-map', action='store_true', help='Open the Plotly station map as well')
    args = parser.parse_args(argv)

    records = []
    for file_path in args.files:
        records.extend(load_soundings(file_path))

    if args.station is not None:
        records = [record for record in records if record['station'] == args.station]

    if args.start is not None or args.end is not None:
        records = filter_by_date_range(records, args.start or 0, args.end or 99999999)

    if not records:
        print("Error: No soundings to display")
        return 1

    if args.station_map:
        plot_station_map(records)

    viewer = SoundingViewer(records, map_panel=not args.no_map)
    viewer.show()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
