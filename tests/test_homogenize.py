"""Tests for rasobs.homogenize module."""

import netCDF4 as nc
import numpy as np
import pandas as pd
import pytest

from conftest import make_record
from rasobs import homogenize
from rasobs.homogenize import (
    PROFILE_NAMES,
    QC_PASSED,
    cloud_model,
    fixed_levels,
    homogenize_profile,
    homogenize_stations,
    interpolate_profile,
    quality_flags,
    standard_levels,
    surface_values,
    write_rt_ascii,
    write_rt_netcdf,
)
from rasobs.rasobs import save_soundings


class TestLevels:
    """Tests for the homogenization grids."""

    def test_standard_levels(self):
        """Test size and bounds of the pressure based grid."""
        levels = standard_levels()
        assert len(levels) == 180
        assert levels[0] == pytest.approx(0.0)
        scale = 1e3 * 8.31446 * 290 / 28.8 / 9.807
        assert levels[-1] == pytest.approx(scale * np.log(1013 / 350))
        assert np.all(np.diff(levels) > 0)

    def test_fixed_levels(self):
        """Test size and bounds of the regular altitude grid."""
        levels = fixed_levels()
        assert len(levels) == 135
        assert levels[0] == 10
        assert levels[74] == 1490
        assert levels[75] == 1550
        assert levels[-1] == 9000

    def test_fixed_levels_lower_top(self):
        """Test that the last block stops at top."""
        assert fixed_levels(5000)[-1] == 5000


class TestQualityFlags:
    """Tests for quality_flags function."""

    def test_good_sounding(self, record):
        """Test that a complete sounding passes all checks."""
        assert quality_flags(record) == QC_PASSED

    def test_too_low(self):
        """Test a sounding ending below the top height."""
        assert quality_flags(make_record(top=5000.0)) == 14

    def test_too_few_levels(self):
        """Test a sounding with fewer levels than required."""
        assert quality_flags(make_record(nlev=30)) == 14
        assert quality_flags(make_record(nlev=30), min_levels=10) == QC_PASSED

    def test_height_not_monotonic(self, record):
        """Test a repeated height."""
        record['data'].loc[5, 'HGHT'] = record['data'].loc[4, 'HGHT']
        assert quality_flags(record) == 13

    def test_missing_height_below_top(self, record):
        """Test a gap in the levels below the top height."""
        record['data'].loc[10, 'HGHT'] = np.nan
        assert quality_flags(record) == 11

    def test_missing_height_above_top(self, record):
        """Test that gaps above the top height are ignored."""
        record['data'].loc[79, 'HGHT'] = np.nan
        assert quality_flags(record) == QC_PASSED

    def test_pressure_increase(self, record):
        """Test a pressure inversion."""
        record['data'].loc[20, 'PRES'] = record['data'].loc[19, 'PRES'] + 1
        assert quality_flags(record) == 7


class TestInterpolation:
    """Tests for surface and profile interpolation."""

    def test_surface_values(self, record):
        """Test extrapolation to height 0."""
        surface = surface_values(record)
        assert surface['TEMP'] == pytest.approx(288.15)
        assert surface['RELH'] == pytest.approx(95.0)
        assert surface['PRES'] == pytest.approx(1013.0, abs=0.5)

    def test_surface_values_skip_missing(self, record):
        """Test that missing values are left out."""
        record['data'].loc[0, 'TEMP'] = np.nan
        assert surface_values(record)['TEMP'] == pytest.approx(288.15)

    def test_interpolate_profile(self, record):
        """Test values on the fixed grid."""
        levels = fixed_levels()
        profile = interpolate_profile(record, levels)

        assert len(profile) == 135
        assert profile['HGHT'].iloc[0] == pytest.approx(0.01)
        assert profile['HGHT'].iloc[-1] == pytest.approx(9.0)

        at_1km = profile[np.isclose(profile['HGHT'], 1.01)].iloc[0]
        assert at_1km['TEMP'] == pytest.approx(15.0 - 6.5 * 1.01 + 273.15)
        assert at_1km['DRCT'] == pytest.approx(270.0)

    def test_interpolate_profile_default_grid(self, record):
        """Test that the standard grid is used by default."""
        assert len(interpolate_profile(record)) == 180

    def test_too_few_values(self, record):
        """Test that a column with a single value gives NaN."""
        record['data']['MIXR'] = np.nan
        record['data'].loc[0, 'MIXR'] = 2.0
        assert interpolate_profile(record)['MIXR'].isna().all()


class TestCloudModel:
    """Tests for cloud_model function."""

    def test_liquid_cloud(self):
        """Test the quadratic cloud water content."""
        temp = np.array([270.0, 270.0, 230.0, 280.0])
        relh = np.array([95.0, 89.0, 100.0, 120.0])
        result = cloud_model(temp, relh, np.full(4, 800.0))

        np.testing.assert_allclose(result['CLOUD'], [2 * (5 / 30) ** 2, 0.0, 0.0, 2.0])

    def test_other_hydrometeors(self):
        """Test that precipitation species are zero."""
        result = cloud_model(np.array([270.0]), np.array([100.0]), np.array([800.0]))
        for name in ['RAIN', 'ICE', 'SNOW', 'GRAUPEL']:
            assert result[name].tolist() == [0.0]


class TestHomogenizeProfile:
    """Tests for homogenize_profile function."""

    def test_passed(self, record):
        """Test the homogenized profile of a good sounding."""
        result = homogenize_profile(record)

        assert result['qc'] == QC_PASSED
        assert result['time'] == pd.Timestamp('2015-01-01 12:00')
        assert result['location'] == {'HGT': pytest.approx(0.016), 'LAT': 74.5, 'LON': 19.0}
        assert list(result['profile'].columns) == PROFILE_NAMES
        assert len(result['profile']) == 180
        assert result['profile']['CLOUD'].iloc[0] == pytest.approx(2 * (5 / 30) ** 2, rel=1e-3)
        assert result['profile']['CLOUD'].iloc[-1] == 0.0

    def test_failed(self):
        """Test that a failed sounding is dropped."""
        assert homogenize_profile(make_record(top=5000.0)) is None


class TestWriters:
    """Tests for the output writers."""

    def test_empty_ascii(self, tmp_path):
        """Test the header written without profiles."""
        file_path = write_rt_ascii([], tmp_path / 'empty.dat', 1, 1, 180)
        assert file_path.read_text() == '99 99 99   1   1 180 2.5 2.5\n'

    def test_netcdf_origin(self, tmp_path, record):
        """Test that the source file names are stored as characters."""
        result = homogenize_profile(record)
        cells = {
            (0, 0): {'results': [result], 'location': result['location'],
                     'origin': '/data/RASOBS/enbj/2015/RS_01028_20150101-20151231.nc'},
            (1, 0): {'results': [], 'location': None, 'origin': ''},
        }
        file_path = write_rt_netcdf(cells, tmp_path / 'rt.nc', 2, 1, 180)

        with nc.Dataset(file_path) as ds:
            ds.set_auto_mask(False)
            assert ds['origin'].shape == (1, 2, 300)
            origin = nc.chartostring(ds['origin'][:])
        assert origin[0, 0] == '/data/RASOBS/enbj/2015/RS_01028_20150101-20151231.nc'
        assert origin[0, 1] == ''

    def test_netcdf_origin_truncated(self, tmp_path):
        """Test that long file names are cut to 300 characters."""
        cells = {(0, 0): {'results': [], 'location': None, 'origin': 'x' * 400}}
        file_path = write_rt_netcdf(cells, tmp_path / 'rt.nc', 1, 1, 180)

        with nc.Dataset(file_path) as ds:
            ds.set_auto_mask(False)
            assert nc.chartostring(ds['origin'][:])[0, 0] == 'x' * 300

    def test_netcdf_replaces_existing(self, tmp_path):
        """Test that an existing file is overwritten."""
        file_path = tmp_path / 'rt.nc'
        file_path.write_text('not a netcdf file')
        write_rt_netcdf({(0, 0): {'results': [], 'location': None, 'origin': ''}}, file_path, 1, 1, 135)

        with nc.Dataset(file_path) as ds:
            assert ds.dimensions['lev'].size == 135


@pytest.fixture
def sounding_dir(tmp_path):
    """Two stations stored as <station>/<year>/ files."""
    input_dir = tmp_path / 'RASOBS'
    save_soundings([make_record(time='2015-01-01 00:00'), make_record(time='2015-01-01 12:00')],
                   input_dir / 'enbj' / '2015' / 'RS_01028_20150101-20150101.nc')
    save_soundings([make_record(station='01004', time='2015-01-01 12:00', latitude=78.9, longitude=11.9,
                                elevation=8.0),
                    make_record(station='01004', time='2015-01-02 00:00', top=5000.0)],
                   input_dir / 'polar' / '2015' / 'RS_01004_20150101-20150102.csv')
    return input_dir


class TestHomogenizeStations:
    """Tests for homogenize_stations function."""

    def test_outputs(self, tmp_path, sounding_dir):
        """Test the ASCII and NetCDF files of a 2 x 1 grid."""
        dat_file, nc_file, qc = homogenize_stations([['enbj'], ['polar']], [2015], sounding_dir,
                                                    tmp_path / 'RT', contact='test@example.org')

        assert dat_file.name == 'RS_Y2015-2015_x002y001_RT.dat'
        assert nc_file.name == 'RS_Y2015-2015_x002y001_RT.nc'
        assert sorted(qc.tolist()) == [14, 15, 15, 15]

        lines = dat_file.read_text().splitlines()
        assert lines[0] == '01 01 12   2   1 180 2.5 2.5'
        assert len(lines) == 1 + 3 * (2 + 180)
        assert lines[1].split() == ['1', '0']
        assert len(lines[3].split()) == len(PROFILE_NAMES)

        with nc.Dataset(nc_file) as ds:
            ds.set_auto_mask(False)

            assert ds['PHB'].dimensions == ('time', 'lev', 'yn', 'xn')
            assert ds['PHB'].shape == (2, 180, 1, 2)
            assert ds['T2'].shape == (2, 1, 2)
            assert ds['QCLOUD'].units == 'g/m^3'
            assert ds.Contact == 'test@example.org'

            assert ds['hour'][:, 0, 0].tolist() == [0.0, 12.0]
            assert ds['hour'][0, 0, 1] == 12.0
            assert np.isnan(ds['T'][1, :, 0, 1]).all()
            assert ds['T2'][0, 0, 0] == pytest.approx(288.15, abs=1e-3)
            assert ds['LAT'][0, 1] == pytest.approx(78.9, abs=1e-4)
            assert ds['HGT'][0, 0] == pytest.approx(0.016, abs=1e-6)

            origin = nc.chartostring(ds['origin'][:])
            assert origin[0, 0].endswith('RS_01028_20150101-20150101.nc')
            assert origin[0, 1].endswith('RS_01004_20150101-20150102.csv')


    def test_location_without_passed_profiles(self, tmp_path):
        """Test that a station whose soundings all fail keeps its coordinates."""
        input_dir = tmp_path / 'RASOBS'
        save_soundings([make_record(station='01004', top=5000.0, latitude=78.9, longitude=11.9, elevation=8.0)],
                       input_dir / 'polar' / '2015' / 'RS_01004_20150101-20150101.nc')

        dat_file, nc_file, qc = homogenize_stations([['polar']], [2015], input_dir, tmp_path / 'RT')

        assert qc.tolist() == [14]
        assert dat_file.read_text().splitlines() == ['99 99 99   1   1 180 2.5 2.5']
        with nc.Dataset(nc_file) as ds:
            ds.set_auto_mask(False)
            assert ds['LAT'][0, 0] == pytest.approx(78.9, abs=1e-4)
            assert ds['LON'][0, 0] == pytest.approx(11.9, abs=1e-4)
            assert ds['HGT'][0, 0] == pytest.approx(0.008, abs=1e-6)
            assert ds.dimensions['time'].size == 0

    def test_quality_flags_once_per_sounding(self, tmp_path, sounding_dir, monkeypatch):
        """Test that every sounding is checked a single time."""
        calls = []

        def counting_quality_flags(record, top=homogenize.TOP_HEIGHT, min_levels=homogenize.MIN_LEVELS):
            calls.append(record['time'])
            return quality_flags(record, top, min_levels)

        monkeypatch.setattr(homogenize, 'quality_flags', counting_quality_flags)

        _, _, qc = homogenize_stations([['enbj'], ['polar']], [2015], sounding_dir, tmp_path / 'RT')
        assert len(calls) == len(qc) == 4
    def test_missing_station(self, tmp_path, sounding_dir):
        """Test that a station without files leaves its cell empty."""
        dat_file, nc_file, qc = homogenize_stations([['enbj', 'none']], [2015], sounding_dir, tmp_path / 'RT')

        assert len(qc) == 2
        with nc.Dataset(nc_file) as ds:
            ds.set_auto_mask(False)
            assert ds['P'].shape == (2, 180, 2, 1)
            assert np.isnan(ds['P'][:, :, 1, 0]).all()
            assert np.isnan(ds['LAT'][1, 0])

    def test_invalid_grid(self, tmp_path, sounding_dir):
        """Test that an empty grid raises ValueError."""
        with pytest.raises(ValueError, match="non-empty grid"):
            homogenize_stations([], [2015], sounding_dir, tmp_path)
        with pytest.raises(ValueError, match="year"):
            homogenize_stations([['enbj']], [], sounding_dir, tmp_path)

    def test_main(self, tmp_path, sounding_dir):
        """Test the command line entry point with the fixed grid."""
        output_dir = tmp_path / 'RT'
        assert homogenize.main(['--stations', 'enbj', '--years', '2015', '--input-dir', str(sounding_dir),
                                '--output-dir', str(output_dir), '--grid', 'fixed']) == 0

        lines = (output_dir / 'RS_Y2015-2015_x001y001_RT.dat').read_text().splitlines()
        assert lines[0] == '01 01 12   1   1 135 2.5 2.5'
        assert (output_dir / 'RS_Y2015-2015_x001y001_RT.nc').exists()
