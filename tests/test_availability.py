"""Tests for rasobs.availability module."""

import json

import pandas as pd
import pytest

from conftest import make_record
from rasobs import availability
from rasobs.availability import get_availability, get_availability_json, missing_soundings
from rasobs.rasobs import save_soundings


class TestGetAvailability:

    def test_nested(self, records):
        result = get_availability(records)
        assert result == {2015: {1: {1: [0, 12], 2: [0]}}}

    def test_empty(self):
        assert get_availability([]) == {}


class TestGetAvailabilityJson:
    """Tests for get_availability_json function."""

    def test_summary(self, records):
        """Test counts per year."""
        records = records + [make_record(time='2016-03-05 12:00')]
        result = get_availability_json(records)

        assert result['station_id'] == '01028'
        assert result['num_total_soundings'] == 4
        assert result['available_years'] == [2015, 2016]
        assert result['num_soundings_per_year'] == {2015: 3, 2016: 1}
        assert result['num_days_per_year'] == {2015: 2, 2016: 1}
        assert result['num_months_per_year'] == {2015: 1, 2016: 1}
        assert result['raw_data'][0] == [2015, 1, 1, 0]

    def test_save_json(self, tmp_path, records):
        """Test that the summary is written to <station>-availability.json."""
        get_availability_json(records, download_dir=str(tmp_path), download_availability=True)

        with open(tmp_path / '01028-availability.json') as f:
            saved = json.load(f)
        assert saved['num_total_soundings'] == 3
        assert saved['num_soundings_per_year'] == {'2015': 3}

    def test_no_records(self):
        assert get_availability_json([]) is None

    def test_several_stations(self, records):
        """Test that soundings of several stations are rejected."""
        with pytest.raises(ValueError, match="single station"):
            get_availability_json(records + [make_record(station='01004')])


class TestMissingSoundings:

    def test_missing_slots(self, records):
        missing = missing_soundings(records, 20150101, 20150102)
        assert missing == [pd.Timestamp('2015-01-02 12:00')]

    def test_custom_hours(self, records):
        missing = missing_soundings(records, 20150101, 20150101, hours=[0, 6, 12, 18])
        assert missing == [pd.Timestamp('2015-01-01 06:00'), pd.Timestamp('2015-01-01 18:00')]


def test_main(tmp_path, records, capsys):
    file_path = save_soundings(records, tmp_path / 'soundings.parquet')

    assert availability.main([str(file_path), '--download-dir', str(tmp_path / 'json'),
                              '--start', '20150101', '--end', '20150103']) == 0

    output = capsys.readouterr().out
    assert 'Station 01028 has 3 soundings' in output
    assert '3 missing soundings between 20150101 and 20150103' in output
    assert (tmp_path / 'json' / '01028-availability.json').exists()
