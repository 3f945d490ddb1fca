"""Shared fixtures for rasobs tests."""

import numpy as np
import pandas as pd
import pytest

SAMPLE_PAGE = """<HTML>
<TITLE>University of Wyoming - Radiosonde Data</TITLE>
<BODY BGCOLOR="white">
<H2>01028 ENBJ Bjornoya Observations at 12Z 01 Jan 2015</H2>
<PRE>
-----------------------------------------------------------------------------
   PRES   HGHT   TEMP   DWPT   RELH   MIXR   DRCT   SKNT   THTA   THTE   THTV
    hPa     m      C      C      %    g/kg    deg   knot     K      K      K
-----------------------------------------------------------------------------
 1000.0     65
  992.0     16   -2.1   -4.8     82   2.71    100     11  271.9  279.4  272.4
  925.0    561   -6.3   -8.5     84   2.18    115     25  273.1  279.3  273.5
  850.0   1213   -9.9  -14.9     67   1.42    130     29  275.9  280.1  276.1
  779.0   1893                                150     31
  700.0   2679  -19.1  -31.1     34   0.38    175     17  281.4  282.7  281.5
  500.0   5120  -36.5  -45.5     38   0.10
</PRE><H3>Station information and sounding indices</H3><PRE>
                         Station identifier: ENBJ
                             Station number: 1028
                           Observation time: 150101/1200
                           Station latitude: 74.50
                          Station longitude: 19.00
                          Station elevation: 16.0
                            Showalter index: 13.51
                               Lifted index: 12.47
                                    K index: -2.90
      Convective Available Potential Energy: 0.00
Precipitable water [mm] for entire sounding: 4.75
</PRE>
<P>Description of the
<A HREF="/upperair/columns.html">sounding columns</A> and
<A HREF="/upperair/indices.html">sounding indices</A>.
</BODY></HTML>
"""

NO_ID_PAGE = """<HTML>
<BODY BGCOLOR="white">
<H2>10035  Schleswig Observations at 00Z 15 Jun 2016</H2>
<PRE>
-----------------------------------------------------------------------------
   PRES   HGHT   TEMP   DWPT   RELH   MIXR   DRCT   SKNT   THTA   THTE   THTV
    hPa     m      C      C      %    g/kg    deg   knot     K      K      K
-----------------------------------------------------------------------------
 1007.0     43   14.2   11.9     86   8.67    250      6  286.8  311.3  288.3
  925.0    744    9.4    7.1     86   6.88    270     15  288.8  308.6  290.0
</PRE>
</BODY></HTML>
"""

NO_DATA_PAGE = """<HTML>
<TITLE>University of Wyoming - Radiosonde Data</TITLE>
<BODY BGCOLOR="white">
<P>Can't get 01028 ENBJ Bjornoya Observations at 00Z 02 Jan 2015.</P>
</BODY></HTML>
"""


class FakeResponse:
    """Stand-in for requests.Response."""

    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            import requests
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


def make_record(station='01028', time='2015-01-01 12:00', top=12000.0, nlev=80,
                latitude=74.5, longitude=19.0, elevation=16.0):
    """Synthetic sounding with a constant lapse rate and a moist layer near the ground."""
    height = np.linspace(elevation, top, nlev)
    data = pd.DataFrame({
        'PRES': 1013.0 * np.exp(-height / 8000.0),
        'HGHT': height,
        'TEMP': 15.0 - 6.5 * height / 1000.0,
        'DWPT': 10.0 - 7.0 * height / 1000.0,
        'RELH': np.clip(95.0 - 10.0 * height / 1000.0, 5.0, None),
        'MIXR': np.full(nlev, 2.0),
        'DRCT': np.full(nlev, 270.0),
        'SKNT': 10.0 + height / 1000.0,
    })
    return {
        'station': station,
        'station_id': 'ENBJ',
        'station_name': 'Bjornoya',
        'time': pd.Timestamp(time),
        'metvar': {'SLAT': latitude, 'SLON': longitude, 'SELV': elevation, 'CAPE': 0.0, 'PWAT': 4.75},
        'data': data,
    }


@pytest.fixture
def sample_page():
    return SAMPLE_PAGE


@pytest.fixture
def record():
    return make_record()


@pytest.fixture
def records():
    return [
        make_record(time='2015-01-02 00:00', nlev=70),
        make_record(time='2015-01-01 12:00'),
        make_record(time='2015-01-01 00:00', nlev=60),
    ]
