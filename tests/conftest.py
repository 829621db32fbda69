"""Pytest configuration and fixtures."""

import pandas as pd
import pytest


MEASUREMENTS = """Site,Timestamp,Power,Temperature,NacelleAngle,RotorSpeed,WindDirection,WindSpeed
1,2021-01-01T00:00:00Z,50,3.0,10,12.0,30,4.0
1,2021-01-01T01:00:00Z,-20,2.5,10,0.0,200,0.0
1,2021-01-01T03:00:00Z,150,2.0,12,14.0,370,6.5
1,2021-01-01T05:00:00Z,100,1.5,12,13.0,100,5.0
2,2021-01-01T00:00:00Z,400,4.0,,,300,8.0
2,2021-01-01T02:00:00Z,250,4.2,,,,3.0
2,2021-01-01T04:00:00Z,,,,,,
"""

SITE_META = """id,turbines,capacity,lat,lon,state,country
1,10,200,52.1,5.2,Utrecht,NL
2,20,500,53.0,6.0,Drenthe,NL
3,5,100,51.5,4.5,Zeeland,NL
"""


@pytest.fixture
def measurements_csv(tmp_path):
    path = tmp_path / "measurements.csv"
    path.write_text(MEASUREMENTS)
    return path


@pytest.fixture
def meta_csv(tmp_path):
    path = tmp_path / "site_meta.csv"
    path.write_text(SITE_META)
    return path


@pytest.fixture
def hourly_frame():
    """Build a canonical site/timestamp frame from per-site column values."""

    def _build(sites: dict, start="2021-01-01", tz="UTC"):
        frames = []
        for site, cols in sites.items():
            n = len(next(iter(cols.values())))
            frame = pd.DataFrame(cols)
            frame.insert(0, "timestamp", pd.date_range(start, periods=n, freq="h", tz=tz))
            frame.insert(0, "site", str(site))
            frames.append(frame)
        return pd.concat(frames, ignore_index=True)

    return _build
