"""Shared fixtures: fake USGS fetchers and sample readings."""
import json

import pytest

from quakefeed.feeds.usgs import HttpResponse
from quakefeed.reading import EarthquakeReading, Reveal


def usgs_body(*props):
    return json.dumps({
        "type": "FeatureCollection",
        "features": [{"type": "Feature", "properties": p} for p in props],
    }).encode()


def make_fetcher(status=200, body=b""):
    calls = []

    def fetch(url):
        calls.append(url)
        return HttpResponse(status=status, body=body)

    fetch.calls = calls
    return fetch


@pytest.fixture
def testville_fetcher():
    return make_fetcher(body=usgs_body(
        {"mag": 5.5, "place": "100km S of Testville", "time": 1710000000000}
    ))


@pytest.fixture
def three_readings():
    return [
        EarthquakeReading(magnitude=4.2, location="Loc1", time=1700000000000),
        EarthquakeReading(magnitude=6.1, location="Loc2", time=1700000001000),
        EarthquakeReading(magnitude=5.0, location="Loc3", time=1700000002000),
    ]


@pytest.fixture
def three_reveals(three_readings):
    return [Reveal.from_reading(r) for r in three_readings]
