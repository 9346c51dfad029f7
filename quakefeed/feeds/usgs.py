# feeds/usgs.py
"""
USGS Earthquake Feed — most recent event
QuakeFeed v1

Source: earthquake.usgs.gov FDSN event query (GeoJSON, newest first).

The first feature of the collection is taken as-is; the upstream ordering is
trusted and never re-sorted here. Only that feature is validated, so a later
feature with a null magnitude does not poison the fetch.
"""

from dataclasses import dataclass
from typing import Any, Callable, List

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quakefeed.config import FETCH_TIMEOUT, USGS_URL
from quakefeed.errors import FetchError
from quakefeed.reading import EarthquakeReading


@dataclass(frozen=True)
class HttpResponse:
    status: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


Fetcher = Callable[[str], HttpResponse]


def requests_fetch(url: str) -> HttpResponse:
    """Default fetcher: a single GET, no retries."""
    try:
        r = requests.get(url, timeout=FETCH_TIMEOUT)
    except requests.RequestException as e:
        raise FetchError(f"request to {url} failed: {e}") from e
    return HttpResponse(status=r.status_code, body=r.content)


# === Upstream schema ===

class FeatureCollection(BaseModel):
    model_config = ConfigDict(strict=True)

    features: List[Any]


class Properties(BaseModel):
    model_config = ConfigDict(strict=True)

    mag: float = Field(allow_inf_nan=False)
    place: str = Field(min_length=1)
    time: int = Field(ge=0)


class Feature(BaseModel):
    model_config = ConfigDict(strict=True)

    properties: Properties


# === Main fetch function ===

def get_latest_earthquake(fetch: Fetcher = requests_fetch, url: str = USGS_URL) -> EarthquakeReading:
    """Fetch the feed and normalize its first feature.

    Raises FetchError on network failure, non-2xx status, malformed JSON,
    an empty feature collection or a missing/wrong-typed field.
    """
    response = fetch(url)
    if not response.ok:
        snippet = response.body[:200].decode("utf-8", errors="replace")
        raise FetchError(f"HTTP {response.status} from {url}: {snippet}")

    try:
        collection = FeatureCollection.model_validate_json(response.body)
    except ValidationError as e:
        raise FetchError(f"malformed feed body: {e.errors()[0]['msg']}") from e

    if not collection.features:
        raise FetchError("no earthquake data found")

    try:
        feature = Feature.model_validate(collection.features[0])
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(p) for p in err["loc"])
        raise FetchError(f"bad first feature at {field}: {err['msg']}") from e

    props = feature.properties
    return EarthquakeReading(magnitude=props.mag, location=props.place, time=props.time)


# === CLI test ===

if __name__ == "__main__":
    print(f"Fetching most recent earthquake from {USGS_URL}\n")
    reading = get_latest_earthquake()
    print(f"  Magnitude: {reading.magnitude}")
    print(f"  Location:  {reading.location}")
    print(f"  Time:      {reading.time}")
    print(f"\n  Canonical: {reading.encode().decode()}")
