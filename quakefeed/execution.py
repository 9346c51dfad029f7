# quakefeed/execution.py
"""
Execution phase, run once per node.

Fetches the newest USGS event and reports it as canonical bytes. Every
failure becomes a non-zero exit code; nothing is raised to the caller, since
a crashed execution is indistinguishable from a faulty node.
"""

import logging

from quakefeed.config import USGS_URL
from quakefeed.errors import QuakeFeedError
from quakefeed.feeds.usgs import Fetcher, get_latest_earthquake, requests_fetch
from quakefeed.reading import EXIT_EXECUTION_FAILED, ProcessResult

log = logging.getLogger("quakefeed.execution")


def execution_phase(fetch: Fetcher = requests_fetch, url: str = USGS_URL) -> ProcessResult:
    log.info(f"Fetching most recent earthquake from: {url}")
    try:
        reading = get_latest_earthquake(fetch, url)
    except QuakeFeedError as e:
        log.error(f"Error while fetching earthquake data: {e}")
        return ProcessResult.failure(EXIT_EXECUTION_FAILED, str(e))
    except Exception as e:
        log.exception("Unexpected fault in execution phase")
        return ProcessResult.failure(EXIT_EXECUTION_FAILED, f"unexpected error: {e}")

    log.info(
        f"Fetched earthquake: magnitude={reading.magnitude}, "
        f"location={reading.location}, time={reading.time}"
    )
    result = ProcessResult.success(reading)
    log.info(f"Reporting earthquake info as bytes: {len(result.result)} bytes")
    return result
