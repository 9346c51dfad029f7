# quakefeed/tally.py
"""
Tally phase, run over the full set of reveals by every tallying node.

  1. keep reveals that are in consensus and exited 0
  2. strictly decode each one, dropping anything that fails
  3. sort once by (magnitude, time, location, bytes)
  4. take index (n - 1) // 2, the lower median for even counts
  5. report that whole reading, so location and time always belong to the
     magnitude that was picked

The sort key is a total order over readings, so arrival order of the reveals
can never change the output.
"""

import logging
from typing import Iterable, List

from quakefeed.errors import DecodeError
from quakefeed.reading import (
    EXIT_NO_CONSENSUS,
    EXIT_SUCCESS,
    EarthquakeReading,
    ProcessResult,
    Reveal,
    decode_reading,
)

log = logging.getLogger("quakefeed.tally")


def valid_readings(reveals: Iterable[Reveal]) -> List[EarthquakeReading]:
    readings = []
    for i, reveal in enumerate(reveals):
        if not reveal.in_consensus or reveal.exit_code != EXIT_SUCCESS:
            log.debug(f"Skipping reveal {i}: in_consensus={reveal.in_consensus}, "
                      f"exit_code={reveal.exit_code}")
            continue
        try:
            reading = decode_reading(reveal.result)
        except DecodeError as e:
            log.warning(f"Reveal {i} could not be parsed as EarthquakeReading: {e}")
            continue
        log.info(
            f"Received earthquake: magnitude={reading.magnitude}, "
            f"location={reading.location}, time={reading.time}"
        )
        readings.append(reading)
    return readings


def median_reading(readings: List[EarthquakeReading]) -> EarthquakeReading:
    """Lower-middle reading by magnitude. `readings` must be non-empty."""
    ordered = sorted(readings, key=EarthquakeReading.sort_key)
    return ordered[(len(ordered) - 1) // 2]


def tally_phase(reveals: Iterable[Reveal]) -> ProcessResult:
    try:
        readings = valid_readings(reveals)
        if not readings:
            log.error("No consensus among revealed results")
            return ProcessResult.failure(EXIT_NO_CONSENSUS, "no consensus among revealed results")
        winner = median_reading(readings)
    except Exception as e:
        log.exception("Unexpected fault in tally phase")
        return ProcessResult.failure(EXIT_NO_CONSENSUS, f"unexpected error: {e}")

    result = ProcessResult.success(winner)
    log.info(
        f"Reporting median earthquake info as bytes: {len(result.result)} bytes "
        f"(median of {len(readings)})"
    )
    return result
