"""Tests for the tally phase: filtering, lower median, order independence."""
import itertools
import random

import pytest

from conftest import make_fetcher, usgs_body
from quakefeed.errors import DecodeError
from quakefeed.execution import execution_phase
from quakefeed.reading import (
    EXIT_NO_CONSENSUS,
    EarthquakeReading,
    Reveal,
    decode_reading,
)
from quakefeed.tally import median_reading, tally_phase, valid_readings


def reading(mag, loc, t):
    return EarthquakeReading(magnitude=mag, location=loc, time=t)


class TestMedian:

    def test_three_readings(self, three_reveals):
        result = tally_phase(three_reveals)

        assert result.exit_code == 0
        winner = decode_reading(result.result)
        assert winner.magnitude == 5.0
        assert winner.location == "Loc3"
        assert winner.time == 1700000002000

    def test_even_count_takes_lower_middle(self):
        readings = [reading(m, f"L{m}", int(m * 10)) for m in (4.0, 1.0, 3.0, 2.0)]
        winner = decode_reading(tally_phase([Reveal.from_reading(r) for r in readings]).result)
        assert winner.magnitude == 2.0
        assert winner.location == "L2.0"
        assert winner.time == 20

    def test_two_readings_takes_smaller(self):
        winner = median_reading([reading(6.0, "B", 2), reading(5.0, "A", 1)])
        assert winner == reading(5.0, "A", 1)

    def test_outlier_does_not_move_median(self):
        readings = [reading(5.1, "A", 1), reading(5.2, "B", 2), reading(99.0, "evil", 3)]
        assert median_reading(readings).location == "B"

    def test_companion_fields_follow_magnitude(self):
        readings = [reading(3.0, "Z", 1), reading(2.0, "A", 9), reading(1.0, "M", 5)]
        winner = median_reading(readings)
        assert (winner.magnitude, winner.location, winner.time) == (2.0, "A", 9)

    def test_single_reveal_round_trips_execution_bytes(self):
        fetch = make_fetcher(body=usgs_body(
            {"mag": 5.5, "place": "100km S of Testville", "time": 1710000000000}
        ))
        executed = execution_phase(fetch)
        reveal = Reveal(exit_code=0, gas_used=0, in_consensus=True, result=executed.result)

        assert tally_phase([reveal]).result == executed.result


class TestOrderIndependence:

    def test_all_permutations(self):
        readings = [
            reading(4.2, "Loc1", 1),
            reading(5.0, "Loc2", 2),
            reading(5.0, "Loc3", 3),
            reading(5.0, "Loc0", 3),
            reading(6.1, "Loc4", 4),
        ]
        reveals = [Reveal.from_reading(r) for r in readings]
        outputs = {tally_phase(list(p)).result for p in itertools.permutations(reveals)}
        assert len(outputs) == 1

    def test_ties_broken_by_time_then_location(self):
        readings = [reading(5.0, "B", 2), reading(5.0, "A", 2), reading(5.0, "C", 1)]
        # sorted: (5.0, 1, C), (5.0, 2, A), (5.0, 2, B)
        assert median_reading(readings) == reading(5.0, "A", 2)

    def test_shuffled_with_failures_mixed_in(self):
        rng = random.Random(7)
        good = [Reveal.from_reading(reading(m / 10, f"L{m}", m)) for m in range(30, 60, 3)]
        bad = [
            Reveal(exit_code=1, gas_used=0, in_consensus=True, result=b""),
            Reveal(exit_code=0, gas_used=0, in_consensus=False, result=good[0].result),
            Reveal(exit_code=0, gas_used=0, in_consensus=True, result=b"garbage"),
        ]
        baseline = tally_phase(good + bad).result
        for _ in range(50):
            mixed = good + bad
            rng.shuffle(mixed)
            assert tally_phase(mixed).result == baseline


class TestFiltering:

    def test_out_of_consensus_reveals_are_dropped(self, three_reveals):
        outlier = Reveal.from_reading(reading(0.1, "liar", 1), in_consensus=False)
        assert len(valid_readings(three_reveals + [outlier])) == 3

    def test_nonzero_exit_code_is_dropped(self, three_readings):
        failed = Reveal(exit_code=1, gas_used=5, in_consensus=True,
                        result=three_readings[0].encode())
        assert valid_readings([failed]) == []

    def test_corrupt_reveal_is_dropped(self, three_reveals):
        corrupt = Reveal(exit_code=0, gas_used=0, in_consensus=True, result=b'{"magnitude":')
        result = tally_phase(three_reveals + [corrupt])
        assert decode_reading(result.result).location == "Loc3"

    @pytest.mark.parametrize("reveals", [
        [],
        [Reveal(exit_code=1, gas_used=0, in_consensus=True, result=b"")],
        [Reveal(exit_code=0, gas_used=0, in_consensus=False,
                result=b'{"magnitude":1.0,"location":"X","time":0}')],
        [Reveal(exit_code=0, gas_used=0, in_consensus=True, result=b"\x00\x01")],
    ])
    def test_no_valid_reveals(self, reveals):
        result = tally_phase(reveals)

        assert result.exit_code == EXIT_NO_CONSENSUS
        assert result.result == b""

    def test_accepts_generators(self, three_reveals):
        assert tally_phase(r for r in three_reveals).exit_code == 0


class TestHarnessReveals:

    def test_string_false_never_enters_consensus(self, three_reveals):
        outlier = {
            "exitCode": 0,
            "inConsensus": "false",
            "result": EarthquakeReading(magnitude=0.1, location="liar", time=1).encode().hex(),
        }
        with pytest.raises(DecodeError):
            Reveal.from_dict(outlier)

    def test_harness_dicts_tally(self, three_reveals):
        reveals = [Reveal.from_dict(r.to_dict()) for r in three_reveals]
        assert decode_reading(tally_phase(reveals).result).location == "Loc3"
