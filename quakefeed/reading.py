# quakefeed/reading.py
"""
Data model shared by the execution and tally phases
QuakeFeed v1

EarthquakeReading is the unit every node reports. It always leaves a node in
its canonical encoding:

  {"magnitude":5.5,"location":"100km S of Testville","time":1710000000000}

UTF-8 JSON, keys in that order, compact separators, non-ASCII kept raw.
Decoding is strict so a malformed reveal is rejected instead of quietly
turning into a default value.
"""

import json
from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quakefeed.errors import DecodeError

EXIT_SUCCESS = 0
EXIT_EXECUTION_FAILED = 1
EXIT_NO_CONSENSUS = 2


class EarthquakeReading(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    magnitude: float = Field(allow_inf_nan=False)
    location: str = Field(min_length=1)
    time: int = Field(ge=0)  # ms since epoch

    def encode(self) -> bytes:
        return json.dumps(
            {
                "magnitude": float(self.magnitude),
                "location": self.location,
                "time": self.time,
            },
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")

    def sort_key(self):
        """Total order used by the tally. Equal keys mean identical bytes."""
        return (float(self.magnitude), self.time, self.location, self.encode())


def decode_reading(data: bytes) -> EarthquakeReading:
    """Strictly decode canonical bytes. Raises DecodeError."""
    if not data:
        raise DecodeError("empty payload")
    try:
        return EarthquakeReading.model_validate_json(data)
    except ValidationError as e:
        raise DecodeError(f"invalid earthquake reading: {e.error_count()} error(s): "
                          f"{e.errors()[0]['msg']}") from e


def parse_hex(data: str) -> bytes:
    """Hex string (optionally 0x-prefixed) to bytes, as the feed contract returns it."""
    clean = data[2:] if data.startswith(("0x", "0X")) else data
    try:
        return bytes.fromhex(clean)
    except ValueError as e:
        raise DecodeError(f"not a hex string: {data[:32]!r}") from e


def parse_earthquake_data(data: str) -> Optional[EarthquakeReading]:
    """dApp helper: hex result from latest_answer() to a reading, None if unusable."""
    try:
        return decode_reading(parse_hex(data))
    except DecodeError:
        return None


def _result_bytes(raw) -> bytes:
    if raw is None:
        return b""
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, list):
        return bytes(raw)
    if isinstance(raw, str):
        try:
            return parse_hex(raw)
        except DecodeError:
            return raw.encode("utf-8")
    raise DecodeError(f"unsupported result type: {type(raw).__name__}")


class RevealInput(BaseModel):
    model_config = ConfigDict(strict=True)

    exitCode: int
    gasUsed: int = 0
    inConsensus: bool
    result: Union[str, List[int], None] = None


@dataclass(frozen=True)
class Reveal:
    exit_code: int
    gas_used: int
    in_consensus: bool
    result: bytes

    @classmethod
    def from_dict(cls, data: dict) -> "Reveal":
        """Build from the harness shape {exitCode, gasUsed, inConsensus, result}."""
        try:
            raw = RevealInput.model_validate(data)
        except ValidationError as e:
            err = e.errors()[0]
            field = ".".join(str(p) for p in err["loc"])
            raise DecodeError(f"malformed reveal at {field}: {err['msg']}") from e
        try:
            result = _result_bytes(raw.result)
        except ValueError as e:
            raise DecodeError(f"malformed reveal result: {e}") from e
        return cls(
            exit_code=raw.exitCode,
            gas_used=raw.gasUsed,
            in_consensus=raw.inConsensus,
            result=result,
        )

    @classmethod
    def from_reading(cls, reading: EarthquakeReading, in_consensus: bool = True) -> "Reveal":
        return cls(exit_code=EXIT_SUCCESS, gas_used=0, in_consensus=in_consensus,
                   result=reading.encode())

    def to_dict(self) -> dict:
        return {
            "exitCode": self.exit_code,
            "gasUsed": self.gas_used,
            "inConsensus": self.in_consensus,
            "result": self.result.hex(),
        }


@dataclass(frozen=True)
class ProcessResult:
    """Output of either phase. `error` is diagnostic only and never serialized."""
    exit_code: int
    result: bytes = b""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == EXIT_SUCCESS

    @classmethod
    def success(cls, reading: EarthquakeReading) -> "ProcessResult":
        return cls(exit_code=EXIT_SUCCESS, result=reading.encode())

    @classmethod
    def failure(cls, exit_code: int, error: str) -> "ProcessResult":
        return cls(exit_code=exit_code, result=b"", error=error)

    def reading(self) -> Optional[EarthquakeReading]:
        if not self.ok:
            return None
        return decode_reading(self.result)

    def to_dict(self) -> dict:
        return {"exitCode": self.exit_code, "result": self.result.hex()}
