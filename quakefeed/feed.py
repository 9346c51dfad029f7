# quakefeed/feed.py
"""
EarthquakeFeed ledger
QuakeFeed v1

In-memory stand-in for the on-chain feed contract:
  transmit()       — open a new data request, remember its id
  post_result()    — the network posts the tally outcome for a request
  latest_answer()  — result bytes of the latest request if consensus was
                     reached, empty bytes otherwise; raises before any
                     request was ever transmitted
"""

import hashlib
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Set

from quakefeed.config import PROGRAM_ID
from quakefeed.errors import RequestNotTransmitted, UnknownRequest

ZERO_REQUEST_ID = bytes(32)


@dataclass(frozen=True)
class DataResult:
    request_id: bytes
    consensus: bool
    exit_code: int
    result: bytes


class EarthquakeFeed:
    def __init__(self, program_id: str = PROGRAM_ID):
        self.program_id = program_id
        self.request_id = ZERO_REQUEST_ID
        self._results: Dict[bytes, DataResult] = {}
        self._issued_ids: Set[bytes] = set()
        self._nonce = 0
        self._lock = threading.Lock()

    def transmit(self, request_fee: int = 0, result_fee: int = 0, batch_fee: int = 0) -> bytes:
        """Open a new data request and return its 32-byte id."""
        if min(request_fee, result_fee, batch_fee) < 0:
            raise ValueError("fees must be non-negative")
        with self._lock:
            self._nonce += 1
            payload = f"{self.program_id}|{request_fee}|{result_fee}|{batch_fee}|{self._nonce}"
            self.request_id = hashlib.sha256(payload.encode()).digest()
            self._issued_ids.add(self.request_id)
            return self.request_id

    def post_result(self, data_result: DataResult) -> None:
        with self._lock:
            if not self._issued(data_result.request_id):
                raise UnknownRequest(f"unknown request id: {data_result.request_id.hex()}")
            self._results[data_result.request_id] = data_result

    def get_result(self, request_id: bytes) -> Optional[DataResult]:
        with self._lock:
            return self._results.get(request_id)

    def latest_answer(self) -> bytes:
        with self._lock:
            if self.request_id == ZERO_REQUEST_ID:
                raise RequestNotTransmitted("no request has been transmitted yet")
            data_result = self._results.get(self.request_id)
        if data_result is None or not data_result.consensus:
            return b""
        return data_result.result

    def _issued(self, request_id: bytes) -> bool:
        return request_id in self._issued_ids
