# quakefeed/server.py
"""
QuakeFeed Node — Unified Server
QuakeFeed v1

Endpoints:
  GET  /oracle/earthquake   — run the execution phase, signed attestation
  POST /oracle/tally        — tally a set of reveals
  POST /feed/transmit       — open a new data request on the feed ledger
  POST /feed/results        — post a tally outcome for a request
  GET  /feed/latest         — latest answer of the feed ledger
  GET  /health              — node status and pubkey
"""

import argparse
import logging
from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from quakefeed import __version__
from quakefeed.attest import DOMAIN, sign_result
from quakefeed.config import KEYS_DIR, LOG_DATEFMT, LOG_FORMAT, LOG_LEVEL, PORT
from quakefeed.errors import DecodeError, RequestNotTransmitted, UnknownRequest
from quakefeed.execution import execution_phase
from quakefeed.feed import DataResult, EarthquakeFeed
from quakefeed.feeds.usgs import Fetcher, requests_fetch
from quakefeed.keys import load_or_create_key, pubkey_hex
from quakefeed.reading import ProcessResult, Reveal, parse_earthquake_data, parse_hex
from quakefeed.tally import tally_phase

log = logging.getLogger("quakefeed.server")


class TallyRequest(BaseModel):
    reveals: List[dict]


class TransmitRequest(BaseModel):
    requestFee: int = Field(default=0, ge=0)
    resultFee: int = Field(default=0, ge=0)
    batchFee: int = Field(default=0, ge=0)


class ResultRequest(BaseModel):
    requestId: str
    consensus: bool
    exitCode: int
    result: str = ""


def _describe(result: ProcessResult) -> dict:
    reading = result.reading()
    return {
        **result.to_dict(),
        "reading": reading.model_dump() if reading else None,
    }


def create_app(keys_dir: Path = KEYS_DIR, fetch: Fetcher = requests_fetch,
               feed: Optional[EarthquakeFeed] = None) -> FastAPI:
    sk = load_or_create_key(keys_dir)
    pubkey = pubkey_hex(sk)
    feed = feed if feed is not None else EarthquakeFeed()

    app = FastAPI(
        title="QuakeFeed Oracle Node",
        description="USGS earthquake readings, signed per node and tallied by median",
        version=__version__,
    )

    @app.get("/oracle/earthquake")
    def oracle_earthquake():
        result = execution_phase(fetch)
        if not result.ok:
            return JSONResponse(
                status_code=502,
                content={"domain": DOMAIN, "exitCode": result.exit_code, "error": result.error},
            )
        return JSONResponse(sign_result(result, sk))

    @app.post("/oracle/tally")
    def oracle_tally(body: TallyRequest):
        try:
            reveals = [Reveal.from_dict(r) for r in body.reveals]
        except DecodeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _describe(tally_phase(reveals))

    @app.post("/feed/transmit")
    def feed_transmit(body: TransmitRequest):
        request_id = feed.transmit(body.requestFee, body.resultFee, body.batchFee)
        log.info(f"Transmitted data request {request_id.hex()}")
        return {"requestId": request_id.hex()}

    @app.post("/feed/results")
    def feed_results(body: ResultRequest):
        try:
            data_result = DataResult(
                request_id=parse_hex(body.requestId),
                consensus=body.consensus,
                exit_code=body.exitCode,
                result=parse_hex(body.result),
            )
            feed.post_result(data_result)
        except DecodeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except UnknownRequest as e:
            raise HTTPException(status_code=404, detail=str(e))
        log.info(f"Posted result for {body.requestId} (consensus={body.consensus})")
        return {"status": "ok", "requestId": body.requestId}

    @app.get("/feed/latest")
    def feed_latest():
        try:
            answer = feed.latest_answer()
        except RequestNotTransmitted as e:
            raise HTTPException(status_code=409, detail=str(e))
        reading = parse_earthquake_data(answer.hex())
        return {
            "requestId": feed.request_id.hex(),
            "result": answer.hex(),
            "reading": reading.model_dump() if reading else None,
        }

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "domain": DOMAIN,
            "version": __version__,
            "pubkey": pubkey,
            "endpoints": [
                "/oracle/earthquake",
                "/oracle/tally",
                "/feed/transmit",
                "/feed/results",
                "/feed/latest",
            ],
        }

    return app


def main(argv=None):
    parser = argparse.ArgumentParser(description="QuakeFeed oracle node")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--keys-dir", type=Path, default=KEYS_DIR)
    args = parser.parse_args(argv)

    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    app = create_app(keys_dir=args.keys_dir)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
