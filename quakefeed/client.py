# quakefeed/client.py
"""
QuakeFeed Quorum Collector v1
- Asks every node for its signed earthquake reading
- Verifies node signatures (and pinned pubkeys)
- Turns each answer into a reveal; bad signatures are out of consensus
- Enforces a minimum number of valid reveals
- Tallies via lower median and optionally posts the outcome to a feed
"""

import argparse
import json
import logging
import sys
from typing import Callable, Dict, List, Optional

import requests

from quakefeed.attest import verify_attestation
from quakefeed.config import FETCH_TIMEOUT, LOG_DATEFMT, LOG_FORMAT, LOG_LEVEL, MIN_REVEALS, NODES
from quakefeed.errors import QuakeFeedError, QuorumError
from quakefeed.reading import EXIT_EXECUTION_FAILED, ProcessResult, Reveal
from quakefeed.tally import tally_phase

log = logging.getLogger("quakefeed.client")

# Expected public keys for each node (explicit trust). Empty = skip pubkey check.
EXPECTED_PUBKEYS: Dict[str, str] = {}

NodeFetcher = Callable[[str], dict]


def fetch_node(base_url: str) -> dict:
    r = requests.get(f"{base_url}/oracle/earthquake", timeout=FETCH_TIMEOUT)
    data = r.json()
    if r.status_code != 200:
        detail = data.get("error", data) if isinstance(data, dict) else data
        raise QuakeFeedError(f"node error {r.status_code}: {detail}")
    if not isinstance(data, dict):
        raise QuakeFeedError(f"node answer is not an object: {type(data).__name__}")
    return data


def collect_reveals(nodes: List[str], fetch: Optional[NodeFetcher] = None,
                    expected_pubkeys: Optional[Dict[str, str]] = None) -> List[Reveal]:
    """One reveal per node. Unreachable or failing nodes yield a failed reveal."""
    if fetch is None:
        fetch = fetch_node
    if expected_pubkeys is None:
        expected_pubkeys = EXPECTED_PUBKEYS
    reveals = []
    for i, url in enumerate(nodes, start=1):
        log.info(f"[Node {i}] {url}")
        try:
            data = fetch(url)
            attestation = verify_attestation(data, url, expected_pubkeys)
        except (QuakeFeedError, requests.RequestException, ValueError) as e:
            log.warning(f"  ✗ Node failed: {e}")
            reveals.append(Reveal(exit_code=EXIT_EXECUTION_FAILED, gas_used=0,
                                  in_consensus=False, result=b""))
            continue

        if attestation.valid:
            log.info(f"  ✓ Signature VALID ({attestation.pubkey_hex[:16]}...)")
        else:
            log.warning("  ✗ Invalid signature or pubkey mismatch")
        reveals.append(attestation.to_reveal())
    return reveals


def run_quorum(nodes: Optional[List[str]] = None, min_reveals: int = MIN_REVEALS,
               fetch: Optional[NodeFetcher] = None,
               expected_pubkeys: Optional[Dict[str, str]] = None) -> ProcessResult:
    if nodes is None:
        nodes = NODES

    reveals = collect_reveals(nodes, fetch, expected_pubkeys)
    usable = sum(1 for r in reveals if r.in_consensus and r.exit_code == 0)
    if usable < min_reveals:
        raise QuorumError(f"Reveal quorum not met: {usable}/{len(nodes)} (need {min_reveals})")

    return tally_phase(reveals)


def post_to_feed(feed_url: str, result: ProcessResult) -> str:
    """Open a request on the feed and post the tally outcome to it."""
    r = requests.post(f"{feed_url}/feed/transmit", json={}, timeout=FETCH_TIMEOUT)
    r.raise_for_status()
    request_id = r.json()["requestId"]
    r = requests.post(
        f"{feed_url}/feed/results",
        json={
            "requestId": request_id,
            "consensus": result.ok,
            "exitCode": result.exit_code,
            "result": result.result.hex(),
        },
        timeout=FETCH_TIMEOUT,
    )
    r.raise_for_status()
    return request_id


def main(argv=None):
    parser = argparse.ArgumentParser(description="QuakeFeed Quorum Collector")
    parser.add_argument("--nodes", nargs="+", default=None,
                        help="Override node URLs (space-separated)")
    parser.add_argument("--min-reveals", type=int, default=MIN_REVEALS,
                        help=f"Minimum valid reveals (default: {MIN_REVEALS})")
    parser.add_argument("--feed", default=None,
                        help="Node URL whose feed receives the tally outcome")
    args = parser.parse_args(argv)

    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

    try:
        result = run_quorum(args.nodes, args.min_reveals)
    except QuorumError as e:
        log.error(str(e))
        return 1

    if not result.ok:
        log.error(f"Tally failed (exit {result.exit_code}): {result.error}")
        return result.exit_code

    print(json.dumps(result.reading().model_dump()))

    if args.feed:
        try:
            request_id = post_to_feed(args.feed, result)
        except requests.RequestException as e:
            log.error(f"Posting to feed failed: {e}")
            return 1
        log.info(f"Posted to {args.feed} as request {request_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
