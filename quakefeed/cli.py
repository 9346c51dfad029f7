# quakefeed/cli.py
"""
QuakeFeed command line

Usage:
  quakefeed execute                 # fetch live from USGS, print reading
  quakefeed tally reveals.json      # tally a file of reveals
  quakefeed decode 0x7b226d61...    # hex result to reading
  quakefeed serve --port 9120       # run a node server
"""

import argparse
import json
import logging
import sys

from quakefeed.config import LOG_DATEFMT, LOG_FORMAT, LOG_LEVEL, PORT, USGS_URL
from quakefeed.errors import DecodeError
from quakefeed.execution import execution_phase
from quakefeed.reading import ProcessResult, Reveal, decode_reading, parse_hex
from quakefeed.tally import tally_phase

log = logging.getLogger("quakefeed.cli")


def _report(result: ProcessResult) -> int:
    if result.ok:
        print(json.dumps(result.reading().model_dump(), ensure_ascii=False))
    else:
        print(f"exit {result.exit_code}: {result.error}", file=sys.stderr)
    return result.exit_code


def load_reveals(path: str):
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("reveals", [])
    if not isinstance(data, list):
        raise DecodeError(f"expected a list of reveals, got {type(data).__name__}")
    return [Reveal.from_dict(r) for r in data]


def cmd_execute(args) -> int:
    return _report(execution_phase(url=args.url))


def cmd_tally(args) -> int:
    try:
        reveals = load_reveals(args.file)
    except (OSError, ValueError, DecodeError) as e:
        log.error(f"Could not load reveals from {args.file}: {e}")
        return 1
    return _report(tally_phase(reveals))


def cmd_decode(args) -> int:
    try:
        reading = decode_reading(parse_hex(args.data))
    except DecodeError as e:
        log.error(str(e))
        return 1
    print(json.dumps(reading.model_dump(), ensure_ascii=False))
    return 0


def cmd_serve(args) -> int:
    from quakefeed.server import main as serve_main

    serve_main(["--host", args.host, "--port", str(args.port)])
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quakefeed", description="QuakeFeed earthquake oracle")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("execute", help="Run the execution phase against USGS")
    p.add_argument("--url", default=USGS_URL)
    p.set_defaults(func=cmd_execute)

    p = sub.add_parser("tally", help="Tally a JSON file of reveals")
    p.add_argument("file")
    p.set_defaults(func=cmd_tally)

    p = sub.add_parser("decode", help="Decode a hex feed result")
    p.add_argument("data")
    p.set_defaults(func=cmd_decode)

    p = sub.add_parser("serve", help="Run a node server")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=PORT)
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.command != "serve":
        logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
