# quakefeed/config.py
"""
Runtime configuration, read once from the environment.
"""

import os
from pathlib import Path

# ── Upstream ──────────────────────────────────────────────────────────────────

USGS_URL = os.environ.get(
    "QUAKEFEED_USGS_URL",
    "https://earthquake.usgs.gov/fdsnws/event/1/query?format=geojson&limit=1",
)
FETCH_TIMEOUT = float(os.environ.get("QUAKEFEED_FETCH_TIMEOUT", "5"))

# ── Node ──────────────────────────────────────────────────────────────────────

PORT = int(os.environ.get("QUAKEFEED_PORT", "9120"))
KEYS_DIR = Path(os.environ.get("QUAKEFEED_KEYS_DIR", str(Path(__file__).parent / "keys")))
PROGRAM_ID = os.environ.get("QUAKEFEED_PROGRAM_ID", "0" * 64)

# ── Collector ─────────────────────────────────────────────────────────────────

NODES = [
    url.strip()
    for url in os.environ.get(
        "QUAKEFEED_NODES",
        "http://127.0.0.1:9120,http://127.0.0.1:9121,http://127.0.0.1:9122",
    ).split(",")
    if url.strip()
]
MIN_REVEALS = int(os.environ.get("QUAKEFEED_MIN_REVEALS", "2"))

# ── Logging ───────────────────────────────────────────────────────────────────

LOG_LEVEL = os.environ.get("QUAKEFEED_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%SZ"
