# quakefeed/keys/__init__.py
"""
Persistent secp256k1 signing key for a QuakeFeed node.
Key is generated on first use and stored in the keys directory.
Collectors pin the matching public key per node URL.
"""

import os
from pathlib import Path

from ecdsa import SECP256k1, SigningKey

from quakefeed.config import KEYS_DIR

KEY_NAME = "node_secp256k1.key"


def load_or_create_key(keys_dir: Path = KEYS_DIR) -> SigningKey:
    """Load existing secp256k1 key or generate a new persistent one."""
    key_path = Path(keys_dir) / KEY_NAME
    if key_path.exists():
        sk_hex = key_path.read_text().strip()
        return SigningKey.from_string(bytes.fromhex(sk_hex), curve=SECP256k1)

    key_path.parent.mkdir(parents=True, exist_ok=True)
    sk = SigningKey.generate(curve=SECP256k1)
    key_path.write_text(sk.to_string().hex())
    os.chmod(str(key_path), 0o600)
    return sk


def pubkey_hex(sk: SigningKey) -> str:
    return sk.get_verifying_key().to_string("compressed").hex()
