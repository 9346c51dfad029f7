# quakefeed/attest.py
"""
Signed node attestations
QuakeFeed v1

A node wraps its execution result as:

  {
    "domain":    "EARTHQUAKE",
    "exitCode":  0,
    "result":    "<hex of canonical reading bytes>",
    "signature": "<base64 raw r||s sig over sha256("EARTHQUAKE|exitCode|result-hex")>",
    "pubkey":    "<compressed secp256k1 pubkey hex>"
  }

The collector checks the signature (and the pinned pubkey, if any) before the
answer is allowed into the tally as an in-consensus reveal.
"""

import base64
import hashlib
from dataclasses import dataclass
from typing import Dict, Optional

from ecdsa import SECP256k1, BadSignatureError, MalformedPointError, SigningKey, VerifyingKey
from pydantic import BaseModel, ConfigDict, ValidationError

from quakefeed.errors import DecodeError
from quakefeed.keys import pubkey_hex
from quakefeed.reading import ProcessResult, Reveal, parse_hex

DOMAIN = "EARTHQUAKE"


def canonical_message(domain: str, exit_code: int, result: bytes) -> str:
    return f"{domain}|{exit_code}|{result.hex()}"


def sign_result(result: ProcessResult, sk: SigningKey) -> dict:
    canonical = canonical_message(DOMAIN, result.exit_code, result.result)
    h = hashlib.sha256(canonical.encode()).digest()
    sig = sk.sign_digest(h)
    return {
        "domain": DOMAIN,
        "exitCode": result.exit_code,
        "result": result.result.hex(),
        "signature": base64.b64encode(sig).decode(),
        "pubkey": pubkey_hex(sk),
    }


class NodeAnswer(BaseModel):
    model_config = ConfigDict(strict=True)

    domain: str
    exitCode: int
    result: str
    signature: str
    pubkey: str


@dataclass
class NodeAttestation:
    url: str
    exit_code: int
    result: bytes
    pubkey_hex: str
    valid: bool

    def to_reveal(self) -> Reveal:
        return Reveal(
            exit_code=self.exit_code,
            gas_used=0,
            in_consensus=self.valid,
            result=self.result,
        )


def verify_attestation(data: dict, url: str,
                       expected_pubkeys: Optional[Dict[str, str]] = None) -> NodeAttestation:
    """Verify signature and pinned pubkey of one node's answer."""
    try:
        answer = NodeAnswer.model_validate(data)
        result = parse_hex(answer.result)
        signature = base64.b64decode(answer.signature)
    except ValidationError as e:
        raise DecodeError(f"malformed attestation from {url}: {e.errors()[0]['msg']}") from e
    except (DecodeError, ValueError) as e:
        raise DecodeError(f"malformed attestation from {url}: {e}") from e

    pubkey = answer.pubkey
    exit_code = answer.exitCode
    valid = answer.domain == DOMAIN
    if valid:
        try:
            vk = VerifyingKey.from_string(bytes.fromhex(pubkey), curve=SECP256k1)
            canonical = canonical_message(answer.domain, exit_code, result)
            valid = vk.verify_digest(signature, hashlib.sha256(canonical.encode()).digest())
        except (BadSignatureError, MalformedPointError, TypeError, ValueError):
            valid = False

    if expected_pubkeys and url in expected_pubkeys:
        if pubkey != expected_pubkeys[url]:
            valid = False

    return NodeAttestation(url=url, exit_code=exit_code, result=result,
                           pubkey_hex=pubkey, valid=valid)
