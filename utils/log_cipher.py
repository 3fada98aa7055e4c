import json
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM


logger = logging.getLogger(__name__)

IV_BYTES = 16
TAG_BYTES = 16
ENVELOPE_KEYS = {"iv", "data", "tag"}


def parse_key(key_hex: str) -> bytes:
    key = bytes.fromhex(key_hex or "")
    if len(key) != 32:
        raise ValueError("log encryption key must be 32 bytes (64 hex chars)")
    return key


class LogCipher:
    """AES-256-GCM sealing of audit details into a ``{iv, data, tag}`` hex envelope."""

    def __init__(self, key_hex: str):
        self._aead = AESGCM(parse_key(key_hex))

    def encrypt(self, details) -> str:
        iv = os.urandom(IV_BYTES)
        sealed = self._aead.encrypt(iv, json.dumps(details, default=str).encode("utf-8"), None)
        data, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
        return json.dumps({"iv": iv.hex(), "data": data.hex(), "tag": tag.hex()})

    def decrypt(self, blob):
        # rows written before encryption was enabled may already be objects
        if isinstance(blob, dict):
            return blob
        if not isinstance(blob, str):
            return {}
        try:
            envelope = json.loads(blob)
            sealed = bytes.fromhex(envelope["data"]) + bytes.fromhex(envelope["tag"])
            plain = self._aead.decrypt(bytes.fromhex(envelope["iv"]), sealed, None)
            return json.loads(plain.decode("utf-8"))
        except (ValueError, KeyError, TypeError, InvalidTag) as e:
            logger.error("Audit details decryption failed: %r", e)
        return self._plain_fallback(blob)

    @staticmethod
    def _plain_fallback(blob: str):
        try:
            parsed = json.loads(blob)
        except ValueError:
            return {}
        if isinstance(parsed, dict) and ENVELOPE_KEYS & parsed.keys():
            return {}
        return parsed
