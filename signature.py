"""Detached Ed25519 signature verification against a pinned public key.

Two signature encodings are accepted:

- a bare base64 encoded 64-byte Ed25519 signature, and
- a minisign signature file::

    untrusted comment: <free text>
    <base64: algorithm (2) | key id (8) | signature (64)>
    trusted comment: <text>
    <base64: global signature (64) over signature | text>

For minisign, algorithm ``Ed`` signs the message itself and ``ED`` signs the
BLAKE2b-512 digest of the message.
"""

import base64
import binascii
from dataclasses import dataclass

import nacl.encoding
import nacl.hash
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from errors import InvalidPublicKeyError
from logging_setup import get_logger

logger = get_logger()

KEY_SIZE = 32
SIGNATURE_SIZE = 64
KEY_ID_SIZE = 8
MINISIGN_KEY_ALGORITHM = b"Ed"
MINISIGN_ALGORITHMS = (b"Ed", b"ED")

UNTRUSTED_PREFIX = "untrusted comment:"
TRUSTED_PREFIX = "trusted comment: "


@dataclass(frozen=True)
class PinnedKey:
    key: bytes
    key_id: bytes | None = None


@dataclass(frozen=True)
class _DecodedSignature:
    algorithm: bytes | None
    key_id: bytes | None
    signature: bytes
    trusted_comment: str | None = None
    global_signature: bytes | None = None


def load_public_key(encoded: str) -> PinnedKey:
    """Decode a base64 public key, raw or minisign, into a PinnedKey.

    Raises:
        InvalidPublicKeyError: If the key is not valid base64 or has the
            wrong size or algorithm.
    """
    try:
        raw = base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidPublicKeyError(f"Public key is not valid base64: {e}")

    if len(raw) == KEY_SIZE:
        return PinnedKey(key=raw)

    if len(raw) == 2 + KEY_ID_SIZE + KEY_SIZE:
        if raw[:2] != MINISIGN_KEY_ALGORITHM:
            raise InvalidPublicKeyError(f"Unsupported public key algorithm {raw[:2]!r}")
        return PinnedKey(key=raw[2 + KEY_ID_SIZE:], key_id=raw[2:2 + KEY_ID_SIZE])

    raise InvalidPublicKeyError(
        f"Public key must be {KEY_SIZE} or {2 + KEY_ID_SIZE + KEY_SIZE} bytes; got {len(raw)}"
    )


def _decode_signature(signature: str) -> _DecodedSignature:
    lines = [line.strip() for line in signature.strip().splitlines() if line.strip()]
    if not lines:
        raise ValueError("empty signature")

    if not lines[0].startswith(UNTRUSTED_PREFIX):
        raw = base64.b64decode("".join(lines), validate=True)
        if len(raw) != SIGNATURE_SIZE:
            raise ValueError(f"signature must be {SIGNATURE_SIZE} bytes; got {len(raw)}")
        return _DecodedSignature(algorithm=None, key_id=None, signature=raw)

    if len(lines) < 2:
        raise ValueError("minisign signature line missing")
    raw = base64.b64decode(lines[1], validate=True)
    if len(raw) != 2 + KEY_ID_SIZE + SIGNATURE_SIZE:
        raise ValueError(f"minisign signature has wrong size {len(raw)}")
    algorithm = raw[:2]
    if algorithm not in MINISIGN_ALGORITHMS:
        raise ValueError(f"unsupported signature algorithm {algorithm!r}")

    trusted_comment = None
    global_signature = None
    if len(lines) >= 3:
        if not lines[2].startswith(TRUSTED_PREFIX) or len(lines) < 4:
            raise ValueError("malformed trusted comment")
        trusted_comment = lines[2][len(TRUSTED_PREFIX):]
        global_signature = base64.b64decode(lines[3], validate=True)

    return _DecodedSignature(
        algorithm=algorithm,
        key_id=raw[2:2 + KEY_ID_SIZE],
        signature=raw[2 + KEY_ID_SIZE:],
        trusted_comment=trusted_comment,
        global_signature=global_signature,
    )


def _check(message: bytes, signature: str, public_key: PinnedKey) -> None:
    decoded = _decode_signature(signature)
    verify_key = VerifyKey(public_key.key)

    if decoded.key_id is not None and public_key.key_id is not None:
        if decoded.key_id != public_key.key_id:
            raise ValueError("signature key id does not match pinned key")

    signed = message
    if decoded.algorithm == b"ED":
        signed = nacl.hash.blake2b(
            message, digest_size=64, encoder=nacl.encoding.RawEncoder
        )
    verify_key.verify(signed, decoded.signature)

    if decoded.trusted_comment is not None:
        verify_key.verify(
            decoded.signature + decoded.trusted_comment.encode("utf-8"),
            decoded.global_signature,
        )


def verify(message: bytes, signature: str, public_key: PinnedKey | bytes) -> bool:
    """Check a detached signature over message against the pinned key.

    Decode errors, size mismatches, key id mismatches and cryptographic
    failures all return False. Nothing is raised.
    """
    if isinstance(public_key, bytes):
        public_key = PinnedKey(key=public_key)

    try:
        _check(message, signature, public_key)
    except BadSignatureError:
        logger.warning("Signature does not match pinned key")
        return False
    except Exception as e:
        logger.warning("Unable to verify signature: %s", e)
        return False

    return True
