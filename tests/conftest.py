"""Shared fixtures for vpn-catalog tests."""

import base64
import sys
from pathlib import Path

import nacl.encoding
import nacl.hash
import pytest
from nacl.signing import SigningKey

# Add project root to path so we can import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Config
from signature import PinnedKey


KEY_ID = bytes.fromhex("0123456789abcdef")
BASE_URL = "https://example.com/disco/"


def sign_detached(signing_key: SigningKey, message: bytes) -> str:
    """Bare base64 Ed25519 signature over message."""
    return base64.b64encode(signing_key.sign(message).signature).decode()


def sign_minisign(
    signing_key: SigningKey,
    message: bytes,
    key_id: bytes = KEY_ID,
    prehashed: bool = False,
    trusted_comment: str | None = "timestamp:1700000000\tfile:server_list.json",
) -> str:
    """Signature file in minisign layout over message."""
    if prehashed:
        algorithm = b"ED"
        signed = nacl.hash.blake2b(message, digest_size=64, encoder=nacl.encoding.RawEncoder)
    else:
        algorithm = b"Ed"
        signed = message
    signature = signing_key.sign(signed).signature

    lines = [
        "untrusted comment: signature from minisign secret key",
        base64.b64encode(algorithm + key_id + signature).decode(),
    ]
    if trusted_comment is not None:
        global_signature = signing_key.sign(signature + trusted_comment.encode()).signature
        lines.append(f"trusted comment: {trusted_comment}")
        lines.append(base64.b64encode(global_signature).decode())
    return "\n".join(lines) + "\n"


@pytest.fixture
def signing_key():
    """Fresh Ed25519 key standing in for the authority's private key."""
    return SigningKey.generate()


@pytest.fixture
def public_key_b64(signing_key):
    """Minisign encoded public key of signing_key."""
    raw = b"Ed" + KEY_ID + bytes(signing_key.verify_key)
    return base64.b64encode(raw).decode()


@pytest.fixture
def pinned_key(signing_key):
    """PinnedKey for signing_key, carrying the minisign key id."""
    return PinnedKey(key=bytes(signing_key.verify_key), key_id=KEY_ID)


@pytest.fixture
def server_list_json():
    """Server list document as published by the authority."""
    return (
        b'{"v": 1700000000, "server_list": ['
        b'{"server_type": "institute_access", "base_url": "https://vpn.example.org/",'
        b' "display_name": {"en-US": "Example University", "nl-NL": "Voorbeeld Universiteit"},'
        b' "support_contact": ["mailto:helpdesk@example.org"]},'
        b'{"server_type": "secure_internet", "base_url": "https://nl.example.net/",'
        b' "country_code": "NL", "public_key_list": ["O53DTgB956magGaWpVCKtdKIMYqywS3FMAC5fHXdFNg="]}'
        b"]}"
    )


@pytest.fixture
def organization_list_json():
    """Organization list document as published by the authority."""
    return (
        b'{"v": 1700000000, "organization_list": ['
        b'{"org_id": "https://idp.example.org/saml", "display_name": "Example University",'
        b' "secure_internet_home": "https://nl.example.net/",'
        b' "keyword_list": {"en": "example uni", "nl": "voorbeeld"}}'
        b"]}"
    )


@pytest.fixture
def sample_config(public_key_b64):
    """Pre-configured Config instance for testing."""
    return Config(
        base_url=BASE_URL,
        signature_suffix=".minisig",
        public_key=public_key_b64,
        gone_status_codes=frozenset({404, 410}),
        timeout=5.0,
    )


@pytest.fixture
def config_toml_content():
    """Sample config.toml content."""
    return """
base_url = "https://custom.example.com/v2"
signature_suffix = ".sig"
gone_status_codes = [410]
timeout = 10
"""
