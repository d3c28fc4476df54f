# -*- coding: utf-8 -*-
"""Payload encryption for inputs sent to an MXE.

This is the boundary where a real Arcium client SDK would plug in. Neither
implementation below performs multi-party computation; they only seal the
JSON-serialised inputs for the selected node.
"""

from __future__ import annotations

import base64
import binascii
import json
import os
from typing import Any, List, Protocol, runtime_checkable

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from app.errors import EncryptionFailed
from app.models import EncryptedPayload

_NONCE_SIZE = 12
_HKDF_INFO = b"arcium-gateway/payload/v1"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _serialise_inputs(inputs: List[Any]) -> bytes:
    try:
        return json.dumps(inputs, separators=(",", ":"), sort_keys=True).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncryptionFailed(f"Inputs are not JSON serialisable: {exc}") from exc


def _raw_public_bytes(private_key: X25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


def decode_node_key(node_public_key: str) -> X25519PublicKey:
    """Parse a 32 byte X25519 key given as hex or base64."""
    text = (node_public_key or "").strip()
    if not text:
        raise EncryptionFailed("MXE did not advertise a public key")
    raw: bytes
    try:
        if len(text) == 64:
            raw = bytes.fromhex(text)
        else:
            raw = base64.b64decode(text, validate=True)
    except (ValueError, binascii.Error) as exc:
        raise EncryptionFailed("MXE public key is neither hex nor base64") from exc
    if len(raw) != 32:
        raise EncryptionFailed(f"MXE public key must be 32 bytes, got {len(raw)}")
    return X25519PublicKey.from_public_bytes(raw)


@runtime_checkable
class PayloadEncryptor(Protocol):
    """Seals computation inputs for one execution node."""

    scheme: str

    def encrypt(self, inputs: List[Any], node_public_key: str) -> EncryptedPayload:
        ...


class X25519PayloadEncryptor:
    """Ephemeral X25519 key agreement, HKDF-SHA256, ChaCha20-Poly1305.

    A fresh key pair is generated per call and its public half travels with
    the ciphertext, so the node can derive the same symmetric key.
    """

    scheme = "x25519-chacha20poly1305"

    def encrypt(self, inputs: List[Any], node_public_key: str) -> EncryptedPayload:
        peer = decode_node_key(node_public_key)
        ephemeral = X25519PrivateKey.generate()
        ephemeral_public = _raw_public_bytes(ephemeral)

        shared = ephemeral.exchange(peer)
        key = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=ephemeral_public,
            info=_HKDF_INFO,
        ).derive(shared)

        nonce = os.urandom(_NONCE_SIZE)
        ciphertext = ChaCha20Poly1305(key).encrypt(nonce, _serialise_inputs(inputs), None)
        return EncryptedPayload(
            ciphertext=_b64(ciphertext),
            nonce=_b64(nonce),
            public_key=_b64(ephemeral_public),
            scheme=self.scheme,
        )


class LegacyPayloadEncryptor:
    """Key derived straight from the node's public-key string.

    Matches what older deployments of this gateway sent. Anyone who knows
    the node's public key can decrypt the payload, and the generated key pair
    plays no part in the cipher. Only use it against networks that still
    expect this format.
    """

    scheme = "legacy-derived-key"

    def encrypt(self, inputs: List[Any], node_public_key: str) -> EncryptedPayload:
        if not node_public_key:
            raise EncryptionFailed("MXE did not advertise a public key")
        digest = hashes.Hash(hashes.SHA256())
        digest.update(node_public_key.encode("utf-8"))
        key = digest.finalize()

        nonce = os.urandom(_NONCE_SIZE)
        ciphertext = AESGCM(key).encrypt(nonce, _serialise_inputs(inputs), None)
        unused_public = _raw_public_bytes(X25519PrivateKey.generate())
        return EncryptedPayload(
            ciphertext=_b64(ciphertext),
            nonce=_b64(nonce),
            public_key=_b64(unused_public),
            scheme=self.scheme,
        )


def build_encryptor(name: str) -> PayloadEncryptor:
    """Return the encryptor configured by ``payload_cipher``."""
    if name == "x25519":
        return X25519PayloadEncryptor()
    if name == "legacy":
        return LegacyPayloadEncryptor()
    raise ValueError(f"Unknown payload cipher: {name}")
