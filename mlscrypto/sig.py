# MIT License © 2025 Motohiro Suzuki
"""
mlscrypto/sig.py

Signature backends:
- Ed25519 / Ed448 (raw seed private keys, raw public keys)
- ECDSA over P-256 / P-384 / P-521 (raw scalar private keys,
  uncompressed SEC1 public keys, DER signatures)

verify() is a pure predicate: a malformed signature or public key is a
verification failure, never an exception. There is no stub fallback; an
unknown SignatureKind is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed448 import Ed448PrivateKey, Ed448PublicKey
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from mlscrypto.ciphersuites import SignatureKind
from mlscrypto.curves import P256, P384, P521, PrimeCurve
from mlscrypto.errors import InvalidKeyMaterial, UnsupportedCiphersuite
from mlscrypto.rng import RandomSource


@dataclass(frozen=True)
class SigKeyPair:
    public_key: bytes
    secret_key: bytes


class SigBackend:
    name: str
    kind: SignatureKind

    def keypair(self, rng: RandomSource) -> SigKeyPair:
        sk = self._random_private(rng)
        return SigKeyPair(public_key=self.public_key(sk), secret_key=sk)

    def _random_private(self, rng: RandomSource) -> bytes:
        raise NotImplementedError

    def public_key(self, sk: bytes) -> bytes:
        raise NotImplementedError

    def sign(self, sk: bytes, msg: bytes) -> bytes:
        raise NotImplementedError

    def verify(self, pk: bytes, msg: bytes, sig: bytes) -> bool:
        raise NotImplementedError


class _EdDSASig(SigBackend):
    """
    Ed25519 / Ed448. The private key is the RFC 8032 seed.
    """

    def __init__(self, kind: SignatureKind, private_cls, public_cls, seed_len: int) -> None:
        self.kind = kind
        self.name = kind.name.lower()
        self._private_cls = private_cls
        self._public_cls = public_cls
        self.seed_len = seed_len

    def _random_private(self, rng: RandomSource) -> bytes:
        return rng.random_bytes(self.seed_len)

    def _load(self, sk: bytes):
        if len(sk) != self.seed_len:
            raise InvalidKeyMaterial(f"{self.name}: private key must be {self.seed_len} bytes, got {len(sk)}")
        return self._private_cls.from_private_bytes(bytes(sk))

    def public_key(self, sk: bytes) -> bytes:
        return self._load(sk).public_key().public_bytes_raw()

    def sign(self, sk: bytes, msg: bytes) -> bytes:
        return self._load(sk).sign(msg)

    def verify(self, pk: bytes, msg: bytes, sig: bytes) -> bool:
        try:
            pk_obj = self._public_cls.from_public_bytes(bytes(pk))
            pk_obj.verify(bytes(sig), msg)
            return True
        except (InvalidSignature, ValueError, TypeError):
            return False


class _EcdsaSig(SigBackend):
    def __init__(self, kind: SignatureKind, curve: PrimeCurve, hash_alg: hashes.HashAlgorithm) -> None:
        self.kind = kind
        self.name = f"ecdsa-{curve.name.lower()}"
        self._curve = curve
        self._hash = hash_alg

    def _random_private(self, rng: RandomSource) -> bytes:
        return self._curve.random_scalar(rng.random_bytes)

    def public_key(self, sk: bytes) -> bytes:
        return self._curve.public_from_private(sk)

    def sign(self, sk: bytes, msg: bytes) -> bytes:
        return self._curve.load_private(sk).sign(msg, ec.ECDSA(self._hash))

    def verify(self, pk: bytes, msg: bytes, sig: bytes) -> bool:
        try:
            pk_obj = self._curve.load_public(pk)
            pk_obj.verify(bytes(sig), msg, ec.ECDSA(self._hash))
            return True
        except (InvalidSignature, InvalidKeyMaterial, ValueError, TypeError):
            return False


@lru_cache(maxsize=None)
def get_sig_backend(kind: SignatureKind) -> SigBackend:
    try:
        kind = SignatureKind(kind)
    except ValueError as e:
        raise UnsupportedCiphersuite(f"unknown signature scheme: {kind!r}") from e

    if kind == SignatureKind.ED25519:
        return _EdDSASig(kind, Ed25519PrivateKey, Ed25519PublicKey, 32)
    if kind == SignatureKind.ED448:
        return _EdDSASig(kind, Ed448PrivateKey, Ed448PublicKey, 57)
    if kind == SignatureKind.ECDSA_SECP256R1_SHA256:
        return _EcdsaSig(kind, P256, hashes.SHA256())
    if kind == SignatureKind.ECDSA_SECP384R1_SHA384:
        return _EcdsaSig(kind, P384, hashes.SHA384())
    return _EcdsaSig(kind, P521, hashes.SHA512())
