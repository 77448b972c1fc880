# MIT License © 2025 Motohiro Suzuki
"""
mlscrypto/ciphersuites.py

Closed ciphersuite registry (RFC 9420 §17.1).

Every ciphersuite id maps to exactly one AlgorithmBundle. The table is built
once at import time and never mutated, so resolve() needs no locking.
Unknown ids are rejected, never defaulted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from mlscrypto.errors import UnsupportedCiphersuite


class Ciphersuite(IntEnum):
    MLS_128_DHKEMX25519_AES128GCM_SHA256_Ed25519 = 0x0001
    MLS_128_DHKEMP256_AES128GCM_SHA256_P256 = 0x0002
    MLS_128_DHKEMX25519_CHACHA20POLY1305_SHA256_Ed25519 = 0x0003
    MLS_256_DHKEMX448_AES256GCM_SHA512_Ed448 = 0x0004
    MLS_256_DHKEMP521_AES256GCM_SHA512_P521 = 0x0005
    MLS_256_DHKEMX448_CHACHA20POLY1305_SHA512_Ed448 = 0x0006
    MLS_256_DHKEMP384_AES256GCM_SHA384_P384 = 0x0007


class AeadKind(IntEnum):
    AES_128_GCM = 0x0001
    AES_256_GCM = 0x0002
    CHACHA20_POLY1305 = 0x0003


class HashKind(str, Enum):
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"


class KdfKind(IntEnum):
    HKDF_SHA256 = 0x0001
    HKDF_SHA384 = 0x0002
    HKDF_SHA512 = 0x0003


class KemKind(IntEnum):
    DHKEM_P256_HKDF_SHA256 = 0x0010
    DHKEM_P384_HKDF_SHA384 = 0x0011
    DHKEM_P521_HKDF_SHA512 = 0x0012
    DHKEM_X25519_HKDF_SHA256 = 0x0020
    DHKEM_X448_HKDF_SHA512 = 0x0021


class SignatureKind(IntEnum):
    ECDSA_SECP256R1_SHA256 = 0x0403
    ECDSA_SECP384R1_SHA384 = 0x0503
    ECDSA_SECP521R1_SHA512 = 0x0603
    ED25519 = 0x0807
    ED448 = 0x0808


class KeyPurpose(str, Enum):
    SECRET = "secret"
    SIGNATURE = "signature"
    KEM = "kem"


_AEAD_KEY_LEN = {
    AeadKind.AES_128_GCM: 16,
    AeadKind.AES_256_GCM: 32,
    AeadKind.CHACHA20_POLY1305: 32,
}

_HASH_LEN = {
    HashKind.SHA256: 32,
    HashKind.SHA384: 48,
    HashKind.SHA512: 64,
}

KDF_HASH = {
    KdfKind.HKDF_SHA256: HashKind.SHA256,
    KdfKind.HKDF_SHA384: HashKind.SHA384,
    KdfKind.HKDF_SHA512: HashKind.SHA512,
}

AEAD_NONCE_LEN = 12
AEAD_TAG_LEN = 16


def aead_key_len(kind: AeadKind) -> int:
    return _AEAD_KEY_LEN[kind]


def hash_len(kind: HashKind) -> int:
    return _HASH_LEN[kind]


@dataclass(frozen=True)
class AlgorithmBundle:
    suite: Ciphersuite
    aead: AeadKind
    hash: HashKind
    signature: SignatureKind
    kem: KemKind
    kdf: KdfKind

    @property
    def aead_key_len(self) -> int:
        return aead_key_len(self.aead)

    @property
    def aead_nonce_len(self) -> int:
        return AEAD_NONCE_LEN

    @property
    def aead_tag_len(self) -> int:
        return AEAD_TAG_LEN

    @property
    def hash_len(self) -> int:
        return hash_len(self.hash)


def _bundle(suite, aead, h, sig, kem, kdf) -> AlgorithmBundle:
    return AlgorithmBundle(suite=suite, aead=aead, hash=h, signature=sig, kem=kem, kdf=kdf)


_REGISTRY: dict[Ciphersuite, AlgorithmBundle] = {
    b.suite: b
    for b in (
        _bundle(
            Ciphersuite.MLS_128_DHKEMX25519_AES128GCM_SHA256_Ed25519,
            AeadKind.AES_128_GCM, HashKind.SHA256, SignatureKind.ED25519,
            KemKind.DHKEM_X25519_HKDF_SHA256, KdfKind.HKDF_SHA256,
        ),
        _bundle(
            Ciphersuite.MLS_128_DHKEMP256_AES128GCM_SHA256_P256,
            AeadKind.AES_128_GCM, HashKind.SHA256, SignatureKind.ECDSA_SECP256R1_SHA256,
            KemKind.DHKEM_P256_HKDF_SHA256, KdfKind.HKDF_SHA256,
        ),
        _bundle(
            Ciphersuite.MLS_128_DHKEMX25519_CHACHA20POLY1305_SHA256_Ed25519,
            AeadKind.CHACHA20_POLY1305, HashKind.SHA256, SignatureKind.ED25519,
            KemKind.DHKEM_X25519_HKDF_SHA256, KdfKind.HKDF_SHA256,
        ),
        _bundle(
            Ciphersuite.MLS_256_DHKEMX448_AES256GCM_SHA512_Ed448,
            AeadKind.AES_256_GCM, HashKind.SHA512, SignatureKind.ED448,
            KemKind.DHKEM_X448_HKDF_SHA512, KdfKind.HKDF_SHA512,
        ),
        _bundle(
            Ciphersuite.MLS_256_DHKEMP521_AES256GCM_SHA512_P521,
            AeadKind.AES_256_GCM, HashKind.SHA512, SignatureKind.ECDSA_SECP521R1_SHA512,
            KemKind.DHKEM_P521_HKDF_SHA512, KdfKind.HKDF_SHA512,
        ),
        _bundle(
            Ciphersuite.MLS_256_DHKEMX448_CHACHA20POLY1305_SHA512_Ed448,
            AeadKind.CHACHA20_POLY1305, HashKind.SHA512, SignatureKind.ED448,
            KemKind.DHKEM_X448_HKDF_SHA512, KdfKind.HKDF_SHA512,
        ),
        _bundle(
            Ciphersuite.MLS_256_DHKEMP384_AES256GCM_SHA384_P384,
            AeadKind.AES_256_GCM, HashKind.SHA384, SignatureKind.ECDSA_SECP384R1_SHA384,
            KemKind.DHKEM_P384_HKDF_SHA384, KdfKind.HKDF_SHA384,
        ),
    )
}


def to_ciphersuite(suite: Ciphersuite | int) -> Ciphersuite:
    if isinstance(suite, bool) or not isinstance(suite, int):
        raise UnsupportedCiphersuite(f"ciphersuite id must be an int, got {type(suite).__name__}")
    try:
        return Ciphersuite(int(suite))
    except ValueError as e:
        raise UnsupportedCiphersuite(f"unknown ciphersuite: {int(suite):#06x}") from e


def resolve(suite: Ciphersuite | int) -> AlgorithmBundle:
    return _REGISTRY[to_ciphersuite(suite)]


def supported_ciphersuites() -> tuple[Ciphersuite, ...]:
    return tuple(_REGISTRY)
