# MIT License © 2025 Motohiro Suzuki
"""
mlscrypto/kem.py

DHKEM backends (RFC 9180 §4.1) over X25519, X448, P-256, P-384 and P-521.

Unified interface:
    derive_keypair(ikm) -> (sk, pk)          RFC 9180 §7.1.3
    generate_keypair(rng) -> (sk, pk)        derive_keypair(random(Nsk))
    encap(pk_r, rng) -> KemEncapResult
    decap(enc, sk_r) -> shared_secret

Error mapping:
- bad recipient public key on the sender side -> InvalidKeyMaterial
- bad enc / failed DH on the receiver side     -> DecapsulationFailed
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from cryptography.hazmat.primitives.asymmetric import ec, x448, x25519

from mlscrypto.ciphersuites import HashKind, KemKind
from mlscrypto.curves import P256, P384, P521, PrimeCurve
from mlscrypto.errors import DecapsulationFailed, InvalidKeyMaterial, UnsupportedCiphersuite
from mlscrypto.hkdf import HashBackend, get_hash_backend, i2osp
from mlscrypto.rng import RandomSource


@dataclass(frozen=True)
class KemEncapResult:
    enc: bytes
    shared_secret: bytes


class KemBackend:
    name: str
    kind: KemKind
    n_secret: int
    n_enc: int
    n_pk: int
    n_sk: int

    def __init__(self, kind: KemKind, hash_kind: HashKind) -> None:
        self.kind = kind
        self.name = kind.name.lower()
        self.kdf: HashBackend = get_hash_backend(hash_kind)
        self.n_secret = self.kdf.digest_size
        self.suite_id = b"KEM" + i2osp(int(kind), 2)

    # --- curve specific ---
    def _load_private(self, sk: bytes):
        raise NotImplementedError

    def _load_public(self, pk: bytes):
        raise NotImplementedError

    def _encode_public(self, pk_obj) -> bytes:
        raise NotImplementedError

    def _sk_from_prk(self, dkp_prk: bytes) -> bytes:
        raise NotImplementedError

    def _dh(self, sk_obj, pk_obj) -> bytes:
        raise NotImplementedError

    # --- RFC 9180 DHKEM ---
    def derive_keypair(self, ikm: bytes) -> tuple[bytes, bytes]:
        dkp_prk = self.kdf.labeled_extract(self.suite_id, b"", b"dkp_prk", ikm)
        sk = self._sk_from_prk(dkp_prk)
        return sk, self.public_key(sk)

    def generate_keypair(self, rng: RandomSource) -> tuple[bytes, bytes]:
        return self.derive_keypair(rng.random_bytes(self.n_sk))

    def public_key(self, sk: bytes) -> bytes:
        return self._encode_public(self._load_private(sk).public_key())

    def _extract_and_expand(self, dh: bytes, kem_context: bytes) -> bytes:
        eae_prk = self.kdf.labeled_extract(self.suite_id, b"", b"eae_prk", dh)
        return self.kdf.labeled_expand(self.suite_id, eae_prk, b"shared_secret", kem_context, self.n_secret)

    def encap(self, pk_r: bytes, rng: RandomSource) -> KemEncapResult:
        pk_r_obj = self._load_public(pk_r)
        sk_e, _ = self.generate_keypair(rng)
        sk_e_obj = self._load_private(sk_e)
        try:
            dh = self._dh(sk_e_obj, pk_r_obj)
        except ValueError as e:
            raise InvalidKeyMaterial(f"{self.name}: DH with recipient key failed") from e
        enc = self._encode_public(sk_e_obj.public_key())
        kem_context = enc + self._encode_public(pk_r_obj)
        return KemEncapResult(enc=enc, shared_secret=self._extract_and_expand(dh, kem_context))

    def decap(self, enc: bytes, sk_r: bytes) -> bytes:
        sk_r_obj = self._load_private(sk_r)
        try:
            pk_e_obj = self._load_public(enc)
            dh = self._dh(sk_r_obj, pk_e_obj)
        except (InvalidKeyMaterial, ValueError) as e:
            raise DecapsulationFailed(f"{self.name}: decapsulation failed") from e
        kem_context = bytes(enc) + self._encode_public(sk_r_obj.public_key())
        return self._extract_and_expand(dh, kem_context)


class _XDhKem(KemBackend):
    """DHKEM(X25519) / DHKEM(X448)."""

    def __init__(self, kind: KemKind, hash_kind: HashKind, private_cls, public_cls, key_len: int) -> None:
        super().__init__(kind, hash_kind)
        self._private_cls = private_cls
        self._public_cls = public_cls
        self.n_enc = self.n_pk = self.n_sk = key_len

    def _load_private(self, sk: bytes):
        if len(sk) != self.n_sk:
            raise InvalidKeyMaterial(f"{self.name}: private key must be {self.n_sk} bytes, got {len(sk)}")
        return self._private_cls.from_private_bytes(bytes(sk))

    def _load_public(self, pk: bytes):
        if len(pk) != self.n_pk:
            raise InvalidKeyMaterial(f"{self.name}: public key must be {self.n_pk} bytes, got {len(pk)}")
        return self._public_cls.from_public_bytes(bytes(pk))

    def _encode_public(self, pk_obj) -> bytes:
        return pk_obj.public_bytes_raw()

    def _sk_from_prk(self, dkp_prk: bytes) -> bytes:
        return self.kdf.labeled_expand(self.suite_id, dkp_prk, b"sk", b"", self.n_sk)

    def _dh(self, sk_obj, pk_obj) -> bytes:
        dh = sk_obj.exchange(pk_obj)
        if not any(dh):
            raise ValueError("all-zero shared secret")
        return dh


class _EcDhKem(KemBackend):
    """DHKEM(P-256 / P-384 / P-521)."""

    def __init__(self, kind: KemKind, hash_kind: HashKind, curve: PrimeCurve) -> None:
        super().__init__(kind, hash_kind)
        self._curve = curve
        self.n_enc = self.n_pk = curve.point_len
        self.n_sk = curve.scalar_len

    def _load_private(self, sk: bytes):
        return self._curve.load_private(sk)

    def _load_public(self, pk: bytes):
        return self._curve.load_public(pk)

    def _encode_public(self, pk_obj) -> bytes:
        return self._curve.encode_public(pk_obj)

    def _sk_from_prk(self, dkp_prk: bytes) -> bytes:
        for counter in range(256):
            candidate = self.kdf.labeled_expand(
                self.suite_id, dkp_prk, b"candidate", i2osp(counter, 1), self.n_sk
            )
            d = self._curve.scalar_from_candidate(candidate)
            if d is not None:
                return d.to_bytes(self.n_sk, "big")
        raise InvalidKeyMaterial(f"{self.name}: DeriveKeyPair found no valid candidate")

    def _dh(self, sk_obj, pk_obj) -> bytes:
        return sk_obj.exchange(ec.ECDH(), pk_obj)


@lru_cache(maxsize=None)
def get_kem_backend(kind: KemKind) -> KemBackend:
    try:
        kind = KemKind(kind)
    except ValueError as e:
        raise UnsupportedCiphersuite(f"unknown kem: {kind!r}") from e

    if kind == KemKind.DHKEM_X25519_HKDF_SHA256:
        return _XDhKem(kind, HashKind.SHA256, x25519.X25519PrivateKey, x25519.X25519PublicKey, 32)
    if kind == KemKind.DHKEM_X448_HKDF_SHA512:
        return _XDhKem(kind, HashKind.SHA512, x448.X448PrivateKey, x448.X448PublicKey, 56)
    if kind == KemKind.DHKEM_P256_HKDF_SHA256:
        return _EcDhKem(kind, HashKind.SHA256, P256)
    if kind == KemKind.DHKEM_P384_HKDF_SHA384:
        return _EcDhKem(kind, HashKind.SHA384, P384)
    return _EcDhKem(kind, HashKind.SHA512, P521)
