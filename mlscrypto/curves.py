# MIT License © 2025 Motohiro Suzuki
"""
mlscrypto/curves.py

NIST prime-curve parameters shared by the ECDSA signature backends and the
DHKEM backends: scalar length, group order and the RFC 9180 §7.1.3 bitmask.

Private keys are fixed-length big-endian scalars, public keys are
uncompressed SEC1 points.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from mlscrypto.errors import InvalidKeyMaterial


@dataclass(frozen=True)
class PrimeCurve:
    name: str
    curve: ec.EllipticCurve
    scalar_len: int
    order: int
    bitmask: int

    @property
    def point_len(self) -> int:
        return 1 + 2 * ((self.curve.key_size + 7) // 8)

    def scalar_from_candidate(self, candidate: bytes) -> int | None:
        """Mask and range-check one candidate; None means rejected."""
        b = bytearray(candidate)
        b[0] &= self.bitmask
        d = int.from_bytes(b, "big")
        if d == 0 or d >= self.order:
            return None
        return d

    def random_scalar(self, random_bytes: Callable[[int], bytes]) -> bytes:
        # rejection sampling below the group order
        while True:
            d = self.scalar_from_candidate(random_bytes(self.scalar_len))
            if d is not None:
                return d.to_bytes(self.scalar_len, "big")

    def load_private(self, sk: bytes) -> ec.EllipticCurvePrivateKey:
        if len(sk) != self.scalar_len:
            raise InvalidKeyMaterial(f"{self.name}: private scalar must be {self.scalar_len} bytes, got {len(sk)}")
        d = int.from_bytes(sk, "big")
        if d == 0 or d >= self.order:
            raise InvalidKeyMaterial(f"{self.name}: private scalar out of range")
        return ec.derive_private_key(d, self.curve)

    def load_public(self, pk: bytes) -> ec.EllipticCurvePublicKey:
        if len(pk) != self.point_len:
            raise InvalidKeyMaterial(f"{self.name}: public point must be {self.point_len} bytes, got {len(pk)}")
        try:
            return ec.EllipticCurvePublicKey.from_encoded_point(self.curve, bytes(pk))
        except ValueError as e:
            raise InvalidKeyMaterial(f"{self.name}: invalid public point") from e

    @staticmethod
    def encode_public(pk: ec.EllipticCurvePublicKey) -> bytes:
        return pk.public_bytes(serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint)

    def public_from_private(self, sk: bytes) -> bytes:
        return self.encode_public(self.load_private(sk).public_key())


P256 = PrimeCurve(
    name="P-256",
    curve=ec.SECP256R1(),
    scalar_len=32,
    order=int("FFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551", 16),
    bitmask=0xFF,
)

P384 = PrimeCurve(
    name="P-384",
    curve=ec.SECP384R1(),
    scalar_len=48,
    order=int(
        "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF"
        "C7634D81F4372DDF581A0DB248B0A77AECEC196ACCC52973",
        16,
    ),
    bitmask=0xFF,
)

P521 = PrimeCurve(
    name="P-521",
    curve=ec.SECP521R1(),
    scalar_len=66,
    order=int(
        "01FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFA"
        "51868783BF2F966B7FCC0148F709A5D03BB5C9B8899C47AEBB6FB71E91386409",
        16,
    ),
    bitmask=0x01,
)
