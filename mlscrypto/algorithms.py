# MIT License © 2025 Motohiro Suzuki
"""
mlscrypto/algorithms.py

Tagged-variant dispatch: one AlgorithmSuite per ciphersuite, holding the
concrete backend for each algorithm family. Suites are built once and
cached; they hold no mutable state.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from mlscrypto.aead import AEADBackend, get_aead_backend
from mlscrypto.ciphersuites import AlgorithmBundle, Ciphersuite, KeyPurpose, resolve
from mlscrypto.errors import InvalidKeyMaterial
from mlscrypto.hkdf import HashBackend, get_hash_backend
from mlscrypto.hpke import HpkeSuite, get_hpke_suite
from mlscrypto.rng import RandomSource
from mlscrypto.sig import SigBackend, get_sig_backend


@dataclass(frozen=True)
class AlgorithmSuite:
    bundle: AlgorithmBundle
    aead: AEADBackend
    hash: HashBackend
    sig: SigBackend
    hpke: HpkeSuite

    @property
    def ciphersuite(self) -> Ciphersuite:
        return self.bundle.suite

    def generate_key_material(self, purpose: KeyPurpose, rng: RandomSource) -> tuple[bytes, bytes]:
        """
        Fresh (private, public) material for a key store entry.
        Symmetric secrets have an empty public half.
        """
        purpose = KeyPurpose(purpose)
        if purpose == KeyPurpose.SECRET:
            return rng.random_bytes(self.aead.key_len), b""
        if purpose == KeyPurpose.SIGNATURE:
            kp = self.sig.keypair(rng)
            return kp.secret_key, kp.public_key
        return self.hpke.kem.generate_keypair(rng)

    def public_for(self, purpose: KeyPurpose, private: bytes) -> bytes:
        """Validate imported private material and return its public half."""
        purpose = KeyPurpose(purpose)
        if purpose == KeyPurpose.SECRET:
            if len(private) != self.aead.key_len:
                raise InvalidKeyMaterial(
                    f"{self.aead.name}: secret must be {self.aead.key_len} bytes, got {len(private)}"
                )
            return b""
        if purpose == KeyPurpose.SIGNATURE:
            return self.sig.public_key(private)
        return self.hpke.kem.public_key(private)


@lru_cache(maxsize=None)
def _build(suite: Ciphersuite) -> AlgorithmSuite:
    b = resolve(suite)
    return AlgorithmSuite(
        bundle=b,
        aead=get_aead_backend(b.aead),
        hash=get_hash_backend(b.hash),
        sig=get_sig_backend(b.signature),
        hpke=get_hpke_suite(b.kem, b.kdf, b.aead),
    )


def get_suite(suite: Ciphersuite | int) -> AlgorithmSuite:
    return _build(resolve(suite).suite)
