# MIT License © 2025 Motohiro Suzuki
import pytest

from mlscrypto.ciphersuites import (
    AeadKind,
    Ciphersuite,
    HashKind,
    KdfKind,
    KemKind,
    SignatureKind,
    resolve,
    supported_ciphersuites,
)
from mlscrypto.errors import UnsupportedCiphersuite


def test_every_suite_resolves_to_a_complete_bundle():
    suites = supported_ciphersuites()
    assert len(suites) == 7

    for cs in suites:
        b = resolve(cs)
        assert b.suite == cs
        assert isinstance(b.aead, AeadKind)
        assert isinstance(b.hash, HashKind)
        assert isinstance(b.signature, SignatureKind)
        assert isinstance(b.kem, KemKind)
        assert isinstance(b.kdf, KdfKind)
        assert b.aead_key_len in (16, 32)
        assert b.aead_nonce_len == 12
        assert b.hash_len in (32, 48, 64)


def test_resolve_accepts_plain_ints():
    assert resolve(1) is resolve(Ciphersuite.MLS_128_DHKEMX25519_AES128GCM_SHA256_Ed25519)


def test_suite_0x0002_is_p256():
    b = resolve(0x0002)
    assert b.kem == KemKind.DHKEM_P256_HKDF_SHA256
    assert b.signature == SignatureKind.ECDSA_SECP256R1_SHA256
    assert b.aead == AeadKind.AES_128_GCM
    assert b.hash == HashKind.SHA256


@pytest.mark.parametrize("bad", [0, 0x0008, 0xFFFF, -1, "1", None, True])
def test_unknown_ids_are_rejected(bad):
    with pytest.raises(UnsupportedCiphersuite):
        resolve(bad)
