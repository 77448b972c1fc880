# MIT License © 2025 Motohiro Suzuki
import pytest

from mlscrypto.ciphersuites import Ciphersuite, KeyPurpose, supported_ciphersuites
from mlscrypto.errors import (
    AuthenticationFailed,
    DecapsulationFailed,
    EntropyUnavailable,
    InvalidKeyMaterial,
    KeyNotFound,
    UnsupportedCiphersuite,
)
from mlsprovider.config import ProviderConfig
from mlsprovider.failure import FailureCode
from mlsprovider.provider import CryptoProvider
from mlsprovider.result import Result

SUITES = list(supported_ciphersuites())


@pytest.fixture
def p():
    return CryptoProvider()


def test_resolve_and_supports(p):
    for cs in SUITES:
        assert p.supports(cs)
        assert p.resolve(cs).suite == cs
    assert not p.supports(0x0042)
    with pytest.raises(UnsupportedCiphersuite):
        p.resolve(0x0042)


def test_allow_list_is_enforced():
    p = CryptoProvider(ProviderConfig(ciphersuites=[1]))
    assert p.supported_ciphersuites == (Ciphersuite(1),)
    assert not p.supports(2)
    with pytest.raises(UnsupportedCiphersuite):
        p.hash(2, b"x")
    with pytest.raises(UnsupportedCiphersuite):
        p.generate_key(2, KeyPurpose.SIGNATURE)


@pytest.mark.parametrize("cs", SUITES)
@pytest.mark.parametrize("msg", [b"", b"proposal", b"\xff" * 1000])
def test_sign_verify_through_handles(p, cs, msg):
    h = p.generate_key(cs, KeyPurpose.SIGNATURE)
    pk = p.public_key(h)
    sig = p.sign(h, msg)
    assert p.verify(cs, pk, msg, sig) is True
    assert p.verify(cs, pk, msg + b"!", sig) is False


def test_verify_is_false_across_ciphersuites(p):
    ed25519 = p.generate_key(1, KeyPurpose.SIGNATURE)
    ed448 = p.generate_key(4, KeyPurpose.SIGNATURE)
    p256 = p.generate_key(2, KeyPurpose.SIGNATURE)
    p384 = p.generate_key(7, KeyPurpose.SIGNATURE)

    sig448 = p.sign(ed448, b"m")
    assert p.verify(1, p.public_key(ed25519), b"m", sig448) is False
    assert p.verify(1, p.public_key(ed448), b"m", sig448) is False

    sig384 = p.sign(p384, b"m")
    assert p.verify(2, p.public_key(p256), b"m", sig384) is False
    assert p.verify(2, p.public_key(p384), b"m", sig384) is False


def test_sign_needs_live_signature_handle(p):
    h = p.generate_key(1, KeyPurpose.SIGNATURE)
    secret = p.generate_key(1, KeyPurpose.SECRET)
    with pytest.raises(InvalidKeyMaterial):
        p.sign(secret, b"m")

    p.delete_key(h)
    with pytest.raises(KeyNotFound):
        p.sign(h, b"m")


@pytest.mark.parametrize("cs", SUITES)
def test_aead_with_raw_key_and_handle(p, cs):
    b = p.resolve(cs)
    key = p.random_bytes(b.aead_key_len)
    nonce = p.random_bytes(b.aead_nonce_len)
    ct = p.aead_seal(cs, key, nonce, b"ad", b"payload")
    assert p.aead_open(cs, key, nonce, b"ad", ct) == b"payload"

    h = p.generate_key(cs, KeyPurpose.SECRET)
    nonce, ct = p.aead_seal_random_nonce(cs, h, b"ad", b"payload")
    assert len(nonce) == 12
    assert p.aead_open(cs, h, nonce, b"ad", ct) == b"payload"
    with pytest.raises(AuthenticationFailed):
        p.aead_open(cs, h, nonce, b"AD", ct)


def test_aead_handle_must_match_suite_and_purpose(p):
    h = p.generate_key(1, KeyPurpose.SECRET)
    with pytest.raises(InvalidKeyMaterial):
        p.aead_seal(3, h, b"\x00" * 12, b"", b"x")
    kem = p.generate_key(1, KeyPurpose.KEM)
    with pytest.raises(InvalidKeyMaterial):
        p.aead_seal(1, kem, b"\x00" * 12, b"", b"x")


@pytest.mark.parametrize("cs", SUITES)
def test_hpke_session_through_provider(p, cs):
    h = p.generate_key(cs, KeyPurpose.KEM, "init-key")
    pk = p.public_key(h)

    enc, sender = p.hpke_seal_setup(cs, pk, b"info")
    cts = [sender.seal(b"aad", b"msg-%d" % i) for i in range(4)]

    with p.hpke_open_setup(enc, h, b"info") as receiver:
        assert [receiver.open(b"aad", ct) for ct in cts] == [b"msg-%d" % i for i in range(4)]


def test_hpke_single_shot_through_provider(p):
    h = p.generate_key(2, KeyPurpose.KEM)
    enc, ct = p.hpke_seal(2, p.public_key(h), b"info", b"aad", b"welcome")
    assert p.hpke_open(h, enc, b"info", b"aad", ct) == b"welcome"

    with pytest.raises(AuthenticationFailed):
        p.hpke_open(h, enc, b"info", b"other", ct)
    with pytest.raises(DecapsulationFailed):
        p.hpke_open(h, b"\x04" + b"\x00" * 64, b"info", b"aad", ct)


def test_hpke_open_needs_kem_handle(p):
    h = p.generate_key(1, KeyPurpose.SIGNATURE)
    with pytest.raises(InvalidKeyMaterial):
        p.hpke_open_setup(b"\x00" * 32, h, b"")


def test_derive_hpke_key_is_deterministic():
    a = CryptoProvider()
    b = CryptoProvider()
    ikm = b"\x07" * 32
    ha = a.derive_hpke_key(1, ikm, "leaf-node")
    hb = b.derive_hpke_key(1, ikm, "leaf-node")
    assert a.public_key(ha) == b.public_key(hb)

    enc, ct = a.hpke_seal(1, a.public_key(ha), b"", b"", b"x")
    assert b.hpke_open(hb, enc, b"", b"", ct) == b"x"


def test_hkdf_bounds_through_provider(p):
    prk = p.hkdf_extract(1, b"", b"ikm")
    assert len(prk) == 32
    assert p.hkdf_expand(1, prk, b"", 0) == b""
    assert len(p.hkdf_expand(1, prk, b"", 255 * 32)) == 255 * 32
    r = p.attempt(p.hkdf_expand, 1, prk, b"", 255 * 32 + 1)
    assert not r.ok
    assert r.unwrap_err().code == FailureCode.ERR_INVALID_LENGTH


def test_hmac_through_provider(p):
    tag = p.hmac(4, b"key", b"data")
    assert len(tag) == 64
    assert p.hmac_verify(4, b"key", b"data", tag)
    assert not p.hmac_verify(4, b"key", b"data", b"\x00" * 64)


def test_attempt_maps_failures(p):
    ok = p.attempt(p.hash, 1, b"abc")
    assert ok.ok and len(ok.unwrap()) == 32

    h = p.generate_key(1, KeyPurpose.SECRET)
    p.delete_key(h)
    err = p.attempt(p.export_key, h)
    f = err.unwrap_err()
    assert f.code == FailureCode.ERR_KEY_NOT_FOUND
    assert f.operation == "export_key"
    assert f.fatal is False
    assert f.redacted().detail is None

    err = p.attempt(p.resolve, 0x0099)
    assert err.unwrap_err().code == FailureCode.ERR_UNSUPPORTED_CIPHERSUITE

    assert p.attempt(p.delete_key, h).ok


def test_export_is_explicit(p):
    h = p.store_key(1, KeyPurpose.SECRET, "imported", b"\x05" * 16)
    assert p.export_key(h) == b"\x05" * 16
    assert "\\x05" not in repr(h)


def test_unwrap_reraises_the_typed_error(p):
    h = p.generate_key(1, KeyPurpose.SECRET)
    p.delete_key(h)
    r = p.attempt(p.export_key, h)
    assert not r.ok
    with pytest.raises(KeyNotFound, match="export_key"):
        r.unwrap()

    ok = p.attempt(p.delete_key, h)
    assert ok.ok and ok.unwrap() is None
    with pytest.raises(RuntimeError):
        ok.unwrap_err()


def test_from_call_marks_fatal_failures(caplog):
    def starve():
        raise EntropyUnavailable("no entropy")

    r = Result.from_call("random_bytes", starve)
    f = r.unwrap_err()
    assert f.code == FailureCode.ERR_ENTROPY_UNAVAILABLE
    assert f.fatal is True
    assert "random_bytes failed fatally" in caplog.text
    with pytest.raises(EntropyUnavailable):
        r.unwrap()


def test_from_call_lets_programming_errors_through():
    with pytest.raises(TypeError):
        Result.from_call("hash", lambda: None + 1)
