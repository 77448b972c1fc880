# MIT License © 2025 Motohiro Suzuki
import hashlib
from concurrent.futures import ThreadPoolExecutor

import pytest

from mlscrypto.ciphersuites import KeyPurpose
from mlscrypto.errors import InvalidKeyMaterial, KeyNotFound, UnsupportedCiphersuite
from mlskeystore.memory import MemoryBackend
from mlskeystore.store import KeyStore, decode_record


def test_generate_delete_read_is_key_not_found():
    ks = KeyStore()
    h = ks.generate(1, KeyPurpose.SECRET, "epoch-secret")
    with ks.read(h) as k:
        assert len(k) == 16

    ks.delete(h)
    with pytest.raises(KeyNotFound):
        with ks.read(h):
            pass
    with pytest.raises(KeyNotFound):
        ks.export(h)


def test_delete_is_idempotent():
    ks = KeyStore()
    h = ks.generate(1, KeyPurpose.SIGNATURE)
    ks.delete(h)
    ks.delete(h)
    assert not ks.contains(h)


def test_delete_wipes_owned_memory():
    ks = KeyStore()
    h = ks.generate(3, KeyPurpose.KEM, "leaf")
    box = ks._table[h.identifier].secret
    assert not box.is_wiped()

    ks.delete(h)
    assert box.is_wiped()
    assert ks.backend.get(h.identifier) is None


def test_borrow_is_wiped_after_use():
    ks = KeyStore()
    h = ks.generate(1, KeyPurpose.SECRET)
    with ks.read(h) as k:
        borrowed = k
        assert any(borrowed)
    assert not any(borrowed)
    # the stored key is untouched
    assert any(ks.export(h))


def test_restore_invalidates_old_handle():
    ks = KeyStore()
    h1 = ks.store("psk", b"\x01" * 16, ciphersuite=1, purpose=KeyPurpose.SECRET)
    h2 = ks.store("psk", b"\x02" * 16, ciphersuite=1, purpose=KeyPurpose.SECRET)
    assert h2.version == h1.version + 1

    with pytest.raises(KeyNotFound):
        ks.export(h1)
    assert ks.export(h2) == b"\x02" * 16

    # deleting through the stale handle leaves the live key alone
    ks.delete(h1)
    assert ks.export(h2) == b"\x02" * 16


def test_version_survives_delete():
    ks = KeyStore()
    h1 = ks.generate(1, KeyPurpose.SECRET, "k")
    ks.delete(h1)
    h2 = ks.generate(1, KeyPurpose.SECRET, "k")
    assert h2.version > h1.version
    assert not ks.contains(h1)


def test_reopened_store_reads_from_backend():
    backend = MemoryBackend()
    ks = KeyStore(backend=backend)
    h = ks.generate(2, KeyPurpose.SIGNATURE, b"credential")
    material = ks.export(h)
    public = ks.public_key(h)

    reopened = KeyStore(backend=backend)
    assert reopened.export(h) == material
    assert reopened.public_key(h) == public

    handle, private, pub = decode_record(h.identifier, backend.get(h.identifier))
    assert handle == h
    assert private == material
    assert pub == public


def test_store_validates_material():
    ks = KeyStore()
    with pytest.raises(InvalidKeyMaterial):
        ks.store("a", b"\x01" * 15, ciphersuite=1, purpose=KeyPurpose.SECRET)
    with pytest.raises(InvalidKeyMaterial):
        ks.store("b", b"\x00" * 32, ciphersuite=2, purpose=KeyPurpose.KEM)
    with pytest.raises(InvalidKeyMaterial):
        ks.store("c", b"\x01" * 31, ciphersuite=1, purpose=KeyPurpose.SIGNATURE)
    with pytest.raises(UnsupportedCiphersuite):
        ks.store("d", b"\x01" * 16, ciphersuite=0x77, purpose=KeyPurpose.SECRET)


def test_secret_has_no_public_key():
    ks = KeyStore()
    h = ks.generate(1, KeyPurpose.SECRET)
    with pytest.raises(InvalidKeyMaterial):
        ks.public_key(h)


def test_generated_identifiers_are_unique():
    ks = KeyStore()
    ids = {ks.generate(1, KeyPurpose.SECRET).identifier for _ in range(50)}
    assert len(ids) == 50


def test_concurrent_generate_has_no_cross_talk():
    ks = KeyStore()

    def gen(i):
        return ks.generate(1, KeyPurpose.SECRET, f"member-{i}")

    with ThreadPoolExecutor(max_workers=32) as pool:
        handles = list(pool.map(gen, range(1000)))

    assert [h.identifier for h in handles] == [f"member-{i}".encode() for i in range(1000)]
    seen = set()
    for h in handles:
        material = ks.export(h)
        with ks.read(h) as k:
            assert bytes(k) == material
        seen.add(material)
    assert len(seen) == 1000


def test_concurrent_store_reads_back_exact_material():
    ks = KeyStore()

    def material(i):
        return hashlib.sha256(b"member-%d" % i).digest()[:16]

    def put(i):
        return ks.store(f"member-{i}", material(i), ciphersuite=1, purpose=KeyPurpose.SECRET)

    with ThreadPoolExecutor(max_workers=32) as pool:
        handles = list(pool.map(put, range(1000)))

    def check(i):
        with ks.read(handles[i]) as k:
            return bytes(k) == material(i)

    with ThreadPoolExecutor(max_workers=32) as pool:
        assert all(pool.map(check, range(1000)))


def test_temporary_keys_leave_no_bookkeeping():
    ks = KeyStore()
    for _ in range(200):
        h = ks.generate(1, KeyPurpose.SECRET)
        with ks.read(h):
            pass
        ks.delete(h)
    assert ks._table == {}
    assert ks._locks == {}


def test_concurrent_generate_delete_same_identifier():
    ks = KeyStore()

    def churn(i):
        h = ks.generate(1, KeyPurpose.SECRET, f"slot-{i % 8}")
        ks.delete(h)
        return h.version

    with ThreadPoolExecutor(max_workers=16) as pool:
        versions = list(pool.map(churn, range(400)))

    assert len(set(versions)) == 400
    assert ks._locks == {}


def test_reopened_store_continues_past_backend_version():
    backend = MemoryBackend()
    ks = KeyStore(backend=backend)
    for _ in range(3):
        h = ks.store("psk", b"\x01" * 16, ciphersuite=1, purpose=KeyPurpose.SECRET)

    reopened = KeyStore(backend=backend)
    h2 = reopened.store("psk", b"\x02" * 16, ciphersuite=1, purpose=KeyPurpose.SECRET)
    assert h2.version > h.version
    assert not reopened.contains(h)
