"""
Unit tests for the content store collaborators and configuration helpers.
"""

import pytest
import requests

from medledger import storage
from medledger.config import get_env
from medledger.errors import StorageError
from medledger.storage import LocalContentStore, PinataStore, compute_cid


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    """Mimic requests.Session.post, recording each call."""
    def __init__(self, response=None, exc=None):
        self._response = response
        self._exc = exc
        self.calls = []

    def post(self, url, files=None, headers=None, timeout=None):
        self.calls.append({"url": url, "files": files, "headers": headers, "timeout": timeout})
        if self._exc:
            raise self._exc
        return self._response


# ── Tests: get_env ───────────────────────────────────────────────────

def test_get_env_ok(monkeypatch):
    monkeypatch.setenv("X", "123")
    assert get_env("X") == "123"


def test_get_env_missing_exits(monkeypatch, capsys):
    monkeypatch.delenv("MISSING_ENV", raising=False)
    with pytest.raises(SystemExit) as e:
        get_env("MISSING_ENV")
    assert e.value.code == 1
    assert "ERROR: env var MISSING_ENV is not set" in capsys.readouterr().err


# ── Tests: compute_cid / LocalContentStore ───────────────────────────

def test_compute_cid_is_cidv1_raw_base32():
    cid = compute_cid(b"hello")
    assert cid.startswith("bafkrei")
    assert cid == cid.lower()
    assert len(cid) == 59
    assert compute_cid(b"hello") == cid
    assert compute_cid(b"hello!") != cid


def test_local_store_in_memory_roundtrip():
    store = LocalContentStore()
    cid = store.pin(b"%PDF-1.4 lab results", "labs.pdf")
    assert store.fetch(cid) == b"%PDF-1.4 lab results"


def test_local_store_on_disk(tmp_path):
    store = LocalContentStore(str(tmp_path / "blobs"))
    cid = store.pin(b"scan")
    assert (tmp_path / "blobs" / cid).read_bytes() == b"scan"
    assert store.fetch(cid) == b"scan"
    with pytest.raises(KeyError):
        store.fetch("bafkmissing")


# ── Tests: PinataStore ───────────────────────────────────────────────

def test_pinata_pin_returns_ipfs_hash():
    session = FakeSession(FakeResponse({"IpfsHash": "QmAbc", "PinSize": 4}))
    store = PinataStore("key", "secret", session=session)
    assert store.pin(b"data", "x.pdf") == "QmAbc"
    call = session.calls[0]
    assert call["url"].endswith("/pinning/pinFileToIPFS")
    assert call["headers"] == {"pinata_api_key": "key", "pinata_secret_api_key": "secret"}
    assert call["files"] == {"file": ("x.pdf", b"data")}


def test_pinata_http_error_raises_storage_error():
    store = PinataStore("key", "secret", session=FakeSession(FakeResponse({}, status_code=401)))
    with pytest.raises(StorageError, match="Pinata pin failed"):
        store.pin(b"data")


def test_pinata_connection_error_raises_storage_error():
    session = FakeSession(exc=requests.ConnectionError("unreachable"))
    with pytest.raises(StorageError):
        PinataStore("key", "secret", session=session).pin(b"data")


def test_pinata_missing_hash_raises_storage_error():
    store = PinataStore("key", "secret", session=FakeSession(FakeResponse({"PinSize": 4})))
    with pytest.raises(StorageError, match="IpfsHash"):
        store.pin(b"data")


# ── Tests: init_content_store ────────────────────────────────────────

def test_init_content_store_local(monkeypatch):
    monkeypatch.setattr(storage, "CONTENT_STORE", "local")
    monkeypatch.setattr(storage, "LOCAL_STORE_DIR", None)
    assert isinstance(storage.init_content_store(), LocalContentStore)


def test_init_content_store_pinata(monkeypatch):
    monkeypatch.setattr(storage, "CONTENT_STORE", "pinata")
    monkeypatch.setenv("PINATA_API_KEY", "k")
    monkeypatch.setenv("PINATA_API_SECRET", "s")
    store = storage.init_content_store()
    assert isinstance(store, PinataStore)
    assert store.api_key == "k"


def test_init_content_store_unknown(monkeypatch):
    monkeypatch.setattr(storage, "CONTENT_STORE", "s3")
    with pytest.raises(ValueError, match="Unknown CONTENT_STORE"):
        storage.init_content_store()
