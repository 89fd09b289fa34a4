"""
Content-addressed storage collaborators.

The ledger never looks at file bytes: a store pins them and hands back a
content identifier, which is then anchored verbatim.
"""

import base64
import hashlib
import os
from typing import Dict, Optional

import requests

from medledger.config import (
    CONTENT_STORE,
    LOCAL_STORE_DIR,
    PINATA_PIN_URL,
    PINATA_TIMEOUT_SECONDS,
    get_env,
)
from medledger.errors import StorageError

# CIDv1 prefix: version 1, raw codec (0x55), sha2-256 multihash (0x12, 32 bytes)
_CID_V1_RAW_SHA256 = bytes([0x01, 0x55, 0x12, 0x20])


def compute_cid(data: bytes) -> str:
    """Return the base32 CIDv1 (raw, sha2-256) of *data*, e.g. ``bafkrei...``."""
    digest = hashlib.sha256(data).digest()
    encoded = base64.b32encode(_CID_V1_RAW_SHA256 + digest).decode("ascii")
    return "b" + encoded.lower().rstrip("=")


class ContentStore:
    name = "abstract"

    def pin(self, data: bytes, filename: str = "record.pdf") -> str:
        raise NotImplementedError


class LocalContentStore(ContentStore):
    """Pins into memory, or into *directory* when one is given."""
    name = "local"

    def __init__(self, directory: Optional[str] = None):
        self.directory = directory
        self._blobs: Dict[str, bytes] = {}
        if directory:
            os.makedirs(directory, exist_ok=True)

    def pin(self, data: bytes, filename: str = "record.pdf") -> str:
        cid = compute_cid(data)
        if self.directory:
            with open(os.path.join(self.directory, cid), "wb") as fh:
                fh.write(data)
        else:
            self._blobs[cid] = data
        return cid

    def fetch(self, cid: str) -> bytes:
        if self.directory:
            path = os.path.join(self.directory, cid)
            if not os.path.exists(path):
                raise KeyError(cid)
            with open(path, "rb") as fh:
                return fh.read()
        return self._blobs[cid]


class PinataStore(ContentStore):
    """Pins files to IPFS through Pinata's ``pinFileToIPFS`` endpoint."""
    name = "pinata"

    def __init__(self, api_key: str, api_secret: str, session=None, url: str = PINATA_PIN_URL):
        self.api_key = api_key
        self.api_secret = api_secret
        self.session = session or requests.Session()
        self.url = url

    def pin(self, data: bytes, filename: str = "record.pdf") -> str:
        headers = {
            "pinata_api_key": self.api_key,
            "pinata_secret_api_key": self.api_secret,
        }
        try:
            resp = self.session.post(
                self.url,
                files={"file": (filename, data)},
                headers=headers,
                timeout=PINATA_TIMEOUT_SECONDS,
            )
            resp.raise_for_status()
            cid = resp.json().get("IpfsHash")
        except (requests.RequestException, ValueError) as e:
            raise StorageError(f"Pinata pin failed: {e}") from e

        if not cid:
            raise StorageError("Pinata response did not include an IpfsHash.")
        return cid


def init_content_store() -> ContentStore:
    """Build the content store selected by CONTENT_STORE."""
    if CONTENT_STORE == "pinata":
        store = PinataStore(get_env("PINATA_API_KEY"), get_env("PINATA_API_SECRET"))
    elif CONTENT_STORE == "local":
        store = LocalContentStore(LOCAL_STORE_DIR)
    else:
        raise ValueError(f"Unknown CONTENT_STORE '{CONTENT_STORE}' (use 'pinata' or 'local').")
    print(f"[init] Using content store: {store.name}")
    return store
