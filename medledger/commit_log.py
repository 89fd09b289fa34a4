"""
Hash-chained commit log for the ledger.

All functions are deterministic and side-effect free, apart from
``CommitLog.append``.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Tuple

from medledger.config import GENESIS_HASH


@dataclass(frozen=True)
class CommitEntry:
    seq: int
    caller: str
    operation: str
    payload: Dict[str, Any]
    timestamp: float
    prev_hash: str
    hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "caller": self.caller,
            "operation": self.operation,
            "payload": self.payload,
            "timestamp": self.timestamp,
            "prev_hash": self.prev_hash,
            "hash": self.hash,
        }


def canonical_json(data: Dict[str, Any]) -> str:
    """Serialize a dict into a canonical JSON string."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def compute_commit_hash(seq: int, caller: str, operation: str, payload: Dict[str, Any],
                        timestamp: float, prev_hash: str) -> str:
    """Return a SHA-256 hex digest over the canonical form of a commit."""
    header = {
        "seq": seq,
        "caller": caller,
        "operation": operation,
        "payload": payload,
        "timestamp": timestamp,
        "prev_hash": prev_hash,
    }
    return hashlib.sha256(canonical_json(header).encode("utf-8")).hexdigest()


class CommitLog:
    def __init__(self, entries: Iterable[CommitEntry] = ()):
        self._entries: Tuple[CommitEntry, ...] = tuple(entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[CommitEntry, ...]:
        return self._entries

    @property
    def head_hash(self) -> str:
        return self._entries[-1].hash if self._entries else GENESIS_HASH

    def build(self, seq: int, caller: str, operation: str,
              payload: Dict[str, Any], timestamp: float) -> CommitEntry:
        """Create the entry that would follow the current head, without appending it."""
        prev = self.head_hash
        digest = compute_commit_hash(seq, caller, operation, payload, timestamp, prev)
        return CommitEntry(seq, caller, operation, payload, timestamp, prev, digest)

    def append(self, entry: CommitEntry) -> None:
        if entry.prev_hash != self.head_hash:
            raise ValueError(f"Commit {entry.seq} does not extend the log head.")
        self._entries = self._entries + (entry,)

    def verify(self) -> Tuple[bool, str]:
        """Walk the chain and report the first broken link, if any."""
        prev = GENESIS_HASH
        for expected_seq, entry in enumerate(self._entries, start=1):
            if entry.seq != expected_seq:
                return False, f"Sequence gap: expected {expected_seq}, got {entry.seq}"
            if entry.prev_hash != prev:
                return False, f"Commit {entry.seq}: previous hash does not match"
            recomputed = compute_commit_hash(entry.seq, entry.caller, entry.operation,
                                             entry.payload, entry.timestamp, entry.prev_hash)
            if recomputed != entry.hash:
                return False, f"Commit {entry.seq}: hash mismatch"
            prev = entry.hash
        return True, f"Commit log verified ({len(self._entries)} commits)"
