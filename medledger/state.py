"""
Versioned container for the four ledger tables.

Only the gateway and the loaders call ``apply``. Every table is replaced
wholesale on write (copy-on-write), so readers that grabbed a reference keep
seeing a complete, committed version while the next change is installed.
"""

from dataclasses import replace
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from medledger.models import (
    GrantAdded,
    GrantRemoved,
    MedicalRecord,
    Prescription,
    PrescriptionWritten,
    RecordAppended,
    Role,
    RoleAssigned,
    Status,
)


class LedgerState:
    def __init__(self):
        self.version = 0                      # seq of the last installed change
        self.last_prescription_id = 0
        self._roles: Mapping[str, Role] = MappingProxyType({})
        self._grants: Mapping[str, Tuple[str, ...]] = MappingProxyType({})
        self._records: Mapping[str, Tuple[MedicalRecord, ...]] = MappingProxyType({})
        self._prescriptions: Mapping[int, Prescription] = MappingProxyType({})

    # ── Reads ────────────────────────────────────────────────────────

    def role(self, identity: str) -> Role:
        return self._roles.get(identity, Role.UNREGISTERED)

    def roles(self) -> Mapping[str, Role]:
        return self._roles

    def grants(self, patient: str) -> Tuple[str, ...]:
        return self._grants.get(patient, ())

    def records(self, patient: str) -> Tuple[MedicalRecord, ...]:
        return self._records.get(patient, ())

    def prescription(self, prescription_id: int) -> Optional[Prescription]:
        return self._prescriptions.get(prescription_id)

    def prescriptions(self) -> Mapping[int, Prescription]:
        return self._prescriptions

    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict view of every table, for comparing two states."""
        return {
            "version": self.version,
            "last_prescription_id": self.last_prescription_id,
            "roles": dict(self._roles),
            "grants": {p: d for p, d in self._grants.items() if d},
            "records": {p: r for p, r in self._records.items() if r},
            "prescriptions": dict(self._prescriptions),
        }

    # ── Writes (gateway only) ────────────────────────────────────────

    def apply(self, change, seq: int) -> None:
        """Install one committed change and bump the version to *seq*."""
        if isinstance(change, RoleAssigned):
            self._roles = _with(self._roles, change.identity, change.role)
        elif isinstance(change, GrantAdded):
            current = self.grants(change.patient)
            if change.doctor not in current:
                self._grants = _with(self._grants, change.patient, current + (change.doctor,))
        elif isinstance(change, GrantRemoved):
            current = self.grants(change.patient)
            kept = tuple(d for d in current if d != change.doctor)
            self._grants = _with(self._grants, change.patient, kept)
        elif isinstance(change, RecordAppended):
            rec = change.record
            self._records = _with(self._records, rec.patient, self.records(rec.patient) + (rec,))
        elif isinstance(change, PrescriptionWritten):
            rx = change.prescription
            self._prescriptions = _with(self._prescriptions, rx.id, rx)
            self.last_prescription_id = max(self.last_prescription_id, rx.id)
        else:
            raise TypeError(f"Unsupported change type: {type(change).__name__}")
        self.version = seq


def _with(table: Mapping, key, value) -> Mapping:
    updated: Dict = dict(table)
    updated[key] = value
    return MappingProxyType(updated)


def replay(entries: Iterable) -> LedgerState:
    """Rebuild a state container from commit-log entries alone."""
    state = LedgerState()
    for entry in entries:
        p, op = entry.payload, entry.operation
        if op == "register":
            change = RoleAssigned(p["identity"], Role(p["role"]))
        elif op == "grant_access":
            change = GrantAdded(p["patient"], p["doctor"])
        elif op == "revoke_access":
            change = GrantRemoved(p["patient"], p["doctor"])
        elif op == "anchor_record":
            change = RecordAppended(MedicalRecord(patient=p["patient"], seq=entry.seq,
                                                  content_id=p["content_id"],
                                                  timestamp=entry.timestamp))
        elif op == "create_prescription":
            change = PrescriptionWritten(Prescription(
                id=p["id"], patient=p["patient"], doctor=p["doctor"],
                medication=p["medication"], status=Status(p["status"]),
                created_at=entry.timestamp, updated_at=entry.timestamp))
        elif op in ("mark_dispensed", "approve_claim"):
            current = state.prescription(p["id"])
            if current is None:
                raise ValueError(f"Commit {entry.seq}: prescription {p['id']} was never created")
            change = PrescriptionWritten(replace(current, status=Status(p["status"]),
                                                 updated_at=entry.timestamp))
        else:
            raise ValueError(f"Commit {entry.seq}: unknown operation '{op}'")
        state.apply(change, entry.seq)
    return state
