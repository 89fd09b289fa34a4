"""
Domain dataclasses and enums used across the ledger.
"""

import re
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict

from medledger.config import ADDRESS_PATTERN

_ADDRESS_RE = re.compile(ADDRESS_PATTERN)


def normalize_address(value) -> str:
    """Validate an account address and return it lower-cased."""
    address = str(value or "").strip()
    if not _ADDRESS_RE.match(address):
        raise ValueError(f"Invalid address '{address}'.")
    return address.lower()


class Role(str, Enum):
    """Closed set of participant roles. UNREGISTERED is only a query result."""
    PATIENT = "Patient"
    DOCTOR = "Doctor"
    PHARMACIST = "Pharmacist"
    INSURER = "Insurer"
    UNREGISTERED = "Unregistered"

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Case-insensitive lookup; "insurance" is accepted for INSURER."""
        key = str(value).strip().lower()
        if key == "insurance":
            return cls.INSURER
        for role in cls:
            if role.value.lower() == key:
                return role
        raise ValueError(f"Unknown role '{value}'.")


class Status(str, Enum):
    CREATED = "Created"
    DISPENSED = "Dispensed"
    CLAIM_APPROVED = "ClaimApproved"


@dataclass(frozen=True)
class MedicalRecord:
    """Pointer to a file in content-addressed storage, owned by a patient."""
    patient: str
    seq: int            # commit sequence number of the anchoring call
    content_id: str
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Prescription:
    id: int
    patient: str
    doctor: str
    medication: str
    status: Status
    created_at: float
    updated_at: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


# ── Changes ──────────────────────────────────────────────────────────
# Each accepted intent produces exactly one change. Components build them,
# the gateway persists and installs them.

@dataclass(frozen=True)
class RoleAssigned:
    identity: str
    role: Role


@dataclass(frozen=True)
class GrantAdded:
    patient: str
    doctor: str
    already_granted: bool = False


@dataclass(frozen=True)
class GrantRemoved:
    patient: str
    doctor: str
    was_granted: bool = True


@dataclass(frozen=True)
class RecordAppended:
    record: MedicalRecord


@dataclass(frozen=True)
class PrescriptionWritten:
    prescription: Prescription


def change_payload(change) -> Dict[str, Any]:
    """Flatten a change into the JSON payload stored in the commit log."""
    if isinstance(change, RoleAssigned):
        return {"identity": change.identity, "role": change.role.value}
    if isinstance(change, (GrantAdded, GrantRemoved)):
        return {"patient": change.patient, "doctor": change.doctor}
    if isinstance(change, RecordAppended):
        return {"patient": change.record.patient, "content_id": change.record.content_id}
    if isinstance(change, PrescriptionWritten):
        rx = change.prescription
        return {"id": rx.id, "patient": rx.patient, "doctor": rx.doctor,
                "medication": rx.medication, "status": rx.status.value}
    raise TypeError(f"Unsupported change type: {type(change).__name__}")
