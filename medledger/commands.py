"""
Intents accepted by the transaction gateway, and the per-call outcome.

``caller`` is the identity supplied by the signing layer; it is trusted as-is.
"""

from dataclasses import dataclass
from typing import Any, Optional

from medledger.models import Role


@dataclass(frozen=True)
class Register:
    caller: str
    role: Role
    operation = "register"


@dataclass(frozen=True)
class GrantAccess:
    caller: str
    doctor: str
    patient: Optional[str] = None  # defaults to the caller
    operation = "grant_access"


@dataclass(frozen=True)
class RevokeAccess:
    caller: str
    doctor: str
    patient: Optional[str] = None
    operation = "revoke_access"


@dataclass(frozen=True)
class AnchorRecord:
    caller: str
    patient: str
    content_id: str
    operation = "anchor_record"


@dataclass(frozen=True)
class CreatePrescription:
    caller: str
    patient: str
    medication: str
    doctor: Optional[str] = None   # defaults to the caller
    operation = "create_prescription"


@dataclass(frozen=True)
class MarkDispensed:
    caller: str
    prescription_id: int
    operation = "mark_dispensed"


@dataclass(frozen=True)
class ApproveClaim:
    caller: str
    prescription_id: int
    operation = "approve_claim"


@dataclass
class Outcome:
    """Result of one gateway call. Rejected calls carry no sequence number."""
    ok: bool
    seq: Optional[int] = None
    value: Any = None
    error: Optional[str] = None     # error kind, e.g. "InvalidState"
    message: Optional[str] = None
