"""
Transaction gateway – the single mutation entry point of the ledger.

Every intent is admitted under one lock, validated against committed state,
written to the durable store (when one is attached), installed into the
state container and appended to the hash-chained commit log. A rejected
intent changes nothing and consumes no sequence number.
"""

import threading
import time
from typing import Callable, List, Optional, Tuple

from medledger.commands import (
    AnchorRecord,
    ApproveClaim,
    CreatePrescription,
    GrantAccess,
    MarkDispensed,
    Outcome,
    Register,
    RevokeAccess,
)
from medledger.commit_log import CommitEntry, CommitLog
from medledger.errors import LedgerError
from medledger.grants import AccessGrantStore
from medledger.models import (
    MedicalRecord,
    Prescription,
    Role,
    change_payload,
)
from medledger.prescriptions import PrescriptionEngine
from medledger.records import RecordAnchorLedger
from medledger.registry import IdentityRegistry
from medledger.state import LedgerState, replay


class TransactionGateway:
    def __init__(self, store=None, clock: Callable[[], float] = time.time,
                 state: Optional[LedgerState] = None, log: Optional[CommitLog] = None):
        self.store = store
        self.clock = clock
        self.state = state or LedgerState()
        self.log = log or CommitLog()
        self.registry = IdentityRegistry(self.state)
        self.grants = AccessGrantStore(self.state, self.registry)
        self.records = RecordAnchorLedger(self.state, self.registry)
        self.prescriptions = PrescriptionEngine(self.state, self.registry, self.grants)
        self._lock = threading.Lock()

    @classmethod
    def from_store(cls, store, clock: Callable[[], float] = time.time) -> "TransactionGateway":
        """Rebuild a gateway from everything the store has committed.

        The chain must verify and the tables must match a replay of the
        commit payloads, otherwise ValueError is raised.
        """
        state, log = store.load()
        ok, msg = log.verify()
        if not ok:
            raise ValueError(f"Ledger store failed verification: {msg}")
        if replay(log.entries).snapshot() != state.snapshot():
            raise ValueError("Ledger store failed verification: tables disagree with the commit log")
        print(f"[ledger] Loaded {len(log)} commits (version {state.version}).")
        return cls(store=store, clock=clock, state=state, log=log)

    # ── Submission ───────────────────────────────────────────────────

    def submit(self, command) -> Outcome:
        """Apply one intent and report success or the specific failure kind."""
        try:
            seq, value = self._commit(command)
        except LedgerError as e:
            return Outcome(ok=False, error=e.kind, message=str(e))
        return Outcome(ok=True, seq=seq, value=value)

    def _commit(self, command) -> Tuple[int, object]:
        with self._lock:
            now = self.clock()
            seq = self.state.version + 1
            change, value = self._plan(command, seq, now)
            entry = self.log.build(seq, command.caller, command.operation,
                                   change_payload(change), now)
            if self.store is not None:
                self.store.persist(change, entry)
            self.state.apply(change, seq)
            self.log.append(entry)
            return seq, value

    def _plan(self, command, seq: int, now: float):
        """Validate *command* against committed state; return (change, value)."""
        if isinstance(command, Register):
            change = self.registry.register(command.caller, command.role)
            return change, change.role

        if isinstance(command, GrantAccess):
            patient = command.patient or command.caller
            change = self.grants.grant_access(command.caller, patient, command.doctor)
            return change, True

        if isinstance(command, RevokeAccess):
            patient = command.patient or command.caller
            change = self.grants.revoke_access(command.caller, patient, command.doctor)
            return change, False

        if isinstance(command, AnchorRecord):
            change = self.records.anchor_record(command.patient, command.content_id, seq, now)
            return change, seq

        if isinstance(command, CreatePrescription):
            doctor = command.doctor or command.caller
            change = self.prescriptions.create_prescription(
                command.caller, command.patient, doctor, command.medication, now)
            return change, change.prescription

        if isinstance(command, MarkDispensed):
            change = self.prescriptions.mark_dispensed(command.caller, command.prescription_id, now)
            return change, change.prescription

        if isinstance(command, ApproveClaim):
            change = self.prescriptions.approve_claim(command.caller, command.prescription_id, now)
            return change, change.prescription

        raise TypeError(f"Unsupported command: {type(command).__name__}")

    # ── Typed mutations (raise LedgerError on rejection) ─────────────

    def register(self, caller: str, role: Role) -> Role:
        return self._commit(Register(caller, role))[1]

    def grant_access(self, caller: str, doctor: str, patient: Optional[str] = None) -> bool:
        return self._commit(GrantAccess(caller, doctor, patient))[1]

    def revoke_access(self, caller: str, doctor: str, patient: Optional[str] = None) -> bool:
        return self._commit(RevokeAccess(caller, doctor, patient))[1]

    def anchor_record(self, caller: str, patient: str, content_id: str) -> int:
        """Anchor a content identifier for *patient*; returns its sequence position."""
        return self._commit(AnchorRecord(caller, patient, content_id))[1]

    def create_prescription(self, caller: str, patient: str, medication: str,
                            doctor: Optional[str] = None) -> Prescription:
        return self._commit(CreatePrescription(caller, patient, medication, doctor))[1]

    def mark_dispensed(self, caller: str, prescription_id: int) -> Prescription:
        return self._commit(MarkDispensed(caller, prescription_id))[1]

    def approve_claim(self, caller: str, prescription_id: int) -> Prescription:
        return self._commit(ApproveClaim(caller, prescription_id))[1]

    # ── Reads (lock-free, committed state only) ──────────────────────

    def role_of(self, identity: str) -> Role:
        return self.registry.role_of(identity)

    def members_of(self, role: Role) -> List[str]:
        return self.registry.members_of(role)

    def has_access(self, patient: str, doctor: str) -> bool:
        return self.grants.has_access(patient, doctor)

    def doctors_of(self, patient: str) -> List[str]:
        return self.grants.doctors_of(patient)

    def records_of(self, patient: str) -> List[MedicalRecord]:
        return self.records.records_of(patient)

    def prescription_of(self, prescription_id: int) -> Prescription:
        return self.prescriptions.prescription_of(prescription_id)

    def prescriptions_of(self, patient: str) -> List[Prescription]:
        return self.prescriptions.prescriptions_of(patient)

    def commits(self) -> Tuple[CommitEntry, ...]:
        return self.log.entries

    def verify(self) -> Tuple[bool, str]:
        return self.log.verify()
