"""
Prescription lifecycle engine.

    Created --markDispensed (Pharmacist)--> Dispensed --approveClaim (Insurer)--> ClaimApproved

Every check happens in a fixed order: caller role, then existence, then the
current status. Creation checks authorization before the medication text.
"""

from dataclasses import replace
from typing import List

from medledger.errors import (
    InvalidMedication,
    InvalidState,
    NotAnInsurer,
    NotAPharmacist,
    NotAuthorizedDoctor,
    NotFound,
)
from medledger.grants import AccessGrantStore
from medledger.models import Prescription, PrescriptionWritten, Role, Status
from medledger.registry import IdentityRegistry
from medledger.state import LedgerState

# transition name -> (required role, error when the role is missing, from, to)
TRANSITIONS = {
    "dispense": (Role.PHARMACIST, NotAPharmacist, Status.CREATED, Status.DISPENSED),
    "approve_claim": (Role.INSURER, NotAnInsurer, Status.DISPENSED, Status.CLAIM_APPROVED),
}


class PrescriptionEngine:
    def __init__(self, state: LedgerState, registry: IdentityRegistry, grants: AccessGrantStore):
        self.state = state
        self.registry = registry
        self.grants = grants

    # ── Queries ──────────────────────────────────────────────────────

    def prescription_of(self, prescription_id: int) -> Prescription:
        rx = self.state.prescription(prescription_id)
        if rx is None:
            raise NotFound(f"Prescription {prescription_id} does not exist.")
        return rx

    def prescriptions_of(self, patient: str) -> List[Prescription]:
        found = [rx for rx in self.state.prescriptions().values() if rx.patient == patient]
        return sorted(found, key=lambda rx: rx.id)

    # ── Transitions ──────────────────────────────────────────────────

    def create_prescription(self, caller: str, patient: str, doctor: str,
                            medication: str, now: float) -> PrescriptionWritten:
        if (caller != doctor
                or not self.registry.is_a(caller, Role.DOCTOR)
                or not self.grants.has_access(patient, doctor)):
            raise NotAuthorizedDoctor(f"{caller} may not prescribe for {patient}.")

        medication = (medication or "").strip()
        if not medication:
            raise InvalidMedication("Medication description must not be empty.")

        rx = Prescription(
            id=self.state.last_prescription_id + 1,
            patient=patient,
            doctor=doctor,
            medication=medication,
            status=Status.CREATED,
            created_at=now,
            updated_at=now,
        )
        return PrescriptionWritten(prescription=rx)

    def mark_dispensed(self, caller: str, prescription_id: int, now: float) -> PrescriptionWritten:
        return self._transition("dispense", caller, prescription_id, now)

    def approve_claim(self, caller: str, prescription_id: int, now: float) -> PrescriptionWritten:
        return self._transition("approve_claim", caller, prescription_id, now)

    def _transition(self, name: str, caller: str, prescription_id: int, now: float) -> PrescriptionWritten:
        role, role_error, source, target = TRANSITIONS[name]
        if not self.registry.is_a(caller, role):
            raise role_error(f"{caller} is not a registered {role.value.lower()}.")

        rx = self.prescription_of(prescription_id)
        if rx.status is not source:
            raise InvalidState(
                f"Prescription {prescription_id} is {rx.status.value}, expected {source.value}."
            )
        return PrescriptionWritten(prescription=replace(rx, status=target, updated_at=now))
