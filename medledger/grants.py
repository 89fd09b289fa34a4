"""
Access grant store – which doctors a patient has authorized.

Grants are self-service: only the patient may grant or revoke, and only
registered doctors can be grantees. Both operations are idempotent.
"""

from typing import List

from medledger.errors import NotADoctor, NotAPatient
from medledger.models import GrantAdded, GrantRemoved, Role
from medledger.registry import IdentityRegistry
from medledger.state import LedgerState


class AccessGrantStore:
    def __init__(self, state: LedgerState, registry: IdentityRegistry):
        self.state = state
        self.registry = registry

    def has_access(self, patient: str, doctor: str) -> bool:
        return doctor in self.state.grants(patient)

    def doctors_of(self, patient: str) -> List[str]:
        """The patient's grantees, in the order they were granted."""
        return list(self.state.grants(patient))

    def grant_access(self, caller: str, patient: str, doctor: str) -> GrantAdded:
        self._authorize(caller, patient, doctor)
        return GrantAdded(patient=patient, doctor=doctor,
                          already_granted=self.has_access(patient, doctor))

    def revoke_access(self, caller: str, patient: str, doctor: str) -> GrantRemoved:
        self._authorize(caller, patient, doctor)
        return GrantRemoved(patient=patient, doctor=doctor,
                            was_granted=self.has_access(patient, doctor))

    def _authorize(self, caller: str, patient: str, doctor: str) -> None:
        if caller != patient or not self.registry.is_a(caller, Role.PATIENT):
            raise NotAPatient(f"{caller} is not the registered patient {patient}.")
        if not self.registry.is_a(doctor, Role.DOCTOR):
            raise NotADoctor(f"{doctor} is not a registered doctor.")
