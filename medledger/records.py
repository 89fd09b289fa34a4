"""
Record anchor ledger – append-only content identifiers per patient.

The file itself lives in content-addressed storage; the ledger only keeps
the identifier it was given, verbatim.
"""

from typing import List

from medledger.errors import InvalidContentId, NotAPatient
from medledger.models import MedicalRecord, RecordAppended, Role
from medledger.registry import IdentityRegistry
from medledger.state import LedgerState


class RecordAnchorLedger:
    def __init__(self, state: LedgerState, registry: IdentityRegistry):
        self.state = state
        self.registry = registry

    def records_of(self, patient: str) -> List[MedicalRecord]:
        """All records anchored for *patient*, oldest first."""
        return list(self.state.records(patient))

    def anchor_record(self, patient: str, content_id: str, seq: int, timestamp: float) -> RecordAppended:
        # The caller may be a relay acting for the patient; only the owner's role matters.
        if not self.registry.is_a(patient, Role.PATIENT):
            raise NotAPatient(f"{patient} is not a registered patient.")
        content_id = (content_id or "").strip()
        if not content_id:
            raise InvalidContentId("Content identifier must not be empty.")
        record = MedicalRecord(patient=patient, seq=seq, content_id=content_id, timestamp=timestamp)
        return RecordAppended(record=record)
