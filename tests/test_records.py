"""
Unit tests for the record anchor ledger.
"""

import pytest

from medledger.errors import InvalidContentId, NotAPatient
from medledger.gateway import TransactionGateway
from medledger.models import Role


# ── Helpers ──────────────────────────────────────────────────────────

class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        self.now += 1.0
        return self.now


@pytest.fixture
def gw():
    gw = TransactionGateway(clock=FakeClock())
    gw.register("P1", Role.PATIENT)
    gw.register("D1", Role.DOCTOR)
    return gw


# ── Tests ────────────────────────────────────────────────────────────

def test_records_of_unknown_patient_is_empty(gw):
    assert gw.records_of("P1") == []
    assert gw.records_of("nobody") == []


def test_anchor_keeps_submission_order(gw):
    gw.anchor_record("P1", "P1", "bafy...cid1")
    gw.anchor_record("P1", "P1", "bafy...cid2")
    assert [r.content_id for r in gw.records_of("P1")] == ["bafy...cid1", "bafy...cid2"]


def test_anchor_returns_sequence_position_and_stamps_time(gw):
    seq = gw.anchor_record("P1", "P1", "cid-a")
    (record,) = gw.records_of("P1")
    assert record.seq == seq == gw.state.version
    assert record.patient == "P1"
    assert record.timestamp == gw.commits()[-1].timestamp


def test_duplicate_content_ids_are_allowed(gw):
    gw.anchor_record("P1", "P1", "same")
    gw.anchor_record("P1", "P1", "same")
    records = gw.records_of("P1")
    assert len(records) == 2
    assert records[0].seq < records[1].seq


def test_relay_may_anchor_for_a_patient(gw):
    gw.anchor_record("relay-wallet", "P1", "cid")
    assert len(gw.records_of("P1")) == 1
    assert gw.commits()[-1].caller == "relay-wallet"


def test_anchor_for_non_patient_rejected(gw):
    with pytest.raises(NotAPatient):
        gw.anchor_record("D1", "D1", "cid")
    with pytest.raises(NotAPatient):
        gw.anchor_record("X", "X", "cid")
    assert gw.records_of("D1") == []


def test_anchor_empty_content_id_rejected(gw):
    with pytest.raises(InvalidContentId):
        gw.anchor_record("P1", "P1", "   ")
    assert gw.records_of("P1") == []


def test_records_only_grow(gw):
    lengths = []
    for i in range(5):
        gw.anchor_record("P1", "P1", f"cid{i}")
        try:
            gw.anchor_record("D1", "D1", "rejected")
        except NotAPatient:
            pass
        lengths.append(len(gw.records_of("P1")))
    assert lengths == [1, 2, 3, 4, 5]


def test_returned_list_is_a_copy(gw):
    gw.anchor_record("P1", "P1", "cid")
    gw.records_of("P1").clear()
    assert len(gw.records_of("P1")) == 1
