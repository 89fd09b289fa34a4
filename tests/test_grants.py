"""
Unit tests for the access grant store.
"""

import pytest

from medledger.errors import NotADoctor, NotAPatient
from medledger.gateway import TransactionGateway
from medledger.models import Role


# ── Helpers ──────────────────────────────────────────────────────────

@pytest.fixture
def gw():
    gw = TransactionGateway(clock=lambda: 1_700_000_000.0)
    gw.register("P1", Role.PATIENT)
    gw.register("P2", Role.PATIENT)
    gw.register("D1", Role.DOCTOR)
    gw.register("D2", Role.DOCTOR)
    gw.register("R1", Role.PHARMACIST)
    return gw


# ── Tests: grant_access ──────────────────────────────────────────────

def test_grant_gives_access(gw):
    assert gw.has_access("P1", "D1") is False
    gw.grant_access("P1", "D1")
    assert gw.has_access("P1", "D1") is True
    assert gw.has_access("P2", "D1") is False


def test_grant_is_idempotent(gw):
    gw.grant_access("P1", "D1")
    once = gw.doctors_of("P1")
    gw.grant_access("P1", "D1")
    assert gw.doctors_of("P1") == once == ["D1"]


def test_doctors_of_keeps_grant_order(gw):
    gw.grant_access("P1", "D2")
    gw.grant_access("P1", "D1")
    assert gw.doctors_of("P1") == ["D2", "D1"]


def test_grant_by_non_patient_rejected(gw):
    with pytest.raises(NotAPatient):
        gw.grant_access("D1", "D2", patient="D1")
    with pytest.raises(NotAPatient):
        gw.grant_access("X", "D1")


def test_grant_on_behalf_of_another_patient_rejected(gw):
    with pytest.raises(NotAPatient):
        gw.grant_access("P2", "D1", patient="P1")
    assert gw.has_access("P1", "D1") is False


def test_grant_to_non_doctor_rejected(gw):
    with pytest.raises(NotADoctor):
        gw.grant_access("P1", "R1")
    with pytest.raises(NotADoctor):
        gw.grant_access("P1", "nobody")
    assert gw.doctors_of("P1") == []


# ── Tests: revoke_access ─────────────────────────────────────────────

def test_revoke_removes_access(gw):
    gw.grant_access("P1", "D1")
    gw.grant_access("P1", "D2")
    gw.revoke_access("P1", "D1")
    assert gw.doctors_of("P1") == ["D2"]


def test_revoke_is_idempotent(gw):
    gw.revoke_access("P1", "D1")
    gw.revoke_access("P1", "D1")
    assert gw.has_access("P1", "D1") is False


def test_revoke_mirrors_grant_authorization(gw):
    gw.grant_access("P1", "D1")
    with pytest.raises(NotAPatient):
        gw.revoke_access("P2", "D1", patient="P1")
    with pytest.raises(NotADoctor):
        gw.revoke_access("P1", "R1")
    assert gw.has_access("P1", "D1") is True
