"""
Tests for the CLI command dispatcher.
"""

import pytest

from medledger.cli import preview, prompt_login, run_command
from medledger.errors import InvalidState, NotAuthorizedDoctor
from medledger.gateway import TransactionGateway
from medledger.models import Role
from medledger.storage import LocalContentStore

P1 = "0x" + "a1" * 20
D1 = "0x" + "b2" * 20
R1 = "0x" + "c3" * 20
I1 = "0x" + "d4" * 20
X = "0x" + "e5" * 20


# ── Helpers ──────────────────────────────────────────────────────────

@pytest.fixture
def gw():
    return TransactionGateway(clock=lambda: 1_700_000_000.0)


def run(gw, caller, line, store=None):
    run_command(gw, store or LocalContentStore(), caller, line.split())


# ── Tests ────────────────────────────────────────────────────────────

def test_preview_empty(capsys):
    preview([], "(no records)")
    assert capsys.readouterr().out.strip() == "(no records)"


def test_preview_truncates(capsys, monkeypatch):
    monkeypatch.setattr("medledger.cli.MAX_PREVIEW_ROWS", 2)
    preview([{"n": i} for i in range(5)], "-")
    assert "(3 more rows)" in capsys.readouterr().out


def test_cli_walkthrough(gw, capsys, tmp_path):
    run(gw, P1, "register patient")
    run(gw, D1, "register doctor")
    run(gw, R1, "register pharmacist")
    run(gw, I1, "register insurer")
    run(gw, P1, f"grant {D1}")
    run(gw, P1, f"anchor {P1} bafy-cid1")

    report = tmp_path / "report.pdf"
    report.write_bytes(b"%PDF")
    run(gw, P1, f"upload {P1} {report}")

    run(gw, D1, f"prescribe {P1} Amoxicillin 500mg")
    run(gw, R1, "dispense 1")
    run(gw, I1, "approve 1")
    capsys.readouterr()

    run(gw, X, f"records {P1}")
    out = capsys.readouterr().out
    assert "bafy-cid1" in out and "bafkrei" in out

    run(gw, X, "rx 1")
    out = capsys.readouterr().out
    assert "Amoxicillin 500mg" in out and "ClaimApproved" in out

    run(gw, X, "verify")
    assert capsys.readouterr().out.startswith("[OK]")


def test_cli_propagates_ledger_errors(gw):
    run(gw, P1, "register patient")
    with pytest.raises(NotAuthorizedDoctor):
        run(gw, X, f"prescribe {P1} Aspirin")
    run(gw, D1, "register doctor")
    run(gw, P1, f"grant {D1}")
    run(gw, D1, f"prescribe {P1} Aspirin")
    run(gw, R1, "register pharmacist")
    run(gw, I1, "register insurer")
    with pytest.raises(InvalidState):
        run(gw, I1, "approve 1")


def test_cli_unknown_command(gw, capsys):
    run(gw, P1, "frobnicate")
    assert "Unknown command" in capsys.readouterr().out


# ── Tests: address handling ──────────────────────────────────────────

@pytest.mark.parametrize("caller, line", [
    ("P1", "register patient"),
    (P1, "grant D1"),
    (P1, "anchor 0x1234 bafy-cid1"),
    (D1, "prescribe patient-one Aspirin"),
])
def test_cli_rejects_malformed_address(gw, caller, line):
    run(gw, P1, "register patient")
    with pytest.raises(ValueError, match="Invalid address"):
        run(gw, caller, line)
    assert len(gw.commits()) == 1
    assert gw.role_of("P1") is Role.UNREGISTERED


def test_cli_lowercases_mixed_case_address(gw, capsys):
    mixed = "0x" + "aB" * 20
    run(gw, mixed, "register patient")
    assert gw.role_of(mixed.lower()) is Role.PATIENT
    assert gw.role_of(mixed) is Role.UNREGISTERED
    assert gw.commits()[-1].caller == mixed.lower()

    run(gw, "0x" + "B2" * 20, "register doctor")
    run(gw, mixed, "grant 0x" + "B2" * 20)
    assert gw.doctors_of(mixed.lower()) == [D1]

    capsys.readouterr()
    run(gw, X, f"role {mixed}")
    assert capsys.readouterr().out.strip() == "Patient"


def test_prompt_login_retries_until_valid(monkeypatch, capsys):
    answers = iter(["P1", "0x" + "Cd" * 20])
    monkeypatch.setattr("builtins.input", lambda _prompt: next(answers))
    assert prompt_login() == "0x" + "cd" * 20
    assert "Invalid address 'P1'" in capsys.readouterr().out


def test_prompt_login_quit(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda _prompt: "quit")
    assert prompt_login() is None
