"""
Interactive CLI for the MedLedger ledger.
Log in as an address, then submit intents and query the ledger.
"""

import shlex

import pandas as pd

from medledger.config import MAX_PREVIEW_ROWS
from medledger.database import LedgerStore, init_engine
from medledger.errors import LedgerError, StorageError
from medledger.gateway import TransactionGateway
from medledger.models import Role, normalize_address
from medledger.storage import init_content_store

HELP = """Commands:
  register <role>                   register yourself (patient/doctor/pharmacist/insurer)
  grant <doctor> | revoke <doctor>  manage doctor access to your records
  anchor <patient> <cid>            anchor a content identifier
  upload <patient> <path>           pin a file and anchor its identifier
  records <patient>                 list a patient's records
  prescribe <patient> <medication>  create a prescription
  dispense <id> | approve <id>      advance a prescription
  rx <id> | rxs <patient>           show prescriptions
  role <address> | access <patient> <doctor>
  log | verify | whoami | login <address> | quit"""


def preview(rows, empty_message: str) -> None:
    """Print a list of dicts as a table, capped at MAX_PREVIEW_ROWS."""
    if not rows:
        print(empty_message)
        return
    df = pd.DataFrame(rows)
    print(df.head(MAX_PREVIEW_ROWS).to_string(index=False))
    if len(df) > MAX_PREVIEW_ROWS:
        print(f"... ({len(df) - MAX_PREVIEW_ROWS} more rows)")


def run_command(gateway: TransactionGateway, content_store, caller: str, args) -> None:
    """Execute one parsed command line on behalf of *caller*.

    Address arguments are validated and lower-cased the same way the relay
    does it; a malformed one raises ValueError before anything is submitted.
    """
    cmd, rest = args[0].lower(), args[1:]
    caller = normalize_address(caller)

    if cmd == "register":
        role = gateway.register(caller, Role.parse(rest[0]))
        print(f"Registered {caller} as {role.value}.")
    elif cmd == "grant":
        doctor = normalize_address(rest[0])
        gateway.grant_access(caller, doctor)
        print(f"Granted {doctor} access to {caller}'s records.")
    elif cmd == "revoke":
        doctor = normalize_address(rest[0])
        gateway.revoke_access(caller, doctor)
        print(f"Revoked {doctor}'s access.")
    elif cmd == "anchor":
        seq = gateway.anchor_record(caller, normalize_address(rest[0]), rest[1])
        print(f"Record anchored at position {seq}.")
    elif cmd == "upload":
        patient = normalize_address(rest[0])
        with open(rest[1], "rb") as fh:
            cid = content_store.pin(fh.read(), rest[1])
        seq = gateway.anchor_record(caller, patient, cid)
        print(f"Pinned {cid}, anchored at position {seq}.")
    elif cmd == "records":
        records = gateway.records_of(normalize_address(rest[0]))
        preview([r.to_dict() for r in records], "(no records)")
    elif cmd == "prescribe":
        rx = gateway.create_prescription(caller, normalize_address(rest[0]), " ".join(rest[1:]))
        print(f"Prescription {rx.id} created for {rx.patient}.")
    elif cmd == "dispense":
        rx = gateway.mark_dispensed(caller, int(rest[0]))
        print(f"Prescription {rx.id} is now {rx.status.value}.")
    elif cmd == "approve":
        rx = gateway.approve_claim(caller, int(rest[0]))
        print(f"Prescription {rx.id} is now {rx.status.value}.")
    elif cmd == "rx":
        preview([gateway.prescription_of(int(rest[0])).to_dict()], "(not found)")
    elif cmd == "rxs":
        rxs = gateway.prescriptions_of(normalize_address(rest[0]))
        preview([rx.to_dict() for rx in rxs], "(no prescriptions)")
    elif cmd == "role":
        print(gateway.role_of(normalize_address(rest[0])).value)
    elif cmd == "access":
        patient, doctor = normalize_address(rest[0]), normalize_address(rest[1])
        print("yes" if gateway.has_access(patient, doctor) else "no")
    elif cmd == "log":
        rows = [{k: v for k, v in e.to_dict().items() if k != "prev_hash"} for e in gateway.commits()]
        preview(rows, "(empty ledger)")
    elif cmd == "verify":
        ok, msg = gateway.verify()
        print(("[OK] " if ok else "[FAIL] ") + msg)
    else:
        print(f"Unknown command '{cmd}'. Type 'help'.")


def prompt_login():
    """Ask for an address until a valid one is given; None means quit."""
    while True:
        try:
            value = input("Enter your address (or 'quit'): ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            return None

        if not value or value.lower() in {"quit", "exit"}:
            print("Goodbye.")
            return None
        try:
            return normalize_address(value)
        except ValueError as e:
            print("[ERROR]", e)


def main():
    print("=== MedLedger: access-controlled record & prescription ledger ===\n")

    gateway = TransactionGateway.from_store(LedgerStore(init_engine()))
    content_store = init_content_store()

    # ── Login ────────────────────────────────────────────────────────
    caller = prompt_login()
    if caller is None:
        return

    print(f"\n[auth] Acting as: {caller} (role={gateway.role_of(caller).value})")
    print(HELP)

    # ── REPL ─────────────────────────────────────────────────────────
    while True:
        try:
            line = input(f"\n{caller[:10]}> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not line:
            continue
        if line.lower() in {"quit", "exit"}:
            print("Goodbye.")
            break
        if line.lower() == "help":
            print(HELP)
            continue
        if line.lower() == "whoami":
            print(f"{caller} ({gateway.role_of(caller).value})")
            continue

        try:
            args = shlex.split(line)
        except ValueError as e:
            print("[ERROR] Could not parse that line:", e)
            continue
        if args[0].lower() == "login" and len(args) == 2:
            try:
                caller = normalize_address(args[1])
            except ValueError as e:
                print("[ERROR]", e)
                continue
            print(f"[auth] Acting as: {caller} (role={gateway.role_of(caller).value})")
            continue

        try:
            run_command(gateway, content_store, caller, args)
        except LedgerError as e:
            print(f"\n[REJECTED] {e.kind}: {e}")
        except StorageError as e:
            print("\n[STORAGE ERROR] Could not pin the file.")
            print("Details:", e)
        except (IndexError, ValueError, OSError) as e:
            print("\n[ERROR] Could not run that command.")
            print("Details:", e)


if __name__ == "__main__":
    main()
