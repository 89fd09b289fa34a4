#!/usr/bin/env python3
"""
Seed a ledger store with demo participants, records and prescriptions.

Usage: python scripts/seed_demo.py [DB_URI]
"""

import random
import sys

from faker import Faker

from medledger.database import LedgerStore, init_engine
from medledger.gateway import TransactionGateway
from medledger.models import Role
from medledger.storage import compute_cid

NUM_PATIENTS = 8
NUM_DOCTORS = 3
NUM_PHARMACISTS = 2
NUM_INSURERS = 1
RECORDS_PER_PATIENT = (0, 3)
PRESCRIPTIONS_PER_PATIENT = (0, 2)

MEDICATIONS = [
    "Amoxicillin 500mg", "Metformin 850mg", "Lisinopril 10mg", "Atorvastatin 20mg",
    "Salbutamol inhaler", "Omeprazole 20mg", "Levothyroxine 50mcg",
]

fake = Faker()
random.seed(42)
Faker.seed(42)


def new_address() -> str:
    return fake.hexify(text="0x" + "^" * 40)


def register_all(gw: TransactionGateway, role: Role, count: int):
    addresses = [new_address() for _ in range(count)]
    for address in addresses:
        gw.register(address, role)
    return addresses


def main():
    db_uri = sys.argv[1] if len(sys.argv) > 1 else None
    gw = TransactionGateway.from_store(LedgerStore(init_engine(db_uri)))

    patients = register_all(gw, Role.PATIENT, NUM_PATIENTS)
    doctors = register_all(gw, Role.DOCTOR, NUM_DOCTORS)
    pharmacists = register_all(gw, Role.PHARMACIST, NUM_PHARMACISTS)
    insurers = register_all(gw, Role.INSURER, NUM_INSURERS)
    print(f"[seed] Registered {len(patients)} patients, {len(doctors)} doctors, "
          f"{len(pharmacists)} pharmacists, {len(insurers)} insurers")

    n_records = n_rx = 0
    for patient in patients:
        for _ in range(random.randint(*RECORDS_PER_PATIENT)):
            gw.anchor_record(patient, patient, compute_cid(fake.paragraph().encode("utf-8")))
            n_records += 1

        doctor = random.choice(doctors)
        gw.grant_access(patient, doctor)
        for _ in range(random.randint(*PRESCRIPTIONS_PER_PATIENT)):
            rx = gw.create_prescription(doctor, patient, random.choice(MEDICATIONS))
            n_rx += 1
            # Advance some prescriptions along the lifecycle.
            if random.random() < 0.6:
                gw.mark_dispensed(random.choice(pharmacists), rx.id)
                if random.random() < 0.5:
                    gw.approve_claim(random.choice(insurers), rx.id)

    ok, msg = gw.verify()
    print(f"[seed] Anchored {n_records} records, created {n_rx} prescriptions")
    print(f"[seed] {msg}" if ok else f"[seed] VERIFY FAILED: {msg}")


if __name__ == "__main__":
    main()
