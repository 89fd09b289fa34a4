"""
Durable ledger store – SQLAlchemy engine initialisation, schema and I/O.
"""

import json
import sys
from typing import Optional, Tuple

from sqlalchemy import (
    Column,
    Double,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    select,
    text,
    update,
)

from medledger.commit_log import CommitEntry, CommitLog
from medledger.config import get_db_uri
from medledger.models import (
    GrantAdded,
    GrantRemoved,
    MedicalRecord,
    Prescription,
    PrescriptionWritten,
    RecordAppended,
    Role,
    RoleAssigned,
    Status,
)
from medledger.state import LedgerState

metadata = MetaData()

identities = Table(
    "identities", metadata,
    Column("identity", String(128), primary_key=True),
    Column("role", String(32), nullable=False),
    Column("registered_seq", Integer, nullable=False),
)

grants = Table(
    "grants", metadata,
    Column("patient", String(128), primary_key=True),
    Column("doctor", String(128), primary_key=True),
    Column("seq", Integer, nullable=False),
)

records = Table(
    "records", metadata,
    Column("seq", Integer, primary_key=True),
    Column("patient", String(128), nullable=False, index=True),
    Column("content_id", String(256), nullable=False),
    Column("timestamp", Double, nullable=False),
)

prescriptions = Table(
    "prescriptions", metadata,
    Column("id", Integer, primary_key=True),
    Column("patient", String(128), nullable=False, index=True),
    Column("doctor", String(128), nullable=False),
    Column("medication", Text, nullable=False),
    Column("status", String(32), nullable=False),
    Column("created_at", Double, nullable=False),
    Column("updated_at", Double, nullable=False),
)

commits = Table(
    "commits", metadata,
    Column("seq", Integer, primary_key=True),
    Column("caller", String(128), nullable=False),
    Column("operation", String(64), nullable=False),
    Column("payload", Text, nullable=False),
    Column("timestamp", Double, nullable=False),
    Column("prev_hash", String(64), nullable=False),
    Column("hash", String(64), nullable=False),
)


def init_engine(db_uri: Optional[str] = None):
    """Create a SQLAlchemy engine, verify the connection and create the schema."""
    db_uri = db_uri or get_db_uri()
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        metadata.create_all(engine)
    except Exception as e:
        print("ERROR: could not connect to ledger store:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to ledger store.")
    return engine


class LedgerStore:
    """Writes committed changes and rebuilds state from them."""

    def __init__(self, engine):
        self.engine = engine

    def persist(self, change, entry: CommitEntry) -> None:
        """Write one change and its commit row in a single transaction."""
        with self.engine.begin() as conn:
            if isinstance(change, RoleAssigned):
                conn.execute(insert(identities).values(
                    identity=change.identity, role=change.role.value, registered_seq=entry.seq))
            elif isinstance(change, GrantAdded):
                if not change.already_granted:
                    conn.execute(insert(grants).values(
                        patient=change.patient, doctor=change.doctor, seq=entry.seq))
            elif isinstance(change, GrantRemoved):
                conn.execute(delete(grants).where(
                    grants.c.patient == change.patient, grants.c.doctor == change.doctor))
            elif isinstance(change, RecordAppended):
                rec = change.record
                conn.execute(insert(records).values(
                    seq=rec.seq, patient=rec.patient, content_id=rec.content_id,
                    timestamp=rec.timestamp))
            elif isinstance(change, PrescriptionWritten):
                self._write_prescription(conn, change.prescription)
            else:
                raise TypeError(f"Unsupported change type: {type(change).__name__}")

            conn.execute(insert(commits).values(
                seq=entry.seq, caller=entry.caller, operation=entry.operation,
                payload=json.dumps(entry.payload, sort_keys=True),
                timestamp=entry.timestamp, prev_hash=entry.prev_hash, hash=entry.hash))

    @staticmethod
    def _write_prescription(conn, rx: Prescription) -> None:
        if rx.status is Status.CREATED:
            conn.execute(insert(prescriptions).values(
                id=rx.id, patient=rx.patient, doctor=rx.doctor, medication=rx.medication,
                status=rx.status.value, created_at=rx.created_at, updated_at=rx.updated_at))
        else:
            conn.execute(update(prescriptions)
                         .where(prescriptions.c.id == rx.id)
                         .values(status=rx.status.value, updated_at=rx.updated_at))

    def load(self) -> Tuple[LedgerState, CommitLog]:
        """Read every table back into a fresh state container and commit log."""
        state = LedgerState()
        with self.engine.connect() as conn:
            for row in conn.execute(select(identities).order_by(identities.c.registered_seq)).mappings():
                state.apply(RoleAssigned(row["identity"], Role(row["role"])), row["registered_seq"])

            for row in conn.execute(select(grants).order_by(grants.c.seq)).mappings():
                state.apply(GrantAdded(row["patient"], row["doctor"]), row["seq"])

            for row in conn.execute(select(records).order_by(records.c.seq)).mappings():
                rec = MedicalRecord(patient=row["patient"], seq=row["seq"],
                                    content_id=row["content_id"], timestamp=row["timestamp"])
                state.apply(RecordAppended(rec), row["seq"])

            for row in conn.execute(select(prescriptions).order_by(prescriptions.c.id)).mappings():
                rx = Prescription(id=row["id"], patient=row["patient"], doctor=row["doctor"],
                                  medication=row["medication"], status=Status(row["status"]),
                                  created_at=row["created_at"], updated_at=row["updated_at"])
                state.apply(PrescriptionWritten(rx), 0)

            log = CommitLog(
                CommitEntry(
                    seq=row["seq"],
                    caller=row["caller"],
                    operation=row["operation"],
                    payload=json.loads(row["payload"]),
                    timestamp=row["timestamp"],
                    prev_hash=row["prev_hash"],
                    hash=row["hash"],
                )
                for row in conn.execute(select(commits).order_by(commits.c.seq)).mappings()
            )

        state.version = log.entries[-1].seq if len(log) else 0
        return state, log
