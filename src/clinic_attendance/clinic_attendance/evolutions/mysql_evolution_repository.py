from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence

from ..common.retry import store_retry
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import EvolutionRecord
from .repository import EvolutionRepository

_COLUMNS = """
    evolution_id, clinic_id, patient_id, professional_id, appointment_id, record_date,
    subject, description, attachments, created_at, invalidated_at, invalidation_reason
"""


def _to_record(r: Dict[str, Any]) -> EvolutionRecord:
    return EvolutionRecord(
        evolution_id=str(r["evolution_id"]),
        clinic_id=str(r["clinic_id"]),
        patient_id=str(r["patient_id"]),
        professional_id=str(r["professional_id"]),
        appointment_id=str(r["appointment_id"]) if r.get("appointment_id") else None,
        date=r["record_date"],
        subject=r["subject"],
        description=r.get("description") or "",
        attachments=load_json(r.get("attachments"), default={}),
        created_at=r.get("created_at"),
        invalidated_at=r.get("invalidated_at"),
        invalidation_reason=r.get("invalidation_reason"),
    )


class MySQLEvolutionRepository(EvolutionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @store_retry()
    def get_by_id(self, evolution_id: str) -> Optional[EvolutionRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM evolution_records WHERE evolution_id=%s", (evolution_id,))
            r = fetchone(cur)
            return _to_record(r) if r else None

    @store_retry()
    def list_for_patient(self, patient_id: str) -> Sequence[EvolutionRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM evolution_records WHERE patient_id=%s ORDER BY record_date DESC",
                (patient_id,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    # Not retried: a lost acknowledgement would insert the note twice.
    def create(
        self,
        *,
        clinic_id: str,
        patient_id: str,
        professional_id: str,
        appointment_id: Optional[str],
        date: datetime,
        subject: str,
        description: str,
        attachments: Mapping[str, Any],
        created_at: datetime,
    ) -> str:
        evolution_id = str(uuid.uuid4())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO evolution_records(
                    evolution_id, clinic_id, patient_id, professional_id, appointment_id,
                    record_date, subject, description, attachments, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    evolution_id,
                    clinic_id,
                    patient_id,
                    professional_id,
                    appointment_id,
                    date,
                    subject,
                    description,
                    dump_json(dict(attachments)),
                    created_at,
                ),
            )
        return evolution_id

    @store_retry()
    def invalidate(self, *, evolution_id: str, invalidated_at: datetime, reason: Optional[str] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE evolution_records
                SET invalidated_at=%s, invalidation_reason=%s
                WHERE evolution_id=%s AND invalidated_at IS NULL
                """,
                (invalidated_at, reason, evolution_id),
            )
            return cur.rowcount > 0
