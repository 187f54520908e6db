from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Collection, Dict, Optional, Sequence

from ..common.retry import store_retry
from ..core.enums import AppointmentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Appointment
from .repository import AppointmentRepository

_COLUMNS = """
    appointment_id, clinic_id, patient_id, professional_id, service_id,
    start_time, end_time, status, notes, updated_at
"""


def _to_appointment(r: Dict[str, Any]) -> Appointment:
    return Appointment(
        appointment_id=str(r["appointment_id"]),
        clinic_id=str(r["clinic_id"]),
        patient_id=str(r["patient_id"]) if r.get("patient_id") else None,
        professional_id=str(r["professional_id"]),
        service_id=str(r["service_id"]) if r.get("service_id") else None,
        start_time=r["start_time"],
        end_time=r["end_time"],
        status=AppointmentStatus(r["status"]),
        notes=r.get("notes"),
        updated_at=r["updated_at"],
    )


class MySQLAppointmentRepository(AppointmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @store_retry()
    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM appointments WHERE appointment_id=%s", (appointment_id,))
            r = fetchone(cur)
            return _to_appointment(r) if r else None

    @store_retry()
    def find(
        self,
        *,
        professional_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        statuses: Optional[Collection[AppointmentStatus]] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> Sequence[Appointment]:
        where: list[str] = []
        params: list[Any] = []

        if professional_id is not None:
            where.append("professional_id=%s")
            params.append(professional_id)
        if patient_id is not None:
            where.append("patient_id=%s")
            params.append(patient_id)
        if statuses:
            values = [s.value for s in statuses]
            where.append(f"status IN ({in_clause(values)})")
            params.extend(values)
        if start_from is not None:
            where.append("start_time >= %s")
            params.append(start_from)
        if start_to is not None:
            where.append("start_time < %s")
            params.append(start_to)

        sql = f"SELECT {_COLUMNS} FROM appointments"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY start_time ASC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_appointment(r) for r in fetchall(cur)]

    # Not retried: a lost acknowledgement would insert a duplicate slot.
    def create(
        self,
        *,
        clinic_id: str,
        patient_id: Optional[str],
        professional_id: str,
        start_time: datetime,
        end_time: datetime,
        status: AppointmentStatus,
        updated_at: datetime,
        service_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> str:
        appointment_id = str(uuid.uuid4())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO appointments(
                    appointment_id, clinic_id, patient_id, professional_id, service_id,
                    start_time, end_time, status, notes, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    appointment_id,
                    clinic_id,
                    patient_id,
                    professional_id,
                    service_id,
                    start_time,
                    end_time,
                    status.value,
                    notes,
                    updated_at,
                ),
            )
        return appointment_id

    @store_retry()
    def update_status(self, *, appointment_id: str, status: AppointmentStatus, updated_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE appointments
                SET status=%s, updated_at=GREATEST(%s, updated_at + INTERVAL 1 MICROSECOND)
                WHERE appointment_id=%s
                """,
                (status.value, updated_at, appointment_id),
            )
            return cur.rowcount > 0
