from __future__ import annotations

from typing import Optional

from ..common.retry import store_retry
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Clinic, Patient, Professional
from .repository import DirectoryRepository


class MySQLDirectoryRepository(DirectoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @store_retry()
    def get_clinic(self, clinic_id: str) -> Optional[Clinic]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT clinic_id, name FROM clinics WHERE clinic_id=%s", (clinic_id,))
            r = fetchone(cur)
            if not r:
                return None
            return Clinic(clinic_id=str(r["clinic_id"]), name=r["name"])

    @store_retry()
    def get_patient(self, patient_id: str) -> Optional[Patient]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT patient_id, clinic_id, full_name FROM patients WHERE patient_id=%s", (patient_id,))
            r = fetchone(cur)
            if not r:
                return None
            return Patient(patient_id=str(r["patient_id"]), clinic_id=str(r["clinic_id"]), full_name=r["full_name"])

    @store_retry()
    def get_professional(self, professional_id: str) -> Optional[Professional]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT professional_id, clinic_id, full_name, password_hash, signature_data, is_active
                FROM professionals
                WHERE professional_id=%s
                """,
                (professional_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Professional(
                professional_id=str(r["professional_id"]),
                clinic_id=str(r["clinic_id"]) if r.get("clinic_id") else None,
                full_name=r["full_name"],
                password_hash=r["password_hash"],
                signature_data=r.get("signature_data"),
                is_active=bool(r.get("is_active", 1)),
            )
