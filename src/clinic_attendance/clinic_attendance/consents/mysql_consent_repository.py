from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Collection, Dict, Optional, Sequence

from ..common.retry import store_retry
from ..core.enums import ConsentStatus, TemplateType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, load_json
from .feed import ChangeFeed, NullChangeFeed
from .model import ConsentRecord, ConsentTemplate
from .repository import ConsentRepository, ConsentTemplateRepository

_RECORD_COLUMNS = """
    consent_id, clinic_id, patient_id, professional_id, template_id, procedure_name,
    content_snapshot, status, patient_signature, professional_signature_snapshot,
    professional_validated_with_password, created_at, signed_at, completed_at
"""


def _to_record(r: Dict[str, Any]) -> ConsentRecord:
    return ConsentRecord(
        consent_id=str(r["consent_id"]),
        clinic_id=str(r["clinic_id"]),
        patient_id=str(r["patient_id"]),
        professional_id=str(r["professional_id"]),
        template_id=str(r["template_id"]) if r.get("template_id") else None,
        procedure_name=r["procedure_name"],
        content_snapshot=r["content_snapshot"],
        status=ConsentStatus(r["status"]),
        patient_signature=r.get("patient_signature"),
        professional_signature_snapshot=r.get("professional_signature_snapshot"),
        professional_validated_with_password=bool(r.get("professional_validated_with_password")),
        created_at=r["created_at"],
        signed_at=r.get("signed_at"),
        completed_at=r.get("completed_at"),
    )


class MySQLConsentTemplateRepository(ConsentTemplateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @store_retry()
    def list_for_clinic(self, clinic_id: str) -> Sequence[ConsentTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT template_id, clinic_id, title, content, procedure_keywords, template_type
                FROM consent_templates
                WHERE clinic_id=%s AND deleted_at IS NULL
                ORDER BY created_at ASC
                """,
                (clinic_id,),
            )
            return [
                ConsentTemplate(
                    template_id=str(r["template_id"]),
                    clinic_id=str(r["clinic_id"]),
                    title=r["title"],
                    content=r["content"],
                    procedure_keywords=tuple(load_json(r.get("procedure_keywords"), default=[]) or ()),
                    template_type=TemplateType(r.get("template_type") or TemplateType.TERMO.value),
                )
                for r in fetchall(cur)
            ]


class MySQLConsentRepository(ConsentRepository):
    """``consent_records`` gateway. Publishes a change hint after each committed write."""

    def __init__(self, conn_factory: DatabaseConnection, feed: Optional[ChangeFeed] = None):
        self._conn_factory = conn_factory
        self._feed = feed or NullChangeFeed()

    @store_retry()
    def get_by_id(self, consent_id: str) -> Optional[ConsentRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_RECORD_COLUMNS} FROM consent_records WHERE consent_id=%s", (consent_id,))
            r = fetchone(cur)
            return _to_record(r) if r else None

    @store_retry()
    def find_for_day(
        self,
        *,
        patient_id: str,
        template_id: Optional[str],
        day_start: datetime,
        day_end: datetime,
        statuses: Optional[Collection[ConsentStatus]] = None,
    ) -> Sequence[ConsentRecord]:
        where = ["patient_id=%s", "created_at >= %s", "created_at < %s"]
        params: list[Any] = [patient_id, day_start, day_end]
        if template_id is None:
            where.append("template_id IS NULL")
        else:
            where.append("template_id=%s")
            params.append(template_id)
        if statuses:
            values = [s.value for s in statuses]
            where.append(f"status IN ({in_clause(values)})")
            params.extend(values)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM consent_records WHERE {' AND '.join(where)} ORDER BY created_at DESC",
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    # Not retried here: ensure_pending re-runs its lookup on a wholesale retry.
    def create_pending(
        self,
        *,
        clinic_id: str,
        patient_id: str,
        professional_id: str,
        template_id: Optional[str],
        procedure_name: str,
        content_snapshot: str,
        created_at: datetime,
    ) -> str:
        consent_id = str(uuid.uuid4())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO consent_records(
                    consent_id, clinic_id, patient_id, professional_id, template_id,
                    procedure_name, content_snapshot, status, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    consent_id,
                    clinic_id,
                    patient_id,
                    professional_id,
                    template_id,
                    procedure_name,
                    content_snapshot,
                    ConsentStatus.PENDING.value,
                    created_at,
                ),
            )
        self._feed.publish(consent_id)
        return consent_id

    @store_retry()
    def mark_signed(self, *, consent_id: str, patient_signature: str, signed_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE consent_records
                SET patient_signature=%s, status=%s, signed_at=%s
                WHERE consent_id=%s AND status=%s
                """,
                (patient_signature, ConsentStatus.SIGNED.value, signed_at, consent_id, ConsentStatus.PENDING.value),
            )
            changed = cur.rowcount > 0
        if changed:
            self._feed.publish(consent_id)
        return changed

    @store_retry()
    def mark_completed(
        self,
        *,
        consent_id: str,
        professional_signature_snapshot: Optional[str],
        completed_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE consent_records
                SET status=%s, professional_signature_snapshot=%s,
                    professional_validated_with_password=1, completed_at=%s
                WHERE consent_id=%s AND status=%s
                """,
                (
                    ConsentStatus.COMPLETED.value,
                    professional_signature_snapshot,
                    completed_at,
                    consent_id,
                    ConsentStatus.SIGNED.value,
                ),
            )
            changed = cur.rowcount > 0
        if changed:
            self._feed.publish(consent_id)
        return changed
