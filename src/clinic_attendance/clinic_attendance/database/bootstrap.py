from __future__ import annotations

import json
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from werkzeug.security import generate_password_hash

from .connection import DBConfig, DatabaseConnection

DEMO_CLINIC_ID = "00000000-0000-4000-8000-000000000001"
DEMO_PROFESSIONAL_ID = "00000000-0000-4000-8000-000000000002"
DEMO_PATIENT_ID = "00000000-0000-4000-8000-000000000003"
DEMO_TEMPLATE_ID = "00000000-0000-4000-8000-000000000004"
DEMO_PASSWORD = "demo123"

_DB_PREAMBLE = re.compile(r"(?im)^\s*(?:CREATE\s+DATABASE|USE)\b[^;]*;\s*$")
# Quoted strings are matched whole so a ';' inside them never splits a statement.
_SQL_TOKEN = re.compile(r"""'(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*"|;|[^'";]+|['"]""", re.DOTALL)


@contextmanager
def _admin_cursor(db_config: dict, *, use_database: bool = True) -> Iterator:
    conn = DatabaseConnection(DBConfig.from_mapping(db_config)).connect(with_database=use_database)
    try:
        cur = conn.cursor()
        try:
            yield cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _strip_create_db_and_use(sql: str) -> str:
    """Drop ``CREATE DATABASE`` / ``USE`` lines; the target database comes from settings."""
    return _DB_PREAMBLE.sub("", sql)


def _iter_sql_statements(sql: str) -> Iterator[str]:
    body = "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))
    parts: list[str] = []
    for token in _SQL_TOKEN.findall(body):
        if token != ";":
            parts.append(token)
            continue
        stmt = "".join(parts).strip()
        parts = []
        if stmt:
            yield stmt
    tail = "".join(parts).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    name = DBConfig.from_mapping(db_config).database
    with _admin_cursor(db_config, use_database=False) as cur:
        cur.execute(f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))
    with _admin_cursor(db_config) as cur:
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)


_DEMO_TEMPLATE_CONTENT = (
    "Eu, {PACIENTE_NOME}, CPF {PACIENTE_CPF}, declaro que fui informada(o) sobre o procedimento "
    "{PROCEDIMENTO} e autorizo {PROFISSIONAL_NOME} a realizá-lo na {CLINICA_NOME}.\n\n{DATA_ATUAL}"
)


def ensure_demo_clinic(db_config: dict) -> None:
    """Upsert one clinic with a professional (password ``DEMO_PASSWORD``), a patient and a Botox template."""

    rows = [
        (
            "INSERT INTO clinics (clinic_id, name) VALUES (%s, %s) ON DUPLICATE KEY UPDATE name=VALUES(name)",
            (DEMO_CLINIC_ID, "Clínica Demo"),
        ),
        (
            "INSERT INTO professionals (professional_id, clinic_id, full_name, password_hash, is_active) "
            "VALUES (%s, %s, %s, %s, 1) "
            "ON DUPLICATE KEY UPDATE full_name=VALUES(full_name), password_hash=VALUES(password_hash)",
            (DEMO_PROFESSIONAL_ID, DEMO_CLINIC_ID, "Dra. Demo", generate_password_hash(DEMO_PASSWORD)),
        ),
        (
            "INSERT INTO patients (patient_id, clinic_id, full_name) VALUES (%s, %s, %s) "
            "ON DUPLICATE KEY UPDATE full_name=VALUES(full_name)",
            (DEMO_PATIENT_ID, DEMO_CLINIC_ID, "Paciente Demo"),
        ),
        (
            "INSERT INTO consent_templates (template_id, clinic_id, title, content, procedure_keywords, template_type) "
            "VALUES (%s, %s, %s, %s, %s, 'termo') "
            "ON DUPLICATE KEY UPDATE title=VALUES(title), content=VALUES(content), "
            "procedure_keywords=VALUES(procedure_keywords)",
            (DEMO_TEMPLATE_ID, DEMO_CLINIC_ID, "Botox", _DEMO_TEMPLATE_CONTENT, json.dumps(["toxina", "botox"])),
        ),
    ]
    with _admin_cursor(db_config) as cur:
        for sql, params in rows:
            cur.execute(sql, params)


def list_tables(db_config: dict) -> list[str]:
    with _admin_cursor(db_config) as cur:
        cur.execute("SHOW TABLES")
        return sorted(row[0] for row in cur.fetchall())
