from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.clinic_attendance.clinic_attendance.database.bootstrap import apply_schema, ensure_demo_clinic, list_tables
from src.clinic_attendance.clinic_attendance.database.connection import DBConfig


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Create the clinic database and apply schema.sql")
    parser.add_argument("--schema", type=Path, default=REPO_ROOT / "database" / "schema.sql")
    parser.add_argument("--seed", action="store_true", help="also upsert the demo clinic")
    args = parser.parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = DBConfig.from_mapping(db_config)

    apply_schema(db_config, schema_path=args.schema)
    if args.seed:
        ensure_demo_clinic(db_config)

    tables = list_tables(db_config)
    print(f"schema applied to {target.user}@{target.host}:{target.port}/{target.database}: {len(tables)} tables")
    for name in tables:
        print(f"  - {name}")


if __name__ == "__main__":
    main()
