from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.clinic_attendance.clinic_attendance.database.bootstrap import (
    DEMO_CLINIC_ID,
    DEMO_PASSWORD,
    DEMO_PATIENT_ID,
    DEMO_PROFESSIONAL_ID,
    ensure_demo_clinic,
)


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    ensure_demo_clinic(db_config)

    print(
        "OK: Seeded demo clinic -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}\n"
        f"  clinic={DEMO_CLINIC_ID}\n"
        f"  professional={DEMO_PROFESSIONAL_ID} (password: {DEMO_PASSWORD})\n"
        f"  patient={DEMO_PATIENT_ID}"
    )


if __name__ == "__main__":
    main()
