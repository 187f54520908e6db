from __future__ import annotations

import re
from datetime import date

from ..common.datetime_utils import format_br_date
from ..core.constants import MASKED_CPF

_TOKEN = re.compile(r"\{([A-Z_]+)\}")


def build_placeholder_values(
    *,
    patient_name: str,
    professional_name: str,
    clinic_name: str,
    procedure_name: str,
    today: date,
) -> dict[str, str]:
    patient = (patient_name or "").upper()
    when = format_br_date(today)
    return {
        "PACIENTE_NOME": patient,
        "PACIENTE": patient,
        "PACIENTE_CPF": MASKED_CPF,
        "PROFISSIONAL_NOME": (professional_name or "").upper(),
        "CLINICA_NOME": (clinic_name or "").upper(),
        "PROCEDIMENTO": procedure_name or "",
        "DATA_ATUAL": when,
        "DATA": when,
    }


def render_template_content(content: str, values: dict[str, str]) -> str:
    """Replace ``{TOKEN}`` placeholders; unknown tokens are left as written."""

    return _TOKEN.sub(lambda m: values.get(m.group(1), m.group(0)), content or "")
