from __future__ import annotations

from typing import Iterable, Optional

from .model import ConsentTemplate


def match_template(procedure_name: str, templates: Iterable[ConsentTemplate]) -> Optional[ConsentTemplate]:
    """Pick the consent template a procedure requires, if any.

    Pass 1: case-insensitive substring match in either direction between the
    procedure name and the template title. Pass 2: any ``procedure_keywords`` entry
    contained in the procedure name. First hit wins, in input order.
    """

    procedure = (procedure_name or "").strip().lower()
    if not procedure:
        return None

    candidates = list(templates)

    for template in candidates:
        title = (template.title or "").strip().lower()
        if title and (title in procedure or procedure in title):
            return template

    for template in candidates:
        for keyword in template.procedure_keywords or ():
            kw = (keyword or "").strip().lower()
            if kw and kw in procedure:
                return template

    return None
