from __future__ import annotations

from src.clinic_attendance.clinic_attendance.consents.matcher import match_template
from src.clinic_attendance.clinic_attendance.consents.model import ConsentTemplate


def _t(template_id: str, title: str, *keywords: str) -> ConsentTemplate:
    return ConsentTemplate(template_id=template_id, clinic_id="CL1", title=title, content="", procedure_keywords=keywords)


def test_title_contained_in_procedure_name():
    botox = _t("T1", "Botox", "toxina")
    assert match_template("Aplicação de Botox Facial", [botox]) is botox


def test_keyword_match_when_title_does_not_match():
    botox = _t("T1", "Botox", "toxina")
    assert match_template("Toxina botulínica na testa", [_t("T0", "Peeling"), botox]) is botox


def test_title_pass_runs_before_keyword_pass():
    # T1 would match on keyword, but T2 matches on title and titles are checked first.
    t1 = _t("T1", "Preenchimento", "botox")
    t2 = _t("T2", "Botox")
    assert match_template("Botox Facial", [t1, t2]) is t2


def test_procedure_contained_in_title():
    full = _t("T1", "Botox Facial Completo")
    assert match_template("botox", [full]) is full


def test_first_match_wins_in_input_order():
    a = _t("A", "Botox")
    b = _t("B", "Botox")
    assert match_template("Botox", [a, b]) is a


def test_blank_procedure_and_blank_keywords_never_match():
    t = _t("T1", "", "", "  ")
    assert match_template("", [t]) is None
    assert match_template("   ", [_t("T2", "Botox")]) is None
    assert match_template("Limpeza de pele", [t]) is None


def test_no_templates_returns_none():
    assert match_template("Botox", []) is None
