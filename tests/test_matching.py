from __future__ import annotations

from labdata.models import CampaignCategory, Personnel
from planner.matching import match_entity_by_initials, match_entity_by_keywords


def _make_personnel() -> tuple[Personnel, ...]:
    return (
        Personnel("p-gb", "Giulia Bianchi", initials="GB"),
        Personnel("p-mr", "Mario Rossi", initials="MR"),
        Personnel("p-none", "Senza Sigla", initials=""),
    )


def test_bracket_prefix_wins_over_earlier_candidates() -> None:
    match = match_entity_by_initials("[MR] Ferie con GB", _make_personnel())
    assert match.id == "p-mr"


def test_bracket_prefix_is_case_insensitive() -> None:
    assert match_entity_by_initials("[mr] ferie", _make_personnel()).id == "p-mr"


def test_flexible_whole_word_match() -> None:
    assert match_entity_by_initials("Trasferta MR ufficio", _make_personnel()).id == "p-mr"
    assert match_entity_by_initials("ferie gb", _make_personnel()).id == "p-gb"


def test_initials_must_be_whole_words() -> None:
    assert match_entity_by_initials("MRI di controllo", _make_personnel()) is None


def test_unknown_bracket_falls_back_to_flexible() -> None:
    assert match_entity_by_initials("[ZZ] ferie GB", _make_personnel()).id == "p-gb"


def test_no_match() -> None:
    assert match_entity_by_initials("Riunione generale", _make_personnel()) is None
    assert match_entity_by_initials("[] ferie", _make_personnel()) is None


def test_keywords_first_candidate_wins() -> None:
    categories = (
        CampaignCategory("c-tox", "Tossicologia", keywords=("tossicologia", "tox")),
        CampaignCategory("c-ana", "Analisi", keywords=("analisi",)),
    )
    assert match_entity_by_keywords("Campagna TOX analisi", categories).id == "c-tox"
    assert match_entity_by_keywords("Nuove ANALISI acque", categories).id == "c-ana"
    assert match_entity_by_keywords("Manutenzione", categories) is None
