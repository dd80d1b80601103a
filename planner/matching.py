from __future__ import annotations

import re
from typing import Iterable, Protocol, TypeVar


class _HasInitials(Protocol):
    initials: str


class _HasKeywords(Protocol):
    keywords: tuple[str, ...]


I = TypeVar("I", bound=_HasInitials)
K = TypeVar("K", bound=_HasKeywords)

_BRACKET_PREFIX = re.compile(r"^\[(.*?)\]")


def match_entity_by_initials(summary: str, candidates: Iterable[I]) -> I | None:
    """Abbina un testo a un'entità tramite la sigla.

    Prima il prefisso ``[SIGLA]`` (confronto esatto, senza distinzione di
    maiuscole), poi la prima sigla che compare come parola intera nel testo.
    """
    pool = [c for c in candidates if c.initials and c.initials.strip()]

    bracket = _BRACKET_PREFIX.match(summary)
    if bracket and bracket.group(1):
        token = bracket.group(1).strip().upper()
        for candidate in pool:
            if candidate.initials.strip().upper() == token:
                return candidate

    for candidate in pool:
        pattern = rf"\b{re.escape(candidate.initials.strip())}\b"
        if re.search(pattern, summary, flags=re.IGNORECASE):
            return candidate
    return None


def match_entity_by_keywords(summary: str, candidates: Iterable[K]) -> K | None:
    """Prima entità (in ordine di inserimento) con una parola chiave contenuta nel testo."""
    text = summary.lower()
    for candidate in candidates:
        for keyword in candidate.keywords:
            if keyword and keyword.lower() in text:
                return candidate
    return None
