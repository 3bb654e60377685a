"""Query splitter — one pasted block of text into candidate utterances.

Deterministic — no LLM calls. Candidates keep their top-to-bottom order.
"""

import re

from src.models.errors import EmptyInputError

MIN_CANDIDATE_LENGTH = 4
COMMENT_MARKER = "#"

_SIMPLE_SEPARATOR_RE = re.compile(r"\n+")
# Three or more dots/newlines ("...", "\n\n\n", ".\n."), or any newline run.
_STRICT_SEPARATOR_RE = re.compile(r"[\n.]{3,}|\n+")
# Leading enumeration: "1. ", "12) ".
_ENUMERATION_RE = re.compile(r"^\d+[.)]\s*")


def split_queries(text: str, *, strict: bool = True) -> list[str]:
    """Partition ``text`` into candidate utterances.

    Candidates are trimmed; those shorter than MIN_CANDIDATE_LENGTH or
    starting with COMMENT_MARKER are dropped. Strict mode also splits on
    ellipses and strips enumeration prefixes.

    Raises EmptyInputError when nothing survives.
    """
    separator = _STRICT_SEPARATOR_RE if strict else _SIMPLE_SEPARATOR_RE
    candidates: list[str] = []
    for piece in separator.split(text or ""):
        candidate = piece.strip()
        if strict:
            candidate = _ENUMERATION_RE.sub("", candidate).strip()
        if len(candidate) < MIN_CANDIDATE_LENGTH:
            continue
        if candidate.startswith(COMMENT_MARKER):
            continue
        candidates.append(candidate)

    if not candidates:
        raise EmptyInputError()
    return candidates
