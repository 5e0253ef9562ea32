"""Survey title normalisation and ``" (N)"`` de-duplication."""

from __future__ import annotations

import re
from typing import Iterable

UNTITLED_DRAFT = "Untitled draft"

_WS_RE = re.compile(r"\s+")
_SUFFIX_RE = re.compile(r"^(?P<base>.*?) \((?P<n>\d+)\)$")


def normalize_title(title: str) -> str:
    """Case and whitespace insensitive comparison key."""
    return _WS_RE.sub(" ", title).strip().casefold()


def unique_title(candidate: str, existing: Iterable[str]) -> str:
    """Return ``candidate`` or ``"candidate (N)"`` when it collides.

    ``N`` is one more than the highest suffix already in use for the same
    base title, so ``{"Survey", "Survey (1)", "Survey (3)"}`` gives
    ``"Survey (4)"``. A candidate that already carries a suffix is renumbered
    on its base title.
    """
    title = _WS_RE.sub(" ", candidate).strip()
    taken = {normalize_title(t) for t in existing if t}
    if normalize_title(title) not in taken:
        return title

    # "Survey (1)" colliding counts on from "Survey", not from itself.
    own = _SUFFIX_RE.match(title)
    if own:
        title = own.group("base")
    key = normalize_title(title)
    highest = 0
    for other in taken:
        match = _SUFFIX_RE.match(other)
        if match and match.group("base") == key:
            highest = max(highest, int(match.group("n")))
    return f"{title} ({highest + 1})"
