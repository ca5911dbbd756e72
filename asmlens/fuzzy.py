"""Fuzzy scoring for ranking completion and workspace-symbol results.

Filtering is done by the fuzzy regexes; this module only orders what they
matched, preferring contiguous runs and segment starts.
"""

from __future__ import annotations

from collections.abc import Iterable

SEGMENT_SEPARATORS = "._@ "

HIT = 16
STREAK_STEP = 15
STREAK_CAP = 40
GAP_STEP = 3
GAP_CAP = 30
SEGMENT_START = 30
CAMEL_HUMP = 20


def _boundary_bonuses(name: str) -> list[int]:
    """Bonus for a query hit at each index of ``name``."""
    bonuses = []
    previous = ""
    for ch in name:
        if not previous or previous in SEGMENT_SEPARATORS:
            bonuses.append(SEGMENT_START)
        elif ch.isupper() and previous.islower():
            bonuses.append(CAMEL_HUMP)
        else:
            bonuses.append(0)
        previous = ch
    return bonuses


def fuzzy_score(query: str, candidate: str) -> int | None:
    """Score ``candidate`` for ``query``; ``None`` when not a subsequence."""
    if not query:
        return 0
    haystack = candidate.casefold()
    bonuses = _boundary_bonuses(candidate)

    total = -(len(candidate) // 4)
    last = -1
    streak = 0
    for ch in query.casefold():
        hit = haystack.find(ch, last + 1)
        if hit < 0:
            return None
        skipped = hit - last - 1
        if skipped:
            streak = 0
            total -= min(GAP_CAP, skipped * GAP_STEP)
        else:
            streak += 1
            total += min(STREAK_CAP, streak * STREAK_STEP)
        total += HIT + (bonuses[hit] if hit < len(bonuses) else 0)
        last = hit
    return total


def rank_names(query: str, names: Iterable[str]) -> list[str]:
    """Order ``names`` by descending score, then length, then text.

    Names that do not score (not a subsequence) keep their place after the
    scored ones in input order.
    """
    scored: list[tuple[int, int, str]] = []
    unscored: list[str] = []
    for name in names:
        score = fuzzy_score(query, name)
        if score is None:
            unscored.append(name)
        else:
            scored.append((-score, len(name), name))
    return [name for _score, _length, name in sorted(scored)] + unscored
