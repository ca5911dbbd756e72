"""Reduction of raw text matches to real label references.

A regex hit only says that a word occurs. Each candidate's complete label is
rebuilt from its line, qualified with the enclosing MODULE/STRUCT names and,
for ``.local``/``@cheap`` labels, with the nearest preceding absolute label.
A candidate survives when one of its qualified names equals one of the
origin's.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from . import regexes
from .search import GrepLocation, SourceDocument
from .types import Location, Position

logger = logging.getLogger(__name__)

DEFAULT_WORD_BOUNDARY = r"\w"


@dataclass(frozen=True)
class ReductionResult:
    locations: tuple[Location, ...] = ()
    ambiguous: tuple[Location, ...] = ()


@dataclass(frozen=True)
class LabelAtCursor:
    label: str
    word: str
    start: int
    end: int


def _is_label_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_.@"


def _token_start(line: str, index: int) -> int:
    while index > 0 and _is_label_char(line[index - 1]):
        index -= 1
    return index


def label_at(line: str, column: int, word_boundary: str = DEFAULT_WORD_BOUNDARY) -> LabelAtCursor | None:
    """Return the label under ``column``, cut after the dot segment under it.

    With the cursor on ``main`` in ``main.loop`` the label is ``main``; on
    ``loop`` it is ``main.loop``. ``word`` is the bare last segment used for
    text search.
    """
    if column >= len(line) or not _is_label_char(line[column]):
        if 0 < column <= len(line) and _is_label_char(line[column - 1]):
            column -= 1
        else:
            return None

    boundary = re.compile(word_boundary)
    start = _token_start(line, column)
    end = column
    while end < len(line) and line[end] in ".@":
        end += 1
    while end < len(line) and boundary.match(line[end]):
        end += 1

    label = line[start:end]
    word = re.split(r"[.]", label)[-1].lstrip("@")
    if not word or not (word[0].isalpha() or word[0] == "_"):
        return None
    return LabelAtCursor(label=label, word=word, start=end - len(word), end=end)


class _DocumentScopes:
    """Module prefix and absolute-label parent in effect at every line."""

    def __init__(self, document: SourceDocument, label_regex: re.Pattern[str]) -> None:
        module_regex = regexes.regex_module_label(document.language)
        struct_regex = regexes.regex_struct_label(document.language)
        self.prefixes: list[str] = []
        self.parents: list[str | None] = []

        stack: list[str] = []
        parent: str | None = None
        for text in document.lines:
            self.prefixes.append(".".join(stack))
            match = label_regex.match(text)
            if match is not None and not match.group("label").startswith((".", "@")):
                parent = match.group("label").casefold()
                text = text[match.end() :] + " "
            scope = module_regex.match(text) or struct_regex.match(text)
            if scope is not None:
                keyword = scope.group("keyword").lower()
                if keyword in ("endmodule", "ends"):
                    if stack:
                        stack.pop()
                    parent = None
                elif scope.group("name"):
                    stack.append(scope.group("name").casefold())
            self.parents.append(parent)


class ScopeCache:
    """Scope tables of unchanged documents, shared between reductions.

    Tables depend on the label pattern, so they are keyed by path and pattern.
    """

    def __init__(self) -> None:
        self._tables: dict[tuple[Path, str], _DocumentScopes] = {}

    def __len__(self) -> int:
        return len(self._tables)

    def get(self, document: SourceDocument, label_regex: re.Pattern[str]) -> _DocumentScopes:
        key = (document.path, label_regex.pattern)
        scopes = self._tables.get(key)
        if scopes is None:
            scopes = _DocumentScopes(document, label_regex)
            self._tables[key] = scopes
        return scopes


@dataclass(frozen=True)
class _Qualified:
    names: frozenset[str]
    primary: str


def _qualify(scopes: _DocumentScopes, line_nr: int, label: str) -> _Qualified:
    name = label.casefold()
    if name.startswith((".", "@")):
        name = (scopes.parents[line_nr] or "") + name
    prefix = scopes.prefixes[line_nr]
    if not prefix:
        return _Qualified(frozenset({name}), name)
    primary = f"{prefix}.{name}"
    return _Qualified(frozenset({name, primary}), primary)


def _to_location(candidate: GrepLocation) -> Location:
    return Location(path=candidate.path, line=candidate.line, start=candidate.start, end=candidate.end)


def _is_declaration(label_regex: re.Pattern[str], text: str, start: int, end: int) -> bool:
    match = label_regex.match(text)
    if match is None:
        return False
    return match.start("label") <= start and match.end("label") == end


def reduce_locations(
    label_regex: re.Pattern[str],
    locations: Sequence[GrepLocation],
    origin: SourceDocument,
    position: Position,
    *,
    include_declaration: bool = True,
    unique_only: bool = False,
    word_boundary: str = DEFAULT_WORD_BOUNDARY,
    scope_cache: ScopeCache | None = None,
) -> ReductionResult:
    """Keep the candidates that really refer to the label at ``position``.

    With ``include_declaration`` false the origin itself and any label
    declaration are dropped. With ``unique_only`` the single best candidate is
    returned: same qualified name first, then same file, then closest line,
    then file-then-line order. Candidates tied with the best are returned as
    ``ambiguous``. Pass one ``scope_cache`` to several calls over the same
    documents to build each scope table once.
    """
    if not 0 <= position.line < len(origin.lines):
        return ReductionResult()
    at_cursor = label_at(origin.lines[position.line], position.column, word_boundary)
    if at_cursor is None:
        return ReductionResult()

    boundary = re.compile(word_boundary)
    if scope_cache is None:
        scope_cache = ScopeCache()

    origin_name = _qualify(scope_cache.get(origin, label_regex), position.line, at_cursor.label)

    kept: list[tuple[GrepLocation, _Qualified]] = []
    seen: set[tuple[Path, int, int]] = set()
    for candidate in locations:
        document = candidate.document
        if document is None:
            continue
        key = (candidate.path, candidate.line, candidate.start)
        if key in seen:
            continue
        text = document.lines[candidate.line]
        if candidate.start > 0 and boundary.match(text[candidate.start - 1]):
            continue
        if candidate.end < len(text) and boundary.match(text[candidate.end]):
            continue
        is_origin = (
            candidate.path == origin.path
            and candidate.line == position.line
            and candidate.start == at_cursor.start
        )
        if not include_declaration:
            if is_origin or _is_declaration(label_regex, text, candidate.start, candidate.end):
                continue
        label = text[_token_start(text, candidate.start) : candidate.end]
        qualified = _qualify(scope_cache.get(document, label_regex), candidate.line, label)
        if not (qualified.names & origin_name.names):
            continue
        seen.add(key)
        kept.append((candidate, qualified))

    if not unique_only or len(kept) <= 1:
        return ReductionResult(locations=tuple(_to_location(candidate) for candidate, _q in kept))

    def rank(item: tuple[int, tuple[GrepLocation, _Qualified]]) -> tuple[int, int, int]:
        _order, (candidate, qualified) = item
        scope = 0 if qualified.primary == origin_name.primary else 1
        if candidate.path == origin.path:
            return (scope, 0, abs(candidate.line - position.line))
        return (scope, 1, 0)

    ordered = sorted(enumerate(kept), key=lambda item: (rank(item), item[0]))
    best_rank = rank(ordered[0])
    best = _to_location(ordered[0][1][0])
    ties = tuple(_to_location(item[1][0]) for item in ordered[1:] if rank(item) == best_rank)
    if ties:
        logger.debug("%s resolves to %d equally ranked locations", at_cursor.label, len(ties) + 1)
    return ReductionResult(locations=(best,), ambiguous=ties)
