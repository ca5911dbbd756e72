"""Regex search over workspace files.

Files are read concurrently, then every pattern is applied to every
comment-stripped line. Results keep file-then-line order no matter which read
finished first. Cancellation is cooperative and checked between files and
patterns.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from .comments import split_source_lines
from .files import collect_files
from .highlight import read_text
from .languages import language_for_path

logger = logging.getLogger(__name__)

READ_WORKERS = 8

ShouldCancel = Callable[[], bool]


class SearchCancelled(Exception):
    """Raised when the caller's cancellation callback fires mid-search."""


@dataclass(frozen=True)
class SourceDocument:
    path: Path
    language: str
    lines: tuple[str, ...]


@dataclass(frozen=True)
class GrepLocation:
    """One textual match; ``line``/``start``/``end`` are 0-based."""

    path: Path
    line: int
    start: int
    end: int
    symbol: str
    groups: tuple[str | None, ...] = ()
    document: SourceDocument | None = field(default=None, compare=False, repr=False)

    @property
    def text(self) -> str:
        if self.document is None:
            return ""
        return self.document.lines[self.line]


def _check_cancel(should_cancel: ShouldCancel | None) -> None:
    if should_cancel is not None and should_cancel():
        raise SearchCancelled()


def load_document(path: Path) -> SourceDocument:
    """Read and comment-strip one file; raises ``OSError`` when unreadable."""
    resolved = path.resolve()
    lines = split_source_lines(read_text(resolved))
    return SourceDocument(path=resolved, language=language_for_path(resolved), lines=tuple(lines))


def read_documents(paths: Sequence[Path], should_cancel: ShouldCancel | None = None) -> list[SourceDocument]:
    """Read ``paths`` concurrently; unreadable files are skipped."""

    def read_one(path: Path) -> SourceDocument | None:
        if should_cancel is not None and should_cancel():
            return None
        try:
            return load_document(path)
        except OSError as exc:
            logger.debug("skipping unreadable file %s: %s", path, exc)
            return None

    _check_cancel(should_cancel)
    if not paths:
        return []
    with ThreadPoolExecutor(
        max_workers=min(READ_WORKERS, len(paths)),
        thread_name_prefix="asmlens-read",
    ) as executor:
        loaded = list(executor.map(read_one, paths))
    _check_cancel(should_cancel)
    return [document for document in loaded if document is not None]


def _match_location(document: SourceDocument, line_nr: int, match: re.Match[str]) -> GrepLocation:
    if "word" in match.re.groupindex and match.group("word") is not None:
        start, end = match.span("word")
        symbol = match.group("word")
    else:
        start, end = match.span()
        symbol = match.group(0)
    return GrepLocation(
        path=document.path,
        line=line_nr,
        start=start,
        end=end,
        symbol=symbol,
        groups=match.groups(),
        document=document,
    )


def grep_documents(
    patterns: Sequence[re.Pattern[str]],
    documents: Iterable[SourceDocument],
    should_cancel: ShouldCancel | None = None,
) -> list[GrepLocation]:
    """Apply every pattern to every line; every match becomes a candidate.

    Two patterns hitting the same word are reported once.
    """
    locations: list[GrepLocation] = []
    for document in documents:
        seen: set[tuple[int, int]] = set()
        found: list[GrepLocation] = []
        for pattern in patterns:
            _check_cancel(should_cancel)
            for line_nr, text in enumerate(document.lines):
                for match in pattern.finditer(text):
                    location = _match_location(document, line_nr, match)
                    key = (location.line, location.start)
                    if key in seen:
                        continue
                    seen.add(key)
                    found.append(location)
        found.sort(key=lambda item: (item.line, item.start))
        locations.extend(found)
    return locations


def grep(
    patterns: Sequence[re.Pattern[str]],
    roots: Sequence[Path],
    include: str,
    exclude: str = "",
    *,
    skip_gitignored: bool = False,
    should_cancel: ShouldCancel | None = None,
) -> list[GrepLocation]:
    """Search the files of ``roots`` in order; a file under two roots is read once."""
    files: list[Path] = []
    seen: set[Path] = set()
    for root in roots:
        for path in collect_files(root, include, exclude, skip_gitignored=skip_gitignored):
            if path not in seen:
                seen.add(path)
                files.append(path)
    documents = read_documents(files, should_cancel)
    return grep_documents(patterns, documents, should_cancel)
