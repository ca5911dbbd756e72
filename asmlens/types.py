from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Position:
    line: int  # 0-based
    column: int  # 0-based


@dataclass(frozen=True)
class Location:
    """Word span in a file; ``start``/``end`` are 0-based columns on ``line``."""

    path: Path
    line: int
    start: int
    end: int


@dataclass(frozen=True)
class SymbolInformation:
    name: str
    location: Location


@dataclass(frozen=True)
class TextEdit:
    location: Location
    new_text: str


@dataclass(frozen=True)
class CodeLens:
    """Reference count shown above a label declaration."""

    location: Location
    references: int


@dataclass(frozen=True)
class HoverText:
    location: Location
    lines: tuple[str, ...]


@dataclass(frozen=True)
class FoldingRange:
    start_line: int
    end_line: int  # inclusive
