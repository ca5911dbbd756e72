"""Source loading and terminal highlighting of result lines.

Highlighting goes through Pygments; listing files and unknown suffixes are
rendered as plain text.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .languages import ASM_LIST_FILE, language_for_path

DEFAULT_STYLE = "monokai"

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def read_text(path: Path) -> str:
    """Decode a source file: UTF-8 with any byte-order mark dropped, else Latin-1.

    Line endings come back as ``\n``.
    """
    data = path.read_bytes()
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = data.decode("latin-1")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def sanitize_terminal_text(text: str) -> str:
    """Escape terminal control bytes so result lines cannot move the cursor."""
    return _CONTROL_RE.sub(lambda match: f"\\x{ord(match.group(0)):02x}", text)


@lru_cache(maxsize=16)
def _formatter_for_style(style: str) -> TerminalFormatter:
    try:
        get_style_by_name(style)
    except ClassNotFound:
        style = DEFAULT_STYLE
    return TerminalFormatter(style=style)


def _lexer_for_path(path: Path):
    if language_for_path(path) == ASM_LIST_FILE:
        return TextLexer()
    try:
        return get_lexer_for_filename(path.name)
    except ClassNotFound:
        return TextLexer()


def highlight_line(text: str, path: Path, style: str = DEFAULT_STYLE, no_color: bool = False) -> str:
    """Return ``text`` ready for the terminal, colorized unless ``no_color``."""
    clean = sanitize_terminal_text(text.rstrip("\r\n").replace("\t", "    "))
    if no_color or not clean.strip():
        return clean
    rendered = highlight(clean, _lexer_for_path(path), _formatter_for_style(style))
    return rendered.rstrip("\n")
