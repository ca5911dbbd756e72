"""Comment stripping for assembler source lines.

Removes ``;`` and ``//`` line comments and ``/* ... */`` block comments.
Block-comment characters are blanked rather than deleted so the columns of
the remaining text stay valid for location reporting.
"""

from __future__ import annotations

from collections.abc import Iterable


def _is_quote_start(line: str, index: int) -> bool:
    """Return whether the quote at ``index`` opens a string literal.

    An apostrophe directly after an identifier character (``af'``) names a
    shadow register, and a quote without a partner on the line is plain text.
    """
    quote = line[index]
    if quote == "'" and index > 0 and (line[index - 1].isalnum() or line[index - 1] == "_"):
        return False
    return line.find(quote, index + 1) >= 0


def _strip_line(line: str, in_block: bool) -> tuple[str, bool]:
    out: list[str] = []
    index = 0
    length = len(line)
    while index < length:
        if in_block:
            end = line.find("*/", index)
            if end < 0:
                out.append(" " * (length - index))
                index = length
                break
            out.append(" " * (end + 2 - index))
            index = end + 2
            in_block = False
            continue

        ch = line[index]
        if ch in "\"'" and _is_quote_start(line, index):
            close = line.find(ch, index + 1)
            out.append(line[index : close + 1])
            index = close + 1
            continue
        if ch == ";" or line.startswith("//", index):
            break
        if line.startswith("/*", index):
            out.append("  ")
            index += 2
            in_block = True
            continue
        out.append(ch)
        index += 1
    return "".join(out).rstrip(), in_block


def strip_all_comments(lines: Iterable[str]) -> list[str]:
    """Return ``lines`` with all comments removed.

    Stripping is idempotent: applying it to already stripped lines returns
    them unchanged.
    """
    stripped: list[str] = []
    in_block = False
    for line in lines:
        text, in_block = _strip_line(line, in_block)
        stripped.append(text)
    return stripped


def split_source_lines(source: str) -> list[str]:
    """Split document text into lines and strip their comments."""
    return strip_all_comments(source.split("\n"))
