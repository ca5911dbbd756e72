"""Assembly dialect ids and file-suffix mapping.

Two dialects are understood: plain assembler source and assembler-generated
listing files whose lines carry address/byte columns before the source text.
"""

from __future__ import annotations

from pathlib import Path

ASM_COLLECTION = "asm-collection"
ASM_LIST_FILE = "asm-list-file"

LANGUAGE_BY_SUFFIX: dict[str, str] = {
    ".list": ASM_LIST_FILE,
    ".lis": ASM_LIST_FILE,
    ".lst": ASM_LIST_FILE,
}


def language_for_path(path: Path) -> str:
    """Map file suffix to dialect id; unknown suffixes are assembler source."""
    return LANGUAGE_BY_SUFFIX.get(path.suffix.lower(), ASM_COLLECTION)
