"""Regular-expression grammar for assembler labels and directives.

Every factory here is pure: the same arguments always give an equivalent
pattern, and all patterns match case-insensitively.

Search patterns (``regex_*_for_word``) share one capture-group contract:
group 1 holds the text before the searched word and the named group ``word``
holds the word itself, so callers can report the word's own column.
"""

from __future__ import annotations

import re

from .languages import ASM_COLLECTION, ASM_LIST_FILE

FLAGS = re.IGNORECASE

FUZZY_GAP = r"[\w.]*"
LABEL = r"[@.]?[A-Za-z_][\w.]*"
CA65_NAME = r"[@A-Za-z_][\w@]*"

SCOPE_KEYWORDS = ("MODULE", "ENDMODULE", "STRUCT", "ENDS", "MACRO", "ENDM", "ENDMACRO")
CA65_BLOCK_DIRECTIVES = (".proc", ".scope", ".macro", ".mac", ".struct", ".union", ".enum")
CA65_NON_BLOCK_DIRECTIVES = (".define",)
CA65_BLOCK_END_DIRECTIVES = (
    ".endproc",
    ".endscope",
    ".endmacro",
    ".endmac",
    ".endstruct",
    ".endunion",
    ".endenum",
)

CA65_CONTROL_DIRECTIVES = (
    ".segment", ".code", ".data", ".rodata", ".bss", ".zeropage", ".pushseg", ".popseg",
    ".export", ".exportzp", ".import", ".importzp", ".global", ".globalzp", ".forceimport",
    ".autoimport", ".include", ".incbin", ".macpack", ".org", ".reloc", ".align",
    ".if", ".ifdef", ".ifndef", ".ifblank", ".ifnblank", ".ifconst", ".ifref", ".ifnref",
    ".elseif", ".else", ".endif", ".repeat", ".endrepeat", ".endrep", ".assert",
    ".error", ".warning", ".fatal", ".out", ".setcpu", ".p02", ".pc02", ".p816", ".feature",
    ".charmap", ".a8", ".a16", ".i8", ".i16", ".smart", ".list", ".listbytes", ".linecont",
    ".debuginfo", ".exitmacro", ".exitmac", ".delmacro", ".delmac", ".undefine", ".undef", ".end",
)

CONST_KEYWORDS = ("EQU", "DEFL", ".set")
DATA_KEYWORDS = (
    "DEFB", "DEFW", "DEFS", "DEFM", "DEFD", "DEFH", "DEFG",
    "DB", "DW", "DS", "DM", "DD", "DH", "DZ", "DC", "DG",
    "BYTE", "WORD", "DWORD", "BLOCK", "ABYTE", "ABYTEC", "ABYTEZ",
    ".byte", ".word", ".dbyt", ".dword", ".res", ".ascii", ".asciiz",
    ".addr", ".faraddr", ".lobytes", ".hibytes", ".bankbytes", ".tag",
)


def _alternation(words: tuple[str, ...]) -> str:
    # Longest first so ".mac" never shadows ".macro".
    ordered = sorted(words, key=len, reverse=True)
    return "|".join(re.escape(word) for word in ordered)


_CA65_OPENERS = _alternation(CA65_BLOCK_DIRECTIVES + CA65_NON_BLOCK_DIRECTIVES)
_CA65_CLOSERS = _alternation(CA65_BLOCK_END_DIRECTIVES)
_RESERVED = _alternation(
    SCOPE_KEYWORDS
    + CA65_BLOCK_DIRECTIVES
    + CA65_NON_BLOCK_DIRECTIVES
    + CA65_BLOCK_END_DIRECTIVES
    + CA65_CONTROL_DIRECTIVES
    + CONST_KEYWORDS
    + DATA_KEYWORDS
)
_NOT_RESERVED = rf"(?!(?:{_RESERVED})(?![\w.]))"
NEVER = re.compile(r"(?!)")


def _line_start(language: str) -> str:
    """Anchor for a directive: first token in source, after any prefix in listings."""
    if language == ASM_LIST_FILE:
        return r"^(?:.*?\s)?\s*"
    return r"^\s*"


# Fuzzy words


def prepare_fuzzy(query: str) -> str:
    """Turn ``query`` into an in-order subsequence pattern.

    ``"snd"`` becomes ``[\\w.]*s[\\w.]*n[\\w.]*d[\\w.]*`` and so matches
    ``SetAndDec``. The empty query matches every identifier.
    """
    return FUZZY_GAP + "".join(re.escape(ch) + FUZZY_GAP for ch in query)


def exact_word(word: str) -> str:
    """Pattern text matching ``word`` literally."""
    return re.escape(word)


# Search patterns (group 1 = text before the word)


def regex_label_colon_for_word(word: str, language: str) -> re.Pattern[str]:
    """Label declared with a trailing colon, the word may be any dot segment.

    Listing lines may carry arbitrary generated text before the label. The
    colon must not be followed by another colon, which rejects ``a::b``.
    """
    if language == ASM_LIST_FILE:
        return re.compile(rf"^(.*)\b(?P<word>{word}):(?:[^:]|$)", FLAGS)
    return re.compile(rf"(^@?[\w.]*|^.*\s@?[\w.]*)\b(?P<word>{word}):(?:[^:]|$)", FLAGS)


def regex_label_without_colon_for_word(word: str) -> re.Pattern[str]:
    """Colon-less label declaration starting at the beginning of the line.

    The lookahead refuses a following colon or identifier characters, which
    separates a declaration from an identifier inside an expression.
    """
    return re.compile(
        rf"^{_NOT_RESERVED}(([^0-9\s][\w.]*)?)\b(?P<word>{word})(?![\w.:])",
        FLAGS,
    )


def regexes_label_for_word(
    word: str,
    language: str,
    *,
    with_colons: bool = True,
    without_colons: bool = True,
) -> list[re.Pattern[str]]:
    """Return the label-declaration patterns enabled for ``language``.

    Colon-less labels only exist in plain source files.
    """
    patterns: list[re.Pattern[str]] = []
    if with_colons:
        patterns.append(regex_label_colon_for_word(word, language))
    if without_colons and language == ASM_COLLECTION:
        patterns.append(regex_label_without_colon_for_word(word))
    return patterns


def regex_module_for_word(word: str, language: str) -> re.Pattern[str]:
    if language == ASM_LIST_FILE:
        return re.compile(rf"^(.*?\s+(MODULE|STRUCT)\s+)(?P<word>{word})(?![\w.])", FLAGS)
    return re.compile(rf"^(\s*(MODULE|STRUCT)\s+)(?P<word>{word})(?![\w.])", FLAGS)


def regex_macro_for_word(word: str, language: str) -> re.Pattern[str]:
    if language == ASM_LIST_FILE:
        return re.compile(rf"^(.*?\s+(MACRO)\s+)(?P<word>{word})(?![\w.])", FLAGS)
    return re.compile(rf"^(\s*(MACRO)\s+)(?P<word>{word})(?![\w.])", FLAGS)


def regex_ca65_directive_for_word(word: str, language: str) -> re.Pattern[str]:
    """CA65 ``.proc``/``.scope``/``.macro``/``.define``-style declaration."""
    if language == ASM_LIST_FILE:
        return re.compile(rf"^(.*?\s+({_CA65_OPENERS})\s+)(?P<word>{word})(?![\w.])", FLAGS)
    return re.compile(rf"^(\s*({_CA65_OPENERS})\s+)(?P<word>{word})(?![\w.])", FLAGS)


def regex_any_reference_for_word(word: str) -> re.Pattern[str]:
    """Every occurrence of ``word`` that is not part of a longer identifier.

    A preceding ``.`` or ``@`` is allowed so qualified uses such as
    ``main.word`` and cheap locals are found; a ``$`` hex prefix is not.
    """
    return re.compile(rf"(?<![\w$])(?P<word>{re.escape(word)})(?!\w)", FLAGS)


# Line-scanner patterns


def regex_label(
    language: str,
    *,
    with_colons: bool = True,
    without_colons: bool = True,
) -> re.Pattern[str]:
    """Label declaration at the start of a line.

    Named groups: ``prefix`` (indentation or listing columns), ``label`` and
    ``colon``. Colon-less labels must start in column 0 and must not be a
    scope keyword, a CA65 directive or a data/constant keyword.
    """
    if language == ASM_LIST_FILE:
        if not with_colons:
            return NEVER
        return re.compile(rf"^(?P<prefix>(?:.*?\s)?)(?P<label>{LABEL})(?P<colon>:)(?!:)", FLAGS)

    branches: list[str] = []
    if without_colons:
        branches.append(rf"(?={_NOT_RESERVED}{LABEL}(?![\w.:]))")
    if with_colons:
        branches.append(rf"(?=\s*{LABEL}::?)")
    if not branches:
        return NEVER
    return re.compile(
        rf"^(?:{'|'.join(branches)})(?P<prefix>\s*)(?P<label>{LABEL})(?P<colon>::?)?",
        FLAGS,
    )


def regex_module_label(language: str) -> re.Pattern[str]:
    """MODULE/ENDMODULE keyword with optional name."""
    return re.compile(
        rf"{_line_start(language)}(?P<keyword>MODULE|ENDMODULE)\b(?:\s+(?P<name>{LABEL}))?",
        FLAGS,
    )


def regex_struct_label(language: str) -> re.Pattern[str]:
    """STRUCT/ENDS keyword with optional name."""
    return re.compile(
        rf"{_line_start(language)}(?P<keyword>STRUCT|ENDS)\b(?:\s+(?P<name>{LABEL}))?",
        FLAGS,
    )


def regex_macro(language: str) -> re.Pattern[str]:
    """``MACRO name`` declaration."""
    return re.compile(rf"{_line_start(language)}(?P<keyword>MACRO)\s+(?P<name>{LABEL})", FLAGS)


def regex_macro_after_label() -> re.Pattern[str]:
    """The rest of a ``name MACRO args`` line once the label was cut off."""
    return re.compile(r"^\s*MACRO\b", FLAGS)


def regex_all_ca65_directives(language: str = ASM_COLLECTION) -> re.Pattern[str]:
    """CA65 scope-opening or defining directive; ``name`` is absent for anonymous blocks."""
    return re.compile(
        rf"{_line_start(language)}(?P<directive>{_CA65_OPENERS})(?![\w.])(?:\s+(?P<name>{CA65_NAME}))?",
        FLAGS,
    )


def regex_ca65_block_end(language: str = ASM_COLLECTION) -> re.Pattern[str]:
    return re.compile(rf"{_line_start(language)}(?P<directive>{_CA65_CLOSERS})(?![\w.])", FLAGS)


def regex_const() -> re.Pattern[str]:
    """Constant definition operand (``EQU 5``, ``= 5``); applied to trimmed text."""
    keywords = _alternation(CONST_KEYWORDS)
    return re.compile(rf"^(?P<keyword>(?:{keywords})(?![\w.])|:=|=)\s*(?P<value>.*)", FLAGS)


def regex_data() -> re.Pattern[str]:
    """Data definition operand (``defb 1,2``, ``.byte 0``); applied to trimmed text."""
    keywords = _alternation(DATA_KEYWORDS)
    return re.compile(rf"^(?P<keyword>(?:{keywords})(?![\w.]))\s*(?P<value>.*)", FLAGS)
