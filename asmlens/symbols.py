"""Symbol-outline extraction for assembler source.

A single pass over comment-stripped lines with a scope stack for
MODULE/STRUCT and CA65 blocks. Labels are classified as code, constant or
data by looking at the operand that follows them.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from . import regexes
from .languages import ASM_COLLECTION

FUNCTION = "function"
CONSTANT = "constant"
FIELD = "field"
METHOD = "method"
MODULE = "module"
STRUCT = "struct"

SCOPE_MODULE = "module"
SCOPE_STRUCT = "struct"
SCOPE_CA65 = "ca65-block"

DEFAULT_LABELS_EXCLUDES = ("include",)


@dataclass
class DocumentSymbol:
    """Outline node; ``kind`` and ``detail`` may be refined by later lines."""

    name: str
    kind: str
    line: int
    column: int
    detail: str = ""
    children: list[DocumentSymbol] = field(default_factory=list)


@dataclass(frozen=True)
class ScopeFrame:
    name: str
    kind: str
    symbol: DocumentSymbol | None


@dataclass
class ScannerOptions:
    language: str = ASM_COLLECTION
    labels_with_colons: bool = True
    labels_without_colons: bool = True
    nest_cheap_local_labels: bool = False
    labels_excludes: tuple[str, ...] = DEFAULT_LABELS_EXCLUDES


class OutlineScanner:
    """Line-by-line state machine producing a hierarchical symbol tree.

    Per line, in order: label detection, CA65 block directive, MACRO,
    MODULE/STRUCT (or their END keyword), data/constant classification.
    The categorical steps are exclusive: the first one that matches ends the
    line.
    """

    def __init__(self, options: ScannerOptions | None = None) -> None:
        self.options = options or ScannerOptions()
        language = self.options.language
        self._regex_label = regexes.regex_label(
            language,
            with_colons=self.options.labels_with_colons,
            without_colons=self.options.labels_without_colons,
        )
        self._regex_module = regexes.regex_module_label(language)
        self._regex_struct = regexes.regex_struct_label(language)
        self._regex_macro = regexes.regex_macro(language)
        self._regex_macro_after_label = regexes.regex_macro_after_label()
        self._regex_ca65 = regexes.regex_all_ca65_directives(language)
        self._regex_ca65_end = regexes.regex_ca65_block_end(language)
        self._regex_const = regexes.regex_const()
        self._regex_data = regexes.regex_data()
        self._excludes = frozenset(
            label.casefold() for label in (*self.options.labels_excludes, *DEFAULT_LABELS_EXCLUDES)
        )

        self.symbols: list[DocumentSymbol] = []
        self.scopes: list[ScopeFrame] = []
        self.pending: list[DocumentSymbol] = []
        self.relative_parent: DocumentSymbol | None = None
        self.default_kind = FUNCTION

    @property
    def depth(self) -> int:
        return len(self.scopes)

    def _container(self) -> list[DocumentSymbol]:
        for frame in reversed(self.scopes):
            if frame.symbol is not None:
                return frame.symbol.children
        return self.symbols

    def _pop_scope(self) -> None:
        if self.scopes:
            self.scopes.pop()
        self.relative_parent = None

    def _label(self, line_nr: int, text: str) -> tuple[str, bool]:
        """Emit a label if present; return remaining text and whether the line is done."""
        match = self._regex_label.match(text)
        if match is None:
            return text, False
        label = match.group("label")
        if label.casefold() in self._excludes:
            return text, False

        rest = text[match.end() :] + " "
        column = match.start("label")
        if self._regex_macro_after_label.match(rest):
            self.symbols.append(DocumentSymbol(label, METHOD, line_nr, column))
            self.pending = []
            return rest, True

        symbol = DocumentSymbol(label, self.default_kind, line_nr, column)
        if label.startswith("."):
            parent = self.relative_parent.children if self.relative_parent else self._container()
            parent.append(symbol)
            self.pending.append(symbol)
        elif label.startswith("@"):
            if self.options.nest_cheap_local_labels:
                self._container().append(symbol)
            else:
                self.symbols.append(symbol)
            self.pending.append(symbol)
        else:
            self._container().append(symbol)
            self.relative_parent = symbol
            self.pending = [symbol]
        return rest, False

    def _ca65(self, line_nr: int, text: str) -> bool:
        match = self._regex_ca65.match(text)
        if match is not None:
            directive = match.group("directive").lower()
            name = match.group("name")
            symbol = None
            if name:
                symbol = DocumentSymbol(name, METHOD, line_nr, match.start("name"))
                self._container().append(symbol)
            if directive not in regexes.CA65_NON_BLOCK_DIRECTIVES:
                # Anonymous blocks still need a frame for their closer to pop.
                self.scopes.append(ScopeFrame(name or "", SCOPE_CA65, symbol))
            return True
        if self._regex_ca65_end.match(text) is not None:
            self._pop_scope()
            return True
        return False

    def _macro(self, line_nr: int, text: str) -> bool:
        match = self._regex_macro.match(text)
        if match is None:
            return False
        self.symbols.append(DocumentSymbol(match.group("name"), METHOD, line_nr, match.start("name")))
        return True

    def _module(self, line_nr: int, text: str) -> bool:
        match = self._regex_module.match(text) or self._regex_struct.match(text)
        if match is None:
            return False
        keyword = match.group("keyword").lower()
        if keyword in ("endmodule", "ends"):
            self._pop_scope()
            return True
        name = match.group("name")
        if name:
            kind = MODULE if keyword == "module" else STRUCT
            symbol = DocumentSymbol(name, kind, line_nr, match.start("name"))
            self._container().append(symbol)
            self.scopes.append(
                ScopeFrame(name, SCOPE_MODULE if kind == MODULE else SCOPE_STRUCT, symbol)
            )
        return True

    def _classify(self, text: str) -> None:
        stripped = text.strip()
        if not stripped:
            self.default_kind = FUNCTION
            return
        if not self.pending:
            return

        kind = None
        match = self._regex_const.match(stripped)
        if match is not None:
            kind = CONSTANT
        else:
            match = self._regex_data.match(stripped)
            if match is not None:
                kind = FIELD

        if kind is None or match is None:
            for symbol in self.pending:
                symbol.kind = FUNCTION
        else:
            detail = f"{match.group('keyword')} {match.group('value').rstrip()}".rstrip()
            for symbol in self.pending:
                symbol.kind = kind
                symbol.detail = detail
            self.default_kind = kind
        self.pending = []

    def feed(self, line_nr: int, text: str) -> None:
        """Process one comment-stripped line."""
        text, done = self._label(line_nr, text)
        if done:
            return
        if self._ca65(line_nr, text) or self._macro(line_nr, text) or self._module(line_nr, text):
            self.pending = []
            return
        self._classify(text)


def scan_lines(lines: Iterable[str], options: ScannerOptions | None = None) -> list[DocumentSymbol]:
    """Build the outline tree for comment-stripped ``lines``."""
    scanner = OutlineScanner(options)
    for line_nr, text in enumerate(lines):
        scanner.feed(line_nr, text)
    return scanner.symbols


def walk_symbols(symbols: Iterable[DocumentSymbol]) -> Iterable[DocumentSymbol]:
    """Depth-first iteration over an outline tree."""
    for symbol in symbols:
        yield symbol
        yield from walk_symbols(symbol.children)
