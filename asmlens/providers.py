"""Request handlers mapping engine output to editor-style results.

Every handler takes the ``LensContext`` of the request. It returns ``None``
when no workspace configuration covers the file, when the feature is
disabled, or when the request was cancelled.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Sequence
from pathlib import Path

from . import regexes
from .config import LensConfig, LensContext
from .files import collect_files
from .fuzzy import rank_names
from .highlight import read_text
from .languages import ASM_COLLECTION
from .reduction import ReductionResult, ScopeCache, label_at, reduce_locations
from .search import (
    GrepLocation,
    SearchCancelled,
    ShouldCancel,
    SourceDocument,
    grep,
    grep_documents,
    load_document,
    read_documents,
)
from .symbols import DocumentSymbol, scan_lines, walk_symbols
from .types import CodeLens, FoldingRange, HoverText, Location, Position, SymbolInformation, TextEdit

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_]\w*$")
_ANY_WORD_RE = re.compile(r"(?<![\w$])(?P<word>[A-Za-z_]\w*)(?!\w)")
_PREFIX_RE = re.compile(r"[\w.@]*$")


def _load(path: Path) -> SourceDocument | None:
    try:
        return load_document(path)
    except OSError as exc:
        logger.debug("cannot read %s: %s", path, exc)
        return None


def _label_regex(config: LensConfig, language: str) -> re.Pattern[str]:
    return regexes.regex_label(
        language,
        with_colons=config.labels_with_colons,
        without_colons=config.labels_without_colons,
    )


def _declaration_patterns(config: LensConfig, word: str, language: str) -> list[re.Pattern[str]]:
    """Label, MODULE/STRUCT, MACRO and CA65 declarations of ``word``."""
    patterns = regexes.regexes_label_for_word(
        word,
        language,
        with_colons=config.labels_with_colons,
        without_colons=config.labels_without_colons,
    )
    patterns.append(regexes.regex_module_for_word(word, language))
    patterns.append(regexes.regex_macro_for_word(word, language))
    patterns.append(regexes.regex_ca65_directive_for_word(word, language))
    return patterns


def _grep_config(
    config: LensConfig,
    patterns: Sequence[re.Pattern[str]],
    should_cancel: ShouldCancel | None,
) -> list[GrepLocation]:
    return grep(
        patterns,
        [config.root],
        config.include_files,
        config.exclude_files,
        skip_gitignored=config.skip_gitignored,
        should_cancel=should_cancel,
    )


def document_symbols(context: LensContext, path: Path) -> list[DocumentSymbol] | None:
    """Outline of one document."""
    config = context.config_for_path(path)
    if config is None or not config.enable_outline_view:
        return None
    document = _load(path)
    if document is None:
        return None
    return scan_lines(document.lines, config.scanner_options(document.language))


def _references(
    config: LensConfig,
    origin: SourceDocument,
    position: Position,
    include_declaration: bool,
    should_cancel: ShouldCancel | None,
) -> list[Location] | None:
    if not 0 <= position.line < len(origin.lines):
        return []
    at_cursor = label_at(origin.lines[position.line], position.column)
    if at_cursor is None or config.is_excluded(at_cursor.label) or config.is_excluded(at_cursor.word):
        return []
    try:
        candidates = _grep_config(config, [regexes.regex_any_reference_for_word(at_cursor.word)], should_cancel)
    except SearchCancelled:
        logger.debug("reference search for %s cancelled", at_cursor.label)
        return None
    reduced = reduce_locations(
        _label_regex(config, origin.language),
        candidates,
        origin,
        position,
        include_declaration=include_declaration,
        unique_only=False,
    )
    return list(reduced.locations)


def find_references(
    context: LensContext,
    path: Path,
    position: Position,
    *,
    include_declaration: bool = False,
    should_cancel: ShouldCancel | None = None,
) -> list[Location] | None:
    """Every reference to the label under ``position``."""
    config = context.config_for_path(path)
    if config is None or not config.enable_find_all_references:
        return None
    origin = _load(path)
    if origin is None:
        return None
    return _references(config, origin, position, include_declaration, should_cancel)


def find_definition(
    context: LensContext,
    path: Path,
    position: Position,
    *,
    should_cancel: ShouldCancel | None = None,
) -> ReductionResult | None:
    """The declaration of the label under ``position``.

    ``locations`` holds at most one entry; equally good other declarations are
    listed in ``ambiguous``.
    """
    config = context.config_for_path(path)
    if config is None or not config.enable_goto_definition:
        return None
    origin = _load(path)
    if origin is None or not 0 <= position.line < len(origin.lines):
        return None
    at_cursor = label_at(origin.lines[position.line], position.column)
    if at_cursor is None or config.is_excluded(at_cursor.label):
        return ReductionResult()

    patterns = _declaration_patterns(config, regexes.exact_word(at_cursor.word), origin.language)
    try:
        candidates = _grep_config(config, patterns, should_cancel)
    except SearchCancelled:
        return None
    return reduce_locations(
        _label_regex(config, origin.language),
        candidates,
        origin,
        position,
        include_declaration=True,
        unique_only=True,
    )


def complete(
    context: LensContext,
    path: Path,
    position: Position,
    *,
    should_cancel: ShouldCancel | None = None,
) -> list[str] | None:
    """Label, module and macro names fuzzy-matching the word left of the cursor."""
    config = context.config_for_path(path)
    if config is None or not config.enable_completions:
        return None
    origin = _load(path)
    if origin is None or not 0 <= position.line < len(origin.lines):
        return None

    typed = _PREFIX_RE.search(origin.lines[position.line][: position.column])
    query = typed.group(0).split(".")[-1].lstrip("@") if typed else ""
    if len(query) < config.completions_required_length:
        return []

    patterns = _declaration_patterns(config, regexes.prepare_fuzzy(query), origin.language)
    try:
        locations = _grep_config(config, patterns, should_cancel)
    except SearchCancelled:
        return None

    names: list[str] = []
    seen: set[str] = set()
    for location in locations:
        name = location.symbol
        if not name or name in seen or config.is_excluded(name):
            continue
        if location.path == origin.path and location.line == position.line:
            continue
        seen.add(name)
        names.append(name)
    return rank_names(query, names)


def workspace_symbols(
    context: LensContext,
    query: str,
    *,
    should_cancel: ShouldCancel | None = None,
) -> list[SymbolInformation]:
    """Declarations in all workspace roots whose name fuzzy-matches ``query``.

    A file under nested roots is reported for its innermost root only.
    Cancellation stops at the current root; symbols from finished roots are
    kept.
    """
    symbols: list[SymbolInformation] = []
    fuzzy = regexes.prepare_fuzzy(query)
    for config in context.configs:
        if should_cancel is not None and should_cancel():
            break
        if not config.enable_workspace_symbols:
            continue
        if len(query) < config.workspace_symbols_required_length:
            continue

        patterns = _declaration_patterns(config, fuzzy, ASM_COLLECTION)
        try:
            locations = _grep_config(config, patterns, should_cancel)
        except SearchCancelled:
            logger.debug("workspace symbol search cancelled in %s", config.root)
            break
        for location in locations:
            if config.is_excluded(location.symbol):
                continue
            owner = context.config_for_path(location.path)
            if owner is not None and owner.root != config.root:
                continue
            symbols.append(
                SymbolInformation(
                    name=location.symbol,
                    location=Location(location.path, location.line, location.start, location.end),
                )
            )
    return symbols


def rename(
    context: LensContext,
    path: Path,
    position: Position,
    new_name: str,
    *,
    should_cancel: ShouldCancel | None = None,
) -> dict[Path, list[TextEdit]] | None:
    """Edits replacing the label segment under ``position`` everywhere.

    Raises ``ValueError`` when ``new_name`` is not a plain identifier.
    """
    if not _IDENTIFIER_RE.match(new_name):
        raise ValueError(f"invalid label name: {new_name!r}")
    config = context.config_for_path(path)
    if config is None or not config.enable_rename:
        return None
    origin = _load(path)
    if origin is None:
        return None
    locations = _references(config, origin, position, True, should_cancel)
    if locations is None:
        return None

    edits: dict[Path, list[TextEdit]] = defaultdict(list)
    for location in locations:
        edits[location.path].append(TextEdit(location=location, new_text=new_name))
    return dict(edits)


def _declarations(config: LensConfig, document: SourceDocument) -> list[tuple[str, Position]]:
    """Label declarations of ``document`` with the column of their last segment."""
    label_regex = _label_regex(config, document.language)
    found: list[tuple[str, Position]] = []
    for line_nr, text in enumerate(document.lines):
        match = label_regex.match(text)
        if match is None:
            continue
        label = match.group("label")
        at_cursor = label_at(text, match.end("label") - 1)
        if at_cursor is None or config.is_excluded(label):
            continue
        found.append((label, Position(line_nr, at_cursor.start)))
    return found


def _workspace_words(
    config: LensConfig,
    should_cancel: ShouldCancel | None,
) -> tuple[list[SourceDocument], dict[str, list[GrepLocation]]]:
    """Documents of ``config``'s root and every identifier in them, keyed by folded word."""
    files = collect_files(
        config.root,
        config.include_files,
        config.exclude_files,
        skip_gitignored=config.skip_gitignored,
    )
    documents = read_documents(files, should_cancel)
    words: dict[str, list[GrepLocation]] = defaultdict(list)
    for location in grep_documents([_ANY_WORD_RE], documents, should_cancel):
        words[location.symbol.casefold()].append(location)
    return documents, words


def _reference_counts(
    config: LensConfig,
    document: SourceDocument,
    words: dict[str, list[GrepLocation]],
    scope_cache: ScopeCache,
) -> list[tuple[str, Location, int]]:
    """Each label declared in ``document`` with the number of its references."""
    label_regex = _label_regex(config, document.language)
    counted: list[tuple[str, Location, int]] = []
    for label, position in _declarations(config, document):
        at_cursor = label_at(document.lines[position.line], position.column)
        if at_cursor is None:
            continue
        reduced = reduce_locations(
            label_regex,
            words.get(at_cursor.word.casefold(), []),
            document,
            position,
            include_declaration=False,
            scope_cache=scope_cache,
        )
        location = Location(document.path, position.line, at_cursor.start, at_cursor.end)
        counted.append((label, location, len(reduced.locations)))
    return counted


def labels_with_no_reference(
    context: LensContext,
    *,
    should_cancel: ShouldCancel | None = None,
) -> list[SymbolInformation] | None:
    """Label declarations that nothing in their workspace refers to."""
    unreferenced: list[SymbolInformation] = []
    try:
        for config in context.configs:
            documents, words = _workspace_words(config, should_cancel)
            scope_cache = ScopeCache()
            for document in documents:
                if should_cancel is not None and should_cancel():
                    raise SearchCancelled()
                for label, location, count in _reference_counts(config, document, words, scope_cache):
                    if not count:
                        unreferenced.append(SymbolInformation(name=label, location=location))
    except SearchCancelled:
        return None
    return unreferenced


def code_lenses(
    context: LensContext,
    path: Path,
    *,
    should_cancel: ShouldCancel | None = None,
) -> list[CodeLens] | None:
    """Reference count of every label declared in ``path``."""
    config = context.config_for_path(path)
    if config is None or not config.enable_code_lenses:
        return None
    document = _load(path)
    if document is None:
        return None
    try:
        documents, words = _workspace_words(config, should_cancel)
    except SearchCancelled:
        return None
    if all(other.path != document.path for other in documents):
        # Files outside the include globs still count their own uses.
        for location in grep_documents([_ANY_WORD_RE], [document]):
            words[location.symbol.casefold()].append(location)
    return [
        CodeLens(location=location, references=count)
        for _label, location, count in _reference_counts(config, document, words, ScopeCache())
    ]


def _comment_block(lines: Sequence[str], line_nr: int) -> tuple[str, ...]:
    """The declaration line with the comment-only lines directly above it."""
    start = line_nr
    while start > 0 and lines[start - 1].lstrip().startswith((";", "//")):
        start -= 1
    return tuple(line.rstrip() for line in lines[start : line_nr + 1])


def hover(
    context: LensContext,
    path: Path,
    position: Position,
    *,
    should_cancel: ShouldCancel | None = None,
) -> list[HoverText] | None:
    """Declarations of the label under ``position`` with their leading comments."""
    config = context.config_for_path(path)
    if config is None or not config.enable_hovering:
        return None
    origin = _load(path)
    if origin is None or not 0 <= position.line < len(origin.lines):
        return None
    at_cursor = label_at(origin.lines[position.line], position.column)
    if at_cursor is None or config.is_excluded(at_cursor.label):
        return []

    patterns = _declaration_patterns(config, regexes.exact_word(at_cursor.word), origin.language)
    try:
        candidates = _grep_config(config, patterns, should_cancel)
    except SearchCancelled:
        return None
    reduced = reduce_locations(_label_regex(config, origin.language), candidates, origin, position)

    texts: list[HoverText] = []
    raw_lines: dict[Path, list[str]] = {}
    for location in reduced.locations:
        if location.path not in raw_lines:
            try:
                raw_lines[location.path] = read_text(location.path).split("\n")
            except OSError as exc:
                logger.debug("cannot read %s: %s", location.path, exc)
                raw_lines[location.path] = []
        lines = raw_lines[location.path]
        if location.line < len(lines):
            texts.append(HoverText(location=location, lines=_comment_block(lines, location.line)))
    return texts


def folding_ranges(context: LensContext, path: Path) -> list[FoldingRange] | None:
    """One range from each absolute label to the line before the next one.

    Trailing blank lines stay outside the range. Listing files have no ranges.
    """
    config = context.config_for_path(path)
    if config is None:
        return None
    document = _load(path)
    if document is None:
        return None
    if document.language != ASM_COLLECTION:
        return []

    outline = scan_lines(document.lines, config.scanner_options(document.language))
    starts = sorted(
        {symbol.line for symbol in walk_symbols(outline) if not symbol.name.startswith((".", "@"))}
    )
    ranges: list[FoldingRange] = []
    for index, start in enumerate(starts):
        end = starts[index + 1] - 1 if index + 1 < len(starts) else len(document.lines) - 1
        while end > start and not document.lines[end].strip():
            end -= 1
        if end > start:
            ranges.append(FoldingRange(start_line=start, end_line=end))
    return ranges
