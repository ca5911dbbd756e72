"""Command-line front door for asmlens.

Builds a request context for the workspace roots, runs one query and prints
``path:line:column: text`` rows. Lines and columns are 1-based on the command
line and in the output.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path

from . import providers
from .config import LensContext, build_context
from .files import to_project_relative
from .highlight import DEFAULT_STYLE, highlight_line
from .search import SourceDocument, load_document
from .symbols import DocumentSymbol
from .types import FoldingRange, HoverText, Location, Position, SymbolInformation


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _existing_path(value: str) -> Path:
    path = Path(value)
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")
    return path.resolve()


class _Printer:
    """Formats result rows, reading each file's lines at most once."""

    def __init__(self, roots: Sequence[Path], style: str, no_color: bool) -> None:
        self.roots = list(roots)
        self.style = style
        self.no_color = no_color
        self._documents: dict[Path, SourceDocument | None] = {}

    def _label(self, path: Path) -> str:
        for root in self.roots:
            relative = to_project_relative(path, root)
            if relative != path.as_posix():
                return relative
        return path.as_posix()

    def _line_text(self, path: Path, line: int) -> str:
        if path not in self._documents:
            try:
                self._documents[path] = load_document(path)
            except OSError:
                self._documents[path] = None
        document = self._documents[path]
        if document is None or not 0 <= line < len(document.lines):
            return ""
        return document.lines[line].strip()

    def location_row(self, location: Location, text: str | None = None) -> str:
        if text is None:
            text = highlight_line(self._line_text(location.path, location.line), location.path, self.style, self.no_color)
        return f"{self._label(location.path)}:{location.line + 1}:{location.start + 1}: {text}"

    def range_row(self, path: Path, folding: FoldingRange) -> str:
        return f"{self._label(path)}:{folding.start_line + 1}-{folding.end_line + 1}"


def _print_rows(rows: Iterable[str]) -> None:
    for row in rows:
        sys.stdout.write(row + "\n")


def _outline_rows(symbols: Iterable[DocumentSymbol], depth: int = 0) -> Iterable[str]:
    for symbol in symbols:
        detail = f"  {symbol.detail}" if symbol.detail else ""
        yield f"{'  ' * depth}{symbol.kind:8} L{symbol.line + 1:>5}  {symbol.name}{detail}"
        yield from _outline_rows(symbol.children, depth + 1)


def _symbol_rows(printer: _Printer, symbols: Iterable[SymbolInformation]) -> Iterable[str]:
    for symbol in symbols:
        yield printer.location_row(symbol.location, symbol.name)


def _hover_rows(printer: _Printer, texts: Iterable[HoverText]) -> Iterable[str]:
    for text in texts:
        yield printer.location_row(text.location, text.lines[-1].strip())
        for line in text.lines[:-1]:
            yield f"    {line.strip()}"


def _position(args: argparse.Namespace) -> Position:
    return Position(args.line - 1, args.column - 1)


def _context_for(args: argparse.Namespace, path: Path | None = None) -> LensContext:
    roots = [Path(root) for root in (args.root or [])]
    if not roots:
        roots = [path.parent if path is not None and path.is_file() else Path.cwd()]
    return build_context(roots)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asmlens",
        description="Labels, references and outlines for assembler source and listing files.",
    )
    parser.add_argument(
        "--root",
        action="append",
        metavar="DIR",
        help="Workspace root (repeatable). Defaults to the file's directory or the current directory.",
    )
    parser.add_argument("--style", default=DEFAULT_STYLE, help="Pygments style name for highlighted output.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...).")
    commands = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("outline", "Print the symbol outline of a file."),
        ("lenses", "Print the reference count of every label declared in a file."),
        ("folding", "Print the label-to-label folding ranges of a file."),
    ):
        commands.add_parser(name, help=help_text).add_argument("file")

    for name, help_text in (
        ("references", "Find all references to the label at a position."),
        ("definition", "Go to the declaration of the label at a position."),
        ("complete", "Propose label names for the word left of a position."),
        ("hover", "Show the declarations and leading comments of the label at a position."),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("file")
        sub.add_argument("line", type=_positive_int)
        sub.add_argument("column", type=_positive_int)
        if name == "references":
            sub.add_argument("--include-declaration", action="store_true")

    rename = commands.add_parser("rename", help="Show the edits renaming the label at a position.")
    rename.add_argument("file")
    rename.add_argument("line", type=_positive_int)
    rename.add_argument("column", type=_positive_int)
    rename.add_argument("new_name")

    symbols = commands.add_parser("symbols", help="Search declarations across the workspace.")
    symbols.add_argument("query")

    commands.add_parser("unreferenced", help="List labels that are never referenced.")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Parse arguments, run one query and print its result rows."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )
    no_color = args.no_color or not sys.stdout.isatty()

    path = _existing_path(args.file) if hasattr(args, "file") else None
    context = _context_for(args, path)
    printer = _Printer(context.roots, args.style, no_color)

    if args.command == "outline":
        outline = providers.document_symbols(context, path)
        _print_rows(_outline_rows(outline or []))
    elif args.command == "references":
        locations = providers.find_references(
            context, path, _position(args), include_declaration=args.include_declaration
        )
        _print_rows(printer.location_row(location) for location in locations or [])
    elif args.command == "definition":
        result = providers.find_definition(context, path, _position(args))
        if result is not None:
            _print_rows(printer.location_row(location) for location in result.locations)
            for location in result.ambiguous:
                sys.stderr.write(f"also: {printer.location_row(location)}\n")
    elif args.command == "hover":
        _print_rows(_hover_rows(printer, providers.hover(context, path, _position(args)) or []))
    elif args.command == "lenses":
        for lens in providers.code_lenses(context, path) or []:
            plural = "" if lens.references == 1 else "s"
            _print_rows([printer.location_row(lens.location, f"{lens.references} reference{plural}")])
    elif args.command == "folding":
        _print_rows(printer.range_row(path, folding) for folding in providers.folding_ranges(context, path) or [])
    elif args.command == "complete":
        _print_rows(providers.complete(context, path, _position(args)) or [])
    elif args.command == "rename":
        try:
            edits = providers.rename(context, path, _position(args), args.new_name)
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc
        for edit_path in sorted(edits or {}):
            _print_rows(
                printer.location_row(edit.location, f"-> {edit.new_text}") for edit in edits[edit_path]
            )
    elif args.command == "symbols":
        _print_rows(_symbol_rows(printer, providers.workspace_symbols(context, args.query)))
    elif args.command == "unreferenced":
        _print_rows(_symbol_rows(printer, providers.labels_with_no_reference(context) or []))


if __name__ == "__main__":
    main()
