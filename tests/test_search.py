"""Cross-file search behavior: ordering, unreadable files and cancellation."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from asmlens import regexes
from asmlens.languages import ASM_COLLECTION, ASM_LIST_FILE
from asmlens.search import (
    SearchCancelled,
    grep,
    grep_documents,
    load_document,
    read_documents,
)


class SearchTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch("asmlens.files.shutil.which", return_value=None)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_results_are_in_file_then_line_order(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / "b.asm").write_text("  call foo\nfoo: nop\n", encoding="utf-8")
            (root / "a.asm").write_text("\n\n  jp foo ; foo in comment\n", encoding="utf-8")

            locations = grep([regexes.regex_any_reference_for_word("foo")], [root], "**/*.asm")

            self.assertEqual(
                [(loc.path.name, loc.line, loc.start) for loc in locations],
                [("a.asm", 2, 5), ("b.asm", 0, 7), ("b.asm", 1, 0)],
            )
            self.assertEqual(locations[0].symbol, "foo")
            self.assertEqual(locations[0].text, "  jp foo")

    def test_same_word_hit_by_two_patterns_is_reported_once(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / "a.asm").write_text("foo: nop\n", encoding="utf-8")
            patterns = [
                regexes.regex_any_reference_for_word("foo"),
                regexes.regex_label_colon_for_word("foo", ASM_COLLECTION),
            ]

            locations = grep(patterns, [root], "*.asm")

            self.assertEqual(len(locations), 1)

    def test_word_group_gives_column_of_word(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / "a.asm").write_text("  MODULE gfx\n", encoding="utf-8")

            locations = grep([regexes.regex_module_for_word("gfx", ASM_COLLECTION)], [root], "*.asm")

            self.assertEqual([(loc.start, loc.end, loc.symbol) for loc in locations], [(9, 12, "gfx")])
            self.assertEqual(locations[0].groups[0], "  MODULE ")

    def test_multiple_roots_search_each_file_once(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp).resolve()
            (base / "lib").mkdir()
            (base / "main.asm").write_text("  call foo\n", encoding="utf-8")
            (base / "lib" / "foo.asm").write_text("foo: nop\n", encoding="utf-8")

            locations = grep(
                [regexes.regex_any_reference_for_word("foo")],
                [base / "lib", base],
                "*.asm",
            )

            self.assertEqual(
                [(loc.path.name, loc.line) for loc in locations],
                [("foo.asm", 0), ("main.asm", 0)],
            )

    def test_unreadable_files_are_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            good = root / "a.asm"
            good.write_text("foo: nop\n", encoding="utf-8")

            documents = read_documents([root / "gone.asm", good])

            self.assertEqual([document.path for document in documents], [good])

    def test_cancellation_raises(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / "a.asm").write_text("foo: nop\n", encoding="utf-8")

            with self.assertRaises(SearchCancelled):
                grep(
                    [regexes.regex_any_reference_for_word("foo")],
                    [root],
                    "*.asm",
                    should_cancel=lambda: True,
                )

    def test_cancellation_between_patterns(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            path = root / "a.asm"
            path.write_text("foo: nop\n", encoding="utf-8")
            document = load_document(path)
            calls = {"count": 0}

            def should_cancel() -> bool:
                calls["count"] += 1
                return calls["count"] > 1

            patterns = [regexes.regex_any_reference_for_word("foo")] * 2
            with self.assertRaises(SearchCancelled):
                grep_documents(patterns, [document], should_cancel)

    def test_load_document_picks_language_and_strips_comments(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            path = root / "out.lst"
            path.write_text("8000 00    nop ; comment\n", encoding="utf-8")

            document = load_document(path)

            self.assertEqual(document.language, ASM_LIST_FILE)
            self.assertEqual(document.lines, ("8000 00    nop", ""))
            with self.assertRaises(OSError):
                load_document(root / "missing.asm")


if __name__ == "__main__":
    unittest.main()
