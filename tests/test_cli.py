"""CLI argument handling and output format tests.

Runs ``asmlens.cli.main`` against a temporary workspace and checks the
``path:line:column: text`` rows it prints.
"""

from __future__ import annotations

import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from asmlens import cli


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name).resolve()
        self.source = self.root / "main.asm"
        self.source.write_text(
            "MODULE gfx\nclear:\n    ret\nENDMODULE\nstart:\n    call gfx.clear\n    call gfx.clear\n",
            encoding="utf-8",
        )
        for patcher in (
            mock.patch("asmlens.files.shutil.which", return_value=None),
            mock.patch("asmlens.config.USER_CONFIG_PATH", self.root / "user-config.json"),
        ):
            patcher.start()
            self.addCleanup(patcher.stop)

    def run_cli(self, *argv: str) -> str:
        with mock.patch("sys.stdout", new_callable=io.StringIO) as stdout:
            cli.main(["--no-color", *argv])
        return stdout.getvalue()

    def test_references_print_one_based_rows(self) -> None:
        out = self.run_cli("--root", str(self.root), "references", str(self.source), "6", "14", "--include-declaration")

        self.assertEqual(
            out.splitlines(),
            [
                "main.asm:2:1: clear:",
                "main.asm:6:14: call gfx.clear",
                "main.asm:7:14: call gfx.clear",
            ],
        )

    def test_definition_uses_file_directory_as_default_root(self) -> None:
        out = self.run_cli("definition", str(self.source), "6", "14")

        self.assertEqual(out.splitlines(), ["main.asm:2:1: clear:"])

    def test_outline_prints_tree(self) -> None:
        out = self.run_cli("outline", str(self.source))

        lines = out.splitlines()
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].startswith("module"))
        self.assertTrue(lines[0].endswith("gfx"))
        self.assertTrue(lines[1].startswith("  function"))
        self.assertTrue(lines[1].endswith("clear"))
        self.assertTrue(lines[2].endswith("start"))

    def test_symbols_from_current_directory(self) -> None:
        previous_cwd = Path.cwd()
        try:
            os.chdir(self.root)
            out = self.run_cli("symbols", "cl")
        finally:
            os.chdir(previous_cwd)

        self.assertEqual(out.splitlines(), ["main.asm:2:1: clear"])

    def test_rename_prints_edits(self) -> None:
        out = self.run_cli("rename", str(self.source), "5", "1", "begin")

        self.assertEqual(out.splitlines(), ["main.asm:5:1: -> begin"])

    def test_rename_rejects_invalid_name(self) -> None:
        with self.assertRaises(SystemExit) as raised:
            self.run_cli("rename", str(self.source), "5", "1", "9lives")

        self.assertIn("9lives", str(raised.exception.code))

    def test_unreferenced_lists_unused_labels(self) -> None:
        out = self.run_cli("--root", str(self.root), "unreferenced")

        self.assertEqual(out.splitlines(), ["main.asm:5:1: start"])

    def test_lenses_print_reference_counts(self) -> None:
        out = self.run_cli("lenses", str(self.source))

        self.assertEqual(out.splitlines(), ["main.asm:2:1: 2 references", "main.asm:5:1: 0 references"])

    def test_folding_prints_line_ranges(self) -> None:
        out = self.run_cli("folding", str(self.source))

        self.assertEqual(out.splitlines(), ["main.asm:2-4", "main.asm:5-7"])

    def test_hover_prints_declaration(self) -> None:
        out = self.run_cli("hover", str(self.source), "6", "14")

        self.assertEqual(out.splitlines(), ["main.asm:2:1: clear:"])

    def test_missing_file_exits_with_message(self) -> None:
        with self.assertRaises(SystemExit) as raised:
            self.run_cli("outline", str(self.root / "missing.asm"))

        self.assertIn("Path not found", str(raised.exception.code))

    def test_line_must_be_positive(self) -> None:
        with mock.patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                self.run_cli("definition", str(self.source), "0", "1")


if __name__ == "__main__":
    unittest.main()
