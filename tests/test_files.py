from __future__ import annotations

import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from asmlens.files import collect_files, glob_matches, to_project_relative


def _write(path: Path, text: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


class GlobTests(unittest.TestCase):
    def test_brace_alternatives_and_recursive_prefix(self) -> None:
        pattern = "**/*.{asm,inc}"

        self.assertTrue(glob_matches(pattern, "a.asm"))
        self.assertTrue(glob_matches(pattern, "src/deep/b.inc"))
        self.assertFalse(glob_matches(pattern, "src/c.txt"))

    def test_pattern_without_slash_matches_at_any_depth(self) -> None:
        self.assertTrue(glob_matches("*.asm", "x.asm"))
        self.assertTrue(glob_matches("*.asm", "deep/x.asm"))

    def test_single_star_does_not_cross_directories(self) -> None:
        self.assertTrue(glob_matches("src/*.asm", "src/a.asm"))
        self.assertFalse(glob_matches("src/*.asm", "src/sub/a.asm"))

    def test_directory_glob_and_character_class(self) -> None:
        self.assertTrue(glob_matches("build/**", "build/out/e.asm"))
        self.assertTrue(glob_matches("file?.[ai]*", "lib/file1.asm"))
        self.assertFalse(glob_matches("file?.[!ai]*", "lib/file1.asm"))

    def test_empty_pattern_matches_nothing(self) -> None:
        self.assertFalse(glob_matches("", "a.asm"))
        self.assertFalse(glob_matches("   ", "a.asm"))


class CollectFilesTests(unittest.TestCase):
    def _tree(self, root: Path) -> None:
        _write(root / "a.asm")
        _write(root / "src" / "b.inc")
        _write(root / "src" / "c.txt")
        _write(root / ".hidden" / "d.asm")
        _write(root / "build" / "e.asm")
        _write(root / "Z.asm")

    def test_walk_fallback_applies_include_exclude_and_skips_hidden(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            self._tree(root)

            with mock.patch("asmlens.files.shutil.which", return_value=None):
                files = collect_files(root, "**/*.{asm,inc}", "build/**")

            labels = [to_project_relative(path, root) for path in files]
            self.assertEqual(labels, ["a.asm", "src/b.inc", "Z.asm"])

    def test_missing_root_or_empty_include_gives_nothing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            self._tree(root)

            with mock.patch("asmlens.files.shutil.which", return_value=None):
                self.assertEqual(collect_files(root / "missing", "**/*.asm"), [])
                self.assertEqual(collect_files(root, ""), [])

    def test_ripgrep_listing_is_used_when_available(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            self._tree(root)
            completed = subprocess.CompletedProcess(
                args=["rg"],
                returncode=0,
                stdout="src/b.inc\na.asm\n.hidden/d.asm\nmissing.asm\n",
            )

            with (
                mock.patch("asmlens.files.shutil.which", return_value="/usr/bin/rg"),
                mock.patch("asmlens.files.subprocess.run", return_value=completed) as run,
            ):
                files = collect_files(root, "**/*.{asm,inc}", "build/**")

            cmd = run.call_args.args[0]
            self.assertEqual(cmd[:4], ["rg", "--files", "--glob", "**/*.{asm,inc}"])
            self.assertIn("!build/**", cmd)
            self.assertIn("--no-ignore", cmd)
            labels = [to_project_relative(path, root) for path in files]
            self.assertEqual(labels, ["a.asm", "src/b.inc"])

    def test_ripgrep_failure_falls_back_to_walk(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            self._tree(root)
            failed = subprocess.CompletedProcess(args=["rg"], returncode=2, stdout="")

            with (
                mock.patch("asmlens.files.shutil.which", side_effect=lambda name: "/usr/bin/rg" if name == "rg" else None),
                mock.patch("asmlens.files.subprocess.run", return_value=failed),
            ):
                files = collect_files(root, "*.asm")

            labels = [to_project_relative(path, root) for path in files]
            self.assertEqual(labels, ["a.asm", "build/e.asm", "Z.asm"])

    def test_to_project_relative_falls_back_for_outside_paths(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp).resolve()
            root = base / "project"
            root.mkdir()
            outside = base / "outside.asm"
            outside.write_text("x", encoding="utf-8")

            self.assertEqual(to_project_relative(outside, root), outside.as_posix())


if __name__ == "__main__":
    unittest.main()
