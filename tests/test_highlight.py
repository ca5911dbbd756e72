"""Targeted tests for text sanitization and result-line highlighting.

Ensures control bytes are escaped while standard whitespace is preserved.
"""

import re
import tempfile
import unittest
from pathlib import Path

from asmlens.highlight import highlight_line, read_text, sanitize_terminal_text

ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")


class HighlightSanitizationTests(unittest.TestCase):
    def test_sanitize_terminal_text_escapes_control_bytes_but_keeps_common_whitespace(self) -> None:
        source = "a\tb\nc\rd\x07e\x1bf"
        sanitized = sanitize_terminal_text(source)

        self.assertEqual(sanitized, "a\tb\nc\rd\\x07e\\x1bf")
        self.assertNotIn("\x07", sanitized)
        self.assertNotIn("\x1b", sanitized)

    def test_no_color_returns_plain_text_with_expanded_tabs(self) -> None:
        rendered = highlight_line("\tld a,1\n", Path("x.asm"), no_color=True)

        self.assertEqual(rendered, "    ld a,1")

    def test_colored_output_keeps_text(self) -> None:
        rendered = highlight_line("  ld a,1", Path("x.asm"), style="no-such-style")

        self.assertIn("ld", ANSI_RE.sub("", rendered))

    def test_listing_lines_are_rendered_as_plain_text(self) -> None:
        text = "8000 3E 01    start: ld a,1"

        rendered = highlight_line(text, Path("out.lst"))

        self.assertEqual(ANSI_RE.sub("", rendered), text)


class ReadTextTests(unittest.TestCase):
    def test_latin1_bytes_fall_back_without_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "a.asm"
            path.write_bytes(b"msg: defm 'caf\xe9'\n")

            self.assertEqual(read_text(path), "msg: defm 'caf\xe9'\n")

    def test_byte_order_mark_is_dropped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "a.asm"
            path.write_bytes(b"\xef\xbb\xbfstart: nop\r\n")

            self.assertEqual(read_text(path), "start: nop\n")


if __name__ == "__main__":
    unittest.main()
