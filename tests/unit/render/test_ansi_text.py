"""ANSI-aware width, clipping and overlay splicing."""

from __future__ import annotations

import unittest

from lazylineage.ansi import (
    ANSI_ESCAPE_RE,
    clip_ansi_line,
    display_width,
    fit_ansi_line,
    slice_ansi_line,
    splice_ansi_line,
    truncate_label,
)

RED = "\033[31m"
RESET = "\033[0m"


class AnsiTextTests(unittest.TestCase):
    def test_width_ignores_escapes_and_counts_wide_chars(self) -> None:
        self.assertEqual(display_width(f"{RED}abc{RESET}"), 3)
        self.assertEqual(display_width("表"), 2)
        self.assertEqual(display_width("a\tb"), 9)

    def test_clip_keeps_escapes(self) -> None:
        self.assertEqual(clip_ansi_line(f"{RED}abcdef{RESET}", 3), f"{RED}abc")
        self.assertEqual(clip_ansi_line("表表", 3), "表")

    def test_fit_pads_and_resets(self) -> None:
        self.assertEqual(fit_ansi_line("ab", 4), "ab  ")
        fitted = fit_ansi_line(f"{RED}abcdef", 4)
        self.assertEqual(display_width(fitted), 4)
        self.assertTrue(fitted.endswith(RESET))

    def test_slice_reapplies_active_style(self) -> None:
        sliced = slice_ansi_line(f"{RED}abcdef{RESET}", 2)
        self.assertTrue(sliced.startswith(RED))
        self.assertEqual(ANSI_ESCAPE_RE.sub("", sliced), "cdef")

    def test_splice_replaces_columns(self) -> None:
        spliced = splice_ansi_line("0123456789", 3, "abc", 3)
        self.assertEqual(ANSI_ESCAPE_RE.sub("", spliced), "012abc6789")

    def test_truncate_label(self) -> None:
        self.assertEqual(truncate_label("stg_orders", 20), "stg_orders")
        self.assertEqual(truncate_label("stg_orders", 5), "stg_…")
        self.assertEqual(truncate_label("stg_orders", 1), "…")
        self.assertEqual(truncate_label("stg_orders", 0), "")


if __name__ == "__main__":
    unittest.main()
