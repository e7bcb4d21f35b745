"""Raw byte decoding into key tokens."""

from __future__ import annotations

import os
import unittest

from lazylineage import input as input_mod


class ReadKeyTests(unittest.TestCase):
    def setUp(self) -> None:
        input_mod._PENDING_BYTES.clear()

    def tearDown(self) -> None:
        input_mod._PENDING_BYTES.clear()

    def _read_all(self, payload: bytes, count: int) -> list[str]:
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, payload)
            return [input_mod.read_key(read_fd, timeout_ms=20) for _ in range(count)]
        finally:
            os.close(read_fd)
            os.close(write_fd)

    def test_arrows_and_shift_tab(self) -> None:
        keys = self._read_all(b"\x1b[A\x1b[B\x1b[C\x1b[D\x1b[Z", 5)
        self.assertEqual(keys, ["UP", "DOWN", "RIGHT", "LEFT", "SHIFT_TAB"])

    def test_control_keys(self) -> None:
        keys = self._read_all(b"\t\x7f\x15\r\n\x03", 6)
        self.assertEqual(keys, ["TAB", "BACKSPACE", "CTRL_U", "ENTER_CR", "ENTER_LF", "CTRL_C"])

    def test_page_keys(self) -> None:
        self.assertEqual(self._read_all(b"\x1b[5~\x1b[6~", 2), ["PAGE_UP", "PAGE_DOWN"])

    def test_lone_escape_then_printable(self) -> None:
        self.assertEqual(self._read_all(b"\x1bq", 2), ["ESC", "q"])

    def test_utf8_character(self) -> None:
        self.assertEqual(self._read_all("é".encode("utf-8"), 1), ["é"])

    def test_timeout_returns_empty_token(self) -> None:
        self.assertEqual(self._read_all(b"", 1), [""])

    def test_sgr_mouse_press_release_drag_and_wheel(self) -> None:
        keys = self._read_all(
            b"\x1b[<0;10;5M\x1b[<0;10;5m\x1b[<2;3;4M\x1b[<32;11;6M\x1b[<64;7;8M\x1b[<65;7;8M",
            6,
        )
        self.assertEqual(
            keys,
            [
                "MOUSE_LEFT_DOWN:10:5",
                "MOUSE_LEFT_UP:10:5",
                "MOUSE_RIGHT_DOWN:3:4",
                "MOUSE_LEFT_DRAG:11:6",
                "MOUSE_WHEEL_UP:7:8",
                "MOUSE_WHEEL_DOWN:7:8",
            ],
        )

    def test_mouse_coordinates_are_zero_based_after_parsing(self) -> None:
        self.assertEqual(input_mod.parse_mouse_col_row("MOUSE_LEFT_DOWN:10:5"), (9, 4))
        self.assertEqual(input_mod.parse_mouse_col_row("MOUSE"), (None, None))


if __name__ == "__main__":
    unittest.main()
