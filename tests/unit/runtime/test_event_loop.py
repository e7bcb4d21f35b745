"""Main loop wiring with fake terminal I/O."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
import unittest
from unittest import mock

from lazylineage.graph import graph_from_dict
from lazylineage.runtime import RuntimeLoopCallbacks, RuntimeLoopTiming, run_main_loop
from lazylineage.runtime.runner import OutputLine, RunChannel, RunCompleted
from lazylineage.runtime.state import AppState, RunFinished


def _make_state() -> AppState:
    graph = graph_from_dict(
        {
            "nodes": [{"unique_id": "model.stg_orders"}, {"unique_id": "model.orders"}],
            "edges": [{"source": "model.stg_orders", "target": "model.orders"}],
        }
    )
    return AppState.from_graph(graph, Path("/tmp/project"), reload_status=lambda *_args: False, runner_wrapper="dbt")


class _FakeTerminal:
    def __init__(self) -> None:
        self.entered = 0
        self.exited = 0

    @contextmanager
    def raw_mode(self):
        self.entered += 1
        try:
            yield
        finally:
            self.exited += 1


class _ScriptedKeys:
    def __init__(self, keys: list[object]) -> None:
        self._keys = list(keys)

    def __call__(self, _fd: int, _timeout_ms: int) -> str:
        if not self._keys:
            return "q"
        key = self._keys.pop(0)
        if isinstance(key, BaseException):
            raise key
        return key


def _run(state: AppState, keys: list[object], size: tuple[int, int] = (80, 24)) -> tuple[_FakeTerminal, list[tuple[int, int]]]:
    terminal = _FakeTerminal()
    renders: list[tuple[int, int]] = []
    callbacks = RuntimeLoopCallbacks(
        read_key=_ScriptedKeys(keys),
        render=lambda _state, columns, lines: renders.append((columns, lines)),
        terminal_size=lambda: size,
    )
    run_main_loop(state, terminal, 0, RuntimeLoopTiming(key_timeout_ms=1), callbacks)
    return terminal, renders


class RuntimeLoopTests(unittest.TestCase):
    def test_quit_exits_and_restores_terminal(self) -> None:
        state = _make_state()
        terminal, renders = _run(state, ["TAB", "q"])
        self.assertEqual((terminal.entered, terminal.exited), (1, 1))
        self.assertEqual(state.selected_node, state.node_order[1])
        self.assertEqual(renders[0], (80, 24))
        self.assertGreaterEqual(len(renders), 2)

    def test_renders_only_when_dirty(self) -> None:
        state = _make_state()
        _terminal, renders = _run(state, ["", "", "", "q"])
        self.assertEqual(len(renders), 1)

    def test_crlf_pair_dispatches_single_enter(self) -> None:
        state = _make_state()
        seen: list[str] = []

        def fake_dispatch(key: str, _state: AppState) -> bool:
            seen.append(key)
            return key == "q"

        with mock.patch("lazylineage.runtime.loop.dispatch_key", side_effect=fake_dispatch):
            _run(state, ["ENTER_CR", "ENTER_LF", "ENTER_LF", "q"])
        self.assertEqual(seen, ["ENTER", "ENTER", "q"])

    def test_keyboard_interrupt_does_not_end_session(self) -> None:
        state = _make_state()
        terminal, _renders = _run(state, [KeyboardInterrupt(), "TAB", "q"])
        self.assertEqual(terminal.exited, 1)
        self.assertEqual(state.selected_node, state.node_order[1])

    def test_idle_ticks_drain_run_output(self) -> None:
        state = _make_state()
        channel = RunChannel()
        state.spawn = lambda _request: channel
        state.open_run_menu()
        state.stage_run(*_first_menu_item())
        state.start_run()
        channel.send(OutputLine("Running with dbt"))
        channel.send(RunCompleted(success=True))

        _run(state, ["", "q"])
        self.assertIsInstance(state.run_state, RunFinished)
        self.assertIn("Running with dbt", state.run_output_lines())

    def test_expired_status_message_is_cleared(self) -> None:
        state = _make_state()
        state.set_status_message("gone soon", seconds=-1.0)
        _run(state, ["q"])
        self.assertEqual(state.status_message, "")


def _first_menu_item():
    from lazylineage.runtime.state import RUN_MENU_ITEMS

    _key, command, scope, _text = RUN_MENU_ITEMS[0]
    return command, scope


if __name__ == "__main__":
    unittest.main()
