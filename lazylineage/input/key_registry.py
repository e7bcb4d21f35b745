"""Key-binding tables shared by the mode handlers and the help bar."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class KeyBinding:
    """One or more key tokens bound to a single action.

    ``label`` and ``description`` feed the help bar; bindings without a
    description are not advertised there.
    """

    combos: tuple[str, ...]
    handler: Callable[[], bool | None]
    description: str = ""
    label: str = ""

    def help_label(self) -> str:
        return self.label or "/".join(self.combos)


class KeyRegistry:
    """Exact-match key-dispatch table."""

    def __init__(self, bindings: Iterable[KeyBinding] = ()) -> None:
        self._handlers: dict[str, Callable[[], bool | None]] = {}
        self._bindings: list[KeyBinding] = []
        for binding in bindings:
            self.register(binding)

    def register(self, binding: KeyBinding) -> KeyRegistry:
        """Register one binding, overwriting existing handlers for same combos."""
        for combo in binding.combos:
            self._handlers[combo] = binding.handler
        self._bindings.append(binding)
        return self

    def dispatch(self, key: str) -> bool | None:
        """Invoke the bound handler; ``None`` means the key is unbound."""
        handler = self._handlers.get(key)
        if handler is None:
            return None
        return handler()

    def help_entries(self) -> list[tuple[str, str]]:
        return [(binding.help_label(), binding.description) for binding in self._bindings if binding.description]
