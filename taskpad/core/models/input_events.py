"""Input event value types.

Plain values describing keyboard and pointer input. The engine never looks at
where they came from (mouse, touch, Tk bindings or synthetic test events).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Direction = Literal["up", "down"]


@dataclass(frozen=True)
class KeyEvent:
    """A key press with modifier state.

    ``in_text_input`` is True when a text field had keyboard focus, which
    changes how Backspace/Delete are interpreted.
    """

    key: str
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    in_text_input: bool = False

    @property
    def command(self) -> bool:
        """True when the platform command modifier (Ctrl or Cmd) is held."""
        return self.ctrl or self.meta


@dataclass(frozen=True)
class PointerEvent:
    """A pointer press/move/release in view coordinates."""

    x: float
    y: float
    button: int = 1
    shift: bool = False
    ctrl: bool = False
    on_interactive: bool = False


@dataclass(frozen=True)
class RowExtent:
    """Vertical extent of one rendered task row, in the same space as pointer y."""

    id: str
    top: float
    bottom: float
