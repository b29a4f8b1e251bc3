"""Light and dark colour themes."""

from dataclasses import dataclass
from typing import Callable

from blessed import Terminal

from huddle_common.colors import hex_to_rgb

from ..chat_state_machine import DisplayMode


@dataclass(frozen=True)
class Theme:
    """Blessed formatting attribute names used by the tiles."""

    primary: str
    secondary: str
    border: str
    accent: str
    mode_label: str

    def style(self, t: Terminal, role: str) -> Callable[[str], str]:
        """Get the formatting callable of a theme role."""
        return getattr(t, getattr(self, role))


THEMES = {
    DisplayMode.LIGHT: Theme(
        primary="black_on_white",
        secondary="gray40_on_white",
        border="gray70_on_white",
        accent="white_on_blue",
        mode_label="light",
    ),
    DisplayMode.DARK: Theme(
        primary="white_on_gray11",
        secondary="gray70_on_gray11",
        border="gray30_on_gray11",
        accent="white_on_darkblue",
        mode_label="dark",
    ),
}


def paint(t: Terminal, color: str) -> Callable[[str], str]:
    """Get a formatting callable for a '#RRGGBB' colour."""
    return t.color_rgb(*hex_to_rgb(color))
