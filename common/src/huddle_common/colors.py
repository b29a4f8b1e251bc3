"""Deterministic participant colours.

A colour is only a display hint, so names whose code points add up to the
same value modulo the palette size share a colour.
"""

from typing import Tuple

PALETTE = (
    "#EF4444",
    "#F97316",
    "#F59E0B",
    "#EAB308",
    "#84CC16",
    "#22C55E",
    "#10B981",
    "#14B8A6",
    "#06B6D4",
    "#0EA5E9",
    "#3B82F6",
    "#6366F1",
    "#8B5CF6",
    "#A855F7",
    "#D946EF",
    "#EC4899",
)


def color_for(name: str) -> str:
    """Get the display colour of a participant."""
    return PALETTE[sum(ord(char) for char in name) % len(PALETTE)]


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    """Split a '#RRGGBB' colour into its components."""
    value = color.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))
