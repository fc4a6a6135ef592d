"""Parse shape descriptions used as non-verbal answer options."""
import re
from dataclasses import dataclass
from typing import Optional

SHAPES = ("square", "circle", "triangle", "star")
COLORS = ("red", "blue", "green", "yellow")
QUANTITIES = {"one": 1, "single": 1, "a": 1, "1": 1, "two": 2, "2": 2, "three": 3, "3": 3, "four": 4, "4": 4}

# Filled / empty glyphs per shape for terminal drawing.
GLYPHS = {
    "square": ("■", "□"),
    "circle": ("●", "○"),
    "triangle": ("▲", "△"),
    "star": ("★", "☆"),
}


@dataclass(frozen=True)
class ShapeDescriptor:
    shape: str
    color: str = "blue"
    size: str = "medium"
    quantity: int = 1
    filled: bool = True
    has_dot: bool = False

    def glyph(self) -> str:
        filled, empty = GLYPHS[self.shape]
        return filled if self.filled else empty


def _words(description: str) -> list[str]:
    return [re.sub(r"[^a-z0-9]", "", w) for w in description.lower().split()]


def _singular(word: str) -> str:
    return word[:-1] if word.endswith("s") and word[:-1] in SHAPES else word


def parse_shape(description: str) -> Optional[ShapeDescriptor]:
    """Parse e.g. 'Two big empty blue circles'. Returns None for plain text options."""
    words = [_singular(w) for w in _words(description)]
    shape = next((w for w in words if w in SHAPES), None)
    if shape is None:
        return None

    quantity = 1
    for word in words:
        if word in QUANTITIES:
            quantity = QUANTITIES[word]
    color = next((w for w in words if w in COLORS), "blue")
    size = "medium"
    if "small" in words:
        size = "small"
    if "big" in words or "large" in words:
        size = "big"
    return ShapeDescriptor(
        shape=shape,
        color=color,
        size=size,
        quantity=quantity,
        filled="empty" not in words,
        has_dot="dot" in words,
    )
