"""
models.py

Data models and constants for OverlaySync.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Callable, List

# Stable identifier shared by a diagram node and its overlay data
CellId = str


# ----------------------------
# Overlay entry model
# ----------------------------

@dataclass(frozen=True)
class OverlayEntry:
    """A normalized ``(cell_id, content)`` pair awaiting placement.

    ``content`` stays referenced by the caller's overlay document; placing
    it only adds it under a diagram mount, so both trees share the node and
    see the same sizing attributes and later edits.
    """
    cell_id: CellId
    content: ET.Element


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box of a rendered mount, in the mount's user units."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def union(self, other: "BoundingBox") -> "BoundingBox":
        """Smallest box covering both; empty boxes are ignored."""
        if self.is_empty:
            return other
        if other.is_empty:
            return self
        x1 = min(self.x, other.x)
        y1 = min(self.y, other.y)
        x2 = max(self.x + self.width, other.x + other.width)
        y2 = max(self.y + self.height, other.y + other.height)
        return BoundingBox(x1, y1, x2 - x1, y2 - y1)

    def translated(self, dx: float, dy: float) -> "BoundingBox":
        return BoundingBox(self.x + dx, self.y + dy, self.width, self.height)


# Caller hook that fits content into a mount's box (mutates the content)
SizeCallback = Callable[[BoundingBox, ET.Element], None]


# ----------------------------
# Render mode constants
# ----------------------------

class RenderMode:
    """Cleanup policy selector for a compositing pass."""
    FRESH = "fresh"              # purge every mounted overlay, then place
    INCREMENTAL = "incremental"  # place only; untouched mounts keep content

    ALL = (FRESH, INCREMENTAL)


# ----------------------------
# Pass diagnostics
# ----------------------------

@dataclass
class CompositeReport:
    """Outcome of one compositing pass.

    Attributes:
        mode: The ``RenderMode`` the pass ran with.
        placed: Ids placed, in processing order (duplicates kept).
        unmatched: Ids skipped because of a recoverable mismatch.
        issues: The recoverable errors, in the order they were reported.
        purged: Number of content nodes removed by the fresh-mode purge.
        detached: Content nodes swapped out of occupied mounts; they now
            belong to the caller.
    """
    mode: str = RenderMode.FRESH
    placed: List[CellId] = field(default_factory=list)
    unmatched: List[CellId] = field(default_factory=list)
    issues: List[Exception] = field(default_factory=list)
    purged: int = 0
    detached: List[ET.Element] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.unmatched
