"""
overlay/errors.py

Error taxonomy for overlay compositing.

Per-entry mismatches (``MissingTargetNode``, ``MissingContentMount``,
``MissingOverlayContent``) are recoverable: the compositor reports them to a
diagnostic sink and moves on to the next entry.  ``InvalidSelector`` is a
caller error that affects every entry identically, so it propagates.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from models import CompositeReport


class OverlayError(Exception):
    """Base class for compositing errors tied to one cell id."""

    def __init__(self, message: str, cell_id: Optional[str] = None):
        super().__init__(message)
        self.cell_id = cell_id


class MissingTargetNode(OverlayError):
    """No diagram node carries the entry's cell id."""

    def __init__(self, cell_id: str, message: Optional[str] = None):
        super().__init__(message or f"Cannot find target cell for cell-id {cell_id!r}", cell_id)


class MissingContentMount(OverlayError):
    """The diagram node exists but holds nothing matching the mount selector."""

    def __init__(self, cell_id: str, selector: str):
        super().__init__(
            f"Cannot find target box {selector!r} for cell-id {cell_id!r}", cell_id
        )
        self.selector = selector


class MissingOverlayContent(OverlayError):
    """The overlay cell has no content section to copy into the diagram."""

    def __init__(self, cell_id: str, content_class: str):
        super().__init__(
            f"Cannot find .{content_class} section for cell-id {cell_id!r}", cell_id
        )
        self.content_class = content_class


RECOVERABLE_ERRORS = (MissingTargetNode, MissingContentMount, MissingOverlayContent)


class InvalidSelector(ValueError):
    """A mount selector that cannot be parsed."""

    def __init__(self, selector: str, reason: str):
        super().__init__(f"Invalid selector {selector!r}: {reason}")
        self.selector = selector
        self.reason = reason


class UnmatchedOverlayError(Exception):
    """Raised after a strict-mode pass that left some entries unplaced.

    The pass itself runs to completion; ``report`` holds what was placed and
    which ids went unmatched.
    """

    def __init__(self, report: "CompositeReport"):
        ids = ", ".join(repr(i) for i in report.unmatched)
        super().__init__(f"{len(report.unmatched)} overlay entries unmatched: {ids}")
        self.report = report

    @property
    def unmatched(self):
        return list(self.report.unmatched)
