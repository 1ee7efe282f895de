"""
overlay package

Compositing of independently produced overlay content onto the nodes of a
rendered diagram, matched by cell id.
"""

from overlay.compositor import composite, composite_fresh, composite_incremental
from overlay.errors import (
    InvalidSelector,
    MissingContentMount,
    MissingOverlayContent,
    MissingTargetNode,
    OverlayError,
    UnmatchedOverlayError,
)
from overlay.geometry import element_bbox, fit_to_box
from overlay.index import DiagramIndex

__all__ = [
    "composite",
    "composite_fresh",
    "composite_incremental",
    "DiagramIndex",
    "element_bbox",
    "fit_to_box",
    "InvalidSelector",
    "MissingContentMount",
    "MissingOverlayContent",
    "MissingTargetNode",
    "OverlayError",
    "UnmatchedOverlayError",
]
