"""
overlay/normalizer.py

Turn caller-supplied overlay data into one ordered list of ``OverlayEntry``.

Two shapes are accepted:

* a **collection** of overlay cells, each naming its target through the
  cell id attribute (``<g class="overlay-cell" data-cell-id="A">``).  The
  collection may be any iterable of cells, or a holder element whose
  ``.overlay-cell`` descendants are the cells.  Ready-made ``OverlayEntry``
  objects pass through unchanged.
* a sparse **mapping** ``cell id -> node``.  Falsy values are skipped.

In both shapes the content to transplant is the node itself if it carries
the content class, otherwise its first descendant that does.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any, Callable, Iterable, List, Optional

from models import OverlayEntry
from overlay.errors import MissingOverlayContent, MissingTargetNode, OverlayError
from overlay.selectors import has_class

Sink = Callable[[OverlayError], None]


def find_content(node: ET.Element, content_class: str) -> Optional[ET.Element]:
    """The content section of an overlay node: the node itself if it carries
    *content_class*, else its first such descendant, else ``None``."""
    for el in node.iter():
        if has_class(el, content_class):
            return el
    return None


def iter_overlay_cells(holder: ET.Element, cell_class: str) -> List[ET.Element]:
    """All ``.{cell_class}`` elements under *holder*, in document order."""
    return [el for el in holder.iter() if el is not holder and has_class(el, cell_class)]


def normalize_cells(
    cells: ET.Element | Iterable[Any],
    sink: Sink,
    cell_id_attribute: str = "data-cell-id",
    cell_class: str = "overlay-cell",
    content_class: str = "content",
) -> List[OverlayEntry]:
    """Normalize a collection of self-identifying overlay cells."""
    if cells is None:
        return []
    if isinstance(cells, ET.Element):
        if has_class(cells, cell_class):
            cells = [cells]
        else:
            cells = iter_overlay_cells(cells, cell_class)

    entries: List[OverlayEntry] = []
    for cell in cells:
        if isinstance(cell, OverlayEntry):
            entries.append(cell)
            continue
        if not isinstance(cell, ET.Element):
            raise TypeError(f"Overlay cell must be an Element or OverlayEntry, got {type(cell).__name__}")
        cell_id = cell.get(cell_id_attribute)
        if not cell_id:
            sink(MissingTargetNode("", f"Overlay cell carries no {cell_id_attribute} attribute"))
            continue
        entry = _make_entry(cell_id, cell, content_class, sink)
        if entry is not None:
            entries.append(entry)
    return entries


def normalize_mapping(
    overlay_by_key: Mapping,
    sink: Sink,
    content_class: str = "content",
) -> List[OverlayEntry]:
    """Normalize a sparse ``cell id -> node`` mapping, skipping falsy values."""
    entries: List[OverlayEntry] = []
    for cell_id, node in overlay_by_key.items():
        # Element truthiness is its child count, so test for None explicitly
        if node is None or (not isinstance(node, ET.Element) and not node):
            continue
        if isinstance(node, OverlayEntry):
            entries.append(node)
            continue
        if not isinstance(node, ET.Element):
            raise TypeError(f"Overlay for {cell_id!r} must be an Element, got {type(node).__name__}")
        entry = _make_entry(str(cell_id), node, content_class, sink)
        if entry is not None:
            entries.append(entry)
    return entries


def normalize(
    overlay: Any,
    sink: Sink,
    cell_id_attribute: str = "data-cell-id",
    cell_class: str = "overlay-cell",
    content_class: str = "content",
) -> List[OverlayEntry]:
    """Dispatch on the input shape: mappings vs everything else."""
    if isinstance(overlay, Mapping):
        return normalize_mapping(overlay, sink, content_class)
    return normalize_cells(overlay, sink, cell_id_attribute, cell_class, content_class)


def _make_entry(
    cell_id: str, node: ET.Element, content_class: str, sink: Sink
) -> Optional[OverlayEntry]:
    content = find_content(node, content_class)
    if content is None:
        sink(MissingOverlayContent(cell_id, content_class))
        return None
    return OverlayEntry(cell_id=cell_id, content=content)
