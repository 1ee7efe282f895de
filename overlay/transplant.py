"""
overlay/transplant.py

Place one overlay entry into its resolved mount.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterator, Optional

from models import OverlayEntry, SizeCallback
from overlay.geometry import element_bbox
from overlay.index import DiagramIndex
from overlay.selectors import has_class


def iter_mounted_content(mount: ET.Element, content_class: str) -> Iterator[ET.Element]:
    """Yield the outermost ``.{content_class}`` descendants of *mount* in
    document order.  Content nested inside other content is not yielded."""
    for child in mount:
        if has_class(child, content_class):
            yield child
        else:
            yield from iter_mounted_content(child, content_class)


def mounted_content(mount: ET.Element, content_class: str) -> Optional[ET.Element]:
    """The content node currently held by *mount*, or ``None`` when empty."""
    return next(iter_mounted_content(mount, content_class), None)


def place(
    index: DiagramIndex,
    mount: ET.Element,
    entry: OverlayEntry,
    size_callback: SizeCallback,
    content_class: str = "content",
) -> Optional[ET.Element]:
    """Size *entry*'s content to *mount* and attach it there.

    The size callback runs exactly once, with the mount's box, before the
    content is attached.  An occupied mount has its content swapped in place
    (at whatever depth it sits); an empty one gets the content appended.
    Content mounted elsewhere in the diagram is moved.  The caller's overlay
    document is not modified, so it keeps sharing the node with the diagram.

    Returns:
        The content previously held by the mount, now detached and owned by
        the caller, or ``None`` if the mount was empty or already held this
        very content.
    """
    content = entry.content
    bbox = element_bbox(mount, skip_class=content_class)
    size_callback(bbox, content)

    existing = mounted_content(mount, content_class)
    if existing is content:
        return None

    # keep one parent per node inside the diagram
    index.detach(content)

    if existing is not None:
        index.replace(index.parent_of(existing), existing, content)
        return existing
    index.append(mount, content)
    return None
