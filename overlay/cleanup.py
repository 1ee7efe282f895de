"""
overlay/cleanup.py

Per-pass cleanup policy.

``RenderMode.FRESH`` models a regenerated diagram: every overlay content
node under any mount is removed before the new entries are placed, so
overlays from a previous data set cannot linger.  ``RenderMode.INCREMENTAL``
removes nothing and relies on per-entry replacement, so mounts the new
entries do not touch keep what they hold.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import List

from models import RenderMode
from overlay.index import DiagramIndex
from overlay.selectors import Selector, parse_selector
from overlay.transplant import iter_mounted_content


def purge_mounted_content(
    index: DiagramIndex, mount_selector: str | Selector, content_class: str = "content"
) -> int:
    """Remove the outermost ``.{content_class}`` nodes, at any depth, under
    every matching mount (the nodes ``iter_mounted_content`` yields).

    Returns:
        Number of content nodes removed.
    """
    selector = mount_selector if isinstance(mount_selector, Selector) else parse_selector(mount_selector)
    doomed: List[ET.Element] = []
    seen = set()
    for mount in list(index.select(selector)):
        for el in iter_mounted_content(mount, content_class):
            if id(el) not in seen:
                seen.add(id(el))
                doomed.append(el)

    removed = 0
    for el in doomed:
        # nested content goes with its outer node
        if index.detach(el):
            removed += 1
    return removed


def apply_cleanup(
    index: DiagramIndex,
    mode: str,
    mount_selector: str | Selector,
    content_class: str = "content",
) -> int:
    """Run the cleanup *mode* asks for; returns the number of nodes purged."""
    if mode == RenderMode.FRESH:
        return purge_mounted_content(index, mount_selector, content_class)
    if mode == RenderMode.INCREMENTAL:
        return 0
    raise ValueError(f"Unknown render mode {mode!r}; expected one of {RenderMode.ALL}")
