"""
overlay/index.py

Identifier index over a rendered diagram tree.

ElementTree elements carry no parent pointer, and looking every overlay id
up with a fresh tree search would make a pass quadratic.  ``DiagramIndex``
walks the tree once, recording ``cell id -> node`` (first node in document
order wins) and ``child -> parent``.  All tree surgery during a pass goes
through the index so both maps stay in step with the tree.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Dict, Iterator, Optional

from models import CellId
from overlay.errors import MissingContentMount, MissingTargetNode
from overlay.selectors import Selector, parse_selector


class DiagramIndex:
    """Cell id and parent lookups for one diagram root.

    Args:
        root: Root element of the rendered diagram.
        cell_id_attribute: Attribute carrying each node's ``CellId``.
    """

    def __init__(self, root: ET.Element, cell_id_attribute: str = "data-cell-id"):
        self.root = root
        self.cell_id_attribute = cell_id_attribute
        self._nodes: Dict[CellId, ET.Element] = {}
        self._parents: Dict[ET.Element, ET.Element] = {}
        self._register(root, None)

    @classmethod
    def build(cls, root: ET.Element, cell_id_attribute: Optional[str] = None) -> "DiagramIndex":
        """Index *root*, taking the id attribute from settings when not given."""
        if cell_id_attribute is None:
            from settings import get_settings
            cell_id_attribute = get_settings().settings.overlay.cell_id_attribute
        return cls(root, cell_id_attribute)

    # ── lookups ──

    def __contains__(self, cell_id: CellId) -> bool:
        return cell_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def cell_ids(self) -> Iterator[CellId]:
        return iter(self._nodes)

    def node(self, cell_id: CellId) -> Optional[ET.Element]:
        """The diagram node carrying *cell_id*, or ``None``."""
        return self._nodes.get(cell_id)

    def parent_of(self, el: ET.Element) -> Optional[ET.Element]:
        return self._parents.get(el)

    def resolve(self, cell_id: CellId, mount_selector: str | Selector) -> ET.Element:
        """Find the content mount inside the node carrying *cell_id*.

        The mount is the first descendant of the node, in document order,
        matching *mount_selector*.

        Raises:
            MissingTargetNode: No node carries *cell_id*.
            MissingContentMount: The node has no descendant matching the selector.
            InvalidSelector: *mount_selector* cannot be parsed.
        """
        selector = _as_selector(mount_selector)
        node = self._nodes.get(cell_id)
        if node is None:
            raise MissingTargetNode(cell_id)
        mount = selector.select_one(node, self.parent_of)
        if mount is None:
            raise MissingContentMount(cell_id, selector.text)
        return mount

    def select(self, selector: str | Selector) -> Iterator[ET.Element]:
        """Yield every element under the root matching *selector*."""
        return _as_selector(selector).select(self.root, self.parent_of)

    # ── tree surgery ──

    def detach(self, el: ET.Element) -> bool:
        """Remove *el* from its indexed parent.

        Returns:
            ``True`` if *el* was attached somewhere in the diagram.
        """
        parent = self._parents.get(el)
        if parent is None:
            return False
        parent.remove(el)
        self._unregister(el)
        return True

    def append(self, parent: ET.Element, el: ET.Element) -> None:
        parent.append(el)
        self._register(el, parent)

    def replace(self, parent: ET.Element, old: ET.Element, new: ET.Element) -> None:
        """Put *new* at *old*'s position under *parent*; *old* is detached."""
        position = list(parent).index(old)
        parent[position] = new
        self._unregister(old)
        self._register(new, parent)

    def _register(self, el: ET.Element, parent: Optional[ET.Element]) -> None:
        if parent is not None:
            self._parents[el] = parent
        for child_parent in el.iter():
            for child in child_parent:
                self._parents[child] = child_parent
            cell_id = child_parent.get(self.cell_id_attribute)
            if cell_id is not None and cell_id not in self._nodes:
                self._nodes[cell_id] = child_parent

    def _unregister(self, el: ET.Element) -> None:
        self._parents.pop(el, None)
        dropped = False
        for sub in el.iter():
            for child in sub:
                self._parents.pop(child, None)
            cell_id = sub.get(self.cell_id_attribute)
            if cell_id is not None and self._nodes.get(cell_id) is sub:
                del self._nodes[cell_id]
                dropped = True
        if dropped:
            self._reindex_ids()

    def _reindex_ids(self) -> None:
        # a removed node may have shadowed a later node with the same id
        self._nodes.clear()
        for el in self.root.iter():
            cell_id = el.get(self.cell_id_attribute)
            if cell_id is not None and cell_id not in self._nodes:
                self._nodes[cell_id] = el


def _as_selector(selector: str | Selector) -> Selector:
    return selector if isinstance(selector, Selector) else parse_selector(selector)
