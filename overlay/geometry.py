"""
overlay/geometry.py

Bounding boxes of rendered SVG mounts, and the default sizing callback.

The diagram is laid out by an external renderer, so boxes are read back from
the geometry attributes it wrote (``x/y/width/height``, ``cx/cy/r``,
``points``, path data, ``translate()`` on groups).  Overlay content already
mounted is ignored so a repeated pass measures the same box.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional, Tuple

from models import BoundingBox
from overlay.selectors import has_class, local_name

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_PATH_TOKEN_RE = re.compile(r"[MmLlCcHhVvSsQqTtAaZz]|[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")

# Non-rendering elements that never contribute to a box
_SKIP_TAGS = {"defs", "title", "desc", "style", "script", "metadata", "clipPath", "mask", "marker"}


def _num(el: ET.Element, name: str, default: float = 0.0) -> float:
    """Read a numeric attribute; percentages and junk read as *default*."""
    raw = (el.get(name) or "").strip()
    if not raw or raw.endswith("%"):
        return default
    m = _NUMBER_RE.match(raw)
    return float(m.group(0)) if m else default


def parse_translate(transform: Optional[str]) -> Tuple[float, float]:
    """Extract ``(tx, ty)`` from a ``translate(x[, y])`` transform string."""
    m = re.search(r"translate\(\s*([^)]*)\)", transform or "")
    if not m:
        return 0.0, 0.0
    nums = [float(n) for n in _NUMBER_RE.findall(m.group(1))]
    if not nums:
        return 0.0, 0.0
    return nums[0], nums[1] if len(nums) > 1 else 0.0


def _points_bbox(xs: List[float], ys: List[float]) -> BoundingBox:
    if not xs or not ys:
        return BoundingBox()
    min_x, min_y = min(xs), min(ys)
    return BoundingBox(min_x, min_y, max(xs) - min_x, max(ys) - min_y)


def path_bbox(d: str) -> BoundingBox:
    """Approximate bounding box of SVG path data.

    Handles absolute and relative ``M L H V C S Q T`` commands; control
    points are included, which slightly overestimates curves.  Arc end
    points are tracked but the arc bulge is not.
    """
    tokens = _PATH_TOKEN_RE.findall(d or "")
    xs: List[float] = []
    ys: List[float] = []
    cx = cy = 0.0
    start_x = start_y = 0.0
    cmd = "M"
    nums: List[float] = []

    def _flush():
        nonlocal cx, cy, start_x, start_y
        rel = cmd.islower()
        c = cmd.upper()
        if c in ("M", "L", "T"):
            for i in range(0, len(nums) - 1, 2):
                cx = cx + nums[i] if rel else nums[i]
                cy = cy + nums[i + 1] if rel else nums[i + 1]
                xs.append(cx); ys.append(cy)
                if c == "M" and i == 0:
                    start_x, start_y = cx, cy
        elif c == "H":
            for n in nums:
                cx = cx + n if rel else n
                xs.append(cx); ys.append(cy)
        elif c == "V":
            for n in nums:
                cy = cy + n if rel else n
                xs.append(cx); ys.append(cy)
        elif c in ("C", "S", "Q"):
            step = {"C": 6, "S": 4, "Q": 4}[c]
            for i in range(0, len(nums) - step + 1, step):
                ox, oy = (cx, cy) if rel else (0.0, 0.0)
                for j in range(0, step, 2):
                    xs.append(ox + nums[i + j]); ys.append(oy + nums[i + j + 1])
                cx, cy = ox + nums[i + step - 2], oy + nums[i + step - 1]
        elif c == "A":
            for i in range(0, len(nums) - 6, 7):
                cx = cx + nums[i + 5] if rel else nums[i + 5]
                cy = cy + nums[i + 6] if rel else nums[i + 6]
                xs.append(cx); ys.append(cy)
        elif c == "Z":
            cx, cy = start_x, start_y

    for tok in tokens:
        if tok.isalpha():
            _flush()
            cmd = tok
            nums = []
        else:
            nums.append(float(tok))
    _flush()

    return _points_bbox(xs, ys)


def _shape_bbox(el: ET.Element) -> Optional[BoundingBox]:
    """Box of a single basic shape, or ``None`` for container elements."""
    tag = local_name(el.tag)
    if tag in ("rect", "image", "foreignObject", "use", "svg") and el.get("width") is not None:
        return BoundingBox(_num(el, "x"), _num(el, "y"), _num(el, "width"), _num(el, "height"))
    if tag == "circle":
        r = _num(el, "r")
        return BoundingBox(_num(el, "cx") - r, _num(el, "cy") - r, 2 * r, 2 * r)
    if tag == "ellipse":
        rx, ry = _num(el, "rx"), _num(el, "ry")
        return BoundingBox(_num(el, "cx") - rx, _num(el, "cy") - ry, 2 * rx, 2 * ry)
    if tag == "line":
        return _points_bbox([_num(el, "x1"), _num(el, "x2")], [_num(el, "y1"), _num(el, "y2")])
    if tag in ("polygon", "polyline"):
        nums = [float(n) for n in _NUMBER_RE.findall(el.get("points") or "")]
        return _points_bbox(nums[0::2], nums[1::2])
    if tag == "path":
        return path_bbox(el.get("d", ""))
    return None


def element_bbox(el: ET.Element, skip_class: Optional[str] = "content") -> BoundingBox:
    """Bounding box of *el* in its own user space.

    Groups report the union of their children, each shifted by the child's
    ``translate()``.  Descendants carrying *skip_class* (mounted overlay
    content) are left out.

    Only geometry written as attributes is read.  ``<text>`` has no box
    here (no font metrics), and transforms other than ``translate()``
    (``scale``, ``rotate``, ``matrix``) are ignored, so the result can be
    smaller than a browser's ``getBBox()`` for the same mount.

    Returns:
        The box, or an empty ``BoundingBox()`` when nothing renders.
    """
    own = _shape_bbox(el)
    if own is not None:
        return own
    return _children_bbox(el, skip_class)


def _children_bbox(el: ET.Element, skip_class: Optional[str]) -> BoundingBox:
    box = BoundingBox()
    for child in _rendered_children(el, skip_class):
        dx, dy = parse_translate(child.get("transform"))
        box = box.union(element_bbox(child, skip_class).translated(dx, dy))
    return box


def _rendered_children(el: ET.Element, skip_class: Optional[str]) -> Iterable[ET.Element]:
    for child in el:
        if not isinstance(child.tag, str) or local_name(child.tag) in _SKIP_TAGS:
            continue
        if skip_class and has_class(child, skip_class):
            continue
        yield child


def fit_to_box(bbox: BoundingBox, content: ET.Element) -> None:
    """Default size callback: stretch *content* over the mount's box.

    Sets ``x``, ``y``, ``width`` and ``height`` on the content node, which
    scales a nested ``<svg>`` (through its ``viewBox``) or a
    ``<foreignObject>`` to the box.
    """
    content.set("x", _fmt(bbox.x))
    content.set("y", _fmt(bbox.y))
    content.set("width", _fmt(bbox.width))
    content.set("height", _fmt(bbox.height))


def _fmt(v: float) -> str:
    v = round(v, 2)
    return str(int(v)) if v == int(v) else str(v)
