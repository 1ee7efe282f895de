"""
overlay/svg_io.py

Load diagram and overlay documents, write composited diagrams, and
rasterise them with Qt's SVG renderer.

The PNG is rendered from the in-memory tree so the composited SVG never
needs to be written next to the source diagram.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QByteArray, QSize, Qt
from PyQt6.QtGui import QImage, QPainter
from PyQt6.QtSvg import QSvgRenderer

from debug_trace import trace

# Register namespaces so ET.write() doesn't mangle them with ns0/ns1 prefixes
ET.register_namespace("", "http://www.w3.org/2000/svg")
ET.register_namespace("xlink", "http://www.w3.org/1999/xlink")


def load_svg(path: str | Path) -> ET.ElementTree:
    """Parse an SVG (or any XML) document.

    Raises:
        RuntimeError: If the file is missing or not well-formed XML.
    """
    p = Path(path)
    if not p.is_file():
        raise RuntimeError(f"SVG file not found: {p}")
    try:
        tree = ET.parse(p)
    except ET.ParseError as e:
        raise RuntimeError(f"Cannot parse {p}: {e}") from e
    trace(f"Loaded {p}", "IO")
    return tree


def write_svg(tree: ET.ElementTree | ET.Element, path: str | Path) -> str:
    """Write *tree* as UTF-8 XML with a declaration; returns the path."""
    if isinstance(tree, ET.Element):
        tree = ET.ElementTree(tree)
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    tree.write(out, xml_declaration=True, encoding="utf-8")
    trace(f"Wrote {out}", "IO")
    return str(out)


def to_svg_bytes(tree: ET.ElementTree | ET.Element) -> bytes:
    root = tree.getroot() if isinstance(tree, ET.ElementTree) else tree
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def render_svg_to_png(
    tree: ET.ElementTree | ET.Element,
    png_path: str | Path,
    scale: Optional[float] = None,
) -> str:
    """Rasterise a composited diagram to PNG.

    A ``QGuiApplication`` must exist before calling this (text rendering
    needs the font database).

    Args:
        tree: The diagram tree.
        png_path: Output file.
        scale: Factor applied to the SVG's intrinsic size; ``None`` uses
            the ``[export] png_scale`` setting.

    Returns:
        Path to the written PNG.

    Raises:
        RuntimeError: If the SVG cannot be loaded or the PNG not saved.
    """
    if scale is None:
        from settings import get_settings
        scale = get_settings().settings.export.png_scale

    renderer = QSvgRenderer(QByteArray(to_svg_bytes(tree)))
    if not renderer.isValid():
        raise RuntimeError("QSvgRenderer could not load the composited SVG")

    default_size = renderer.defaultSize()
    if default_size.isEmpty():
        raise RuntimeError("SVG has no intrinsic size (missing width/height or viewBox)")

    image = QImage(
        QSize(int(default_size.width() * scale), int(default_size.height() * scale)),
        QImage.Format.Format_ARGB32_Premultiplied,
    )
    image.fill(Qt.GlobalColor.white)

    painter = QPainter(image)
    renderer.render(painter)
    painter.end()

    out = str(png_path)
    if not image.save(out, "PNG"):
        raise RuntimeError(f"Failed to save rendered PNG: {out}")
    trace(f"Rendered {out} at {scale}x", "IO")
    return out
