"""Shared fixtures: project root on sys.path, a core Qt application,
isolated settings, and small SVG diagram / overlay documents."""
from __future__ import annotations

import os
import sys
import xml.etree.ElementTree as ET

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import debug_trace
from settings import SettingsManager, set_settings


SVG_NS = "http://www.w3.org/2000/svg"

DIAGRAM_SVG = f"""
<svg xmlns="{SVG_NS}" viewBox="0 0 400 200" width="400" height="200">
  <g data-cell-id="A" transform="translate(10,10)">
    <rect class="shape" width="100" height="50"/>
    <svg class="outer" x="5" y="5" width="80" height="30"/>
  </g>
  <g data-cell-id="B">
    <g class="outer">
      <rect x="200" y="0" width="60" height="40"/>
      <g class="content" id="old-B"/>
      <text x="210" y="20">B</text>
    </g>
  </g>
  <g data-cell-id="C">
    <rect width="10" height="10"/>
  </g>
</svg>
"""

OVERLAY_SVG = f"""
<svg xmlns="{SVG_NS}">
  <g class="overlay-cell" data-cell-id="A">
    <svg class="content" id="new-A" viewBox="0 0 10 10"><circle r="5"/></svg>
  </g>
  <g class="overlay-cell" data-cell-id="B">
    <svg class="content" id="new-B" viewBox="0 0 10 10"><circle r="4"/></svg>
  </g>
</svg>
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def qapp():
    """Provide a single QCoreApplication for the entire test session."""
    from PyQt6.QtCore import QCoreApplication
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    yield app


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path):
    """Point the settings singleton at an empty temp config directory."""
    manager = SettingsManager(config_dir=tmp_path / "config")
    set_settings(manager)
    debug_trace.configure(enabled=True, log_file=None)
    yield manager
    set_settings(None)
    debug_trace.close_log()


@pytest.fixture()
def diagram() -> ET.Element:
    return ET.fromstring(DIAGRAM_SVG)


@pytest.fixture()
def overlay_doc() -> ET.Element:
    return ET.fromstring(OVERLAY_SVG)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def has_cls(el: ET.Element, name: str) -> bool:
    return name in (el.get("class") or "").split()


def mount_of(root: ET.Element, cell_id: str, mount_class: str = "outer") -> ET.Element | None:
    """Find a node's mount by plain tree walking, independent of the index."""
    for node in root.iter():
        if node.get("data-cell-id") == cell_id:
            for el in node.iter():
                if el is not node and has_cls(el, mount_class):
                    return el
    return None


def contents_of(mount: ET.Element) -> list:
    return [child for child in mount if has_cls(child, "content")]


def content_el(el_id: str, tag: str = "g") -> ET.Element:
    return ET.Element(tag, {"class": "content", "id": el_id})


def parent_lookup(root: ET.Element):
    parents = {child: parent for parent in root.iter() for child in parent}
    return parents.get
