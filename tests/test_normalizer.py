"""Tests for overlay/normalizer.py: overlay cells and sparse mappings to entries."""
from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from conftest import content_el
from models import OverlayEntry
from overlay.errors import MissingOverlayContent, MissingTargetNode
from overlay.normalizer import find_content, iter_overlay_cells, normalize, normalize_cells


def _cell(cell_id, content_id="c"):
    cell = ET.Element("g", {"class": "overlay-cell", "data-cell-id": cell_id})
    cell.append(content_el(content_id))
    return cell


@pytest.fixture()
def issues():
    return []


class TestFindContent:
    def test_node_itself(self):
        el = content_el("x")
        assert find_content(el, "content") is el

    def test_first_descendant(self):
        cell = ET.Element("g")
        wrapper = ET.SubElement(cell, "g")
        first = ET.SubElement(wrapper, "g", {"class": "content", "id": "first"})
        ET.SubElement(cell, "g", {"class": "content", "id": "second"})
        assert find_content(cell, "content") is first

    def test_none(self):
        assert find_content(ET.Element("g"), "content") is None


class TestCells:
    def test_holder_element(self, overlay_doc, issues):
        entries = normalize_cells(overlay_doc, issues.append)
        assert [e.cell_id for e in entries] == ["A", "B"]
        assert [e.content.get("id") for e in entries] == ["new-A", "new-B"]
        assert issues == []

    def test_iter_overlay_cells_excludes_holder(self):
        holder = ET.Element("g", {"class": "overlay-cell"})
        assert iter_overlay_cells(holder, "overlay-cell") == []

    def test_single_cell(self, issues):
        entries = normalize_cells(_cell("A"), issues.append)
        assert [e.cell_id for e in entries] == ["A"]

    def test_list_keeps_order_and_duplicates(self, issues):
        entries = normalize_cells([_cell("B", "b"), _cell("A", "a"), _cell("B", "b2")], issues.append)
        assert [(e.cell_id, e.content.get("id")) for e in entries] == [("B", "b"), ("A", "a"), ("B", "b2")]

    def test_entries_pass_through(self, issues):
        entry = OverlayEntry("A", content_el("a"))
        assert normalize_cells([entry], issues.append) == [entry]

    def test_cell_without_id_reported(self, issues):
        cell = ET.Element("g", {"class": "overlay-cell"})
        cell.append(content_el("c"))
        assert normalize_cells([cell], issues.append) == []
        assert len(issues) == 1
        assert isinstance(issues[0], MissingTargetNode)

    def test_cell_without_content_reported(self, issues):
        cell = ET.Element("g", {"class": "overlay-cell", "data-cell-id": "A"})
        assert normalize_cells([cell], issues.append) == []
        assert isinstance(issues[0], MissingOverlayContent)
        assert issues[0].cell_id == "A"

    def test_none_is_empty(self, issues):
        assert normalize_cells(None, issues.append) == []

    def test_rejects_foreign_items(self, issues):
        with pytest.raises(TypeError):
            normalize_cells(["not a cell"], issues.append)


class TestMapping:
    def test_skips_empty_values(self, issues):
        node = content_el("a")
        entries = normalize({"A": node, "B": None, "C": ""}, issues.append)
        assert entries == [OverlayEntry("A", node)]
        assert issues == []

    def test_childless_element_is_not_skipped(self, issues):
        # an Element with no children is falsy but still overlay data
        node = content_el("leaf")
        assert len(node) == 0
        assert [e.cell_id for e in normalize({"A": node}, issues.append)] == ["A"]

    def test_content_found_inside_value(self, issues):
        wrapper = ET.Element("div")
        inner = ET.SubElement(wrapper, "svg", {"class": "content"})
        assert normalize({"A": wrapper}, issues.append)[0].content is inner

    def test_value_without_content_reported(self, issues):
        assert normalize({"A": ET.Element("div")}, issues.append) == []
        assert isinstance(issues[0], MissingOverlayContent)

    def test_keys_become_strings(self, issues):
        assert normalize({7: content_el("x")}, issues.append)[0].cell_id == "7"

    def test_rejects_non_element_values(self, issues):
        with pytest.raises(TypeError):
            normalize({"A": "markup"}, issues.append)
