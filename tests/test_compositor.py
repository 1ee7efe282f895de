"""Tests for overlay/compositor.py: fresh and incremental compositing passes."""
from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from conftest import content_el, contents_of, mount_of
from models import BoundingBox, OverlayEntry, RenderMode
from overlay.compositor import composite, composite_fresh, composite_incremental
from overlay.errors import (
    InvalidSelector,
    MissingContentMount,
    MissingTargetNode,
    UnmatchedOverlayError,
)
from overlay.geometry import fit_to_box


def _cell(cell_id, content_id):
    cell = ET.Element("g", {"class": "overlay-cell", "data-cell-id": cell_id})
    cell.append(content_el(content_id))
    return cell


def _ids(mount):
    return [el.get("id") for el in contents_of(mount)]


def _noop(bbox, content):
    pass


# ─────────────────────────────────────────────────────────
# Fresh passes
# ─────────────────────────────────────────────────────────


class TestFresh:
    def test_each_mount_holds_only_its_content(self, diagram, overlay_doc):
        report = composite(diagram, overlay_doc, ".outer", fit_to_box)
        assert _ids(mount_of(diagram, "A")) == ["new-A"]
        assert _ids(mount_of(diagram, "B")) == ["new-B"]
        assert report.placed == ["A", "B"]
        assert report.unmatched == []
        assert report.ok

    def test_purges_previous_content(self, diagram, overlay_doc):
        report = composite(diagram, overlay_doc, ".outer", fit_to_box)
        assert report.purged == 1
        assert "old-B" not in _ids(mount_of(diagram, "B"))

    def test_purges_untouched_mounts(self, diagram):
        composite(diagram, [_cell("A", "a")], ".outer", _noop)
        assert _ids(mount_of(diagram, "B")) == []

    def test_purges_nested_content(self):
        root = ET.fromstring(
            '<svg><g data-cell-id="N"><g class="outer">'
            '<g class="wrap"><g class="content" id="nested"/></g>'
            '</g></g></svg>'
        )
        report = composite(root, [], ".outer", _noop)
        assert report.purged == 1
        assert len(root[0][0][0]) == 0

    def test_content_sized_to_mount(self, diagram, overlay_doc):
        composite(diagram, overlay_doc, ".outer", fit_to_box)
        placed = contents_of(mount_of(diagram, "A"))[0]
        assert (placed.get("x"), placed.get("y"), placed.get("width"), placed.get("height")) == (
            "5", "5", "80", "30"
        )

    def test_size_callback_once_per_entry_with_mount_box(self, diagram, overlay_doc):
        calls = []

        def record(bbox, content):
            calls.append((bbox, content.get("id"), len(contents_of(mount_of(diagram, "A")))))

        composite(diagram, overlay_doc, ".outer", record)
        assert [(c[0], c[1]) for c in calls] == [
            (BoundingBox(5, 5, 80, 30), "new-A"),
            (BoundingBox(200, 0, 60, 40), "new-B"),
        ]
        # called before the content is attached
        assert calls[0][2] == 0

    def test_repeated_pass_is_idempotent(self, diagram, overlay_doc):
        composite(diagram, overlay_doc, ".outer", fit_to_box)
        first = ET.tostring(diagram)
        report = composite(diagram, overlay_doc, ".outer", fit_to_box)
        assert ET.tostring(diagram) == first
        assert report.placed == ["A", "B"]

    def test_overlay_document_shares_placed_content(self, diagram, overlay_doc):
        composite(diagram, overlay_doc, ".outer", fit_to_box)
        cell_a = overlay_doc[0]
        placed = contents_of(mount_of(diagram, "A"))[0]
        assert [el.get("id") for el in cell_a] == ["new-A"]
        assert placed is cell_a[0]
        # sizing and later edits show on both sides
        assert cell_a[0].get("width") == "80"
        placed.set("fill", "red")
        assert b'fill="red"' in ET.tostring(overlay_doc)

    def test_empty_overlay_only_purges(self, diagram):
        report = composite(diagram, [], ".outer", _noop)
        assert report.placed == []
        assert report.purged == 1

    def test_fresh_wrapper(self, diagram, overlay_doc):
        report = composite_fresh(diagram, overlay_doc, ".outer", fit_to_box)
        assert report.mode == RenderMode.FRESH
        assert _ids(mount_of(diagram, "B")) == ["new-B"]


# ─────────────────────────────────────────────────────────
# Incremental passes
# ─────────────────────────────────────────────────────────


class TestIncremental:
    def test_sparse_mapping_keeps_untouched_mounts(self, diagram):
        node = content_el("a")
        report = composite(diagram, {"A": node, "B": None}, ".outer", _noop, RenderMode.INCREMENTAL)
        assert _ids(mount_of(diagram, "A")) == ["a"]
        assert _ids(mount_of(diagram, "B")) == ["old-B"]
        assert report.placed == ["A"]
        assert report.purged == 0

    def test_replaces_in_place(self, diagram):
        old = mount_of(diagram, "B").find("*[@id='old-B']")
        report = composite_incremental(diagram, {"B": content_el("x")}, ".outer", _noop)
        mount = mount_of(diagram, "B")
        assert list(mount)[1].get("id") == "x"
        assert _ids(mount) == ["x"]
        assert report.detached == [old]

    def test_content_moved_between_mounts(self, diagram):
        node = content_el("shared")
        composite_incremental(diagram, {"A": node}, ".outer", _noop)
        composite_incremental(diagram, {"B": node}, ".outer", _noop)
        assert _ids(mount_of(diagram, "A")) == []
        assert _ids(mount_of(diagram, "B")) == ["shared"]

    def test_same_content_twice_is_noop(self, diagram):
        node = content_el("a")
        composite_incremental(diagram, {"A": node}, ".outer", _noop)
        report = composite_incremental(diagram, {"A": node}, ".outer", _noop)
        assert _ids(mount_of(diagram, "A")) == ["a"]
        assert report.detached == []

    def test_nested_content_replaced_where_it_sits(self):
        root = ET.fromstring(
            '<svg><g data-cell-id="N"><g class="outer">'
            '<g class="wrap"><g class="content" id="nested"/></g>'
            '</g></g></svg>'
        )
        mount = root[0][0]
        report = composite_incremental(root, {"N": content_el("fresh")}, ".outer", _noop)
        found = [el.get("id") for el in mount.iter() if "content" in (el.get("class") or "").split()]
        assert found == ["fresh"]
        assert mount[0][0].get("id") == "fresh"
        assert [el.get("id") for el in report.detached] == ["nested"]

    def test_entries_accepted(self, diagram):
        entry = OverlayEntry("A", content_el("e"))
        report = composite(diagram, [entry], ".outer", _noop, RenderMode.INCREMENTAL)
        assert report.placed == ["A"]
        assert _ids(mount_of(diagram, "B")) == ["old-B"]


# ─────────────────────────────────────────────────────────
# Mismatches and duplicates
# ─────────────────────────────────────────────────────────


class TestMismatches:
    def test_duplicate_ids_last_wins(self, diagram):
        report = composite(diagram, [_cell("B", "b1"), _cell("B", "b2")], ".outer", _noop)
        assert _ids(mount_of(diagram, "B")) == ["b2"]
        assert report.placed == ["B", "B"]
        assert [el.get("id") for el in report.detached] == ["b1"]

    def test_missing_target_skipped(self, diagram):
        issues = []
        report = composite(diagram, [_cell("Z", "z"), _cell("A", "a")], ".outer", _noop, sink=issues.append)
        assert report.placed == ["A"]
        assert report.unmatched == ["Z"]
        assert len(issues) == 1 and isinstance(issues[0], MissingTargetNode)
        assert report.issues == issues

    def test_missing_mount_skipped(self, diagram):
        issues = []
        report = composite(diagram, [_cell("C", "c")], ".outer", _noop, sink=issues.append)
        assert isinstance(issues[0], MissingContentMount)
        assert report.unmatched == ["C"]
        assert not report.ok

    def test_default_sink_traces(self, diagram, capsys):
        composite(diagram, [_cell("Z", "z")], ".outer", _noop)
        err = capsys.readouterr().err
        assert "[OVERLAY]" in err
        assert "'Z'" in err

    def test_invalid_selector_leaves_tree_untouched(self, diagram, overlay_doc):
        before = ET.tostring(diagram)
        with pytest.raises(InvalidSelector):
            composite(diagram, overlay_doc, ".outer >", fit_to_box)
        assert ET.tostring(diagram) == before

    def test_unknown_mode(self, diagram):
        with pytest.raises(ValueError):
            composite(diagram, [], ".outer", _noop, "partial")

    def test_callback_must_be_callable(self, diagram):
        with pytest.raises(TypeError):
            composite(diagram, [], ".outer", None)


# ─────────────────────────────────────────────────────────
# Strict mode and settings defaults
# ─────────────────────────────────────────────────────────


class TestStrictAndSettings:
    def test_strict_raises_after_completing(self, diagram):
        with pytest.raises(UnmatchedOverlayError) as exc:
            composite(diagram, [_cell("Z", "z"), _cell("A", "a")], ".outer", _noop, strict=True)
        assert exc.value.unmatched == ["Z"]
        assert exc.value.report.placed == ["A"]
        assert _ids(mount_of(diagram, "A")) == ["a"]

    def test_strict_clean_pass_returns(self, diagram, overlay_doc):
        assert composite(diagram, overlay_doc, ".outer", _noop, strict=True).ok

    def test_strict_from_settings(self, diagram, isolated_settings):
        isolated_settings.settings.overlay.strict = True
        with pytest.raises(UnmatchedOverlayError):
            composite(diagram, [_cell("Z", "z")], ".outer", _noop)

    def test_explicit_strict_overrides_settings(self, diagram, isolated_settings):
        isolated_settings.settings.overlay.strict = True
        report = composite(diagram, [_cell("Z", "z")], ".outer", _noop, strict=False)
        assert report.unmatched == ["Z"]

    def test_default_mount_selector(self, diagram, overlay_doc):
        report = composite(diagram, overlay_doc, None, _noop)
        assert report.placed == ["A", "B"]

    def test_configured_mount_selector(self, diagram, overlay_doc, isolated_settings):
        isolated_settings.settings.overlay.mount_selector = "svg.outer"
        report = composite(diagram, overlay_doc, None, _noop, sink=lambda issue: None)
        assert report.placed == ["A"]
        assert report.unmatched == ["B"]

    def test_configured_markup_names(self, isolated_settings):
        conf = isolated_settings.settings.overlay
        conf.cell_id_attribute = "data-node"
        conf.content_class = "payload"
        root = ET.fromstring('<svg><g data-node="N"><g class="outer"/></g></svg>')
        payload = ET.Element("g", {"class": "payload"})
        report = composite(root, {"N": payload}, None, _noop, RenderMode.INCREMENTAL)
        assert report.placed == ["N"]
        assert root[0][0][0] is payload
