"""
overlay/compositor.py

Project overlay content onto the nodes of an already rendered diagram.

A pass runs::

    cleanup (fresh only) -> normalize entries -> for each entry:
        resolve mount by cell id -> size and transplant content

Per-entry mismatches never abort the pass: they go to the diagnostic sink
(``debug_trace`` by default) and the entry is skipped.  Only caller errors
such as an unparseable mount selector propagate.  With ``strict=True`` the
pass still completes, then raises ``UnmatchedOverlayError`` if anything was
skipped.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Callable, Iterable, Mapping, Optional

from debug_trace import trace, trace_call
from models import CompositeReport, RenderMode, SizeCallback
from overlay.cleanup import apply_cleanup
from overlay.errors import RECOVERABLE_ERRORS, OverlayError, UnmatchedOverlayError
from overlay.index import DiagramIndex
from overlay.normalizer import normalize
from overlay.selectors import parse_selector
from overlay.transplant import place

DiagnosticSink = Callable[[OverlayError], None]


def trace_sink(issue: OverlayError) -> None:
    """Default diagnostic sink: one ``OVERLAY`` trace line per issue."""
    trace(str(issue), "OVERLAY")


@trace_call("COMPOSITE")
def composite(
    diagram_root: ET.Element,
    overlay: Any,
    mount_selector: Optional[str],
    size_callback: SizeCallback,
    mode: str = RenderMode.FRESH,
    *,
    strict: Optional[bool] = None,
    sink: Optional[DiagnosticSink] = None,
) -> CompositeReport:
    """Run one compositing pass over *diagram_root*.

    Args:
        diagram_root: Root of the rendered diagram tree (mutated in place).
        overlay: Overlay cells (iterable or holder element) or a sparse
            ``cell id -> node`` mapping.
        mount_selector: Selector of the mount inside each diagram node;
            ``None`` uses the configured default.
        size_callback: ``callback(bbox, content)`` fitting content to a mount.
        mode: ``RenderMode.FRESH`` or ``RenderMode.INCREMENTAL``.
        strict: Raise ``UnmatchedOverlayError`` after the pass if any entry
            was skipped; ``None`` uses the configured default.
        sink: Receives each recoverable ``OverlayError``.

    Returns:
        The pass report.

    Raises:
        InvalidSelector: *mount_selector* cannot be parsed.
        UnmatchedOverlayError: Strict mode and at least one entry skipped.
    """
    from settings import get_settings

    conf = get_settings().settings.overlay
    if mount_selector is None:
        mount_selector = conf.mount_selector
    if strict is None:
        strict = conf.strict
    if not callable(size_callback):
        raise TypeError("size_callback must be callable")
    if mode not in RenderMode.ALL:
        raise ValueError(f"Unknown render mode {mode!r}; expected one of {RenderMode.ALL}")

    # parse up front: a bad selector must fail before the tree is touched
    selector = parse_selector(mount_selector)
    report = CompositeReport(mode=mode)
    downstream = sink or trace_sink

    def report_issue(issue: OverlayError) -> None:
        report.issues.append(issue)
        report.unmatched.append(issue.cell_id or "")
        downstream(issue)

    index = DiagramIndex(diagram_root, conf.cell_id_attribute)
    report.purged = apply_cleanup(index, mode, selector, conf.content_class)

    entries = normalize(
        overlay,
        report_issue,
        cell_id_attribute=conf.cell_id_attribute,
        cell_class=conf.overlay_cell_class,
        content_class=conf.content_class,
    )

    for entry in entries:
        try:
            mount = index.resolve(entry.cell_id, selector)
        except RECOVERABLE_ERRORS as issue:
            report_issue(issue)
            continue
        previous = place(index, mount, entry, size_callback, conf.content_class)
        if previous is not None:
            report.detached.append(previous)
        report.placed.append(entry.cell_id)

    trace(
        f"{mode} pass: {len(report.placed)} placed, {len(report.unmatched)} unmatched, "
        f"{report.purged} purged",
        "COMPOSITE",
    )
    if strict and report.unmatched:
        raise UnmatchedOverlayError(report)
    return report


def composite_fresh(
    diagram_root: ET.Element,
    overlay_entries: Iterable[Any] | ET.Element,
    mount_selector: Optional[str],
    size_callback: SizeCallback,
    *,
    strict: Optional[bool] = None,
    sink: Optional[DiagnosticSink] = None,
) -> CompositeReport:
    """Purge every mounted overlay, then place *overlay_entries*.

    *overlay_entries* is a collection of self-identifying overlay cells
    (or a holder element containing them).
    """
    return composite(
        diagram_root, overlay_entries, mount_selector, size_callback,
        RenderMode.FRESH, strict=strict, sink=sink,
    )


def composite_incremental(
    diagram_root: ET.Element,
    overlay_by_key: Mapping[str, Any],
    mount_selector: Optional[str],
    size_callback: SizeCallback,
    *,
    strict: Optional[bool] = None,
    sink: Optional[DiagnosticSink] = None,
) -> CompositeReport:
    """Place the non-empty values of *overlay_by_key* without purging.

    Mounts whose ids are absent from the mapping keep their content.
    """
    return composite(
        diagram_root, overlay_by_key, mount_selector, size_callback,
        RenderMode.INCREMENTAL, strict=strict, sink=sink,
    )
