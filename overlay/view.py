"""
overlay/view.py

A diagram view: one rendered diagram, its state hub, and the compositing
passes triggered by changes on the hub.

* Publishing ``selected_diagram`` (a freshly rendered root) runs a
  ``FRESH`` pass with the current ``overlay_data``.
* Publishing ``overlay_data`` runs an ``INCREMENTAL`` pass while an instance
  is selected (targeted updates keep untouched mounts) and a ``FRESH`` pass
  otherwise.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Callable, List, Optional

from PyQt6.QtCore import QObject

from debug_trace import trace
from models import CompositeReport, RenderMode, SizeCallback
from overlay.compositor import DiagnosticSink, composite
from overlay.geometry import fit_to_box
from overlay.selectors import parse_selector
from state.hub import StateHub, Subscription, create_state_hub


class OverlayDiagramView:
    """Keeps a diagram's overlays in step with its state hub.

    Args:
        mount_selector: Mount selector; ``None`` uses the configured default.
        size_callback: Fits content to a mount; defaults to ``fit_to_box``.
        sink: Diagnostic sink passed to every pass.
        parent: Optional ``QObject`` owning the hub's channels.
    """

    def __init__(
        self,
        mount_selector: Optional[str] = None,
        size_callback: SizeCallback = fit_to_box,
        sink: Optional[DiagnosticSink] = None,
        parent: Optional[QObject] = None,
    ):
        # fail at construction, not inside a slot
        if mount_selector is not None:
            parse_selector(mount_selector)
        if not callable(size_callback):
            raise TypeError("size_callback must be callable")
        self.mount_selector = mount_selector
        self.size_callback = size_callback
        self.sink = sink
        self.hub: StateHub = create_state_hub(parent)
        self.reports: List[CompositeReport] = []
        self._listeners: List[Callable[[CompositeReport], None]] = []
        self._ready = False
        self._subscriptions: List[Subscription] = [
            self.hub.selected_diagram.subscribe(self._on_diagram_changed),
            self.hub.overlay_data.subscribe(self._on_overlay_changed),
        ]
        self._ready = True

    # ── public API ──

    @property
    def diagram(self) -> Optional[ET.Element]:
        return _as_root(self.hub.selected_diagram.value)

    @property
    def last_report(self) -> Optional[CompositeReport]:
        return self.reports[-1] if self.reports else None

    def show_diagram(self, diagram: Any) -> None:
        """Publish a newly rendered diagram (``Element`` or ``ElementTree``).

        Raises:
            TypeError: *diagram* is neither; nothing is published.
        """
        _as_root(diagram)
        self.hub.selected_diagram.publish(diagram)

    def show_overlays(self, overlay: Any) -> None:
        """Publish a new overlay data set (cells, holder element or mapping)."""
        self.hub.overlay_data.publish(overlay)

    def select_instance(self, instance: Any) -> None:
        self.hub.selected_instance.publish(instance)

    def on_composited(self, callback: Callable[[CompositeReport], None]) -> None:
        """Register *callback* to receive the report of every pass."""
        self._listeners.append(callback)

    def refresh(self, mode: str = RenderMode.FRESH) -> Optional[CompositeReport]:
        """Re-run a pass over the current diagram and overlay data."""
        root = self.diagram
        if root is None:
            return None
        report = composite(
            root,
            self.hub.overlay_data.value,
            self.mount_selector,
            self.size_callback,
            mode,
            strict=False,
            sink=self.sink,
        )
        self.reports.append(report)
        for listener in list(self._listeners):
            listener(report)
        return report

    def close(self) -> None:
        """Tear down the hub together with the view."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        self._listeners = []
        self.hub.close()

    # ── hub callbacks ──

    def _on_diagram_changed(self, diagram: Any) -> None:
        if not self._ready or diagram is None:
            return
        trace("Diagram changed, recompositing", "VIEW")
        self.refresh(RenderMode.FRESH)

    def _on_overlay_changed(self, overlay: Any) -> None:
        if not self._ready:
            return
        if self.hub.selected_instance.value is not None:
            mode = RenderMode.INCREMENTAL
        else:
            mode = RenderMode.FRESH
        self.refresh(mode)


def _as_root(diagram: Any) -> Optional[ET.Element]:
    if diagram is None:
        return None
    if isinstance(diagram, ET.ElementTree):
        return diagram.getroot()
    if isinstance(diagram, ET.Element):
        return diagram
    raise TypeError(f"Diagram must be an Element or ElementTree, got {type(diagram).__name__}")
