"""
main.py

OverlaySync - composite overlay content onto a rendered diagram.

Reads a rendered diagram SVG and an overlay document whose
``.overlay-cell[data-cell-id]`` elements each hold a ``.content`` section,
places every content section into the matching diagram node's mount and
writes the composited SVG (optionally a PNG too).

Usage:
    python main.py diagram.svg overlays.svg -o out.svg
    python main.py diagram.svg overlays.svg -o out.svg --mount ".outer" --png

Dependencies:
    pip install PyQt6 platformdirs tomli-w
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from debug_trace import close_log, configure_from_settings, trace, trace_exception
from models import RenderMode
from overlay.compositor import composite
from overlay.errors import InvalidSelector, UnmatchedOverlayError
from overlay.geometry import fit_to_box
from overlay.svg_io import load_svg, render_svg_to_png, write_svg


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="overlaysync",
        description="Place overlay cell content onto the matching nodes of a rendered diagram.",
    )
    parser.add_argument("diagram", help="Rendered diagram SVG")
    parser.add_argument("overlays", help="Document holding the .overlay-cell elements")
    parser.add_argument("-o", "--output", required=True, help="Composited SVG to write")
    parser.add_argument(
        "--mount",
        default=None,
        help="Mount selector inside each diagram node (default: settings overlay.mount_selector)",
    )
    parser.add_argument(
        "--incremental",
        action="store_true",
        help="Keep content already mounted in the diagram instead of purging it first",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Exit with status 1 if any overlay cell could not be placed",
    )
    parser.add_argument("--png", action="store_true", help="Also render OUTPUT with a .png suffix")
    parser.add_argument("--scale", type=float, default=None, help="PNG scale factor")
    return parser


def _render_png(svg_tree, png_path: Path, scale: Optional[float]) -> str:
    # Text rendering needs a QGuiApplication; run headless unless told otherwise
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PyQt6.QtGui import QGuiApplication

    app = QGuiApplication.instance() or QGuiApplication(sys.argv[:1])
    trace(f"Rendering PNG with {type(app).__name__}", "MAIN")
    return render_svg_to_png(svg_tree, png_path, scale)


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)

    configure_from_settings()
    trace("OverlaySync starting", "MAIN")

    mode = RenderMode.INCREMENTAL if args.incremental else RenderMode.FRESH
    try:
        diagram = load_svg(args.diagram)
        overlays = load_svg(args.overlays)
        report = composite(
            diagram.getroot(),
            overlays.getroot(),
            args.mount,
            fit_to_box,
            mode,
            strict=args.strict,
        )
    except UnmatchedOverlayError as e:
        print(str(e), file=sys.stderr)
        write_svg(diagram, args.output)
        return 1
    except (InvalidSelector, RuntimeError) as e:
        print(f"overlaysync: {e}", file=sys.stderr)
        return 2

    write_svg(diagram, args.output)
    print(
        f"{len(report.placed)} placed, {len(report.unmatched)} unmatched, "
        f"{report.purged} purged -> {args.output}"
    )

    if args.png:
        png_path = Path(args.output).with_suffix(".png")
        try:
            print(_render_png(diagram, png_path, args.scale))
        except RuntimeError as e:
            print(f"overlaysync: {e}", file=sys.stderr)
            return 2
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        trace(f"FATAL: {type(e).__name__}: {e}", "CRASH")
        trace_exception("Fatal exception")
        raise
    finally:
        close_log()
