from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from PySide6 import QtGui, QtWidgets
from PySide6.QtWidgets import QApplication

from .config import load_settings
from .core.editor import BadgeEditor
from .core.exceptions import BadgeError, friendly_message
from .core.fields import DEFAULT_SAMPLE_DATA
from .core.render import RenderScheduler
from .core.renderers import RenderContext
from .surface.qt_scene import QtSceneSurface

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="badge_designer", description="Preview a badge template.")
    parser.add_argument("template", type=Path, help="template JSON file")
    parser.add_argument("--side", choices=("front", "back"), default="front")
    parser.add_argument("--raw", action="store_true", help="show {entity.field} tokens instead of sample data")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def preview(editor: BadgeEditor, surface: QtSceneSurface, *, sample: bool = True) -> None:
    ctx = RenderContext(
        elements=editor.elements,
        sample_data=DEFAULT_SAMPLE_DATA if sample else None,
        settings=editor.settings,
    )
    scheduler = RenderScheduler(ctx, surface)
    asyncio.run(scheduler.render(
        editor.elements,
        background_src=editor.current_background,
        canvas_size=editor.canvas_size,
    ))


def main(argv: list[str] | None = None):
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[BadgeDesigner] %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv[:1])

    editor = BadgeEditor(load_settings())
    try:
        editor.load_template_json(args.template.read_text(encoding="utf-8"))
    except OSError as e:
        logger.error("Cannot read %s: %s", args.template, e)
        sys.exit(2)
    except BadgeError as e:
        logger.error("Cannot open %s: %s", args.template, friendly_message(e))
        sys.exit(2)
    editor.set_current_side(args.side)

    surface = QtSceneSurface()
    preview(editor, surface, sample=not args.raw)

    view = QtWidgets.QGraphicsView(surface.scene)
    view.setRenderHint(QtGui.QPainter.Antialiasing, True)
    view.setWindowTitle(f"{editor.template_name} ({args.side})")
    view.resize(editor.canvas_size[0] + 40, editor.canvas_size[1] + 40)
    view.show()
    sys.exit(app.exec())


if __name__ == '__main__':
    main()
