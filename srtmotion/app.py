"""SRTMotion application entry point.

Without export flags the interactive preview window opens. With any
``--export-*`` flag the exports run headless and the process exits.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from srtmotion.models.settings import ANIMATION_TYPES, TEXT_ALIGNMENTS, AnimationSettings
from srtmotion.utils.config import (
    APP_NAME,
    APP_VERSION,
    DEFAULT_EXPORT_FPS,
    DEFAULT_STAGE_HEIGHT,
    DEFAULT_STAGE_WIDTH,
    ORG_NAME,
)

logger = logging.getLogger(__name__)

_EXPORT_FLAGS = ("export_video", "export_html", "export_xml", "export_fusion", "export_ass")


def _status(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="srtmotion",
        description="Animate SRT captions and export them as video, HTML or NLE titles.",
    )
    parser.add_argument("srt", nargs="?", type=Path, help="Subtitle file (.srt) to load")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")

    style = parser.add_argument_group("style")
    style.add_argument("--animation", choices=ANIMATION_TYPES, help="Animation type")
    style.add_argument("--background", help="Background colour or 'transparent'")
    style.add_argument("--text-color", help="Text colour (#rrggbb)")
    style.add_argument("--font-size", help="Font size, e.g. 48px or 5vw")
    style.add_argument("--font-family", help="Font family name")
    style.add_argument("--align", choices=TEXT_ALIGNMENTS, help="Text alignment")
    style.add_argument(
        "--font", action="append", type=Path, default=[],
        help="Custom font file to load (repeatable; the last one becomes active)",
    )

    output = parser.add_argument_group("export")
    output.add_argument("--fps", type=int, default=DEFAULT_EXPORT_FPS, help="Frames per second")
    output.add_argument("--width", type=int, default=DEFAULT_STAGE_WIDTH, help="Stage width")
    output.add_argument("--height", type=int, default=DEFAULT_STAGE_HEIGHT, help="Stage height")
    output.add_argument("--output-dir", type=Path, help="Directory for exported files")
    output.add_argument("--export-video", action="store_true", help="Render a video file")
    output.add_argument("--export-html", action="store_true", help="Write a standalone HTML page")
    output.add_argument("--export-xml", action="store_true", help="Write Premiere (FCP7) XML")
    output.add_argument("--export-fusion", action="store_true", help="Write a DaVinci Fusion .setting")
    output.add_argument("--export-ass", action="store_true", help="Write an ASS subtitle script")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log to stderr")
    return parser


def settings_from_args(args: argparse.Namespace, base: AnimationSettings | None = None) -> AnimationSettings:
    """Overlay the style flags that were given on top of *base*."""
    base = base or AnimationSettings()
    changes = {
        "animation_type": args.animation,
        "background_color": args.background,
        "text_color": args.text_color,
        "font_size": args.font_size,
        "font_family": args.font_family,
        "text_align": args.align,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    return base.evolve(**changes) if changes else base


def wants_headless(args: argparse.Namespace) -> bool:
    return any(getattr(args, flag) for flag in _EXPORT_FLAGS)


def run_exports(args: argparse.Namespace) -> int:
    """Run the requested exports without a window. Returns the exit code."""
    from srtmotion.models.session import Session
    from srtmotion.services.font_loader import FontUploadError, load_custom_font
    from srtmotion.services.html_generator import document_file_name, generate_standalone_html
    from srtmotion.services.interchange_exporter import (
        generate_ass,
        generate_fusion_setting,
        generate_premiere_xml,
        interchange_file_name,
    )
    from srtmotion.services.srt_parser import import_srt
    from srtmotion.services.video_exporter import (
        EncoderUnavailableError,
        ExportOptions,
        export_file_name,
        export_video,
    )

    if args.srt is None:
        _status("Error: an SRT file is required for export")
        return 2
    if args.fps <= 0 or args.width <= 0 or args.height <= 0:
        _status("Error: --fps, --width and --height must be positive")
        return 2
    try:
        result = import_srt(args.srt)
    except (OSError, UnicodeDecodeError) as e:
        _status(f"Error: failed to read {args.srt}: {e}")
        return 1
    for err in result.errors:
        _status(f"Skipped block: {err}")
    if not result.captions:
        _status("Error: no valid subtitles found")
        return 1

    session = Session(settings=settings_from_args(args))
    session.load_captions(result.captions, args.srt.name)
    for font_path in args.font:
        try:
            session.add_font(load_custom_font(font_path))
        except FontUploadError as e:
            _status(f"Error: {e}")
            return 1
    if args.font_family:
        session.settings = session.settings.evolve(font_family=args.font_family)

    out_dir = args.output_dir or args.srt.parent
    out_dir.mkdir(parents=True, exist_ok=True)
    stage = (args.width, args.height)
    captions = session.captions.snapshot()
    settings = session.settings
    source = session.source_name

    if args.export_html:
        path = out_dir / document_file_name(source)
        html = generate_standalone_html(captions, settings, session.custom_fonts, args.fps, stage)
        path.write_text(html, encoding="utf-8")
        _status(f"Wrote {path}")
    if args.export_xml:
        path = out_dir / interchange_file_name(source, "premiere")
        xml = generate_premiere_xml(captions, settings, path.stem, args.fps, stage)
        path.write_text(xml, encoding="utf-8")
        _status(f"Wrote {path}")
    if args.export_fusion:
        path = out_dir / interchange_file_name(source, "fusion")
        setting = generate_fusion_setting(captions, settings, args.fps, stage)
        path.write_text(setting, encoding="utf-8")
        _status(f"Wrote {path}")
    if args.export_ass:
        path = out_dir / interchange_file_name(source, "ass")
        path.write_text(generate_ass(captions, settings, stage), encoding="utf-8")
        _status(f"Wrote {path}")
    if args.export_video:
        path = out_dir / export_file_name(source, settings.is_transparent, ".mp4")

        def _progress(current: int, total: int) -> None:
            _status(f"  frame {current}/{total}")

        try:
            exported = export_video(
                captions,
                settings,
                path,
                options=ExportOptions(fps=args.fps, stage_size=stage),
                on_progress=_progress,
            )
        except (EncoderUnavailableError, RuntimeError, ValueError) as e:
            _status(f"Error: video export failed: {e}")
            return 1
        if exported.degraded:
            _status(f"Warning: {len(exported.substituted_frames)} frame(s) were substituted")
        _status(f"Wrote {exported.output_path} ({exported.frames_written} frames)")
    return 0


def _apply_dark_theme(app) -> None:
    """Apply a dark color palette using the Fusion style."""
    from PySide6.QtGui import QColor, QPalette

    app.setStyle("Fusion")
    palette = QPalette()
    palette.setColor(QPalette.ColorRole.Window, QColor(45, 45, 45))
    palette.setColor(QPalette.ColorRole.WindowText, QColor(212, 212, 212))
    palette.setColor(QPalette.ColorRole.Base, QColor(30, 30, 30))
    palette.setColor(QPalette.ColorRole.AlternateBase, QColor(45, 45, 45))
    palette.setColor(QPalette.ColorRole.Text, QColor(212, 212, 212))
    palette.setColor(QPalette.ColorRole.Button, QColor(55, 55, 55))
    palette.setColor(QPalette.ColorRole.ButtonText, QColor(212, 212, 212))
    palette.setColor(QPalette.ColorRole.Highlight, QColor(60, 140, 220))
    palette.setColor(QPalette.ColorRole.HighlightedText, QColor(255, 255, 255))
    palette.setColor(QPalette.ColorGroup.Disabled, QPalette.ColorRole.Text, QColor(120, 120, 120))
    palette.setColor(QPalette.ColorGroup.Disabled, QPalette.ColorRole.ButtonText, QColor(120, 120, 120))
    app.setPalette(palette)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if wants_headless(args):
        # 헤드리스 내보내기: 화면 없이 텍스트 래스터화
        os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
        from PySide6.QtGui import QGuiApplication

        QGuiApplication.setOrganizationName(ORG_NAME)
        QGuiApplication.setApplicationName(APP_NAME)
        app = QGuiApplication.instance() or QGuiApplication([sys.argv[0]])  # noqa: F841
        return run_exports(args)

    from PySide6.QtWidgets import QApplication

    from srtmotion.ui.main_window import MainWindow

    QApplication.setOrganizationName(ORG_NAME)
    QApplication.setApplicationName(APP_NAME)
    app = QApplication.instance() or QApplication([sys.argv[0]])
    _apply_dark_theme(app)

    window = MainWindow()
    window.show()
    if args.srt is not None and args.srt.is_file():
        window.load_srt(args.srt)
    return app.exec()
