"""Custom font upload: file → embedded data URL (+ Qt registration)."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from PySide6.QtCore import QByteArray
from PySide6.QtGui import QFont, QFontDatabase, QGuiApplication

from srtmotion.models.custom_font import CustomFont
from srtmotion.utils.config import FONT_MIME_TYPES

logger = logging.getLogger(__name__)

_NAME_STRIP_RE = re.compile(r"[^a-zA-Z0-9]")


class FontUploadError(Exception):
    """A font file could not be read or registered."""


def font_name_for(path: Path) -> str:
    """Family name used for an uploaded file: stem up to the first dot, alphanumerics only."""
    return _NAME_STRIP_RE.sub("", Path(path).name.split(".")[0])


def load_custom_font(path: Path, register: bool = True) -> CustomFont:
    """Read a font file and return it as an embeddable CustomFont.

    When a QGuiApplication exists (and *register* is True) the font is also
    registered with QFontDatabase, and the derived name is mapped onto the
    real family so the preview and the rasterizer can use it.

    Raises:
        FontUploadError: unsupported extension, unreadable file, or data Qt
            does not recognise as a font.
    """
    path = Path(path)
    mime_type = FONT_MIME_TYPES.get(path.suffix.lower())
    if mime_type is None:
        raise FontUploadError(
            f"Unsupported font format '{path.suffix}'. Use TTF, OTF, WOFF or WOFF2."
        )
    name = font_name_for(path)
    if not name:
        raise FontUploadError(f"Cannot derive a font name from '{path.name}'")
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise FontUploadError(f"Failed to read font file: {e}") from e
    if not raw:
        raise FontUploadError(f"Font file is empty: {path.name}")

    if register and QGuiApplication.instance() is not None:
        _register_with_qt(name, raw)

    logger.info("Loaded custom font %s (%s, %d bytes)", name, mime_type, len(raw))
    return CustomFont.from_bytes(name, raw, mime_type)


def _register_with_qt(name: str, raw: bytes) -> None:
    font_id = QFontDatabase.addApplicationFontFromData(QByteArray(raw))
    if font_id == -1:
        raise FontUploadError(f"'{name}' is not a valid font file")
    families = QFontDatabase.applicationFontFamilies(font_id)
    if families and families[0] != name:
        QFont.insertSubstitution(name, families[0])
    logger.debug("Registered font %s as %s", name, families)
