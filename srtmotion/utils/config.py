"""Application configuration constants."""

from __future__ import annotations

import sys

APP_NAME = "SRTMotion"
APP_VERSION = "0.2.0"
ORG_NAME = "SRTMotion"

# FFmpeg
if sys.platform == "darwin":
    FFMPEG_PATH = "/opt/homebrew/bin/ffmpeg"
elif sys.platform == "win32":
    FFMPEG_PATH = r"C:\ffmpeg\bin\ffmpeg.exe"
else:
    FFMPEG_PATH = "ffmpeg"


# Stage / export
DEFAULT_STAGE_WIDTH = 1920
DEFAULT_STAGE_HEIGHT = 1080
DEFAULT_EXPORT_FPS = 30
PROGRESS_EVERY_N_FRAMES = 5

# Session timeline: max caption end + trailing buffer
TRAILING_BUFFER_SEC = 5.0
# Generated HTML loops over last caption end + this buffer
DOCUMENT_TRAILING_SEC = 2.0

# Scale floor for manual placement (prevents inverted geometry)
MIN_PLACEMENT_SCALE = 0.1

# Interactive preview timer interval (ms); roughly one display refresh
PREVIEW_TICK_MS = 16

# Supported subtitle formats
SUBTITLE_FILTER = "Subtitle Files (*.srt);;All Files (*)"

# Supported custom font formats
FONT_MIME_TYPES = {
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
}
FONT_FILTER = "Font Files ({});;All Files (*)".format(
    " ".join(f"*{ext}" for ext in FONT_MIME_TYPES)
)

# Web fonts the generated document links by default
WEB_FONT_FAMILIES = [
    "Inter:wght@400;700",
    "Bangers",
    "Cinzel:wght@700",
    "Orbitron:wght@700",
    "Permanent+Marker",
    "Anton",
    "Lobster",
    "Playfair+Display:wght@700",
    "Press+Start+2P",
    "Monoton",
    "Creepster",
]
