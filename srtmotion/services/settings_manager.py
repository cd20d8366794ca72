"""Settings manager for application preferences."""

from typing import Optional

from PySide6.QtCore import QSettings

from srtmotion.models.settings import AnimationSettings
from srtmotion.utils.config import (
    DEFAULT_EXPORT_FPS,
    DEFAULT_STAGE_HEIGHT,
    DEFAULT_STAGE_WIDTH,
)


class SettingsManager:
    """Wrapper around QSettings for type-safe preference management."""

    def __init__(self):
        self._settings = QSettings()

    # ---------------------------------------------------- Export Settings

    def get_export_fps(self) -> int:
        """Get the export frame rate (default: 30)."""
        return self._settings.value("export/fps", DEFAULT_EXPORT_FPS, int)

    def set_export_fps(self, fps: int) -> None:
        """Set the export frame rate."""
        self._settings.setValue("export/fps", fps)

    def get_stage_size(self) -> tuple[int, int]:
        """Get the stage (output) size in pixels (default: 1920x1080)."""
        width = self._settings.value("export/stage_width", DEFAULT_STAGE_WIDTH, int)
        height = self._settings.value("export/stage_height", DEFAULT_STAGE_HEIGHT, int)
        return width, height

    def set_stage_size(self, width: int, height: int) -> None:
        """Set the stage size in pixels."""
        self._settings.setValue("export/stage_width", width)
        self._settings.setValue("export/stage_height", height)

    def get_last_export_dir(self) -> str:
        """Get the directory of the last export ("" when unset)."""
        return self._settings.value("export/last_dir", "", str)

    def set_last_export_dir(self, path: str) -> None:
        self._settings.setValue("export/last_dir", path)

    # ---------------------------------------------------- Animation Settings

    def get_animation_settings(self) -> AnimationSettings:
        """Get the last used animation settings (defaults when unset or invalid)."""
        data = {}
        for key in AnimationSettings().to_dict():
            value = self._settings.value(f"animation/{key}", None)
            if value is not None:
                data[key] = str(value)
        try:
            return AnimationSettings.from_dict(data)
        except ValueError:
            return AnimationSettings()

    def set_animation_settings(self, settings: AnimationSettings) -> None:
        for key, value in settings.to_dict().items():
            self._settings.setValue(f"animation/{key}", value)

    # ---------------------------------------------------- Advanced Settings

    def get_ffmpeg_path(self) -> Optional[str]:
        """Get the custom FFmpeg path (None for auto-detect)."""
        path = self._settings.value("advanced/ffmpeg_path", "", str)
        return path if path else None

    def set_ffmpeg_path(self, path: Optional[str]) -> None:
        """Set the custom FFmpeg path (None for auto-detect)."""
        self._settings.setValue("advanced/ffmpeg_path", path or "")

    # ---------------------------------------------------- General Methods

    def reset_to_defaults(self) -> None:
        """Reset all settings to default values."""
        self._settings.clear()
