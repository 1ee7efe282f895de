"""
settings.py

Persistent settings management for OverlaySync.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/overlaysync/settings.toml
    - macOS: ~/Library/Application Support/overlaysync/settings.toml
    - Linux: ~/.config/overlaysync/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "overlaysync"

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


def set_settings(manager: Optional["SettingsManager"]) -> None:
    """Replace the global settings manager (``None`` resets to lazy default)."""
    global _settings_manager
    _settings_manager = manager


# =============================================================================
# Overlay Settings
# =============================================================================

@dataclass
class OverlaySettings:
    """Markup conventions shared by the diagram renderer and overlay producer.

    Defaults:
        cell_id_attribute: "data-cell-id"
        overlay_cell_class: "overlay-cell"
        content_class: "content"
        mount_selector: ".outer"
        strict: False
    """
    cell_id_attribute: str = "data-cell-id"   # Default: "data-cell-id"
    overlay_cell_class: str = "overlay-cell"  # Default: "overlay-cell"
    content_class: str = "content"            # Default: "content"
    mount_selector: str = ".outer"            # Default: ".outer"
    strict: bool = False                      # Default: False (log and skip)


# =============================================================================
# Trace Settings
# =============================================================================

@dataclass
class TraceSettings:
    """Debug trace output.

    Defaults:
        enabled: True
        log_file: "" (stderr only)
    """
    enabled: bool = True   # Default: True
    log_file: str = ""     # Default: "" (no log file)


# =============================================================================
# Export Settings
# =============================================================================

@dataclass
class ExportSettings:
    """Composited diagram export.

    Defaults:
        png_scale: 2.0
    """
    png_scale: float = 2.0  # Default: 2.0 (crisp 2x raster)


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        overlay: Overlay markup conventions and compositing defaults.
        trace: Debug trace settings.
        export: Export settings.
    """
    overlay: OverlaySettings = field(default_factory=OverlaySettings)
    trace: TraceSettings = field(default_factory=TraceSettings)
    export: ExportSettings = field(default_factory=ExportSettings)


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        config_dir: Explicit directory overriding the platform location.
    """

    def __init__(self, app_name: str = APP_NAME, config_dir: Optional[Path] = None):
        if config_dir is not None:
            self.settings_dir = Path(config_dir)
        else:
            self.settings_dir = Path(platformdirs.user_config_dir(app_name))
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except (OSError, tomllib.TOMLDecodeError):
            # If file is corrupted or unreadable, return defaults
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        overlay = data.get("overlay", {})
        o = settings.overlay
        o.cell_id_attribute = overlay.get("cell_id_attribute", o.cell_id_attribute)
        o.overlay_cell_class = overlay.get("overlay_cell_class", o.overlay_cell_class)
        o.content_class = overlay.get("content_class", o.content_class)
        o.mount_selector = overlay.get("mount_selector", o.mount_selector)
        o.strict = overlay.get("strict", o.strict)

        trace = data.get("trace", {})
        settings.trace.enabled = trace.get("enabled", settings.trace.enabled)
        settings.trace.log_file = trace.get("log_file", settings.trace.log_file)

        export = data.get("export", {})
        settings.export.png_scale = export.get("png_scale", settings.export.png_scale)

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "overlay": {
                "cell_id_attribute": s.overlay.cell_id_attribute,
                "overlay_cell_class": s.overlay.overlay_cell_class,
                "content_class": s.overlay.content_class,
                "mount_selector": s.overlay.mount_selector,
                "strict": s.overlay.strict,
            },
            "trace": {
                "enabled": s.trace.enabled,
                "log_file": s.trace.log_file,
            },
            "export": {
                "png_scale": s.export.png_scale,
            },
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string."""
        return tomli_w.dumps(self._to_toml_dict())

    def get_settings_path(self) -> Path:
        """Get the path to the settings file."""
        return self.settings_file
