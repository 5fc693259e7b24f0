"""
Core configuration module for repokit.

Settings are layered from constructor overrides, environment variables (``SECTION__KEY``), ``.env`` and the packaged
``config.ini``.
"""

from repokit.core.config.config import CoreSettings, SettingsLike, load_ini_as_dict, load_settings

__all__ = ["CoreSettings", "SettingsLike", "load_ini_as_dict", "load_settings"]
