# src/pipeshell/core/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important package and user paths.
    """

    # --- Package specific paths

    @staticmethod
    def get_shell_package_root() -> Path:
        """
        Returns the directory of the 'pipeshell' package (the one holding
        settings.json). Works for editable and regular installs alike.
        """
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_shell_package_root() / "settings.json"

    # --- User specific paths ---

    @staticmethod
    def get_home_dir() -> Path:
        """Fallback target for a bare 'cd' when HOME is not set in the session."""
        return Path.home()
