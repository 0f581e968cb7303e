"""
Verifier settings management.

Defaults for a verification run can be kept in a JSON settings file so
scheduled health checks need not repeat every flag. Command-line flags
override anything loaded here.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


CONFIG_ENV_VAR = "BACKUPVERIFY_CONFIG"


@dataclass
class VerifySettings:
    """Persistent defaults for verification runs."""
    sample_count: int = 0
    sample_width: int = 32
    one_filesystem: bool = False
    follow_symlinks: bool = False
    count_unmatched: bool = True
    ignore_dirs: list[str] = field(default_factory=list)

    # Fail the run when more than this share of items differ
    max_diff_percent: Optional[float] = None

    log_file: Optional[str] = None


class SettingsManager:
    """Manager for loading verifier settings."""

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = settings_path or self._get_default_path()
        self._settings: Optional[VerifySettings] = None

    @staticmethod
    def _get_default_path() -> Path:
        """Get the default settings file path."""
        override = os.environ.get(CONFIG_ENV_VAR)
        if override:
            return Path(override)

        if os.name == 'nt':
            # Windows
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'BackupVerify' / 'settings.json'
        else:
            # Linux/Mac
            config_home = os.environ.get('XDG_CONFIG_HOME',
                                         os.path.expanduser('~/.config'))
            return Path(config_home) / 'backupverify' / 'settings.json'

    @property
    def settings(self) -> VerifySettings:
        """Get current settings, loading from disk if needed."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> VerifySettings:
        """Load settings from disk, falling back to defaults."""
        if not self.settings_path.exists():
            return VerifySettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logging.warning(f"SettingsManager - Could not read {self.settings_path}: {e}")
            return VerifySettings()

        if not isinstance(data, dict):
            logging.warning(f"SettingsManager - Ignoring {self.settings_path}: not a JSON object")
            return VerifySettings()

        return self._from_dict(data)

    def _from_dict(self, data: dict) -> VerifySettings:
        """Convert dictionary to a settings object."""
        defaults = VerifySettings()

        ignore_dirs = data.get('ignore_dirs', defaults.ignore_dirs)
        if isinstance(ignore_dirs, str):
            ignore_dirs = [ignore_dirs]

        return VerifySettings(
            sample_count=data.get('sample_count', defaults.sample_count),
            sample_width=data.get('sample_width', defaults.sample_width),
            one_filesystem=bool(data.get('one_filesystem', defaults.one_filesystem)),
            follow_symlinks=bool(data.get('follow_symlinks', defaults.follow_symlinks)),
            count_unmatched=bool(data.get('count_unmatched', defaults.count_unmatched)),
            ignore_dirs=list(ignore_dirs),
            max_diff_percent=data.get('max_diff_percent', defaults.max_diff_percent),
            log_file=data.get('log_file', defaults.log_file),
        )
