"""
Services around the verification engine.

- Report rendering (human and machine readable)
- Settings file loading
"""

from backupverify.services.report import ReportRenderer
from backupverify.services.settings import SettingsManager, VerifySettings

__all__ = [
    'ReportRenderer',
    'SettingsManager',
    'VerifySettings',
]
