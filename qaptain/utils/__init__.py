"""Utility modules for the QAptain API."""

from qaptain.utils.config import settings, validate_settings
from qaptain.utils.logging import setup_logging, redact_dict
from qaptain.utils.guards import check_url_guard

__all__ = [
    'settings',
    'validate_settings',
    'setup_logging',
    'redact_dict',
    'check_url_guard',
]
