"""Utility modules for configuration, logging, and error handling."""

from .config import Config
from .errors import CaseflowError, CaseNotFoundError, ConfigError
from .logging import setup_logging

__all__ = [
    'Config',
    'CaseflowError',
    'CaseNotFoundError',
    'ConfigError',
    'setup_logging'
]
