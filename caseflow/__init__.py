"""Status engine and case store for the auto-glass workshop dashboard."""

__version__ = "0.1.0"
