"""Content management abilities for agent adapters."""

__version__ = "0.1.0"
