# studyforge/background/__init__.py
"""Application lifecycle and signal handling."""

from .lifecycle import AppLifecycle
from .signals import remove_signal_handlers, setup_signal_handlers

__all__ = ["AppLifecycle", "setup_signal_handlers", "remove_signal_handlers"]
