"""Presentation layer for the site auto-enhancer.

Public API
----------
- :class:`EnhancerConsole` -- rich tables for history, cycles and status
"""

from site_autoenhance.presentation.console import EnhancerConsole

__all__ = ["EnhancerConsole"]
