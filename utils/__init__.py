"""
Utility modules for the hotspot tracker.
"""

from .config import Config

__all__ = ["Config"]
