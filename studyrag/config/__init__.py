"""Configuration module: exports Settings.

Nothing is read from the environment at import time; callers construct
``Settings()`` when they need it.
"""

from studyrag.config.settings import Settings

__all__ = ["Settings"]
