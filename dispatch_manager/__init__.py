"""
Dispatch Manager

Order dispatch core: geo/cost domain, order lifecycle and a tag-aware
in-process cache wired into repositories and the unit of work.
"""

from .constants import APP_NAME, APP_VERSION

__all__ = ["APP_NAME", "APP_VERSION"]
