"""Application bootstrap helpers for the review scheduler."""

from .runtime import bootstrap, build_scheduler
from .settings import AppSettings

__all__ = ["bootstrap", "build_scheduler", "AppSettings"]
