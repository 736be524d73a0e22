"""
Models package.

Import all models here so they are registered with SQLAlchemy.
This file also makes it easy to import models from one place.
"""

from app.models.application import Application
from app.models.stage_history import StageHistoryEntry

__all__ = [
    "Application",
    "StageHistoryEntry",
]
