"""
Unified database infrastructure module.

All models and services should import the SQLAlchemy instance from here.
"""

from mastery.database import db

__all__ = ["db"]
