from mastery.database.db import db

__all__ = ["db"]
