from cissp_mastery.db.base import Base
from cissp_mastery.db.session import Database, get_db

__all__ = ["Base", "Database", "get_db"]
