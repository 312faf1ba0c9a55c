"""
Database Module
===============

Provides database session management and base model.
"""

from worksuite.db.base import Base
from worksuite.db.session import get_session_factory, init_db, close_db

__all__ = ["Base", "get_session_factory", "init_db", "close_db"]
