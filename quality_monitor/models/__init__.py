# quality_monitor/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db
from .sync import Issue, IssueCategory, IssueSource, Return, ReturnsSyncLog, SyncLog, SyncStatus
from .user import User, UserRole

__all__ = [
    "db",
    "BaseModel",
    "User",
    "UserRole",
    "IssueSource",
    "Issue",
    "IssueCategory",
    "Return",
    "SyncLog",
    "ReturnsSyncLog",
    "SyncStatus",
]
