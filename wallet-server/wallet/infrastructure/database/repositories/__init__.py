"""SQLAlchemy repository implementations."""

from .user_directory import SqlUserDirectory

__all__ = ["SqlUserDirectory"]
