"""
Persistence adapters.

Services depend on the ``UserRepository`` protocol rather than on SQLAlchemy.
"""

from .user_repository import DuplicateEmailError, SQLUserRepository, UserRecord, UserRepository

__all__ = ["DuplicateEmailError", "SQLUserRepository", "UserRecord", "UserRepository"]
