"""Database layer for projects, generated files and conversation turns."""

from vibe.db.connection import Database

__all__ = ["Database"]
