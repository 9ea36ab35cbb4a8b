"""Database-specific exceptions for the progress and skills stores."""


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class ConnectionError(DatabaseError):
    """Raised when the database cannot be reached."""

    pass
