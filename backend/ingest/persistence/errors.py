"""
Persistence-specific errors.
"""


class PersistenceError(Exception):
    """Base exception for durable-tier operations."""

    pass


class LoadError(PersistenceError):
    """Failed to load state from the durable tier."""

    pass


class SaveError(PersistenceError):
    """Failed to save state to the durable tier."""

    pass


class PersistenceWarning(UserWarning):
    """
    Warning category for durable-tier failures that were absorbed.

    The in-process tier stays authoritative; callers never see these as
    exceptions.
    """

    pass
