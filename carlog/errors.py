"""Exceptions raised by carlog."""


class CarlogError(Exception):
    """Base class for carlog errors."""


class BackupError(CarlogError):
    """A backup file could not be read or is not a snapshot."""
