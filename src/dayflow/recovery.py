class DayflowError(Exception):
    """Base exception for all dayflow errors."""
    pass

class RecoverableError(DayflowError):
    """An error that can be recovered from without data loss."""
    pass

class FatalError(DayflowError):
    """An error that requires application termination or major intervention."""
    pass

class CorruptionError(FatalError):
    """Corrupted Data Error - from syntax errors in data formats, to just unknown data"""
    pass

class FileOperationError(RecoverableError):
    """File operation failed but can be retried."""
    pass

class MigrationNeededError(RecoverableError):
    """ Data is valid, but was written by an older schema version """
    pass

class ItemNotFoundError(RecoverableError):
    """An id does not resolve to an item of the expected kind."""
    pass

class OperationBlockedError(RecoverableError):
    """The item or its container currently refuses the requested action."""
    pass

class InvalidUpdateError(RecoverableError):
    """A partial update names a field that cannot be changed or carries a bad value."""
    pass

class ScheduleSuggestionError(RecoverableError):
    """A schedule suggestion payload is structurally invalid."""
    pass
