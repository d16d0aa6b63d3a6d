"""Error kinds raised by the event log engine."""


class LifeLogError(Exception):
    """Base class for all event log errors."""


class StorageFailure(LifeLogError):
    """The backend did not complete a read or write.

    Covers I/O errors, timeouts and persisted documents that no longer
    deserialize. Prior persisted state is left untouched.
    """


class MalformedInput(LifeLogError, ValueError):
    """A raw event or request parameter is missing or out of range."""
