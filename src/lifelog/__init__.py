"""Life Log: browsing activity event log storage engine."""

__version__ = "0.1.0"
