from __future__ import annotations


class ReporterError(Exception):
    """Base class for every failure that aborts a reporter run."""


class ConfigError(ReporterError):
    pass


class QueryError(ReporterError):
    """cardano-cli failed, or its output could not be used."""


class MalformedScheduleError(ReporterError):
    pass


class ReportingError(ReporterError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MarkerIOError(ReporterError):
    """The marker (or its lock file) could not be read or written."""
