from __future__ import annotations


class BenchmarkError(Exception):
    """Base for every failure the harness reports.

    When ``cause`` is given (usually a driver exception) it is rendered after
    the message so the one-line report still names what the database said.
    """

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self):
        if self.cause is None:
            return str(self.message)
        return f"{self.message}: {type(self.cause).__name__}: {self.cause}"


class ConfigError(BenchmarkError):
    pass


class GenerationError(BenchmarkError):
    pass


class BackendUnavailableError(BenchmarkError):
    pass


class SchemaError(BenchmarkError):
    def __init__(self, message, statement=None, cause=None):
        self.statement = statement
        super().__init__(message, cause)


class InsertError(BenchmarkError):
    pass


class QueryError(BenchmarkError):
    pass


class SizeQueryError(BenchmarkError):
    pass


class RunAborted(BenchmarkError):
    """A phase failed; the partial report is attached and marked incomplete."""

    def __init__(self, message, *, phase, variant, report, cause=None):
        self.phase = phase
        self.variant = variant
        self.report = report
        super().__init__(message, cause)
