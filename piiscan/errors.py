from sqlalchemy.exc import DBAPIError


class PiiScanError(Exception):
    """Base exception for piiscan."""

    def __init__(self, message, target=None, operation=None, original=None):
        self.message = message
        self.target = target
        self.operation = operation
        self.original = original
        super().__init__(self.message)


class ConfigError(PiiScanError):
    """Bad or missing rule files, invalid arguments. Aborts the run."""
    pass


class InstanceConnectionError(PiiScanError):
    """An instance could not be reached. Only that instance is skipped."""
    pass


class DataAccessError(PiiScanError):
    """A catalog or sample query failed. Only that table (or database) is skipped."""
    pass


def summarize_error(exc):
    """Short, single line description of a driver or SQLAlchemy error."""
    if isinstance(exc, PiiScanError) and exc.original is not None:
        exc = exc.original
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        text = str(exc.orig)
    else:
        text = str(exc)
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[0] if lines else exc.__class__.__name__
