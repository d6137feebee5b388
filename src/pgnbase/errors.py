"""Exception types raised by pgnbase."""


class PgnBaseError(Exception):
    """Base class for all pgnbase errors."""


class ConfigError(PgnBaseError):
    """Invalid configuration value."""


class HeaderError(PgnBaseError, ValueError):
    """A PGN header value could not be decoded."""


class TimeControlError(HeaderError):
    """A TimeControl header is not ``-`` or ``<base>+<increment>``."""


class ImportFailedError(PgnBaseError):
    """An archive import was aborted; the target database is not usable."""


class QueryError(PgnBaseError):
    """Base class for read-path failures."""


class InvalidQueryError(QueryError):
    """A read request contains a malformed filter, sort key or page bound."""


class StorageUnavailableError(QueryError):
    """The database file is missing or cannot be read."""
