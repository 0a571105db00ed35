"""Error classes for :py:mod:`exostore`.

Every error raised by the library derives from :py:class:`ExodusError`. Each kind additionally derives
from the closest built-in exception so that callers written against the standard hierarchy (for
example ``except FileNotFoundError``) keep working.
"""


class ExodusError(Exception):
    r"""Base exception class for exostore errors."""

    pass


class NotFound(ExodusError, FileNotFoundError):
    r"""Raised when a file or an entity with the requested id does not exist."""

    pass


class AlreadyExists(ExodusError, FileExistsError):
    r"""Raised when a no-clobber create targets a path that already exists."""

    pass


class InvalidState(ExodusError, RuntimeError):
    r"""Raised when an operation is outside the capability or ordering of the current handle."""

    pass


class SchemaViolation(ExodusError, ValueError):
    r"""Raised when data is inconsistent with the schema fixed at creation.

    Covers length mismatches, unknown variable indices, over-capacity entities, duplicate ids,
    narrowing conversions and invalid configuration values.
    """

    pass


class NotDefined(ExodusError, LookupError):
    r"""Raised when reading a truth-table-false cell or an absent optional field in strict mode."""

    pass


class UnderlyingIOError(ExodusError, OSError):
    r"""Raised when the container library or the operating system reports a failure."""

    pass
