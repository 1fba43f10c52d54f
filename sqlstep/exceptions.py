from typing import Any, Optional

__all__ = (
    "ArityMismatchError",
    "CheckViolationError",
    "ConnectionUnavailableError",
    "DataError",
    "DatabaseLockedError",
    "DuplicateParameterError",
    "ExecutionError",
    "ForeignKeyViolationError",
    "ImproperConfigurationError",
    "IntegrityError",
    "MissingParameterError",
    "NotNullViolationError",
    "OperationalError",
    "ParameterError",
    "ParameterStyleMismatchError",
    "PermissionDeniedError",
    "QueryInterruptedError",
    "SQLParsingError",
    "SQLStepError",
    "StatementFinalizedError",
    "UniqueViolationError",
    "UnknownParameterError",
    "UnsupportedParameterTypeError",
)


class SQLStepError(Exception):
    """Base exception class from which all sqlstep exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``SQLStepError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(SQLStepError):
    """Improper Configuration error.

    Raised when a database or statement configuration cannot be honoured.
    """


# -- Parameter Errors --
class ParameterError(SQLStepError):
    """Base class for parameter-related errors.

    Binding errors are raised before the native engine is touched, so the
    caller can correct the parameters and retry on the same statement.
    """

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        """Initialize with optional SQL context."""
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class ArityMismatchError(ParameterError):
    """Raised when a positional parameter sequence does not match the placeholder count."""

    expected: int
    actual: int

    def __init__(self, expected: int, actual: int, sql: Optional[str] = None) -> None:
        super().__init__(f"Statement expects {expected} positional parameter(s), got {actual}", sql)
        self.expected = expected
        self.actual = actual


class UnknownParameterError(ParameterError):
    """Raised when a named parameter matches no placeholder in the statement."""

    name: str

    def __init__(self, name: str, sql: Optional[str] = None) -> None:
        super().__init__(f"Unknown parameter name {name!r}", sql)
        self.name = name


class DuplicateParameterError(ParameterError):
    """Raised when two mapping keys resolve to the same placeholder name."""


class MissingParameterError(ParameterError):
    """Raised when required parameters are missing."""


class UnsupportedParameterTypeError(ParameterError):
    """Raised when a bound value is outside the text, number, boolean and null domain."""


class ParameterStyleMismatchError(ParameterError):
    """Error when parameter shape doesn't match the entry point or placeholder style.

    Raised when positional and named parameters are mixed in one call, when a
    mapping is passed to a positional entry point (or the reverse), and when a
    statement mixes anonymous and named placeholders.
    """


# -- Lifecycle Errors --
class StatementFinalizedError(SQLStepError):
    """Raised when an operation is attempted on a finalized statement."""


class ConnectionUnavailableError(SQLStepError):
    """Raised when the owning connection is closed or otherwise unusable."""


# -- Execution Errors --
class ExecutionError(SQLStepError):
    """Native engine reported a failure while compiling or stepping a statement.

    The native error code, error name and message are kept verbatim.
    """

    code: Optional[int]
    name: Optional[str]
    native_message: str
    sql: Optional[str]

    def __init__(
        self,
        message: str,
        *,
        code: Optional[int] = None,
        name: Optional[str] = None,
        native_message: Optional[str] = None,
        sql: Optional[str] = None,
    ) -> None:
        super().__init__(detail=message)
        self.code = code
        self.name = name
        self.native_message = native_message if native_message is not None else message
        self.sql = sql


class SQLParsingError(ExecutionError):
    """Issues compiling SQL statements."""


class IntegrityError(ExecutionError):
    """Data integrity error."""


class UniqueViolationError(IntegrityError):
    """A unique constraint was violated."""


class ForeignKeyViolationError(IntegrityError):
    """A foreign key constraint was violated."""


class NotNullViolationError(IntegrityError):
    """A not-null constraint was violated."""


class CheckViolationError(IntegrityError):
    """A check constraint was violated."""


class DatabaseLockedError(ExecutionError):
    """The database file or a table is locked by another connection."""


class QueryInterruptedError(ExecutionError):
    """Native execution was interrupted."""


class PermissionDeniedError(ExecutionError):
    """The database refused the operation (read-only file, authorizer)."""


class OperationalError(ExecutionError):
    """Storage or I/O failure reported by the native engine."""


class DataError(ExecutionError):
    """The native engine rejected a value for its type or size."""
