from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Optional, TypeVar

from sqlstep.utils.logging import install_structured_handler

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager, AbstractContextManager


__all__ = ("DatabaseConfig", "DatabaseT", "StatementConfig")

DatabaseT = TypeVar("DatabaseT")


@dataclass(frozen=True)
class StatementConfig:
    """Binding behaviour shared by every statement prepared on a database.

    Attributes:
        allow_unmarked_names: Accept mapping keys without a ``:``, ``@`` or ``$``
            marker and match them by bare name. Off by default, so a bare key is
            reported as unknown.
        strict_named_parameters: Raise ``MissingParameterError`` when a named
            placeholder has no entry in the mapping instead of binding NULL.
    """

    allow_unmarked_names: bool = False
    strict_named_parameters: bool = False

    def replace(self, **kwargs: Any) -> "StatementConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **kwargs)


class DatabaseConfig(ABC, Generic[DatabaseT]):
    """Base class for database configurations that hand out one connection per call."""

    __slots__ = ("connection_config", "log_level", "statement_config")
    database_type: "ClassVar[type[Any]]"

    def __init__(
        self,
        *,
        connection_config: "Optional[dict[str, Any]]" = None,
        statement_config: "Optional[StatementConfig]" = None,
        log_level: "Optional[int]" = None,
    ) -> None:
        self.connection_config: dict[str, Any] = dict(connection_config) if connection_config else {}
        self.statement_config = statement_config or StatementConfig()
        self.log_level = log_level
        if log_level is not None:
            install_structured_handler(log_level)

    def __hash__(self) -> int:
        return id(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.connection_config == other.connection_config and self.statement_config == other.statement_config

    def __repr__(self) -> str:
        parts = ", ".join(
            [f"connection_config={self.connection_config!r}", f"statement_config={self.statement_config!r}"]
        )
        return f"{type(self).__name__}({parts})"

    @abstractmethod
    def create_connection(self) -> DatabaseT:
        """Open and return a new database connection."""
        raise NotImplementedError

    @abstractmethod
    async def create_connection_async(self) -> DatabaseT:
        """Open a new database connection without blocking the event loop."""
        raise NotImplementedError

    @abstractmethod
    def provide_connection(self, *args: Any, **kwargs: Any) -> "AbstractContextManager[DatabaseT]":
        """Provide a database connection context manager."""
        raise NotImplementedError

    @abstractmethod
    def provide_connection_async(self, *args: Any, **kwargs: Any) -> "AbstractAsyncContextManager[DatabaseT]":
        """Provide an async database connection context manager."""
        raise NotImplementedError
