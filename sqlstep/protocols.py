"""Runtime-checkable protocols for the native engine seam.

The statement handle only talks to the engine through these protocols, so the
lifecycle and binding logic can be exercised against test doubles.
"""

from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sqlstep.config import StatementConfig
    from sqlstep.core.guard import ConcurrencyGuard
    from sqlstep.core.statement import PreparedStatement
    from sqlstep.typing import NativePayload

__all__ = ("NativeDatabaseProtocol", "NativeStatementProtocol")


@runtime_checkable
class NativeStatementProtocol(Protocol):
    """One compiled statement inside the native engine."""

    @property
    def column_names(self) -> "tuple[str, ...]":
        """Result column names of the last execution, in column order."""
        ...

    def execute(self, payload: "NativePayload") -> None:
        """Bind ``payload`` and start stepping the statement."""
        ...

    def fetch_one(self) -> "Optional[tuple[Any, ...]]":
        """Step once and return the row, or None when exhausted."""
        ...

    def fetch_all(self) -> "list[tuple[Any, ...]]":
        """Step to completion and return every remaining row."""
        ...

    def summarize(self) -> "tuple[int, int]":
        """Return ``(last_insert_rowid, changes)`` for the last execution."""
        ...

    def reset(self) -> None:
        """Return the statement to its pre-execution state."""
        ...

    def finalize(self) -> None:
        """Release the native resources. Must be safe to call more than once."""
        ...


@runtime_checkable
class NativeDatabaseProtocol(Protocol):
    """The connection collaborator a statement handle depends on."""

    guard: "ConcurrencyGuard"
    statement_config: "StatementConfig"

    @property
    def is_closed(self) -> bool:
        """Whether the connection has been closed."""
        ...

    def compile(self, sql: str) -> "NativeStatementProtocol":
        """Compile ``sql`` into a native statement."""
        ...

    def release_statement(self, statement: "PreparedStatement") -> None:
        """Forget a statement that has been finalized."""
        ...
