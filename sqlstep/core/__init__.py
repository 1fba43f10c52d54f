"""sqlstep core - statement execution independent of the native engine.

Architecture Overview:
- parameters.py: placeholder scanning, tagged parameter shapes, binding
- result.py: row shaping and run summaries
- statement.py: PreparedStatement lifecycle and execution modes
- guard.py: per-connection serialization of native calls
"""

from sqlstep.core.guard import ConcurrencyGuard
from sqlstep.core.parameters import (
    BindParameters,
    NamedParameters,
    ParameterInfo,
    ParameterProfile,
    ParameterStyle,
    ParameterValidator,
    PositionalParameters,
    bind_parameters,
    normalize_parameters,
)
from sqlstep.core.result import RowShape, RunResult, shape_row, shape_rows
from sqlstep.core.statement import ExecutionMode, PreparedStatement, StatementState

__all__ = (
    "BindParameters",
    "ConcurrencyGuard",
    "ExecutionMode",
    "NamedParameters",
    "ParameterInfo",
    "ParameterProfile",
    "ParameterStyle",
    "ParameterValidator",
    "PositionalParameters",
    "PreparedStatement",
    "RowShape",
    "RunResult",
    "StatementState",
    "bind_parameters",
    "normalize_parameters",
    "shape_row",
    "shape_rows",
)
