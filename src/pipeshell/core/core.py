# src/pipeshell/core/core.py
from __future__ import annotations

import logging

from pipeshell.core.command_registry import resolve_command
from pipeshell.core.parser import parse_command_line
from pipeshell.core.xngine import VAR_PATTERN, ExecuteEngine

logger = logging.getLogger(__name__)


# Initialize the engine with the builtin resolver and the substitution pattern.
XNGINE = ExecuteEngine(
    resolve_fn=resolve_command,
    var_pattern=VAR_PATTERN,
    logger=logger,
)

# Export core functionality for use by the application layer.
execute_sequence = XNGINE.execute_sequence

__all__ = ["execute_sequence", "parse_command_line"]
