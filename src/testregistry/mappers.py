"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping so every Typer command
reports failures the same way.
"""
from __future__ import annotations

from typing import Callable, TypeVar

import typer

T = TypeVar('T')

EXIT_CODES = {
    "ProtocolTimeoutError": 1,
    "ReferenceParseError": 2,
    "ValueError": 2,
    "AddressResolutionError": 3,
    "ContainerStartError": 3,
    "UnsupportedOperationError": 4,
    "WaitCancelledError": 130,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    Returns:
    - 1: Registry did not confirm the expected state in time (ProtocolTimeoutError)
    - 2: Invalid input (ReferenceParseError, ValueError)
    - 3: Container or address failure, or unknown error
    - 4: Unsupported operation
    - 130: Cancelled
    """
    return EXIT_CODES.get(type(exc).__name__, 3)


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes ``func`` and turns any exception into ``typer.Exit`` with the
    mapped exit code, printing the error message to stderr.

    Raises:
        typer.Exit: With the mapped exit code if ``func`` raises
    """
    try:
        return func()
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=exit_code_for(e)) from e
