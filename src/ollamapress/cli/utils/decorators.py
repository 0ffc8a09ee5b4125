"""
CLI Decorators for OllamaPress

Error handling and async support for typer commands.
"""

import asyncio
import functools
import traceback
from typing import Any, Callable, TypeVar

import typer
from rich.console import Console

from ...gateway.exceptions import OllamaPressError

console = Console(stderr=True)

F = TypeVar("F", bound=Callable[..., Any])


def _is_debug_mode() -> bool:
    import os

    return os.environ.get("DEBUG", "").lower() in ("true", "1", "yes")


def _exit_code_for(e: Exception) -> int:
    """Print ``e`` and map it to a process exit code"""
    if isinstance(e, KeyboardInterrupt):
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 130
    if isinstance(e, ValueError):
        console.print(f"[red]✗ Invalid input:[/red] {e}")
        return 22
    if isinstance(e, OllamaPressError):
        console.print(f"[red]✗ {type(e).__name__}:[/red] {e}")
        return 1

    console.print(f"[red]✗ Unexpected error:[/red] {e}")
    if _is_debug_mode():
        console.print("\n[dim]Full traceback:[/dim]")
        console.print(traceback.format_exc())
    return 1


def handle_exceptions(func: F) -> F:
    """Turn uncaught errors into a message and a non-zero exit code"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except (Exception, KeyboardInterrupt) as e:
            raise typer.Exit(_exit_code_for(e))

    return wrapper


def async_command(func: F) -> F:
    """Run an async typer command to completion"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return asyncio.run(func(*args, **kwargs))

    return wrapper
