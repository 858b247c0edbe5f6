"""Global exception handling for Cronbridge.

This module provides the CLI exception classes and a decorator that
ensures consistent error reporting and exit codes across all commands.
"""

from functools import wraps
from typing import Callable, TypeVar, Any
import logging

import typer
from rich.console import Console

from cronbridge.cli.exit_codes import ExitCode
from cronbridge.sync.client import SyncError as ClientSyncError

# Console for error output (stderr)
console = Console(stderr=True)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class CronbridgeError(Exception):
    """Base exception for the Cronbridge CLI.
    
    Attributes:
        message: Error message
        exit_code: Exit code to use when exiting
        details: Optional dictionary of additional error details
    """
    
    exit_code: int = ExitCode.GENERAL_ERROR
    
    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        self.details = details or {}
    
    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(CronbridgeError):
    """Configuration-related error.
    
    Examples:
        - Invalid configuration file format
        - Unknown sync backend
    """
    
    exit_code = ExitCode.CONFIGURATION_ERROR


class ValidationError(CronbridgeError):
    """Validation error for user input.
    
    Examples:
        - Unreadable jobs file
        - Invalid job definition
    """
    
    exit_code = ExitCode.INVALID_ARGUMENT


class NotFoundError(CronbridgeError):
    """Resource not found error.
    
    Examples:
        - Missing jobs file
    """
    
    exit_code = ExitCode.NOT_FOUND


def _report(e: CronbridgeError) -> None:
    logger.error(
        f"CronbridgeError: {e.message}",
        extra={"exit_code": e.exit_code, "details": e.details},
    )
    console.print(f"[red]Error:[/red] {e.message}")
    for key, value in e.details.items():
        console.print(f"  [dim]{key}:[/dim] {value}")


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling across CLI commands.
    
    - CronbridgeError subclasses: error message with their exit code
    - Sync client errors: error message with the sync exit code
    - KeyboardInterrupt: cancellation message with exit code 130
    - Other exceptions: generic error, logged with traceback
    
    Example:
        @app.command()
        @handle_errors
        def my_command():
            raise ConfigurationError("Invalid config")
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except CronbridgeError as e:
            _report(e)
            raise typer.Exit(code=e.exit_code)
            
        except ClientSyncError as e:
            logger.error(f"Sync client error: {e}")
            console.print(f"[red]Sync error:[/red] {e}")
            raise typer.Exit(code=ExitCode.SYNC_ERROR)
            
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user.[/yellow]")
            logger.info("Operation cancelled by user (KeyboardInterrupt)")
            raise typer.Exit(code=ExitCode.CANCELLED)
            
        except typer.Exit:
            raise
            
        except Exception as e:
            logger.exception("Unexpected error occurred")
            console.print(f"[red]Unexpected error:[/red] {e}")
            console.print("[dim]Run with --debug for more details[/dim]")
            raise typer.Exit(code=ExitCode.GENERAL_ERROR)
    
    return wrapper  # type: ignore[return-value]
