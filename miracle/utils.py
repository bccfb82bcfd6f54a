"""
Utility functions for the Miracle IPC library
"""
import asyncio
import sys
from typing import Any, Callable, Coroutine

from .exceptions import MiracleError


def run_with_keyboard_interrupt(main_func: Callable[[], Coroutine[Any, Any, Any]]) -> None:
    """
    Run an async main function with graceful KeyboardInterrupt handling.

    Library errors (no MIRACLESOCK, connection refused, bad replies) are
    printed and exit with status 1 instead of a traceback.

    Args:
        main_func: The async main function to run
    """
    try:
        asyncio.run(main_func())
    except KeyboardInterrupt:
        print("\nInterrupted by user (Ctrl+C)")
        sys.exit(0)
    except MiracleError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
