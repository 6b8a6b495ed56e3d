"""Utility modules.

This package provides shared utilities used across the codebase.
"""

from .commands import REDACTED, CommandResult, CommandRunner, redact
from .retry import RetryPolicy, call_with_retries

__all__ = [
    # External command execution
    "REDACTED",
    "CommandResult",
    "CommandRunner",
    "redact",
    # Retries
    "RetryPolicy",
    "call_with_retries",
]
