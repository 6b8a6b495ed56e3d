"""External command execution for the az and kubectl collaborators.

Every CLI call goes through `CommandRunner.run`, which applies a timeout,
captures output, and redacts secret values before anything is logged.
"""

from __future__ import annotations

import subprocess
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from ..errors import CommandTimeoutError, DeployError

logger = __import__("logging").getLogger(__name__)

REDACTED = "***"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command.

    Attributes:
        args: Redacted argument vector, safe to log.
        returncode: Process exit code.
        stdout: Captured standard output.
        stderr: Captured standard error (redacted).
    """

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def display(self) -> str:
        return " ".join(self.args)


def redact(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of each non-empty secret in text."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


class CommandRunner:
    """Run external commands with a default timeout and secret redaction."""

    def __init__(self, *, timeout: float) -> None:
        self.timeout = timeout

    def run(
        self,
        args: Sequence[str],
        *,
        input_text: str | None = None,
        timeout: float | None = None,
        secrets: Sequence[str] = (),
    ) -> CommandResult:
        """Run a command and return its captured result.

        Non-zero exit codes are returned, not raised; callers decide which
        exception category a failure belongs to.

        Args:
            args: Argument vector (executable first).
            input_text: Optional text passed on stdin.
            timeout: Seconds before the process is killed. Defaults to the
                runner's timeout.
            secrets: Values to redact from logged arguments and stderr.

        Returns:
            CommandResult with redacted args and stderr.

        Raises:
            CommandTimeoutError: If the process exceeds its timeout.
            DeployError: If the executable cannot be found.
        """
        limit = timeout if timeout is not None else self.timeout
        safe_args = tuple(redact(arg, secrets) for arg in args)
        display = " ".join(safe_args)
        logger.info("Running: %s", display)
        try:
            proc = subprocess.run(
                list(args),
                input=input_text,
                capture_output=True,
                text=True,
                timeout=limit,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(f"'{display}' timed out after {limit:g}s") from exc
        except FileNotFoundError as exc:
            raise DeployError(f"Executable not found: {args[0]}") from exc

        result = CommandResult(
            args=safe_args,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=redact(proc.stderr or "", secrets),
        )
        if not result.ok:
            logger.warning("'%s' exited with %d: %s", display, result.returncode, result.stderr.strip())
        return result
