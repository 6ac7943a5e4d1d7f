"""Process execution for the bootstrapped fcli."""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from fortify_setup.types import BootstrapResult, InvocationResult

logger = logging.getLogger(__name__)

# Exit code reported when the executable cannot be started at all
SPAWN_FAILURE_EXIT_CODE = 127


class ActionInvoker:
    """Runs fcli with an argument vector and reports its exit code.

    Arguments are always passed as discrete argv elements; no shell is involved.
    """

    def __init__(self, runner: Callable[..., Any] = subprocess.run) -> None:
        """Initialize the invoker.

        Args:
            runner: ``subprocess.run`` compatible callable.
        """
        self._runner = runner

    @classmethod
    def create_default(cls) -> ActionInvoker:
        """Create an invoker backed by ``subprocess.run``."""
        return cls()

    def invoke(
        self,
        binary_path: Path,
        argv: Sequence[str],
        relay_output: bool = False,
        bootstrap: BootstrapResult | None = None,
    ) -> InvocationResult:
        """Run the executable and collect its result.

        Args:
            binary_path: Executable to run.
            argv: Arguments, one element per argument.
            relay_output: Inherit the parent's standard streams instead of
                capturing output.
            bootstrap: Bootstrap result to attach to the InvocationResult.

        Returns:
            InvocationResult. A non-zero exit is reported, not raised.
        """
        command = [str(binary_path), *argv]
        logger.debug("Running: %s", shlex.join(command))

        try:
            if relay_output:
                completed = self._runner(command, check=False)
            else:
                completed = self._runner(
                    command,
                    capture_output=True,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    check=False,
                )
        except OSError as e:
            logger.warning("Failed to start %s: %s", binary_path, e)
            return InvocationResult(
                exit_code=SPAWN_FAILURE_EXIT_CODE,
                error_output=str(e),
                bootstrap=bootstrap,
            )

        if completed.returncode != 0:
            logger.debug("%s exited with code %s", binary_path, completed.returncode)

        if relay_output:
            return InvocationResult(exit_code=completed.returncode, bootstrap=bootstrap)
        return InvocationResult(
            exit_code=completed.returncode,
            output=completed.stdout,
            error_output=completed.stderr,
            bootstrap=bootstrap,
        )
