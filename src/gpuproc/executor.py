"""Run the sampling command and capture its output."""

import logging
import shlex
import subprocess

from gpuproc.errors import CommandError

logger = logging.getLogger(__name__)


def run_command(command: str, timeout: float | None = 5.0) -> str:
    """
    Run ``command`` and return its standard output as text.

    The command string is split with shell quoting rules but no shell is
    involved. Any failure raises CommandError, so an empty return value
    always means the command succeeded and printed nothing.

    Args:
        command: Command line to run.
        timeout: Seconds to wait before giving up (None waits forever).

    Raises:
        CommandError: The command is missing, timed out, exited non-zero
            or printed something that is not text.
    """
    argv = shlex.split(command)
    if not argv:
        raise CommandError(command, "empty command")

    logger.debug("Running %s", argv)
    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise CommandError(command, f"executable not found: {argv[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandError(command, f"timed out after {timeout}s") from exc
    except OSError as exc:
        raise CommandError(command, str(exc)) from exc

    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace").strip()
        raise CommandError(command, f"exit status {result.returncode}: {stderr}")

    try:
        return result.stdout.decode()
    except UnicodeDecodeError as exc:
        raise CommandError(command, "output is not valid text") from exc
