"""Run capture commands and classify how they fail."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import CaptureFailed, ToolMissing
from .screenshots import GEOMETRY_PLACEHOLDER, CaptureCommand

__all__ = ["CaptureResult", "run_capture", "split_command"]

logger = logging.getLogger(__name__)

STDERR_EXCERPT_LENGTH = 500


@dataclass
class CaptureResult:
    """Outcome of one successful capture invocation."""

    output_path: Path
    exit_status: int
    stderr_excerpt: str = ""


def split_command(command_line: str) -> list[str]:
    """Split a command line on whitespace.

    Quotes and shell metacharacters are not interpreted; custom templates
    are passed to the tool exactly as written.
    """
    return command_line.split()


def _excerpt(stream) -> str:
    if not stream:
        return ""
    if isinstance(stream, bytes):
        stream = stream.decode("utf-8", errors="replace")
    return stream.strip()[:STDERR_EXCERPT_LENGTH]


def _run(argv: list[str]) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(argv, capture_output=True)
    except FileNotFoundError as e:
        logger.error(f"Error starting screenshot process {argv[0]}: {e}")
        raise ToolMissing(argv[0]) from e
    except OSError as e:
        logger.error(f"Error starting screenshot process {argv[0]}: {e}")
        raise CaptureFailed(f"Failed executing screenshot command\n{e}") from e


def _select_region(selector: str) -> str:
    """Run the region selector and return the geometry it printed."""
    result = _run(split_command(selector))
    if result.returncode != 0:
        raise CaptureFailed(
            f"Region selection was cancelled or failed ({selector} exited "
            f"with {result.returncode})\n{_excerpt(result.stderr)}"
        )
    geometry = _excerpt(result.stdout)
    if not geometry:
        raise CaptureFailed(f"{selector} returned no region")
    return geometry


def run_capture(command: CaptureCommand) -> CaptureResult:
    """Execute a capture command and wait for it.

    The output file is not checked; the tool is trusted to have written it.

    Raises:
        ToolMissing: If the executable (or selector) is not installed
        CaptureFailed: If the command is empty, exits non-zero or cannot
            be started for another reason
    """
    argv = split_command(command.command_line)
    if not argv:
        raise CaptureFailed(
            f"No capture command configured for {command.tool_name}"
        )

    if command.selector:
        geometry = _select_region(command.selector)
        argv = [geometry if arg == GEOMETRY_PLACEHOLDER else arg for arg in argv]

    logger.debug(f"Running capture command: {argv}")
    result = _run(argv)
    stderr = _excerpt(result.stderr)
    if result.returncode != 0:
        logger.error(f"Screenshot command exited with {result.returncode}: {stderr}")
        raise CaptureFailed(
            f"Failed executing screenshot command\n"
            f"{command.command_line} exited with status {result.returncode}"
            + (f"\n{stderr}" if stderr else "")
        )

    return CaptureResult(
        output_path=command.output_path,
        exit_status=result.returncode,
        stderr_excerpt=stderr,
    )
