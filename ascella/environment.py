"""Desktop session detection and screenshot tool probing.

The session kind is derived once from the host: macOS and Windows are
decided by the platform alone, everything else by ``XDG_SESSION_TYPE``.
Tool selection walks a fixed, per-session priority list and returns the
first tool that can be started.
"""

import logging
import os
import platform
import subprocess
from enum import Enum
from functools import lru_cache
from typing import Callable, Mapping, Optional

from .errors import NoCompatibleTool

__all__ = [
    "SessionKind",
    "ToolKind",
    "TOOL_PRIORITY",
    "detect_session",
    "current_session",
    "probe_tool",
    "select_tool",
]

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 2.0  # seconds


class SessionKind(Enum):
    """Windowing protocol family, or the OS where there is only one."""

    WAYLAND = "wayland"
    X11 = "x11"
    MACOS = "macos"
    WINDOWS = "windows"


class ToolKind(Enum):
    """External screenshot programs, valued by their executable name."""

    COMPOSITOR = "grim"
    KDE = "spectacle"
    GNOME = "gnome-screenshot"
    GENERIC_X11 = "scrot"
    MAC = "screencapture"
    FLAMESHOT = "flameshot"

    @property
    def executable(self) -> str:
        return self.value


TOOL_PRIORITY: dict[SessionKind, tuple[ToolKind, ...]] = {
    SessionKind.WAYLAND: (
        ToolKind.COMPOSITOR,
        ToolKind.KDE,
        ToolKind.GNOME,
        ToolKind.FLAMESHOT,
    ),
    SessionKind.X11: (
        ToolKind.KDE,
        ToolKind.GNOME,
        ToolKind.FLAMESHOT,
        ToolKind.GENERIC_X11,
    ),
    SessionKind.MACOS: (ToolKind.FLAMESHOT, ToolKind.MAC),
    SessionKind.WINDOWS: (ToolKind.FLAMESHOT,),
}


def detect_session(
    env: Optional[Mapping[str, str]] = None,
    system: Optional[str] = None,
) -> SessionKind:
    """Work out the session kind.

    Args:
        env: Environment to read (defaults to ``os.environ``)
        system: Platform name as returned by ``platform.system()``

    Returns:
        The session kind. Unknown or unset session types count as X11.
    """
    system = system or platform.system()
    if system == "Darwin":
        return SessionKind.MACOS
    if system == "Windows":
        return SessionKind.WINDOWS

    env = os.environ if env is None else env
    session_type = env.get("XDG_SESSION_TYPE", "").lower()
    if session_type == "wayland":
        return SessionKind.WAYLAND
    return SessionKind.X11


@lru_cache(maxsize=1)
def current_session() -> SessionKind:
    """Session kind of this process, computed on first use."""
    session = detect_session()
    logger.debug(f"Detected {session.value} session")
    return session


def probe_tool(tool: ToolKind) -> bool:
    """Check whether ``tool`` can be started by running its version query.

    Only starting matters; the exit status is ignored. A tool that hangs
    on ``--version`` is killed after PROBE_TIMEOUT seconds.
    """
    try:
        proc = subprocess.Popen(
            [tool.executable, "--version"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError:
        return False

    try:
        proc.wait(timeout=PROBE_TIMEOUT)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()
    return True


def select_tool(
    session: SessionKind,
    is_available: Callable[[ToolKind], bool] = probe_tool,
) -> ToolKind:
    """Pick the first available tool for ``session``.

    Args:
        session: Session kind to select for
        is_available: Capability query, replaced by a fake in tests

    Returns:
        The highest priority tool that is available.

    Raises:
        NoCompatibleTool: If none of the candidates are available
    """
    candidates = TOOL_PRIORITY[session]
    for tool in candidates:
        if is_available(tool):
            logger.debug(f"Using {tool.executable} for {session.value} session")
            return tool
        logger.debug(f"{tool.executable} not available")

    raise NoCompatibleTool(session.value, [tool.executable for tool in candidates])
