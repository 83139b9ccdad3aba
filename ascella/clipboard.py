"""Copy upload URLs to the system clipboard."""

import logging
import subprocess
from typing import Optional

import pyperclip

from .environment import SessionKind, current_session
from .errors import ClipboardFailure

__all__ = ["publish"]

logger = logging.getLogger(__name__)


def publish(text: str, session: Optional[SessionKind] = None) -> bool:
    """Copy ``text`` to the clipboard.

    Failures are logged and never raised.

    Returns:
        True if the copy was handed off successfully
    """
    session = session or current_session()
    try:
        if session is SessionKind.WAYLAND:
            _copy_wayland(text)
        elif session is SessionKind.X11:
            _copy_x11(text)
        else:
            _copy_native(text)
    except ClipboardFailure as e:
        logger.warning(f"Failed to copy to clipboard: {e}")
        return False
    logger.debug("Copied to clipboard")
    return True


def _copy_wayland(text: str) -> None:
    """wl-copy forks to serve the selection, so it is not waited on."""
    try:
        subprocess.Popen(
            ["wl-copy", text],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        raise ClipboardFailure(f"wl-copy: {e}") from e


def _copy_x11(text: str) -> None:
    """xclip keeps the selection alive in a forked child; its streams must
    not be pipes or the wait never returns."""
    try:
        result = subprocess.run(
            ["xclip", "-selection", "clipboard"],
            input=text.encode("utf-8"),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        raise ClipboardFailure(f"xclip: {e}") from e
    if result.returncode != 0:
        raise ClipboardFailure(f"xclip exited with {result.returncode}")


def _copy_native(text: str) -> None:
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ClipboardFailure(str(e)) from e
