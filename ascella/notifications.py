"""Desktop notifications after uploads and config imports.

Each platform gets its notifier invoked as a subprocess; nothing here
ever raises to the caller.
"""

import logging
import platform
import subprocess
from pathlib import Path
from typing import Optional

from . import APP_NAME

logger = logging.getLogger(__name__)

_TOAST_SCRIPT = (
    "$m = [Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, "
    "ContentType = WindowsRuntime]; "
    "$xml = $m::GetTemplateContent([Windows.UI.Notifications.ToastTemplateType]::ToastText02); "
    "$text = $xml.GetElementsByTagName('text'); "
    "$text.Item(0).AppendChild($xml.CreateTextNode('{title}')) > $null; "
    "$text.Item(1).AppendChild($xml.CreateTextNode('{message}')) > $null; "
    "$m::CreateToastNotifier('{app}').Show([Windows.UI.Notifications.ToastNotification]::new($xml))"
)


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _powershell_quote(text: str) -> str:
    return text.replace("'", "''")


def _linux_command(title: str, message: str, image_path: Optional[Path]) -> list[str]:
    argv = ["notify-send", "-a", APP_NAME]
    if image_path is not None:
        argv += ["-i", str(image_path)]
    return argv + [title, message]


def _macos_command(title: str, message: str, image_path: Optional[Path]) -> list[str]:
    # osascript has no image support
    script = (
        f"display notification {_applescript_quote(message)} "
        f"with title {_applescript_quote(title)}"
    )
    return ["osascript", "-e", script]


def _windows_command(title: str, message: str, image_path: Optional[Path]) -> list[str]:
    script = _TOAST_SCRIPT.format(
        title=_powershell_quote(title),
        message=_powershell_quote(message),
        app=APP_NAME,
    )
    return ["powershell", "-NoProfile", "-Command", script]


_COMMANDS = {
    "Darwin": _macos_command,
    "Windows": _windows_command,
}


def send_notification(
    title: str, message: str, image_path: Optional[Path] = None
) -> None:
    """Show a notification, logging (at debug) if the notifier is unavailable.

    Args:
        title: Notification title.
        message: Notification body text.
        image_path: Preview image, used by notify-send only.
    """
    build = _COMMANDS.get(platform.system(), _linux_command)
    argv = build(title, message, image_path)
    try:
        subprocess.run(argv, capture_output=True, timeout=10)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Failed to send notification via {argv[0]}: {e}")
