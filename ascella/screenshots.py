"""Build capture command lines for each tool and capture mode."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import ScreenshotType, images_dir
from .environment import ToolKind

__all__ = [
    "CaptureMode",
    "CaptureCommand",
    "FILE_PLACEHOLDERS",
    "GEOMETRY_PLACEHOLDER",
    "generate_file_path",
    "cmd_from_type",
    "cmd_for_tool",
]

logger = logging.getLogger(__name__)

FILE_PLACEHOLDERS = ("{file}", "%image")
GEOMETRY_PLACEHOLDER = "{geometry}"

REGION_SELECTOR = "slurp"


class CaptureMode(Enum):
    AREA = "area"
    WINDOW = "window"
    FULL = "full"


@dataclass(frozen=True)
class CaptureCommand:
    """A resolved capture invocation.

    ``command_line`` is split on whitespace when executed. When ``selector``
    is set it runs first and its output replaces the ``{geometry}`` argument.
    """

    output_path: Path
    command_line: str
    tool_name: str
    selector: Optional[str] = None


_TEMPLATES: dict[ToolKind, dict[CaptureMode, str]] = {
    ToolKind.FLAMESHOT: {
        CaptureMode.AREA: "flameshot gui -p {file}",
        CaptureMode.WINDOW: "flameshot screen -p {file}",
        CaptureMode.FULL: "flameshot full -p {file}",
    },
    ToolKind.KDE: {
        CaptureMode.AREA: "spectacle -rbno {file}",
        CaptureMode.WINDOW: "spectacle -abno {file}",
        CaptureMode.FULL: "spectacle -fbno {file}",
    },
    ToolKind.GENERIC_X11: {
        CaptureMode.AREA: "scrot --select {file}",
        CaptureMode.WINDOW: "scrot --border --focused {file}",
        CaptureMode.FULL: "scrot {file}",
    },
    ToolKind.MAC: {
        CaptureMode.AREA: "screencapture -s {file}",
        CaptureMode.WINDOW: "screencapture -w {file}",
        CaptureMode.FULL: "screencapture -S {file}",
    },
    ToolKind.GNOME: {
        CaptureMode.AREA: "gnome-screenshot -a -f {file}",
        CaptureMode.WINDOW: "gnome-screenshot -w -e shadow -f {file}",
        CaptureMode.FULL: "gnome-screenshot -f {file}",
    },
    # grim has no interactive mode of its own, slurp picks the region
    ToolKind.COMPOSITOR: {
        CaptureMode.AREA: "grim -g {geometry} {file}",
        CaptureMode.WINDOW: "grim -g {geometry} {file}",
        CaptureMode.FULL: "grim {file}",
    },
}


def generate_file_path(directory: Optional[Path] = None) -> Path:
    """Generate a fresh output path under the images directory.

    Names sort by capture time (millisecond resolution) and carry a random
    suffix so captures started in the same instant never share a file.
    The directory is not created here.
    """
    directory = directory or images_dir()
    now = datetime.now()
    stamp = now.strftime("%Y-%m-%d_%H-%M-%S") + f"-{now.microsecond // 1000:03d}"
    return directory / f"{stamp}_{secrets.token_hex(3)}.png"


def _substitute(template: str, file: Path) -> str:
    command = template
    for placeholder in FILE_PLACEHOLDERS:
        command = command.replace(placeholder, str(file))
    return command


def cmd_for_tool(
    tool: ToolKind, mode: CaptureMode, directory: Optional[Path] = None
) -> CaptureCommand:
    """Command for a built-in tool."""
    file = generate_file_path(directory)
    template = _TEMPLATES[tool][mode]
    selector = REGION_SELECTOR if GEOMETRY_PLACEHOLDER in template else None
    return CaptureCommand(
        output_path=file,
        command_line=_substitute(template, file),
        tool_name=tool.executable,
        selector=selector,
    )


def cmd_from_type(
    s_type: ScreenshotType,
    mode: CaptureMode,
    tool: Optional[ToolKind] = None,
    directory: Optional[Path] = None,
) -> CaptureCommand:
    """Resolve a configured screenshot type and mode to a command.

    Args:
        s_type: Configured screenshot type
        mode: Capture mode
        tool: Tool to use when ``s_type`` is Auto (the probe result)
        directory: Images directory override

    Returns:
        The command. A Custom type with an empty template for ``mode``
        yields an empty command line rather than an error.
    """
    if s_type.is_custom:
        template = {
            CaptureMode.AREA: s_type.area,
            CaptureMode.WINDOW: s_type.window,
            CaptureMode.FULL: s_type.screen,
        }[mode]
        file = generate_file_path(directory)
        command_line = _substitute(template, file)
        parts = command_line.split()
        return CaptureCommand(
            output_path=file,
            command_line=command_line,
            tool_name=parts[0] if parts else s_type.name,
        )

    resolved = s_type.tool or tool
    if resolved is None:
        raise ValueError("Auto screenshot type needs a probed tool")
    return cmd_for_tool(resolved, mode, directory)
