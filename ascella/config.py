"""Configuration management for the Ascella uploader."""

import json
import logging
import os
from dataclasses import dataclass, field, asdict, replace
from pathlib import Path
from typing import Optional

from platformdirs import user_log_dir

from . import APP_AUTHOR, APP_NAME
from .environment import ToolKind
from .errors import ConfigInvalid
from .keychain import TokenStore

__all__ = [
    "Config",
    "ScreenshotType",
    "ascella_dir",
    "images_dir",
    "setup_logging",
    "DEFAULT_API_URL",
    "DEFAULT_REQUEST_URL",
    "TOKEN_HEADER",
]

logger = logging.getLogger(__name__)

# API endpoints
DEFAULT_API_URL = "https://api.ascella.host/api/v3"
DEFAULT_REQUEST_URL = "https://api.ascella.host/api/v3/upload"

TOKEN_HEADER = "ascella-token"
CONFIG_FILENAME = "ascella.json"

DEFAULT_OPTIMIZE_TIMEOUT = 1500  # milliseconds


def ascella_dir() -> Path:
    """Get the data directory, honouring ``ASCELLA_HOME``.

    Defaults to ~/.ascella. Capture commands are split on whitespace, so
    this stays clear of platform dirs such as "Application Support".
    """
    override = os.environ.get("ASCELLA_HOME")
    if override:
        return Path(override)
    return Path.home() / ".ascella"


def images_dir() -> Path:
    """Get the directory captured images are written to."""
    return ascella_dir() / "images"


# Built-in types and the tool each one drives. "Auto" probes per capture.
_BUILTIN_TOOLS = {
    "Flameshot": ToolKind.FLAMESHOT,
    "Spectacle": ToolKind.KDE,
    "Scrot": ToolKind.GENERIC_X11,
    "Screencapture": ToolKind.MAC,
    "Grim": ToolKind.COMPOSITOR,
    "GnomeScreenshot": ToolKind.GNOME,
}
AUTO = "Auto"
CUSTOM = "Custom"


@dataclass(frozen=True)
class ScreenshotType:
    """Which capture tool the user configured.

    ``type`` is ``Auto``, one of the built-in tool names, or ``Custom``.
    Custom types carry one command template per mode; ``{file}`` (or the
    older ``%image``) marks where the output path goes.
    """

    type: str = AUTO
    area: str = ""
    screen: str = ""
    window: str = ""

    def __post_init__(self):
        if self.type not in _BUILTIN_TOOLS and self.type not in (AUTO, CUSTOM):
            raise ConfigInvalid(f"Unknown screenshot type: {self.type!r}")

    @classmethod
    def custom(cls, area: str = "", screen: str = "", window: str = "") -> "ScreenshotType":
        return cls(type=CUSTOM, area=area, screen=screen, window=window)

    @classmethod
    def for_tool(cls, tool: ToolKind) -> "ScreenshotType":
        for name, builtin in _BUILTIN_TOOLS.items():
            if builtin is tool:
                return cls(type=name)
        raise ValueError(f"No screenshot type for {tool}")

    @property
    def is_custom(self) -> bool:
        return self.type == CUSTOM

    @property
    def is_auto(self) -> bool:
        return self.type == AUTO

    @property
    def tool(self) -> Optional[ToolKind]:
        """Tool for a built-in type, None for Auto and Custom."""
        return _BUILTIN_TOOLS.get(self.type)

    @property
    def name(self) -> str:
        if self.tool is not None:
            return self.tool.executable
        return self.type.lower()

    def to_dict(self) -> dict:
        if self.is_custom:
            return {
                "type": self.type,
                "area": self.area,
                "screen": self.screen,
                "window": self.window,
            }
        return {"type": self.type}

    @classmethod
    def from_dict(cls, data) -> "ScreenshotType":
        if isinstance(data, str):
            return cls(type=data)
        if not isinstance(data, dict):
            raise ConfigInvalid(f"Invalid screenshot type: {data!r}")
        return cls(
            type=data.get("type", AUTO),
            area=data.get("area", ""),
            screen=data.get("screen", ""),
            window=data.get("window", ""),
        )


@dataclass
class Config:
    """Main configuration object.

    Requests carry a copy of this (see ``snapshot``) so the worker never
    reads state the foreground is editing.
    """

    api_url: str = DEFAULT_API_URL
    api_key: str = ""
    request_url: str = DEFAULT_REQUEST_URL
    headers: dict[str, str] = field(default_factory=dict)
    debug: bool = False
    s_type: ScreenshotType = field(default_factory=ScreenshotType)
    optimize_png: bool = True
    optimize_timeout: int = DEFAULT_OPTIMIZE_TIMEOUT
    notifications_enabled: bool = True
    use_keychain: bool = False

    @classmethod
    def get_config_file(cls) -> Path:
        """Get the config file path."""
        return ascella_dir() / CONFIG_FILENAME

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load config from file, or return defaults.

        Raises:
            ConfigInvalid: If the file exists but cannot be parsed
        """
        config_file = path or cls.get_config_file()
        if not config_file.exists():
            logger.debug(f"No config at {config_file}, using defaults")
            return cls()

        try:
            with open(config_file, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigInvalid(f"Config file {config_file} is invalid: {e}") from e
        if not isinstance(data, dict):
            raise ConfigInvalid(f"Config file {config_file} is not a JSON object")

        config = cls.from_dict(data)
        if config.use_keychain and not config.api_key:
            config.api_key = TokenStore().load() or ""
        return config

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create Config from dictionary."""
        data = dict(data)
        # Aliases used by pushed documents and .sxcu files
        if "RequestURL" in data:
            data.setdefault("request_url", data.pop("RequestURL"))
        if "Headers" in data:
            data.setdefault("headers", data.pop("Headers"))

        headers = data.pop("headers", None) or {}
        if not isinstance(headers, dict):
            raise ConfigInvalid("headers must be an object")
        s_type = ScreenshotType.from_dict(data.pop("s_type", {}))

        return cls(
            headers={str(k): str(v) for k, v in headers.items()},
            s_type=s_type,
            **{k: v for k, v in data.items() if k in cls.__dataclass_fields__},
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["s_type"] = self.s_type.to_dict()
        return data

    def save(self, path: Optional[Path] = None) -> Path:
        """Save config to file.

        Returns:
            The path written
        """
        config_file = path or self.get_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)

        data = self.to_dict()
        if self.use_keychain and self.api_key:
            if TokenStore().store(self.api_key):
                data["api_key"] = ""
            else:
                logger.warning("Keychain unavailable, keeping API key in the config file")

        with open(config_file, "w") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Config saved to {config_file}")
        return config_file

    def snapshot(self) -> "Config":
        """Independent copy to hand to the background worker."""
        return replace(self, headers=dict(self.headers))

    def with_pushed_document(self, raw: bytes) -> "Config":
        """Apply an uploader document (.sxcu style) to a copy of this config.

        Recognized fields are ``RequestURL`` and ``Headers``. An
        ``ascella-token`` entry in ``Headers`` becomes the API key.

        Raises:
            ConfigInvalid: If the document is not a JSON object or its
                headers are not a string map
        """
        try:
            document = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigInvalid(f"Pushed config is not valid JSON: {e}") from e
        if not isinstance(document, dict):
            raise ConfigInvalid("Pushed config must be a JSON object")

        updated = self.snapshot()
        if "Headers" in document:
            headers = document["Headers"]
            if not isinstance(headers, dict):
                raise ConfigInvalid("Headers must be an object")
            updated.headers = {str(k): str(v) for k, v in headers.items()}
            token = updated.headers.pop(TOKEN_HEADER, None)
            if token:
                updated.api_key = token
        if "RequestURL" in document:
            updated.request_url = str(document["RequestURL"])
        return updated


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    log_dir = Path(user_log_dir(APP_NAME, APP_AUTHOR))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "ascella.log"

    level = logging.DEBUG if debug else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
