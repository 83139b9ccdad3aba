"""Messages exchanged between the foreground and the background worker.

``Request`` values flow in, ``RequestResponse`` values flow out. Each is a
closed set of frozen dataclasses; the worker dispatches on the concrete
type.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

import requests

from .config import Config, ScreenshotType
from .screenshots import CaptureMode

__all__ = [
    "RequestKind",
    "Severity",
    "DoRequest",
    "Screenshot",
    "UploadFile",
    "SaveConfig",
    "Request",
    "HttpResult",
    "Notification",
    "ConfigPushed",
    "RequestResponse",
]


class RequestKind(Enum):
    """Correlation tag the caller attaches to a generic fetch."""

    RETRIEVE_USER = "retrieve_user"
    REQUEST_PAGE = "request_page"


class Severity(Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class DoRequest:
    """Execute ``request`` and hand back the raw response."""

    kind: RequestKind
    request: requests.Request


@dataclass(frozen=True)
class Screenshot:
    """Capture, optionally optimize, upload, and notify."""

    tool_type: ScreenshotType
    mode: CaptureMode
    config: Config
    print_result: bool = False


@dataclass(frozen=True)
class UploadFile:
    """Upload an existing file through the same path as a capture."""

    path: Path
    config: Config
    print_result: bool = False


@dataclass(frozen=True)
class SaveConfig:
    config: Config


Request = Union[DoRequest, Screenshot, UploadFile, SaveConfig]


@dataclass(frozen=True)
class HttpResult:
    content: bytes
    status: int
    kind: RequestKind

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass(frozen=True)
class Notification:
    severity: Severity
    message: str

    @classmethod
    def success(cls, message: str) -> "Notification":
        return cls(Severity.SUCCESS, message)

    @classmethod
    def error(cls, message: str) -> "Notification":
        return cls(Severity.ERROR, message)

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


@dataclass(frozen=True)
class ConfigPushed:
    """Raw document received by the local listener, parsed by the consumer."""

    raw: bytes


RequestResponse = Union[HttpResult, Notification, ConfigPushed]
