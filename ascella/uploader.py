"""Upload images to the configured endpoint and talk to the Ascella API."""

import json
import logging
import mimetypes
import platform
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests
from requests.exceptions import InvalidHeader
from requests.utils import check_header_validity

from . import __version__
from .clipboard import publish
from .config import TOKEN_HEADER, Config
from .errors import ConfigInvalid, InvalidResponse, NetworkFailure
from .notifications import send_notification

__all__ = [
    "UploadResponse",
    "UserRecord",
    "UploadedFile",
    "user_agent",
    "create_session",
    "build_headers",
    "upload",
    "me_request",
    "files_request",
    "parse_user",
    "parse_files",
]

logger = logging.getLogger(__name__)

# RFC 7230 token characters, so names with spaces are rejected
_HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

DEFAULT_MIME = "image/png"


@dataclass(frozen=True)
class UploadResponse:
    """Parsed reply of the upload endpoint."""

    url: str
    delete_url: str
    metadata: str

    @classmethod
    def from_json(cls, body: str) -> "UploadResponse":
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise InvalidResponse(f"Upload response is not JSON: {body[:200]!r}") from e
        if not isinstance(data, dict):
            raise InvalidResponse("Upload response is not a JSON object")
        try:
            fields = (data["url"], data["delete"], data["metadata"])
        except KeyError as e:
            raise InvalidResponse(f"Upload response is missing {e.args[0]!r}") from e
        if not all(isinstance(value, str) for value in fields):
            raise InvalidResponse("Upload response fields must be strings")
        return cls(url=fields[0], delete_url=fields[1], metadata=fields[2])


@dataclass
class UserRecord:
    """The account behind an API key, as returned by ``/me``."""

    id: int
    name: str
    email: str
    uuid: str
    upload_limit: int


@dataclass
class UploadedFile:
    """One entry of the upload history."""

    name: str
    vanity: str
    raw: str


def user_agent() -> str:
    return f"Ascella-uploader/{__version__} ({platform.system().lower()})"


def create_session() -> requests.Session:
    """The one HTTP session the worker uses for every request."""
    session = requests.Session()
    session.headers["User-Agent"] = user_agent()
    return session


def _valid_header(name: str, value: str) -> bool:
    if not _HEADER_NAME.match(name):
        return False
    try:
        check_header_validity((name, value))
        value.encode("latin-1")
    except (InvalidHeader, UnicodeEncodeError):
        return False
    return True


def build_headers(config: Config) -> dict[str, str]:
    """User headers plus the token header.

    Invalid user headers are dropped one by one.

    Raises:
        ConfigInvalid: If the API key cannot be sent as a header value
    """
    headers = {}
    for name, value in config.headers.items():
        if _valid_header(name, value):
            headers[name] = value
        else:
            logger.warning(f"Ignoring invalid header {name!r}")

    if config.api_key:
        if not _valid_header(TOKEN_HEADER, config.api_key):
            raise ConfigInvalid("API key contains characters not allowed in a header")
        headers[TOKEN_HEADER] = config.api_key
    return headers


def upload(
    data: bytes,
    filename: str,
    config: Config,
    session: requests.Session,
    print_result: bool = False,
    preview_path: Optional[Path] = None,
) -> UploadResponse:
    """Upload image bytes as the ``file`` part of a multipart POST.

    On success the URL is copied to the clipboard and, if enabled, a
    desktop notification is shown with ``preview_path`` as its image.

    Raises:
        NetworkFailure: On transport errors
        InvalidResponse: On a non-2xx status or an unparsable body
        ConfigInvalid: If the API key is not a valid header value
    """
    mime = mimetypes.guess_type(filename)[0] or DEFAULT_MIME
    headers = build_headers(config)

    try:
        response = session.post(
            config.request_url,
            headers=headers,
            files={"file": (filename, data, mime)},
        )
    except requests.exceptions.RequestException as e:
        raise NetworkFailure(f"Cannot reach {config.request_url}: {e}") from e

    logger.debug(f"Image uploaded {response.text}")
    if not response.ok:
        raise InvalidResponse(
            f"Upload failed ({response.status_code}): {response.text[:200]}",
            status=response.status_code,
        )
    result = UploadResponse.from_json(response.text)

    publish(result.url)

    if print_result:
        print(f"Image uploaded {result.url}")
        print(f"Delete URL: {result.delete_url}")

    if config.notifications_enabled:
        send_notification(
            "Ascella",
            "Upload success, url copied to clipboard!",
            image_path=preview_path,
        )
    return result


def _authorized_get(url: str, config: Config, params: Optional[dict] = None) -> requests.Request:
    return requests.Request(
        "GET", url, headers={TOKEN_HEADER: config.api_key}, params=params
    )


def me_request(config: Config) -> requests.Request:
    """Request for the account that owns ``config.api_key``."""
    return _authorized_get(f"{config.api_url.rstrip('/')}/me", config)


def files_request(config: Config, page: int) -> requests.Request:
    """Request for one page of the upload history."""
    return _authorized_get(
        f"{config.api_url.rstrip('/')}/me/files", config, params={"page": page}
    )


def _envelope_data(content: bytes):
    try:
        envelope = json.loads(content)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidResponse("API response is not JSON") from e
    if not isinstance(envelope, dict) or "data" not in envelope:
        raise InvalidResponse("API response has no data")
    if envelope.get("success") is False:
        raise InvalidResponse(envelope.get("message") or "API request failed")
    return envelope["data"]


def parse_user(content: bytes) -> UserRecord:
    """Parse a ``/me`` response body."""
    data = _envelope_data(content)
    try:
        return UserRecord(
            id=int(data["id"]),
            name=data["name"],
            email=data.get("email", ""),
            uuid=data.get("uuid", ""),
            upload_limit=int(data.get("upload_limit", 0)),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidResponse(f"Unexpected user record: {e}") from e


def parse_files(content: bytes) -> list[UploadedFile]:
    """Parse a ``/me/files`` page. An empty list means no more pages."""
    data = _envelope_data(content)
    if not isinstance(data, list):
        raise InvalidResponse("File history is not a list")
    try:
        return [
            UploadedFile(name=item["name"], vanity=item["vanity"], raw=item.get("raw", ""))
            for item in data
        ]
    except (KeyError, TypeError, AttributeError) as e:
        raise InvalidResponse(f"Unexpected file entry: {e}") from e
