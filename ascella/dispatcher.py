"""Background worker that runs capture, upload and API requests in order.

The foreground submits ``Request`` values to ``inbound`` and reads
``RequestResponse`` values from ``outbound``. Exactly one worker consumes
``inbound``, one request at a time, so a later capture never starts
before an earlier upload has finished. Both queues are unbounded.
"""

import logging
import queue
import threading
from pathlib import Path
from typing import Callable, Optional

import requests

from .capture import run_capture
from .config import Config
from .environment import SessionKind, ToolKind, current_session, probe_tool, select_tool
from .errors import AscellaError, CaptureFailed
from .messages import (
    DoRequest,
    HttpResult,
    Notification,
    Request,
    RequestResponse,
    SaveConfig,
    Screenshot,
    UploadFile,
)
from .optimizer import prepare_upload
from .retry import RetryConfig, RetryExhausted, retry_with_backoff
from .screenshots import CaptureCommand, cmd_from_type
from .uploader import create_session, upload

__all__ = ["Dispatcher"]

logger = logging.getLogger(__name__)

_STOP = object()

# Connection problems and 5xx on reads are retried; uploads never are.
_RETRYABLE = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.HTTPError,
)


class Dispatcher:
    """Owns the HTTP session and processes requests strictly in order.

    Usage (GUI):
        dispatcher = Dispatcher()
        dispatcher.start()
        dispatcher.submit(Screenshot(...))
        ... poll dispatcher.outbound.get_nowait() each tick ...

    Usage (one-shot CLI):
        dispatcher.submit(request)
        dispatcher.run_once()
        response = dispatcher.outbound.get_nowait()
    """

    def __init__(
        self,
        outbound: Optional[queue.Queue] = None,
        session: Optional[requests.Session] = None,
        is_available: Callable[[ToolKind], bool] = probe_tool,
        session_kind: Optional[SessionKind] = None,
        images_dir: Optional[Path] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        """Initialize the dispatcher.

        Args:
            outbound: Queue for responses (created if omitted)
            session: HTTP session (for dependency injection/testing)
            is_available: Capture tool probe used for Auto screenshot types
            session_kind: Desktop session override, detected if omitted
            images_dir: Where captures are written, the data dir if omitted
            retry_config: Backoff for generic GET requests
        """
        self.inbound: queue.Queue = queue.Queue()
        self.outbound: queue.Queue = outbound if outbound is not None else queue.Queue()
        self.session = session or create_session()
        self._is_available = is_available
        self._session_kind = session_kind
        self._images_dir = images_dir
        self._retry_config = retry_config or RetryConfig()
        self._thread: Optional[threading.Thread] = None
        self._stopping = False

    def submit(self, request: Request) -> None:
        """Queue a request. Never blocks."""
        self.inbound.put(request)

    def start(self) -> None:
        """Start the worker thread.

        Raises:
            RuntimeError: If a stopped worker is still finishing its queue
        """
        if self._thread is not None and self._thread.is_alive():
            if self._stopping:
                raise RuntimeError("Previous worker is still finishing queued requests")
            return
        self._stopping = False
        self._thread = threading.Thread(target=self._run, name="ascella-worker", daemon=True)
        self._thread.start()
        logger.debug("Worker started")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop after the requests already queued have been handled.

        If the worker is still busy when ``timeout`` expires it keeps its
        slot, and ``start`` refuses until it has exited.
        """
        if self._thread is None:
            return
        if not self._stopping:
            self.inbound.put(_STOP)
            self._stopping = True
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Worker still busy, it will exit after the queued requests")
            return
        self._thread = None
        self._stopping = False

    def close(self) -> None:
        self.stop()
        self.session.close()

    def _run(self) -> None:
        while True:
            request = self.inbound.get()
            if request is _STOP:
                break
            self.handle(request)

    def run_once(self) -> None:
        """Handle the next queued request on the calling thread."""
        self.handle(self.inbound.get())

    def _emit(self, response: RequestResponse) -> None:
        self.outbound.put(response)

    def handle(self, request: Request) -> None:
        """Route one request. Always emits exactly one response."""
        try:
            if isinstance(request, Screenshot):
                self._handle_screenshot(request)
            elif isinstance(request, UploadFile):
                self._upload(request.path, request.config, request.print_result)
            elif isinstance(request, DoRequest):
                self._handle_do_request(request)
            elif isinstance(request, SaveConfig):
                self._handle_save_config(request.config)
            else:
                raise TypeError(f"Unknown request {request!r}")
        except Exception as e:
            logger.exception(f"Error handling {type(request).__name__}")
            self._emit(Notification.error(f"Unexpected error\n{e}"))

    def _resolve_command(self, request: Screenshot) -> CaptureCommand:
        tool = None
        if request.tool_type.is_auto:
            session = self._session_kind or current_session()
            tool = select_tool(session, self._is_available)
        return cmd_from_type(request.tool_type, request.mode, tool=tool, directory=self._images_dir)

    def _handle_screenshot(self, request: Screenshot) -> None:
        try:
            command = self._resolve_command(request)
            try:
                command.output_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise CaptureFailed(
                    f"Cannot create image directory {command.output_path.parent}\n{e}"
                ) from e
            result = run_capture(command)
        except AscellaError as e:
            logger.error(f"Screenshot failed: {e}")
            self._emit(Notification.error(str(e)))
            return

        self._upload(result.output_path, request.config, request.print_result)

    def _upload(self, path: Path, config: Config, print_result: bool) -> None:
        try:
            data = prepare_upload(path, config)
            response = upload(
                data,
                path.name,
                config,
                self.session,
                print_result=print_result,
                preview_path=path,
            )
        except (AscellaError, OSError) as e:
            logger.error(f"Failed uploading image: {e}")
            self._emit(Notification.error(f"Failed uploading image\n{e}"))
            return

        self._emit(Notification.success(f"Image uploaded {response.url}"))

    def _handle_do_request(self, request: DoRequest) -> None:
        prepared = self.session.prepare_request(request.request)

        def send() -> requests.Response:
            return self.session.send(prepared)

        def send_read() -> requests.Response:
            response = send()
            if response.status_code >= 500:
                raise requests.exceptions.HTTPError(
                    f"Server error {response.status_code}", response=response
                )
            return response

        try:
            if prepared.method == "GET":
                response = retry_with_backoff(
                    send_read, config=self._retry_config, retryable_exceptions=_RETRYABLE
                )
            else:
                response = send()
        except RetryExhausted as e:
            response = getattr(e.last_error, "response", None)
            # Still 5xx after the last retry: the caller gets that reply
            if response is None:
                logger.error(f"Request to {prepared.url} failed: {e.last_error}")
                self._emit(Notification.error(f"Request failed\n{e.last_error}"))
                return
        except requests.exceptions.RequestException as e:
            logger.error(f"Request to {prepared.url} failed: {e}")
            self._emit(Notification.error(f"Request failed\n{e}"))
            return

        self._emit(
            HttpResult(content=response.content, status=response.status_code, kind=request.kind)
        )

    def _handle_save_config(self, config: Config) -> None:
        try:
            config.save()
        except OSError as e:
            logger.error(f"Failed saving config: {e}")
            self._emit(Notification.error(f"Failed saving config\n{e}"))
            return
        self._emit(Notification.success("Config saved"))
