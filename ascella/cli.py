"""Command-line interface for the Ascella uploader.

Every command runs through the same dispatcher the GUI uses, driven on the
calling thread: submit one request, handle it, report the response.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from . import __version__
from .config import Config, setup_logging
from .dispatcher import Dispatcher
from .errors import AscellaError, ConfigInvalid
from .messages import (
    ConfigPushed,
    DoRequest,
    HttpResult,
    Notification,
    RequestKind,
    SaveConfig,
    Screenshot,
    UploadFile,
)
from .screenshots import CaptureMode
from .uploader import files_request, me_request, parse_files, parse_user
from .webserver import DEFAULT_PORT, ConfigPushServer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ascella",
        description="Capture screenshots and upload them to Ascella",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    capture = sub.add_parser("capture", help="Capture a screenshot and upload it")
    capture.add_argument("mode", choices=[mode.value for mode in CaptureMode])
    capture.add_argument(
        "-d", "--delay", type=int, default=0, metavar="MS",
        help="Milliseconds to wait before capturing",
    )

    upload = sub.add_parser("upload", help="Upload a local file")
    upload.add_argument("path", type=Path)

    config = sub.add_parser("config", help="Import an uploader config (.sxcu / JSON)")
    config.add_argument("file", type=Path)

    sub.add_parser("profile", help="Show the account behind the API key")

    history = sub.add_parser("history", help="List uploaded files")
    history.add_argument("--page", type=int, default=0)

    listen = sub.add_parser("listen", help="Receive configs pushed from the website")
    listen.add_argument("--port", type=int, default=DEFAULT_PORT)

    return parser


def _fail(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def _run(dispatcher: Dispatcher, request):
    dispatcher.submit(request)
    dispatcher.run_once()
    return dispatcher.outbound.get_nowait()


def _report(response) -> int:
    """Exit code for a terminal notification; errors are printed."""
    if isinstance(response, Notification) and response.is_error:
        return _fail(response.message)
    return 0


def cmd_capture(args, config: Config, dispatcher: Dispatcher) -> int:
    if args.delay > 0:
        time.sleep(args.delay / 1000)
    request = Screenshot(
        tool_type=config.s_type,
        mode=CaptureMode(args.mode),
        config=config.snapshot(),
        print_result=True,
    )
    return _report(_run(dispatcher, request))


def cmd_upload(args, config: Config, dispatcher: Dispatcher) -> int:
    path = args.path.expanduser()
    if not path.is_file():
        return _fail(f"File not found: {path}")
    request = UploadFile(path=path.resolve(), config=config.snapshot(), print_result=True)
    return _report(_run(dispatcher, request))


def cmd_config(args, config: Config, dispatcher: Dispatcher) -> int:
    try:
        updated = config.with_pushed_document(args.file.read_bytes())
    except (OSError, ConfigInvalid) as e:
        return _fail(f"Failed to update config, please use a valid Ascella config file\n{e}")

    code = _report(_run(dispatcher, SaveConfig(updated.snapshot())))
    if code == 0:
        print("Updated your config, check ascella --help for more commands")
    return code


def _fetch(dispatcher: Dispatcher, kind: RequestKind, request) -> Optional[HttpResult]:
    response = _run(dispatcher, DoRequest(kind=kind, request=request))
    if isinstance(response, Notification):
        _fail(response.message)
        return None
    if not response.ok:
        _fail(f"Request failed with status {response.status}")
        return None
    return response


def cmd_profile(args, config: Config, dispatcher: Dispatcher) -> int:
    if not config.api_key:
        return _fail("No API key configured, import a config first")
    result = _fetch(dispatcher, RequestKind.RETRIEVE_USER, me_request(config))
    if result is None:
        return 1
    try:
        user = parse_user(result.content)
    except AscellaError as e:
        return _fail(str(e))

    print(f"Name:         {user.name}")
    print(f"Email:        {user.email}")
    print(f"UUID:         {user.uuid}")
    print(f"Upload limit: {user.upload_limit}")
    return 0


def cmd_history(args, config: Config, dispatcher: Dispatcher) -> int:
    if not config.api_key:
        return _fail("No API key configured, import a config first")
    result = _fetch(dispatcher, RequestKind.REQUEST_PAGE, files_request(config, args.page))
    if result is None:
        return 1
    try:
        files = parse_files(result.content)
    except AscellaError as e:
        return _fail(str(e))

    if not files:
        print("No more files")
        return 0
    for file in files:
        print(f"{file.name}\t{file.raw or file.vanity}")
    return 0


def cmd_listen(args, config: Config, dispatcher: Dispatcher) -> int:
    dispatcher.start()
    server = ConfigPushServer(dispatcher.outbound, port=args.port)
    try:
        server.start()
    except OSError as e:
        dispatcher.stop()
        return _fail(f"Cannot listen on port {args.port}: {e}")

    print(f"Waiting for configs on http://127.0.0.1:{server.port}/ (Ctrl+C to stop)")
    try:
        while True:
            response = dispatcher.outbound.get()
            if isinstance(response, ConfigPushed):
                try:
                    config = config.with_pushed_document(response.raw)
                except ConfigInvalid as e:
                    logger.error(f"Ignoring pushed config: {e}")
                    continue
                dispatcher.submit(SaveConfig(config.snapshot()))
            elif isinstance(response, Notification):
                print(response.message)
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
        dispatcher.stop()
    return 0


COMMANDS = {
    "capture": cmd_capture,
    "upload": cmd_upload,
    "config": cmd_config,
    "profile": cmd_profile,
    "history": cmd_history,
    "listen": cmd_listen,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = Config.load()
    except ConfigInvalid as e:
        return _fail(f"Your config is invalid, please use a valid Ascella config\n{e}")

    setup_logging(args.debug or config.debug)

    dispatcher = Dispatcher()
    try:
        return COMMANDS[args.command](args, config, dispatcher)
    finally:
        dispatcher.session.close()


if __name__ == "__main__":
    sys.exit(main())
