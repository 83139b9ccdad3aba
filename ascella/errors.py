"""Error taxonomy for the capture and upload pipeline."""

__all__ = [
    "AscellaError",
    "ToolMissing",
    "NoCompatibleTool",
    "CaptureFailed",
    "NetworkFailure",
    "InvalidResponse",
    "ConfigInvalid",
    "ClipboardFailure",
]


class AscellaError(Exception):
    """Base class for errors the dispatcher turns into notifications."""

    pass


class ToolMissing(AscellaError):
    """A capture tool could not be started because it is not installed."""

    def __init__(self, tool_name: str, message: str = ""):
        self.tool_name = tool_name
        super().__init__(
            message
            or f"{tool_name} is not installed\n"
            "please install it and make sure it's added to your PATH"
        )


class NoCompatibleTool(ToolMissing):
    """Every candidate in the session's fallback chain is missing."""

    def __init__(self, session_name: str, candidates: list[str]):
        self.session_name = session_name
        self.candidates = candidates
        super().__init__(
            candidates[-1] if candidates else "flameshot",
            f"No compatible screenshot tool found for {session_name} "
            f"(tried: {', '.join(candidates) or 'nothing'}). Install flameshot.",
        )


class CaptureFailed(AscellaError):
    """The capture tool ran but did not produce a usable result."""

    pass


class NetworkFailure(AscellaError):
    """Transport-level failure talking to the Ascella host."""

    pass


class InvalidResponse(AscellaError):
    """The server returned a payload we could not understand."""

    def __init__(self, message: str, status: int = 0):
        self.status = status
        super().__init__(message)


class ConfigInvalid(AscellaError):
    """Persisted or pushed configuration is missing or corrupt."""

    pass


class ClipboardFailure(AscellaError):
    """Copying to the clipboard failed. Logged, never surfaced."""

    pass
