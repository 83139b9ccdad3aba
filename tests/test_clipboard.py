"""Tests for clipboard publishing."""

import subprocess
from unittest.mock import patch

import pyperclip

from ascella.clipboard import publish
from ascella.environment import SessionKind


class TestPublish:
    """Tests for publish()."""

    @patch("ascella.clipboard.subprocess.Popen")
    def test_wayland_uses_wl_copy(self, mock_popen):
        assert publish("https://x/y", SessionKind.WAYLAND) is True
        assert mock_popen.call_args[0][0] == ["wl-copy", "https://x/y"]

    @patch("ascella.clipboard.subprocess.Popen", side_effect=FileNotFoundError("wl-copy"))
    def test_wayland_missing_tool(self, _mock_popen):
        assert publish("https://x/y", SessionKind.WAYLAND) is False

    @patch("ascella.clipboard.subprocess.run")
    def test_x11_pipes_text_to_xclip(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess([], 0)

        assert publish("https://x/y", SessionKind.X11) is True
        args, kwargs = mock_run.call_args
        assert args[0] == ["xclip", "-selection", "clipboard"]
        assert kwargs["input"] == b"https://x/y"
        assert kwargs["stdout"] is subprocess.DEVNULL
        assert kwargs["stderr"] is subprocess.DEVNULL

    @patch("ascella.clipboard.subprocess.run")
    def test_x11_failure_is_reported_not_raised(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess([], 1)
        assert publish("https://x/y", SessionKind.X11) is False

    @patch("ascella.clipboard.pyperclip.copy")
    def test_native_uses_pyperclip(self, mock_copy):
        assert publish("https://x/y", SessionKind.MACOS) is True
        mock_copy.assert_called_once_with("https://x/y")

    @patch("ascella.clipboard.pyperclip.copy", side_effect=pyperclip.PyperclipException("no clipboard"))
    def test_native_failure(self, _mock_copy):
        assert publish("https://x/y", SessionKind.WINDOWS) is False

    @patch("ascella.clipboard.current_session", return_value=SessionKind.MACOS)
    @patch("ascella.clipboard.pyperclip.copy")
    def test_detects_session(self, mock_copy, _mock_session):
        publish("text")
        mock_copy.assert_called_once_with("text")
